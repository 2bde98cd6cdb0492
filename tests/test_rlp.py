import pytest

from flowtx.rlp import RLPError, decode, encode

PAYLOAD_HEX = (
    "f872b07472616e73616374696f6e207b2065786563757465207b206c6f67282248656c6c6f2c2057"
    "6f726c64212229207d207dc0a0f0e4c2f76c58916ec258f246851bea091d14d4247a2fc3e1869446"
    "1b1816e13b2a880000000000000001040a880000000000000001c9880000000000000001"
)


def test_zero_encodes_as_empty_string():
    assert encode(0) == b"\x80"
    assert encode(b"") == b"\x80"


def test_small_values_encode_as_themselves():
    assert encode(42) == b"\x2a"
    assert encode(b"\x04") == b"\x04"


def test_short_string_has_length_prefix():
    address = bytes.fromhex("0000000000000001")
    assert encode(address) == bytes.fromhex("880000000000000001")


def test_empty_list():
    assert encode([]) == b"\xc0"
    assert decode(b"\xc0") == []


def test_known_payload_decodes_to_fields():
    raw = bytes.fromhex(PAYLOAD_HEX)
    fields = decode(raw)
    assert len(fields) == 9
    assert fields[0] == b'transaction { execute { log("Hello, World!") } }'
    assert fields[1] == []
    assert fields[3] == b"\x2a"
    assert fields[8] == [bytes.fromhex("0000000000000001")]
    assert encode(fields) == raw


def test_tuple_encodes_like_list():
    assert encode((b"a", [b"b"])) == encode([b"a", [b"b"]])


@pytest.mark.parametrize(
    "item",
    [
        b"",
        b"\x00",
        b"\x7f",
        b"\x80",
        b"hello",
        bytes(55),
        bytes(56),
        bytes(range(256)) * 4,
        [],
        [b"a", [b"b", [b"c", []]]],
        [bytes(60), [bytes(70)] * 3],
    ],
)
def test_round_trip(item):
    assert decode(encode(item)) == item


def test_integer_round_trip():
    for value in (1, 127, 128, 255, 256, 2**64 - 1):
        decoded = decode(encode(value))
        assert int.from_bytes(decoded, "big") == value
        assert decoded[:1] != b"\x00"


def test_long_string_uses_long_form_prefix():
    encoded = encode(bytes(200))
    assert 0xB8 <= encoded[0] <= 0xBF
    assert encoded.endswith(bytes(200))


def test_long_list_uses_long_form_prefix():
    encoded = encode([bytes(30), bytes(30)])
    assert 0xF8 <= encoded[0] <= 0xFF


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"\x81\x05",
        b"\x83ab",
        b"\x80\x80",
        b"\xb8\x05hello",
        b"\xb9\x00\x38" + bytes(56),
        b"\xc2\x83a",
        b"\xb9\x01",
        b"\xf8",
    ],
)
def test_decode_rejects_invalid_input(data):
    with pytest.raises(RLPError):
        decode(data)


@pytest.mark.parametrize("value", [-1, 1.5, None, True, "text", {"a": 1}])
def test_encode_rejects_unsupported_values(value):
    with pytest.raises(RLPError):
        encode(value)