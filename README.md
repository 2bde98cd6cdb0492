# flowtx

`flowtx` builds Flow transactions and collects their signatures. It turns a
transaction into the canonical RLP byte form that is used for signing,
hashing and transport, and it decodes that byte form back into a
transaction. It has no dependencies outside the standard library.

## Installation

```
pip install flowtx
```

## Building a transaction

`Transaction` is a dataclass in `flowtx.transaction`. A new transaction has
an empty script, no arguments, an all-zero reference block id, the gas limit
`DEFAULT_TRANSACTION_GAS_LIMIT` (9999), and an all-zero proposer and payer.
Every setter returns the transaction, so calls can be chained.

```python
from flowtx.transaction import Transaction

proposer = bytes.fromhex("0000000000000001")
payer = bytes.fromhex("0000000000000002")

tx = (
    Transaction()
    .set_script(b'transaction { execute { log("Hello, World!") } }')
    .set_reference_block_id(bytes(32))
    .set_gas_limit(42)
    .set_proposal_key(proposer, 3, 42)
    .set_payer(payer)
    .add_authorizer(proposer)
)

print(tx.id().hex())
```

- `set_script` accepts bytes, a `str`, which is encoded as UTF-8, or `None`,
  which gives an empty script.
- Addresses are stored as 8 bytes. A shorter address is left-padded with
  zeros. A longer one keeps its last 8 bytes.
- Reference block ids are stored as 32 bytes. A shorter id is right-padded
  with zeros. A longer one is truncated.
- `id()` returns the SHA3-256 digest of `encode()` as 32 raw bytes.

## Signing

A signer is any object with a `sign(message)` method that returns the
signature bytes.

- `sign_payload(address, key_index, signer)` signs `TRANSACTION_DOMAIN_TAG`
  followed by `payload_message()`.
- `sign_envelope(address, key_index, signer)` signs `TRANSACTION_DOMAIN_TAG`
  followed by `envelope_message()`.

Each method adds the signature it gets back to the transaction.

```python
class FixedSigner:
    def __init__(self, signature):
        self.signature = signature

    def sign(self, message):
        return self.signature

tx.sign_payload(proposer, 3, FixedSigner(b"\x01"))
tx.sign_envelope(payer, 7, FixedSigner(b"\x03"))
```

You can also attach existing signatures with `add_payload_signature` and
`add_envelope_signature`. Each signature is a `TransactionSignature` with the
fields `address`, `signer_index`, `key_index` and `signature`.

The signer index is the account's position in the list of unique signers.
That list holds the proposer first, then the payer, then the authorizers in
the order they were added. An account that appears in more than one role is
counted once, at its first position. An all-zero proposer or payer is left
out.

A signature from an account that is not yet in the transaction gets signer
index `-1`. Setting the proposer, setting the payer or adding an authorizer
recomputes the index of every signature. Both signature lists are kept
sorted by signer index and then by key index.

## Arguments

Arguments are stored as JSON-Cadence encoded bytes.

- `add_argument(value)` takes a JSON-Cadence value as plain Python data, for
  example `{"type": "String", "value": "foo"}`, and stores it as compact JSON.
  It raises `ValueError` if the value cannot be serialised to JSON.
- `add_raw_argument(arg)` appends bytes that are already encoded.
- `argument(index)` parses an argument back into a dict. A negative index
  raises `ValueError`, and an index past the end raises `IndexError`. It also
  raises `ValueError` if the bytes are not JSON, or if they are not an object
  with a string `"type"` field.

A trailing newline on an argument is removed from the stored argument when
the transaction is encoded.

## Encoding and decoding

```python
from flowtx.transaction import decode_transaction

payload = tx.payload_message()    # RLP of the payload
envelope = tx.envelope_message()  # RLP of payload + payload signatures
full = tx.encode()                # RLP of payload + all signatures

same = decode_transaction(full)
assert same.id() == tx.id()
```

`decode_transaction` accepts the output of any of the three encoders. The
addresses of decoded signatures are rebuilt from their signer indexes.

It raises `TransactionDecodeError`, a subclass of `ValueError`, in these
cases:

- the input is not valid RLP;
- the structure or field count is wrong;
- an integer is longer than 64 bits or has leading zero bytes;
- a signer index does not name a signer.

## Status and results

`TransactionStatus` is an `IntEnum` with the members `UNKNOWN`, `PENDING`,
`FINALIZED`, `EXECUTED`, `SEALED` and `EXPIRED`. `str()` of a member gives its
name.

`TransactionResult` is a dataclass with the fields `status`, `error`,
`events`, `block_id` and `block_height`.

## The RLP codec

`flowtx.rlp` holds the low-level codec.

`encode(item)` takes the following:

- bytes, `bytearray` or `memoryview`;
- non-negative ints, which are encoded minimally big-endian, so zero becomes
  the empty string;
- lists or tuples of these items, nested to any depth.

`decode(data)` returns bytes and nested lists. The decoder is strict: it
rejects trailing bytes, truncated input, non-canonical length prefixes and a
single byte below `0x80` that is wrapped in a string header. Both functions
raise `RLPError`, a subclass of `ValueError`.

## What this package does not do

- It does not send transactions to a network, and it does not query
  transaction status. `TransactionStatus` and `TransactionResult` are plain
  data holders.
- It does not generate keys or compute cryptographic signatures. You supply
  signatures, or objects that make them.
- It does not model Cadence values. Arguments are plain JSON data, and they
  are checked only for a `"type"` field.

## Tests

```
pip install -e ".[test]"
pytest
```