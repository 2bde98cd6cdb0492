"""Transactions: building, signing, canonical encoding and decoding."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol

from flowtx import rlp

DEFAULT_TRANSACTION_GAS_LIMIT = 9999
"""Gas limit that should be high enough for small transactions."""

ADDRESS_LENGTH = 8
IDENTIFIER_LENGTH = 32
EMPTY_ADDRESS = bytes(ADDRESS_LENGTH)
EMPTY_ID = bytes(IDENTIFIER_LENGTH)
TRANSACTION_DOMAIN_TAG = b"FLOW-V0.0-transaction".ljust(32, b"\x00")

_UINT64_MASK = (1 << 64) - 1
_PAYLOAD_FIELD_COUNT = 9
_SIGNATURE_FIELD_COUNT = 3


class TransactionDecodeError(ValueError):
    """Raised when bytes cannot be decoded into a transaction."""


class _Signer(Protocol):
    def sign(self, message: bytes) -> bytes: ...


def _to_address(value) -> bytes:
    data = bytes(value)
    return data[-ADDRESS_LENGTH:].rjust(ADDRESS_LENGTH, b"\x00")


def _to_identifier(value) -> bytes:
    data = bytes(value)
    return data[:IDENTIFIER_LENGTH].ljust(IDENTIFIER_LENGTH, b"\x00")


def _to_signed(value: int) -> int:
    value &= _UINT64_MASK
    return value - (1 << 64) if value >= 1 << 63 else value


@dataclass
class ProposalKey:
    """The account key proposing a transaction and its sequence number."""

    address: bytes = EMPTY_ADDRESS
    key_index: int = 0
    sequence_number: int = 0


@dataclass
class TransactionSignature:
    """A signature associated with a specific account key."""

    address: bytes
    signer_index: int
    key_index: int
    signature: bytes

    def _canonical_form(self) -> list:
        return [
            self.signer_index & _UINT64_MASK,
            self.key_index & _UINT64_MASK,
            self.signature,
        ]


class TransactionStatus(IntEnum):
    """The status of a transaction."""

    UNKNOWN = 0
    PENDING = 1
    FINALIZED = 2
    EXECUTED = 3
    SEALED = 4
    EXPIRED = 5

    def __str__(self) -> str:
        return self.name


@dataclass
class TransactionResult:
    """The outcome of an executed transaction."""

    status: TransactionStatus = TransactionStatus.UNKNOWN
    error: Exception | None = None
    events: list[Any] = field(default_factory=list)
    block_id: bytes = EMPTY_ID
    block_height: int = 0


@dataclass
class Transaction:
    """A full transaction: payload plus payload and envelope signatures."""

    script: bytes = b""
    arguments: list[bytes] = field(default_factory=list)
    reference_block_id: bytes = EMPTY_ID
    gas_limit: int = DEFAULT_TRANSACTION_GAS_LIMIT
    proposal_key: ProposalKey = field(default_factory=ProposalKey)
    payer: bytes = EMPTY_ADDRESS
    authorizers: list[bytes] = field(default_factory=list)
    payload_signatures: list[TransactionSignature] = field(default_factory=list)
    envelope_signatures: list[TransactionSignature] = field(default_factory=list)

    def id(self) -> bytes:
        """Return the SHA3-256 hash of the full encoded transaction."""
        return hashlib.sha3_256(self.encode()).digest()

    def set_script(self, script) -> Transaction:
        """Set the UTF-8 encoded Cadence source code of this transaction."""
        if script is None:
            script = b""
        elif isinstance(script, str):
            script = script.encode("utf-8")
        self.script = bytes(script)
        return self

    def add_argument(self, value) -> None:
        """Append a JSON-CDC value (such as {"type": "String", "value": "foo"})."""
        try:
            encoded = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"failed to encode argument: {exc}") from exc
        self.arguments.append(encoded.encode("utf-8") + b"\n")

    def add_raw_argument(self, arg) -> Transaction:
        """Append an already JSON-CDC encoded argument."""
        self.arguments.append(bytes(arg))
        return self

    def argument(self, index: int) -> Any:
        """Return the decoded argument at the given index."""
        if index < 0:
            raise ValueError("argument index must be positive")
        if index >= len(self.arguments):
            raise IndexError(f"no argument at index {index}")
        try:
            value = json.loads(self.arguments[index])
        except ValueError as exc:
            raise ValueError(f"failed to decode argument at index {index}: {exc}") from exc
        if not isinstance(value, dict) or not isinstance(value.get("type"), str):
            raise ValueError(
                f"failed to decode argument at index {index}: not a JSON-CDC value"
            )
        return value

    def set_reference_block_id(self, block_id) -> Transaction:
        """Set the block used to calculate the expiry of this transaction."""
        self.reference_block_id = _to_identifier(block_id)
        return self

    def set_gas_limit(self, limit: int) -> Transaction:
        """Set the maximum number of computational units to spend."""
        self.gas_limit = limit
        return self

    def set_proposal_key(self, address, key_index: int, sequence_number: int) -> Transaction:
        """Set the proposal key and the sequence number being declared."""
        self.proposal_key = ProposalKey(_to_address(address), key_index, sequence_number)
        self._refresh_signer_index()
        return self

    def set_payer(self, address) -> Transaction:
        """Set the account that pays the fee for this transaction."""
        self.payer = _to_address(address)
        self._refresh_signer_index()
        return self

    def add_authorizer(self, address) -> Transaction:
        """Add an account authorizing this transaction."""
        self.authorizers.append(_to_address(address))
        self._refresh_signer_index()
        return self

    def sign_payload(self, address, key_index: int, signer: _Signer) -> None:
        """Sign the domain tag and payload and add the resulting signature."""
        signature = signer.sign(TRANSACTION_DOMAIN_TAG + self.payload_message())
        self.add_payload_signature(address, key_index, signature)

    def sign_envelope(self, address, key_index: int, signer: _Signer) -> None:
        """Sign the domain tag, payload and payload signatures."""
        signature = signer.sign(TRANSACTION_DOMAIN_TAG + self.envelope_message())
        self.add_envelope_signature(address, key_index, signature)

    def add_payload_signature(self, address, key_index: int, signature) -> Transaction:
        """Add a payload signature for the given address and key index."""
        self.payload_signatures.append(self._create_signature(address, key_index, signature))
        _sort_signatures(self.payload_signatures)
        self._refresh_signer_index()
        return self

    def add_envelope_signature(self, address, key_index: int, signature) -> Transaction:
        """Add an envelope signature for the given address and key index."""
        self.envelope_signatures.append(self._create_signature(address, key_index, signature))
        _sort_signatures(self.envelope_signatures)
        self._refresh_signer_index()
        return self

    def payload_message(self) -> bytes:
        """Return the RLP encoding of the payload."""
        return rlp.encode(self._payload_canonical_form())

    def envelope_message(self) -> bytes:
        """Return the signable message for the envelope (signed by the payer)."""
        return rlp.encode(
            [
                self._payload_canonical_form(),
                [sig._canonical_form() for sig in self.payload_signatures],
            ]
        )

    def encode(self) -> bytes:
        """Serialise the payload and all signatures."""
        return rlp.encode(
            [
                self._payload_canonical_form(),
                [sig._canonical_form() for sig in self.payload_signatures],
                [sig._canonical_form() for sig in self.envelope_signatures],
            ]
        )

    def _signer_list(self) -> list[bytes]:
        """Unique signing accounts: proposer, payer, then authorizers."""
        candidates = []
        if self.proposal_key.address != EMPTY_ADDRESS:
            candidates.append(self.proposal_key.address)
        if self.payer != EMPTY_ADDRESS:
            candidates.append(self.payer)
        candidates.extend(self.authorizers)
        return list(dict.fromkeys(candidates))

    def _signer_map(self) -> dict[bytes, int]:
        return {address: index for index, address in enumerate(self._signer_list())}

    def _refresh_signer_index(self) -> None:
        signers = self._signer_map()
        for sig in (*self.payload_signatures, *self.envelope_signatures):
            sig.signer_index = signers.get(sig.address, -1)

    def _create_signature(self, address, key_index: int, signature) -> TransactionSignature:
        address = _to_address(address)
        return TransactionSignature(
            address=address,
            signer_index=self._signer_map().get(address, -1),
            key_index=key_index,
            signature=bytes(signature),
        )

    def _payload_canonical_form(self) -> list:
        # Arguments are stored without the trailing newline that encoders emit.
        self.arguments[:] = [
            arg[:-1] if arg.endswith(b"\n") else arg for arg in self.arguments
        ]
        return [
            self.script,
            list(self.arguments),
            self.reference_block_id,
            self.gas_limit,
            self.proposal_key.address,
            self.proposal_key.key_index & _UINT64_MASK,
            self.proposal_key.sequence_number,
            self.payer,
            list(self.authorizers),
        ]


def _sort_signatures(signatures: list[TransactionSignature]) -> None:
    signatures.sort(key=lambda sig: (sig.signer_index, sig.key_index))


def decode_transaction(message) -> Transaction:
    """Decode the output of payload_message, envelope_message or encode."""
    try:
        top = rlp.decode(message)
    except rlp.RLPError as exc:
        raise TransactionDecodeError(str(exc)) from exc

    if not isinstance(top, list):
        raise TransactionDecodeError("unexpected rlp decoding type")
    if not top:
        raise TransactionDecodeError("transaction list is empty")

    if isinstance(top[0], list):
        tx = _parse_payload(top[0])
        if len(top) < 2:
            raise TransactionDecodeError("missing payload signatures")
        payload_sigs = _parse_signatures(top[1])
        envelope_sigs = _parse_signatures(top[2]) if len(top) > 2 else []
    else:
        tx = _parse_payload(top)
        payload_sigs, envelope_sigs = [], []

    signers = tx._signer_list()
    tx.payload_signatures = [_attach_address(sig, signers) for sig in payload_sigs]
    tx.envelope_signatures = [_attach_address(sig, signers) for sig in envelope_sigs]
    return tx


def _attach_address(sig: TransactionSignature, signers: list[bytes]) -> TransactionSignature:
    if not 0 <= sig.signer_index < len(signers):
        raise TransactionDecodeError(f"signer index {sig.signer_index} out of range")
    sig.address = signers[sig.signer_index]
    return sig


def _expect_bytes(item, name: str) -> bytes:
    if not isinstance(item, bytes):
        raise TransactionDecodeError(f"{name}: expected a byte string")
    return item


def _expect_byte_list(item, name: str) -> list[bytes]:
    if not isinstance(item, list):
        raise TransactionDecodeError(f"{name}: expected a list")
    return [_expect_bytes(element, name) for element in item]


def _expect_uint(item, name: str) -> int:
    data = _expect_bytes(item, name)
    if len(data) > 8:
        raise TransactionDecodeError(f"{name}: integer overflows 64 bits")
    if data[:1] == b"\x00":
        raise TransactionDecodeError(f"{name}: non-canonical integer (leading zero bytes)")
    return int.from_bytes(data, "big")


def _parse_payload(fields) -> Transaction:
    if not isinstance(fields, list) or len(fields) != _PAYLOAD_FIELD_COUNT:
        raise TransactionDecodeError(
            f"transaction payload must be a list of {_PAYLOAD_FIELD_COUNT} fields"
        )
    script, arguments, block_id, gas, key_address, key_index, sequence, payer, auths = fields
    return Transaction(
        script=_expect_bytes(script, "script"),
        arguments=_expect_byte_list(arguments, "arguments"),
        reference_block_id=_to_identifier(_expect_bytes(block_id, "reference block id")),
        gas_limit=_expect_uint(gas, "gas limit"),
        proposal_key=ProposalKey(
            address=_to_address(_expect_bytes(key_address, "proposal key address")),
            key_index=_to_signed(_expect_uint(key_index, "proposal key index")),
            sequence_number=_expect_uint(sequence, "proposal key sequence number"),
        ),
        payer=_to_address(_expect_bytes(payer, "payer")),
        authorizers=[_to_address(a) for a in _expect_byte_list(auths, "authorizers")],
    )


def _parse_signatures(item) -> list[TransactionSignature]:
    if not isinstance(item, list):
        raise TransactionDecodeError("signatures: expected a list")
    signatures = []
    for entry in item:
        if not isinstance(entry, list) or len(entry) != _SIGNATURE_FIELD_COUNT:
            raise TransactionDecodeError(
                f"signature must be a list of {_SIGNATURE_FIELD_COUNT} fields"
            )
        signer_index, key_index, signature = entry
        signatures.append(
            TransactionSignature(
                address=EMPTY_ADDRESS,
                signer_index=_to_signed(_expect_uint(signer_index, "signer index")),
                key_index=_to_signed(_expect_uint(key_index, "key index")),
                signature=_expect_bytes(signature, "signature"),
            )
        )
    return signatures