"""Build, sign, encode and decode Flow transactions in canonical RLP form."""

__version__ = "0.1.0"
__all__ = ["rlp", "transaction"]