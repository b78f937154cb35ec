"""
Ciphertext Handle Model

A handle is a 32-byte reference to a ciphertext held by the confidential
runtime. It is never the ciphertext itself.

Layout:
    bytes 0..29  keccak-256 digest (truncated)
    byte  30     encrypted type code
    byte  31     handle format version
"""
from typing import Union

from eth_hash.auto import keccak

HANDLE_SIZE = 32
HANDLE_VERSION = 0

# Encrypted type codes
EBOOL = 0
EUINT8 = 2

FHE_TYPE_NAMES = {
    EBOOL: "ebool",
    EUINT8: "euint8",
}


class CiphertextHandle:
    """Immutable 32-byte ciphertext reference"""

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        if len(raw) != HANDLE_SIZE:
            raise ValueError(f"Handle must be {HANDLE_SIZE} bytes, got {len(raw)}")
        object.__setattr__(self, "_raw", bytes(raw))

    def __setattr__(self, name, value):
        raise AttributeError("CiphertextHandle is immutable")

    @classmethod
    def derive(cls, payload: bytes, fhe_type: int) -> "CiphertextHandle":
        """Build a handle from the digest of `payload` tagged with its type."""
        digest = keccak(payload)[:HANDLE_SIZE - 2]
        return cls(digest + bytes([fhe_type, HANDLE_VERSION]))

    @classmethod
    def from_hex(cls, value: str) -> "CiphertextHandle":
        if not isinstance(value, str):
            raise TypeError(f"Handle hex must be a string, got {type(value).__name__}")
        text = value.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        if len(text) != HANDLE_SIZE * 2:
            raise ValueError(f"Handle must be {HANDLE_SIZE * 2} hex digits: {value!r}")
        return cls(bytes.fromhex(text))

    @classmethod
    def coerce(cls, value: Union["CiphertextHandle", str, bytes]) -> "CiphertextHandle":
        if isinstance(value, CiphertextHandle):
            return value
        if isinstance(value, (bytes, bytearray)):
            return cls(bytes(value))
        return cls.from_hex(value)

    @property
    def raw(self) -> bytes:
        return self._raw

    @property
    def fhe_type(self) -> int:
        return self._raw[30]

    @property
    def is_sentinel(self) -> bool:
        return not any(self._raw)

    def hex(self) -> str:
        return "0x" + self._raw.hex()

    def __eq__(self, other) -> bool:
        if isinstance(other, CiphertextHandle):
            return self._raw == other._raw
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._raw)

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        type_name = FHE_TYPE_NAMES.get(self.fhe_type, f"type{self.fhe_type}")
        return f"CiphertextHandle({type_name} {self.hex()})"


ZERO_HANDLE = CiphertextHandle(bytes(HANDLE_SIZE))


def is_sentinel(value: Union[CiphertextHandle, str, bytes, None]) -> bool:
    """
    True for the all-zero handle and for missing values.
    Accepts anything CiphertextHandle.coerce accepts.
    """
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return CiphertextHandle.coerce(value).is_sentinel
