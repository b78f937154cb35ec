"""
Wire forms of OpenFHE objects

OpenFHE's Python bindings only serialize through files, so every object
makes a round trip through a scratch directory. Over HTTP everything
travels as base64 text.
"""
import base64
import os
import tempfile
from typing import Callable

from openfhe import (
    BINARY,
    DeserializeCiphertext,
    DeserializeCryptoContext,
    DeserializePublicKey,
    PKESchemeFeature,
    SerializeToFile,
)

SCRATCH_NAME = "object.bin"


def _dump(obj) -> bytes:
    with tempfile.TemporaryDirectory(prefix="numberwar-") as scratch:
        path = os.path.join(scratch, SCRATCH_NAME)
        if not SerializeToFile(path, obj, BINARY):
            raise RuntimeError(f"Could not serialize {type(obj).__name__}")
        with open(path, "rb") as f:
            return f.read()


def _load(data: bytes, reader: Callable):
    with tempfile.TemporaryDirectory(prefix="numberwar-") as scratch:
        path = os.path.join(scratch, SCRATCH_NAME)
        with open(path, "wb") as f:
            f.write(data)
        obj, ok = reader(path, BINARY)
    if not ok:
        raise RuntimeError("Could not deserialize OpenFHE object")
    return obj


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(text: str) -> bytes:
    # binascii.Error is a ValueError
    return base64.b64decode(text, validate=True)


# ============================================================================
# Crypto context and public key (runtime -> player)
# ============================================================================

def serialize_crypto_context(cc) -> str:
    return _b64(_dump(cc))


def deserialize_crypto_context(cc_b64: str):
    """Rebuild a context; features are not serialized and get re-enabled here."""
    cc = _load(_unb64(cc_b64), DeserializeCryptoContext)
    for feature in (PKESchemeFeature.PKE, PKESchemeFeature.KEYSWITCH, PKESchemeFeature.LEVELEDSHE):
        cc.Enable(feature)
    return cc


def serialize_public_key(cc, public_key) -> str:
    return _b64(_dump(public_key))


def deserialize_public_key(cc, pk_b64: str):
    return _load(_unb64(pk_b64), DeserializePublicKey)


# ============================================================================
# Ciphertexts (player -> input verifier, runtime handle digests)
# ============================================================================

def ciphertext_to_bytes(ciphertext) -> bytes:
    return _dump(ciphertext)


def serialize_ciphertext(cc, ciphertext) -> str:
    return _b64(ciphertext_to_bytes(ciphertext))


def deserialize_ciphertext(cc, ct_b64: str):
    return _load(_unb64(ct_b64), DeserializeCiphertext)
