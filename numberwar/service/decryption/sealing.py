"""
Sealed plaintexts for user decryption.

The oracle never returns bare plaintext: each value is sealed to the
requester's ephemeral X25519 key and opened client-side.

    shared   = X25519(ephemeral_sender, recipient_public)
    key      = HKDF-SHA256(shared, salt=sender_public || recipient_public, info=SEAL_INFO)
    sealed   = sender_public(32) || nonce(12) || ChaCha20-Poly1305(key, nonce, plaintext, aad=handle)
"""
import os
from typing import Tuple

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.exceptions import InvalidTag

SEAL_INFO = b"numberwar/user-decrypt/v1"
KEY_SIZE = 32
NONCE_SIZE = 12


def _raw_public(key: X25519PublicKey) -> bytes:
    return key.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)


def _raw_private(key: X25519PrivateKey) -> bytes:
    return key.private_bytes(
        serialization.Encoding.Raw,
        serialization.PrivateFormat.Raw,
        serialization.NoEncryption(),
    )


def _derive_key(shared: bytes, sender_pub: bytes, recipient_pub: bytes) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=sender_pub + recipient_pub,
        info=SEAL_INFO,
    ).derive(shared)


def generate_keypair() -> Tuple[str, str]:
    """
    Fresh ephemeral keypair for one reveal batch.

    Returns:
        (public_key_hex, private_key_hex), both 0x-prefixed raw 32-byte keys
    """
    private_key = X25519PrivateKey.generate()
    return (
        "0x" + _raw_public(private_key.public_key()).hex(),
        "0x" + _raw_private(private_key).hex(),
    )


def _hex_bytes(value: str) -> bytes:
    if not isinstance(value, str):
        raise TypeError(f"Expected a hex string, got {type(value).__name__}")
    return bytes.fromhex(value[2:] if value.startswith(("0x", "0X")) else value)


def _from_hex(value: str) -> bytes:
    data = _hex_bytes(value)
    if len(data) != KEY_SIZE:
        raise ValueError(f"X25519 key must be {KEY_SIZE} bytes")
    return data


def seal(plaintext: str, recipient_public_hex: str, aad: bytes) -> str:
    """Seal `plaintext` for the holder of `recipient_public_hex`."""
    recipient_pub = _from_hex(recipient_public_hex)
    sender = X25519PrivateKey.generate()
    sender_pub = _raw_public(sender.public_key())
    shared = sender.exchange(X25519PublicKey.from_public_bytes(recipient_pub))

    key = _derive_key(shared, sender_pub, recipient_pub)
    nonce = os.urandom(NONCE_SIZE)
    body = ChaCha20Poly1305(key).encrypt(nonce, plaintext.encode("utf-8"), aad)
    return "0x" + (sender_pub + nonce + body).hex()


def open_sealed(sealed_hex: str, private_key_hex: str, aad: bytes) -> str:
    """
    Open a sealed value with the ephemeral private key.

    Raises ValueError when the payload was not sealed to this key or was
    tampered with, TypeError when it is not a hex string.
    """
    data = _hex_bytes(sealed_hex)
    if len(data) < KEY_SIZE + NONCE_SIZE + 16:
        raise ValueError("Sealed payload too short")

    sender_pub = data[:KEY_SIZE]
    nonce = data[KEY_SIZE:KEY_SIZE + NONCE_SIZE]
    body = data[KEY_SIZE + NONCE_SIZE:]

    private_key = X25519PrivateKey.from_private_bytes(_from_hex(private_key_hex))
    recipient_pub = _raw_public(private_key.public_key())
    shared = private_key.exchange(X25519PublicKey.from_public_bytes(sender_pub))

    key = _derive_key(shared, sender_pub, recipient_pub)
    try:
        return ChaCha20Poly1305(key).decrypt(nonce, body, aad).decode("utf-8")
    except InvalidTag as e:
        raise ValueError("Sealed payload failed authentication") from e
