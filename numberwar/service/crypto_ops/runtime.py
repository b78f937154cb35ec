"""
Confidential Runtime - ciphertext store, ACL and encrypted randomness

Holds the only secret key. The ledger works with handles; plaintext only
leaves the runtime through the decryption oracle and the input verifier.
"""
import secrets
import threading
from typing import Callable, Dict, List, Set

from numberwar.model import CiphertextHandle, EBOOL, EUINT8
from numberwar.model.account import normalize_address

from .bit_encoding import BIT_WIDTH, u8_to_bits, bool_to_bits, bits_to_u8, bits_to_bool
from .context import create_openfhe_context, generate_runtime_keys
from .serialization import (
    ciphertext_to_bytes,
    serialize_crypto_context,
    serialize_public_key,
)


class ConfidentialRuntime:
    """Trusted confidential-compute backend addressed by ciphertext handles"""

    def __init__(self, cc=None, keypair=None):
        self.cc = cc or create_openfhe_context()
        self.keypair = keypair or generate_runtime_keys(self.cc)

        self._ciphertexts: Dict[CiphertextHandle, object] = {}
        self._acl: Dict[CiphertextHandle, Set[str]] = {}
        self._lock = threading.Lock()

    # ========================================================================
    # Public material
    # ========================================================================

    def public_bundle(self) -> Dict[str, str]:
        """Crypto context and public key for client-side encryption."""
        return {
            "cryptoContext": serialize_crypto_context(self.cc),
            "publicKey": serialize_public_key(self.cc, self.keypair.publicKey),
        }

    # ========================================================================
    # Handle store
    # ========================================================================

    def store(self, ciphertext, fhe_type: int) -> CiphertextHandle:
        """Register a ciphertext and return its fresh handle."""
        payload = ciphertext_to_bytes(ciphertext) + secrets.token_bytes(16)
        handle = CiphertextHandle.derive(payload, fhe_type)
        with self._lock:
            self._ciphertexts[handle] = ciphertext
            self._acl[handle] = set()
        return handle

    def contains(self, handle: CiphertextHandle) -> bool:
        return handle in self._ciphertexts

    def load(self, handle: CiphertextHandle):
        try:
            return self._ciphertexts[handle]
        except KeyError:
            raise KeyError(f"Unknown ciphertext handle {handle}") from None

    # ========================================================================
    # Encrypted operations
    # ========================================================================

    def encrypt_u8(self, value: int) -> CiphertextHandle:
        plaintext = self.cc.MakePackedPlaintext(u8_to_bits(value))
        return self.store(self.cc.Encrypt(self.keypair.publicKey, plaintext), EUINT8)

    def encrypt_bool(self, value: bool) -> CiphertextHandle:
        plaintext = self.cc.MakePackedPlaintext(bool_to_bits(value))
        return self.store(self.cc.Encrypt(self.keypair.publicKey, plaintext), EBOOL)

    def random_u8(self, low: int, high: int) -> CiphertextHandle:
        """
        Encrypted uniform random integer in [low, high].

        The plaintext exists only inside this call and is encrypted immediately.
        """
        if not 0 <= low <= high < (1 << BIT_WIDTH):
            raise ValueError(f"Invalid random range [{low}, {high}]")
        return self.encrypt_u8(low + secrets.randbelow(high - low + 1))

    def apply(self, circuit: Callable, result_type: int, *handles: CiphertextHandle) -> CiphertextHandle:
        """
        Evaluate `circuit(cc, *ciphertexts)` and store the result under a new handle.

        Inputs are never mutated; the result gets an empty ACL.
        """
        ciphertexts = [self.load(h) for h in handles]
        return self.store(circuit(self.cc, *ciphertexts), result_type)

    # ========================================================================
    # Access control
    # ========================================================================

    def allow(self, handle: CiphertextHandle, account: str):
        """Grant `account` the right to decrypt `handle`."""
        account = normalize_address(account)
        with self._lock:
            if handle not in self._acl:
                raise KeyError(f"Unknown ciphertext handle {handle}")
            self._acl[handle].add(account)

    def is_allowed(self, handle: CiphertextHandle, account: str) -> bool:
        try:
            account = normalize_address(account)
        except ValueError:
            return False
        return account in self._acl.get(handle, ())

    def allowed_accounts(self, handle: CiphertextHandle) -> List[str]:
        return sorted(self._acl.get(handle, ()))

    # ========================================================================
    # Decryption (oracle and input verifier only)
    # ========================================================================

    def decrypt_slots(self, ciphertext, length: int = BIT_WIDTH) -> List[int]:
        plaintext = self.cc.Decrypt(ciphertext, self.keypair.secretKey)
        plaintext.SetLength(length)
        return list(plaintext.GetPackedValue()[:length])

    def decrypt_value(self, handle: CiphertextHandle):
        """Plaintext behind a handle: int for euint8, bool for ebool."""
        slots = self.decrypt_slots(self.load(handle))
        if handle.fhe_type == EBOOL:
            return bits_to_bool(slots)
        if handle.fhe_type == EUINT8:
            return bits_to_u8(slots)
        raise ValueError(f"Unsupported encrypted type {handle.fhe_type}")

    def decrypt_to_string(self, handle: CiphertextHandle) -> str:
        """Wire form of a plaintext: decimal for euint8, 'true'/'false' for ebool."""
        value = self.decrypt_value(handle)
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
