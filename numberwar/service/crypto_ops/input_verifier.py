"""
Input Verifier - attests client-encrypted inputs

A player encrypts locally and hands the ciphertext to the verifier, which
checks it is a well-formed euint8 inside the requested range and signs an
EIP-712 CiphertextVerification binding the resulting handles to one
contract and one user. The ledger only checks that signature.

Proof layout (hex):
    count(1) || handle(32) * count || signature(65)
"""
from typing import Dict, List, Tuple

from eth_account import Account
from eth_account.messages import encode_typed_data

from numberwar.config import CRYPTO_CONFIG, DECRYPTION_CONFIG, NETWORK_CONFIG
from numberwar.model import CiphertextHandle, EUINT8
from numberwar.model.account import normalize_address
from numberwar.model.handle import HANDLE_SIZE

from .bit_encoding import is_bit_vector, bits_to_u8
from .runtime import ConfidentialRuntime
from .serialization import deserialize_ciphertext

SIGNATURE_SIZE = 65

CIPHERTEXT_VERIFICATION_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
    ],
    "CiphertextVerification": [
        {"name": "ctHandles", "type": "bytes32[]"},
        {"name": "userAddress", "type": "address"},
        {"name": "contractAddress", "type": "address"},
        {"name": "minValue", "type": "uint8"},
        {"name": "maxValue", "type": "uint8"},
    ],
}


def ciphertext_verification_message(
    handles: List[CiphertextHandle],
    user_address: str,
    contract_address: str,
    min_value: int,
    max_value: int,
    chain_id: int = None,
) -> Dict:
    """Full EIP-712 typed data attested by the verifier."""
    return {
        "types": CIPHERTEXT_VERIFICATION_TYPES,
        "primaryType": "CiphertextVerification",
        "domain": {
            "name": DECRYPTION_CONFIG["input_eip712_name"],
            "version": DECRYPTION_CONFIG["input_eip712_version"],
            "chainId": chain_id or NETWORK_CONFIG["chain_id"],
        },
        "message": {
            "ctHandles": [h.raw for h in handles],
            "userAddress": normalize_address(user_address),
            "contractAddress": normalize_address(contract_address),
            "minValue": min_value,
            "maxValue": max_value,
        },
    }


def encode_proof(handles: List[CiphertextHandle], signature: bytes) -> str:
    return "0x" + (bytes([len(handles)]) + b"".join(h.raw for h in handles) + signature).hex()


def decode_proof(proof_hex: str) -> Tuple[List[CiphertextHandle], bytes]:
    """Split a proof into its handles and signature; ValueError when malformed."""
    if not isinstance(proof_hex, str):
        raise TypeError(f"Input proof must be a hex string, got {type(proof_hex).__name__}")
    text = proof_hex[2:] if proof_hex.startswith(("0x", "0X")) else proof_hex
    data = bytes.fromhex(text)
    if not data:
        raise ValueError("Empty input proof")

    count = data[0]
    expected = 1 + count * HANDLE_SIZE + SIGNATURE_SIZE
    if count == 0 or len(data) != expected:
        raise ValueError("Malformed input proof")

    handles = [
        CiphertextHandle(data[1 + i * HANDLE_SIZE:1 + (i + 1) * HANDLE_SIZE])
        for i in range(count)
    ]
    return handles, data[1 + count * HANDLE_SIZE:]


def recover_attester(
    proof_hex: str,
    user_address: str,
    contract_address: str,
    min_value: int,
    max_value: int,
) -> Tuple[str, List[CiphertextHandle]]:
    """
    Recover the address that signed an input proof for this user/contract/range.

    Returns:
        (attester_address, handles)
    """
    handles, signature = decode_proof(proof_hex)
    typed = ciphertext_verification_message(handles, user_address, contract_address, min_value, max_value)
    signer = Account.recover_message(encode_typed_data(full_message=typed), signature=signature)
    return signer, handles


class InputVerifier:
    """Checks client ciphertexts inside the runtime and signs input proofs"""

    def __init__(self, runtime: ConfidentialRuntime, private_key: str = None):
        self.runtime = runtime
        self._account = Account.from_key(private_key) if private_key else Account.create()

    @property
    def address(self) -> str:
        return self._account.address

    def verify_inputs(
        self,
        ciphertexts_b64: List[str],
        contract_address: str,
        user_address: str,
        min_value: int,
        max_value: int,
    ) -> Tuple[List[CiphertextHandle], str]:
        """
        Register client ciphertexts and attest them.

        Raises ValueError when a ciphertext is not a bit-sliced euint8
        or its value lies outside [min_value, max_value].

        Returns:
            (handles, input_proof_hex)
        """
        if not ciphertexts_b64:
            raise ValueError("No ciphertexts to verify")
        if len(ciphertexts_b64) > 255:
            raise ValueError("Too many ciphertexts in one proof")
        if not 0 <= min_value <= max_value <= 255:
            raise ValueError(f"Invalid range [{min_value}, {max_value}]")

        ciphertexts = []
        for ct_b64 in ciphertexts_b64:
            ciphertext = deserialize_ciphertext(self.runtime.cc, ct_b64)
            slots = self.runtime.decrypt_slots(ciphertext, CRYPTO_CONFIG["batch_size"])
            if not is_bit_vector(slots):
                raise ValueError("Ciphertext is not a well-formed euint8")
            value = bits_to_u8(slots)
            if not min_value <= value <= max_value:
                raise ValueError(f"Encrypted value outside [{min_value}, {max_value}]")
            ciphertexts.append(ciphertext)

        handles = [self.runtime.store(ct, EUINT8) for ct in ciphertexts]

        typed = ciphertext_verification_message(handles, user_address, contract_address, min_value, max_value)
        signed = self._account.sign_message(encode_typed_data(full_message=typed))
        print(f"[Verifier] Attested {len(handles)} input(s) for {normalize_address(user_address)}")
        return handles, encode_proof(handles, bytes(signed.signature))
