"""
Encrypted Input Builder - client-side encryption of player values

The player encrypts under the runtime public key, then asks the node's
input verifier to attest the ciphertexts for one contract and one user.
"""
from typing import Any, Dict, List

from numberwar.errors import ServiceUnavailable
from numberwar.model import CiphertextHandle
from numberwar.model.account import normalize_address
from numberwar.service.network_client import NodeNetworkClient

from .bit_encoding import u8_to_bits
from .serialization import deserialize_crypto_context, deserialize_public_key, serialize_ciphertext


class ComputeClient(NodeNetworkClient):
    """Access to the confidential runtime's public material and input verifier"""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._cc = None
        self._public_key = None

    async def load_public_key(self):
        """Fetch and cache (crypto context, public key)"""
        if self._cc is None:
            bundle = await self.get("/v1/public-key")
            try:
                cc = deserialize_crypto_context(bundle["cryptoContext"])
                public_key = deserialize_public_key(cc, bundle["publicKey"])
            except (KeyError, ValueError, RuntimeError) as e:
                raise ServiceUnavailable(f"Malformed public key bundle: {e}") from e
            self._cc, self._public_key = cc, public_key
        return self._cc, self._public_key

    def create_encrypted_input(self, contract_address: str, user_address: str) -> "EncryptedInputBuilder":
        return EncryptedInputBuilder(self, contract_address, user_address)

    async def request_input_proof(
        self, ciphertexts_b64: List[str], contract_address: str, user_address: str
    ) -> Dict[str, Any]:
        return await self.post(
            "/v1/input-proof",
            {
                "ciphertexts": ciphertexts_b64,
                "contractAddress": contract_address,
                "userAddress": user_address,
            },
        )


class EncryptedInputBuilder:
    """Collects plaintext values, then encrypts and attests them in one proof"""

    def __init__(self, compute: ComputeClient, contract_address: str, user_address: str):
        self.compute = compute
        self.contract_address = normalize_address(contract_address)
        self.user_address = normalize_address(user_address)
        self._values: List[int] = []

    def add8(self, value: int) -> "EncryptedInputBuilder":
        u8_to_bits(value)  # type and range check
        self._values.append(value)
        return self

    async def encrypt(self) -> Dict[str, Any]:
        """
        Returns:
            {"handles": [CiphertextHandle, ...], "inputProof": "0x..."}
        """
        if not self._values:
            raise ValueError("No values added to encrypted input")

        cc, public_key = await self.compute.load_public_key()
        ciphertexts = [
            serialize_ciphertext(cc, cc.Encrypt(public_key, cc.MakePackedPlaintext(u8_to_bits(v))))
            for v in self._values
        ]

        data = await self.compute.request_input_proof(ciphertexts, self.contract_address, self.user_address)
        try:
            handles = [CiphertextHandle.from_hex(h) for h in data["handles"]]
            proof = data["inputProof"]
        except (KeyError, TypeError, ValueError) as e:
            raise ServiceUnavailable(f"Malformed input proof response: {e}") from e
        return {"handles": handles, "inputProof": proof}
