"""
Decryption Authorization Client

Turns a batch of handles into plaintext for one viewer:
    1. drop sentinel and duplicate handles (nothing left -> {} with no I/O)
    2. fresh ephemeral keypair
    3. EIP-712 UserDecryptRequestVerification, signed by the viewer's signer
    4. oracle request; sealed results opened with the ephemeral key

Handles missing from the result are not (yet) decryptable by this viewer.
"""
import time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from numberwar.config import DECRYPTION_CONFIG
from numberwar.errors import ServiceUnavailable, SignerUnavailable, ValidationError
from numberwar.model import CiphertextHandle, is_sentinel
from numberwar.model.account import normalize_address
from numberwar.service.network_client import NodeNetworkClient

from .eip712 import create_eip712
from .sealing import generate_keypair, open_sealed

HandleLike = Union[CiphertextHandle, str, bytes]
HandleRequest = Union[HandleLike, Tuple[HandleLike, str]]


class DecryptionClient(NodeNetworkClient):
    """User decryption against the node's oracle endpoint"""

    def __init__(self, *args, duration_days: int = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.duration_days = duration_days or DECRYPTION_CONFIG["duration_days"]

    def _pair_handles(
        self,
        handles: Iterable[HandleRequest],
        contract_scope: Optional[Sequence[str]],
    ) -> Tuple[List[Tuple[CiphertextHandle, Optional[str]]], Optional[List[str]]]:
        pairs = []
        seen = set()
        for item in handles:
            if isinstance(item, tuple):
                raw, contract = item
                contract = normalize_address(contract)
            else:
                raw, contract = item, None
            if is_sentinel(raw):
                continue
            handle = CiphertextHandle.coerce(raw)
            if handle in seen:
                continue
            seen.add(handle)
            pairs.append((handle, contract))

        scope = [normalize_address(a) for a in contract_scope] if contract_scope else None
        return pairs, scope

    async def decrypt(
        self,
        handles: Iterable[HandleRequest],
        viewer: str,
        signer,
        contract_scope: Optional[Sequence[str]] = None,
    ) -> Dict[CiphertextHandle, str]:
        """
        Reveal `handles` to `viewer`.

        Args:
            handles: handles, or (handle, contract_address) pairs; bare
                     handles are paired with the deployed ledger
            viewer: account requesting the plaintext
            signer: object with async sign_typed_data(typed) -> signature
            contract_scope: contract addresses the grant covers
                            (defaults to the deployed ledger)

        Returns:
            {handle: plaintext} for authorized handles only

        Raises:
            ValidationError: a handle's contract is outside the scope
            SignerUnavailable: no signer, or signing failed
            ServiceUnavailable: oracle unreachable or request rejected
        """
        pairs, scope = self._pair_handles(handles, contract_scope)
        if not pairs:
            return {}
        if signer is None:
            raise SignerUnavailable("No signer available to authorize decryption")

        viewer = normalize_address(viewer)
        deployment = await self.deployment()
        default_contract = normalize_address(deployment["contractAddress"])
        scope = scope or [default_contract]

        pairs = [(h, c or default_contract) for h, c in pairs]
        for handle, contract in pairs:
            if contract not in scope:
                raise ValidationError(
                    f"Contract {contract} for {handle} is outside the decryption scope",
                    details={"handle": handle.hex(), "contract": contract},
                )

        public_key, private_key = generate_keypair()
        start_timestamp = int(time.time())
        typed = create_eip712(
            public_key, scope, start_timestamp, self.duration_days,
            deployment["oracleAddress"], deployment["chainId"],
        )

        try:
            signature = await signer.sign_typed_data(typed)
        except Exception as e:
            raise SignerUnavailable(f"Signer refused or failed: {e}") from e

        data = await self.post(
            "/v1/user-decrypt",
            {
                "handleContractPairs": [
                    {"handle": h.hex(), "contractAddress": c} for h, c in pairs
                ],
                "publicKey": public_key,
                "signature": signature,
                "contractAddresses": scope,
                "userAddress": viewer,
                "startTimestamp": start_timestamp,
                "durationDays": self.duration_days,
            },
        )
        results = data.get("results")
        if not isinstance(results, dict):
            raise ServiceUnavailable("Malformed oracle response")

        requested = {h.hex(): h for h, _ in pairs}
        plaintexts: Dict[CiphertextHandle, str] = {}
        for handle_hex, sealed in results.items():
            handle = requested.get(handle_hex.lower())
            if handle is None:
                continue
            try:
                plaintexts[handle] = open_sealed(sealed, private_key, handle.raw)
            except (TypeError, ValueError) as e:
                raise ServiceUnavailable(f"Could not open sealed result for {handle}: {e}") from e
        return plaintexts
