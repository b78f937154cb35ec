"""
HTTP Ledger Client - the player's view of the deployed NumberWar contract
"""
from typing import Any, Dict

from numberwar.config import NETWORK_CONFIG
from numberwar.errors import ServiceUnavailable
from numberwar.model import CiphertextHandle
from numberwar.model.account import normalize_address
from numberwar.service.network_client import NodeNetworkClient

from .transaction import build_transaction, sign_transaction


class HttpLedgerClient(NodeNetworkClient):
    """Signed writes and plain reads against the node's ledger API"""

    async def contract_address(self) -> str:
        return (await self.deployment())["contractAddress"]

    # ========================================================================
    # Writes
    # ========================================================================

    async def _send(self, wallet, method: str, args: list) -> Dict[str, Any]:
        deployment = await self.deployment()
        nonce = (await self.get(f"/v1/nonce/{wallet.address}"))["nonce"]
        tx = build_transaction(
            wallet.address, nonce, method, args,
            deployment["contractAddress"], deployment["chainId"],
        )
        signed = await sign_transaction(wallet, tx)
        receipt = await self.post("/v1/tx", signed, timeout=NETWORK_CONFIG["transaction_timeout"])
        if receipt.get("status") != 1:
            raise ServiceUnavailable(f"Transaction failed: {receipt}")
        return receipt

    async def join_game(self, wallet) -> Dict[str, Any]:
        """Send joinGame() and wait for its receipt"""
        return await self._send(wallet, "joinGame", [])

    async def submit_number(self, wallet, input_handle: CiphertextHandle, input_proof: str) -> Dict[str, Any]:
        """Send submitNumber(handle, proof) and wait for its receipt"""
        handle = CiphertextHandle.coerce(input_handle)
        return await self._send(wallet, "submitNumber", [handle.hex(), input_proof])

    # ========================================================================
    # Reads
    # ========================================================================

    async def _call(self, method: str, account: str):
        data = await self.get(f"/v1/call/{method}/{normalize_address(account)}")
        if "result" not in data:
            raise ServiceUnavailable(f"Malformed {method} response")
        return data["result"]

    async def has_active_round(self, account: str) -> bool:
        return bool(await self._call("hasActiveRound", account))

    async def get_system_number(self, account: str) -> CiphertextHandle:
        return self._handle(await self._call("getSystemNumber", account))

    async def get_last_outcome(self, account: str) -> CiphertextHandle:
        return self._handle(await self._call("getLastOutcome", account))

    @staticmethod
    def _handle(value: str) -> CiphertextHandle:
        try:
            return CiphertextHandle.from_hex(value)
        except (TypeError, ValueError) as e:
            raise ServiceUnavailable(f"Malformed handle from node: {value!r}") from e
