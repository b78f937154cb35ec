"""
Signed ledger transactions

A transaction names the sender, a per-sender nonce, the contract method
and its arguments. The sender signs the canonical JSON form (EIP-191);
the node recovers the signer and uses it as the caller.
"""
import json
from typing import Any, Dict, List

from eth_account import Account
from eth_account.messages import encode_defunct

from numberwar.config import NETWORK_CONFIG
from numberwar.model.account import normalize_address

WRITE_METHODS = ("joinGame", "submitNumber")


def build_transaction(
    sender: str,
    nonce: int,
    method: str,
    args: List[Any],
    contract: str,
    chain_id: int = None,
) -> Dict[str, Any]:
    if method not in WRITE_METHODS:
        raise ValueError(f"Unknown contract method: {method}")
    return {
        "chainId": chain_id or NETWORK_CONFIG["chain_id"],
        "to": normalize_address(contract),
        "from": normalize_address(sender),
        "nonce": int(nonce),
        "method": method,
        "args": list(args),
    }


def signing_payload(tx: Dict[str, Any]) -> str:
    """Canonical text the sender signs (signature field excluded)."""
    body = {k: v for k, v in tx.items() if k != "signature"}
    return json.dumps(body, sort_keys=True, separators=(",", ":"))


async def sign_transaction(wallet, tx: Dict[str, Any]) -> Dict[str, Any]:
    signed = dict(tx)
    signed["signature"] = await wallet.sign_message(signing_payload(tx))
    return signed


def recover_sender(tx: Dict[str, Any]) -> str:
    """Address that signed `tx`; raises ValueError when unsigned or malformed."""
    signature = tx.get("signature")
    if not signature:
        raise ValueError("Transaction is not signed")
    return Account.recover_message(encode_defunct(text=signing_payload(tx)), signature=signature)
