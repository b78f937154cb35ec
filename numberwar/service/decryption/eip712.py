"""
Structured authorization message for user decryption (EIP-712).

The schema is shared with the oracle. Renaming or reordering a field
changes the type hash and invalidates every signature made with the old
layout, so any change must bump DECRYPTION_CONFIG["eip712_version"].
"""
from typing import Dict, List

from numberwar.config import DECRYPTION_CONFIG, NETWORK_CONFIG
from numberwar.model.account import normalize_address

PRIMARY_TYPE = "UserDecryptRequestVerification"

USER_DECRYPT_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    PRIMARY_TYPE: [
        {"name": "publicKey", "type": "bytes"},
        {"name": "contractAddresses", "type": "address[]"},
        {"name": "startTimestamp", "type": "uint256"},
        {"name": "durationDays", "type": "uint256"},
    ],
}


def _hex_to_bytes(value: str) -> bytes:
    return bytes.fromhex(value[2:] if value.startswith(("0x", "0X")) else value)


def create_eip712(
    public_key: str,
    contract_addresses: List[str],
    start_timestamp: int,
    duration_days: int,
    verifying_contract: str,
    chain_id: int = None,
) -> Dict:
    """
    Build the full typed-data record a viewer signs to request decryption.

    Args:
        public_key: Ephemeral X25519 public key (0x hex)
        contract_addresses: Ledger addresses in scope
        start_timestamp: Issuance time (unix seconds)
        duration_days: Validity window in days
        verifying_contract: Oracle address (domain separator)
        chain_id: Defaults to NETWORK_CONFIG["chain_id"]

    Returns:
        Dict with types / primaryType / domain / message
    """
    return {
        "types": USER_DECRYPT_TYPES,
        "primaryType": PRIMARY_TYPE,
        "domain": {
            "name": DECRYPTION_CONFIG["eip712_name"],
            "version": DECRYPTION_CONFIG["eip712_version"],
            "chainId": chain_id or NETWORK_CONFIG["chain_id"],
            "verifyingContract": normalize_address(verifying_contract),
        },
        "message": {
            "publicKey": _hex_to_bytes(public_key),
            "contractAddresses": [normalize_address(a) for a in contract_addresses],
            "startTimestamp": int(start_timestamp),
            "durationDays": int(duration_days),
        },
    }
