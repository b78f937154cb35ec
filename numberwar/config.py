"""
Configuration for the NumberWar node, oracle and player session
"""
from typing import Dict, Any
import os
from pathlib import Path


def _load_env_value(*names: str) -> str:
    """
    Load a value from environment variables or the root .env file.
    The first matching name wins; supports both '=' and ':' separators.
    """
    for key in names:
        value = os.getenv(key)
        if value:
            return value.strip()

    env_path = Path(__file__).resolve().parent.parent / ".env"
    if env_path.exists():
        try:
            with env_path.open("r", encoding="utf-8") as env_file:
                for raw_line in env_file:
                    line = raw_line.strip()
                    if not line or line.startswith("#"):
                        continue

                    if "=" in line and (":" not in line or line.index("=") < line.index(":")):
                        key, val = line.split("=", 1)
                    elif ":" in line:
                        key, val = line.split(":", 1)
                    else:
                        continue

                    key = key.strip()
                    val = val.strip().strip('"').strip("'")
                    if key in names:
                        return val
        except OSError:
            return ""

    return ""


def _load_private_key() -> str:
    """Player wallet key (hex). Empty string when no wallet is configured."""
    return _load_env_value("NUMBERWAR_PRIVATE_KEY", "PRIVATE_KEY")


# Game Configuration
GAME_CONFIG: Dict[str, Any] = {
    # Both the system number and the player's number live in this range
    "min_value": 1,
    "max_value": 10,
}


# Network Configuration
NETWORK_CONFIG: Dict[str, Any] = {
    "node_url": _load_env_value("NUMBERWAR_NODE_URL") or "http://localhost:8545",
    "host": "127.0.0.1",
    "port": 8545,

    "chain_id": int(_load_env_value("NUMBERWAR_CHAIN_ID") or 31337),

    "connection_timeout": 10,
    # Transactions run homomorphic circuits on the node
    "transaction_timeout": 120,
}


# Cryptography Configuration
CRYPTO_CONFIG: Dict[str, Any] = {
    "plain_modulus": 65537,
    # One slot per bit of an euint8
    "batch_size": 8,
    "bit_width": 8,
    # Sums of two values in [1, 10] stay below 32: four carry rounds reach bit 4
    "carry_rounds": 4,
    # a*b, one level per carry round, one for the output mask
    "multiplicative_depth": 6,
}


# Decryption Authorization Configuration
DECRYPTION_CONFIG: Dict[str, Any] = {
    "eip712_name": "Decryption",
    "eip712_version": "1",
    "input_eip712_name": "InputVerification",
    "input_eip712_version": "1",

    "duration_days": 10,
    "max_duration_days": 365,
    "max_handles_per_request": 32,
}


# Session / UI Configuration
SESSION_CONFIG: Dict[str, Any] = {
    # Reconciliation tries to reveal handles it reads (may prompt for a signature)
    "reveal_on_sync": True,
    "log_dir": "logs",
    "wallet_private_key": _load_private_key(),
}
