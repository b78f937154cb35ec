"""
Local Wallet - account identity plus signing capability

Anything with an `address` and async `sign_typed_data` / `sign_message`
methods can stand in for a wallet (a browser extension bridge, a hardware
signer). Signing may wait for user approval for as long as it likes;
callers cancel by abandoning the awaiting task.
"""
from typing import Dict, Optional

from eth_account import Account
from eth_account.messages import encode_defunct, encode_typed_data

from numberwar.config import SESSION_CONFIG


class LocalWallet:
    """In-process signer backed by a private key"""

    def __init__(self, private_key: Optional[str] = None):
        self._account = Account.from_key(private_key) if private_key else Account.create()

    @classmethod
    def from_config(cls) -> Optional["LocalWallet"]:
        """Wallet from NUMBERWAR_PRIVATE_KEY / .env, or None when not configured."""
        key = SESSION_CONFIG["wallet_private_key"]
        return cls(key) if key else None

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_typed_data(self, typed_data: Dict) -> str:
        """EIP-712 signature over a full typed-data record (0x hex)."""
        signed = self._account.sign_message(encode_typed_data(full_message=typed_data))
        return "0x" + bytes(signed.signature).hex()

    async def sign_message(self, text: str) -> str:
        """EIP-191 personal-message signature (0x hex)."""
        signed = self._account.sign_message(encode_defunct(text=text))
        return "0x" + bytes(signed.signature).hex()

    def __repr__(self) -> str:
        return f"LocalWallet({self.address})"
