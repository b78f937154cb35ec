"""
Decryption Oracle - resolves user decryption requests

Checks, in order:
    1. request shape and limits
    2. validity window (startTimestamp .. startTimestamp + durationDays)
    3. EIP-712 signature recovers to the viewer
    4. per handle: contract in scope, viewer and contract on the handle ACL

Handles failing step 4 are silently left out of the response. Failures of
steps 1-3 reject the whole request.
"""
import time
from typing import Any, Callable, Dict, List

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_keys.exceptions import BadSignature

from numberwar.config import DECRYPTION_CONFIG, NETWORK_CONFIG
from numberwar.model import CiphertextHandle
from numberwar.model.account import normalize_address, same_address
from numberwar.service.crypto_ops.runtime import ConfidentialRuntime

from .eip712 import create_eip712
from .sealing import seal

SECONDS_PER_DAY = 86400


class OracleRejection(Exception):
    """Request-level rejection (bad signature, expired or future window)."""
    pass


class DecryptionOracle:
    """Signature-gated, ACL-checked decryption of runtime handles"""

    def __init__(
        self,
        runtime: ConfidentialRuntime,
        address: str = None,
        chain_id: int = None,
        clock: Callable[[], float] = time.time,
    ):
        self.runtime = runtime
        self.address = normalize_address(address) if address else Account.create().address
        self.chain_id = chain_id or NETWORK_CONFIG["chain_id"]
        self.clock = clock

    def _parse_request(self, request: Dict[str, Any]):
        try:
            pairs = [
                (CiphertextHandle.from_hex(p["handle"]), normalize_address(p["contractAddress"]))
                for p in request["handleContractPairs"]
            ]
            scope = [normalize_address(a) for a in request["contractAddresses"]]
            viewer = normalize_address(request["userAddress"])
            public_key = request["publicKey"]
            signature = request["signature"]
            start = int(request["startTimestamp"])
            duration = int(request["durationDays"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed decryption request: {e}") from e

        if not pairs:
            raise ValueError("No handles requested")
        if len(pairs) > DECRYPTION_CONFIG["max_handles_per_request"]:
            raise ValueError("Too many handles in one request")
        if not scope:
            raise ValueError("Empty contract scope")
        return pairs, scope, viewer, public_key, signature, start, duration

    def _check_window(self, start: int, duration: int):
        now = int(self.clock())
        if duration <= 0 or duration > DECRYPTION_CONFIG["max_duration_days"]:
            raise OracleRejection(f"Invalid durationDays: {duration}")
        if start > now:
            raise OracleRejection("Request start timestamp is in the future")
        if now > start + duration * SECONDS_PER_DAY:
            raise OracleRejection("Decryption request expired")

    def _check_signature(self, public_key: str, scope: List[str], start: int, duration: int,
                         viewer: str, signature: str):
        try:
            typed = create_eip712(public_key, scope, start, duration, self.address, self.chain_id)
            signer = Account.recover_message(encode_typed_data(full_message=typed), signature=signature)
        except (ValueError, TypeError, BadSignature) as e:
            raise OracleRejection(f"Invalid signature: {e}") from e
        if not same_address(signer, viewer):
            raise OracleRejection("Signature does not match user address")

    def user_decrypt(self, request: Dict[str, Any]) -> Dict[str, str]:
        """
        Resolve one decryption request.

        Returns:
            {handle_hex: sealed_plaintext_hex} for authorized handles only

        Raises:
            ValueError: malformed request
            OracleRejection: signature or validity window rejected
        """
        pairs, scope, viewer, public_key, signature, start, duration = self._parse_request(request)
        self._check_window(start, duration)
        self._check_signature(public_key, scope, start, duration, viewer, signature)

        results: Dict[str, str] = {}
        for handle, contract in pairs:
            if handle.is_sentinel or contract not in scope:
                continue
            if not self.runtime.contains(handle):
                continue
            if not (self.runtime.is_allowed(handle, viewer) and self.runtime.is_allowed(handle, contract)):
                continue
            plaintext = self.runtime.decrypt_to_string(handle)
            results[handle.hex()] = seal(plaintext, public_key, handle.raw)

        print(f"[Oracle] {viewer}: {len(results)}/{len(pairs)} handle(s) authorized")
        return results
