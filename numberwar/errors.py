"""
Error taxonomy shared by the ledger, the decryption client and the session
"""
from typing import Any, Dict, Optional


class NumberWarError(Exception):
    """Base exception for all NumberWar errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Client-side (resolved before any network call)
# ============================================================================

class PreconditionUnmet(NumberWarError):
    """No account, signer or compute client, or another action is still running."""
    pass


class ValidationError(NumberWarError):
    """Player input rejected locally (out of range, not an integer, no active round)."""
    pass


# ============================================================================
# Ledger-side rejections
# ============================================================================

class LedgerRejection(NumberWarError):
    """A state-violating or malformed call rejected by the ledger."""
    pass


class InvalidRound(LedgerRejection):
    """submitNumber without an active round."""

    def __init__(self, message: str = "No active round for caller", **kwargs: Any):
        super().__init__(message, **kwargs)


class InvalidInput(LedgerRejection):
    """Input proof does not certify the handle for this contract and caller."""

    def __init__(self, message: str = "Input proof rejected", **kwargs: Any):
        super().__init__(message, **kwargs)


LEDGER_REJECTIONS = {
    "InvalidRound": InvalidRound,
    "InvalidInput": InvalidInput,
}


# ============================================================================
# External collaborators
# ============================================================================

class SignerUnavailable(NumberWarError):
    """No signing capability, or the signer refused to sign."""

    def __init__(self, message: str = "Signer unavailable", **kwargs: Any):
        super().__init__(message, **kwargs)


class ServiceUnavailable(NumberWarError):
    """Oracle or ledger transport unreachable, or its response was malformed."""

    def __init__(self, message: str = "Service unavailable", status_code: Optional[int] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.status_code = status_code
