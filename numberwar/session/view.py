"""
Round View - everything the player's UI shows about the current round
"""
from enum import Enum
from typing import Optional

from numberwar.model import CiphertextHandle, ZERO_HANDLE


class Phase(str, Enum):
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    ACTIVE = "active"
    RESOLVED = "resolved"


class RoundView:
    """
    Client-side round state.

    Handles mirror the last ledger read; plaintext fields are only set
    after a successful reveal of the matching handle.
    """
    def __init__(self):
        self.account: Optional[str] = None
        self.active_round = False
        self.system_number_handle: CiphertextHandle = ZERO_HANDLE
        self.system_number: Optional[int] = None
        self.outcome_handle: CiphertextHandle = ZERO_HANDLE
        self.outcome: Optional[bool] = None
        self.status = ""
        self.error: Optional[str] = None

        # Busy flags
        self.joining = False
        self.submitting = False
        self.decrypting_system_number = False
        self.decrypting_outcome = False

    @property
    def phase(self) -> Phase:
        if self.joining or self.submitting:
            return Phase.AWAITING_CONFIRMATION
        if self.active_round:
            return Phase.ACTIVE
        if not self.outcome_handle.is_sentinel:
            return Phase.RESOLVED
        return Phase.IDLE

    @property
    def busy(self) -> bool:
        return self.joining or self.submitting

    def reset(self, account: Optional[str] = None):
        """Forget everything (account switch)"""
        self.__init__()
        self.account = account

    def clear_round(self):
        self.active_round = False
        self.system_number_handle = ZERO_HANDLE
        self.system_number = None
        self.outcome_handle = ZERO_HANDLE
        self.outcome = None

    def snapshot(self) -> dict:
        return dict(vars(self))

    def restore(self, snapshot: dict):
        for key, value in snapshot.items():
            setattr(self, key, value)

    def to_dict(self) -> dict:
        """JSON-friendly form (CLI status output)"""
        return {
            "account": self.account,
            "phase": self.phase.value,
            "activeRound": self.active_round,
            "systemNumberHandle": self.system_number_handle.hex(),
            "systemNumber": self.system_number,
            "outcomeHandle": self.outcome_handle.hex(),
            "outcome": self.outcome,
            "status": self.status,
            "error": self.error,
        }


def parse_decrypted_uint(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None


def parse_decrypted_bool(text: Optional[str]) -> Optional[bool]:
    if text is None:
        return None
    value = text.strip().lower()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    return None
