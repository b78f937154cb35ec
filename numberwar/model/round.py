"""
Round Model

Per-player round record stored by the ledger.
"""
from .handle import CiphertextHandle, ZERO_HANDLE


class Round:
    """
    One player's round state.

    BLIND PROTOCOL: the ledger never stores plaintext numbers.
    system_number and outcome are handles into the confidential runtime.
    """
    def __init__(self, player: str):
        self.player = player
        self.active = False
        self.system_number: CiphertextHandle = ZERO_HANDLE
        self.outcome: CiphertextHandle = ZERO_HANDLE
        # Completed rounds (incremented on successful submission)
        self.rounds_played = 0

    def snapshot(self) -> dict:
        return {
            "player": self.player,
            "active": self.active,
            "systemNumber": self.system_number.hex(),
            "outcome": self.outcome.hex(),
            "roundsPlayed": self.rounds_played,
        }
