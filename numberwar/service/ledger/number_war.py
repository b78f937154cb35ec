"""
NumberWar Ledger - per-player encrypted round state machine

joinGame:      assign an encrypted random system number in [1, 10]
submitNumber:  accept an encrypted guess, compute the encrypted verdict
               (win when system number + guess is even)

BLIND PROTOCOL: the ledger only ever holds handles. Plaintext never
appears here; the comparator runs inside the confidential runtime.
"""
import threading
from typing import Dict, List, Optional

from eth_account import Account
from eth_keys.exceptions import BadSignature

from numberwar.config import GAME_CONFIG
from numberwar.errors import InvalidRound, InvalidInput
from numberwar.model import CiphertextHandle, ZERO_HANDLE, EBOOL, EUINT8, Round
from numberwar.model.account import normalize_address, same_address
from numberwar.service.crypto_ops.comparator import compare
from numberwar.service.crypto_ops.input_verifier import recover_attester
from numberwar.service.crypto_ops.runtime import ConfidentialRuntime


class LedgerEvent:
    """Event log entry emitted by a successful transaction"""

    def __init__(self, name: str, player: str, handle: CiphertextHandle, block: int):
        self.name = name
        self.player = player
        self.handle = handle
        self.block = block

    def to_dict(self) -> dict:
        return {
            "event": self.name,
            "player": self.player,
            "handle": self.handle.hex(),
            "block": self.block,
        }


class NumberWarLedger:
    """
    Deployed NumberWar contract.

    Rounds are kept in an explicit keyed store (account -> Round).
    Each account's record is guarded by its own lock, so two writes for
    the same player never interleave while different players run in parallel.
    """

    def __init__(
        self,
        runtime: ConfidentialRuntime,
        input_verifier_address: str,
        address: Optional[str] = None,
    ):
        self.runtime = runtime
        self.address = normalize_address(address) if address else Account.create().address
        self.input_verifier_address = normalize_address(input_verifier_address)

        self.min_value = GAME_CONFIG["min_value"]
        self.max_value = GAME_CONFIG["max_value"]

        self._rounds: Dict[str, Round] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._events: List[LedgerEvent] = []
        self._block = 0

    # ========================================================================
    # Storage helpers
    # ========================================================================

    def _lock_for(self, player: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(player)
            if lock is None:
                lock = self._locks[player] = threading.Lock()
            return lock

    def _round_for(self, player: str) -> Round:
        round_ = self._rounds.get(player)
        if round_ is None:
            round_ = self._rounds[player] = Round(player)
        return round_

    def _emit(self, name: str, player: str, handle: CiphertextHandle) -> LedgerEvent:
        with self._registry_lock:
            self._block += 1
            event = LedgerEvent(name, player, handle, self._block)
            self._events.append(event)
        return event

    # ========================================================================
    # Writes
    # ========================================================================

    def join_game(self, caller: str) -> LedgerEvent:
        """
        Start a new round for `caller`.

        A call while a round is already active starts over: the stored
        system number is replaced and the round stays active.
        """
        player = normalize_address(caller)

        with self._lock_for(player):
            system_number = self.runtime.random_u8(self.min_value, self.max_value)
            self.runtime.allow(system_number, self.address)
            self.runtime.allow(system_number, player)

            round_ = self._round_for(player)
            round_.system_number = system_number
            round_.outcome = ZERO_HANDLE
            round_.active = True

            event = self._emit("RoundJoined", player, system_number)

        print(f"[Ledger] {player} joined a round")
        return event

    def submit_number(self, caller: str, input_handle, input_proof: str) -> LedgerEvent:
        """
        Resolve the caller's active round with an encrypted guess.

        Raises:
            InvalidRound: caller has no active round
            InvalidInput: proof does not attest input_handle for this
                          contract, caller and value range
        """
        player = normalize_address(caller)

        with self._lock_for(player):
            round_ = self._rounds.get(player)
            if round_ is None or not round_.active:
                raise InvalidRound(f"No active round for {player}")

            guess = self._verify_input(player, input_handle, input_proof)

            outcome = self.runtime.apply(compare, EBOOL, round_.system_number, guess)
            self.runtime.allow(outcome, self.address)
            self.runtime.allow(outcome, player)

            round_.outcome = outcome
            round_.active = False
            round_.rounds_played += 1

            event = self._emit("NumberSubmitted", player, outcome)

        print(f"[Ledger] {player} submitted a number, round resolved")
        return event

    def _verify_input(self, player: str, input_handle, input_proof: str) -> CiphertextHandle:
        try:
            handle = CiphertextHandle.coerce(input_handle)
            attester, attested = recover_attester(
                input_proof, player, self.address, self.min_value, self.max_value
            )
        except (ValueError, TypeError, BadSignature) as e:
            raise InvalidInput(f"Malformed input: {e}") from e

        if not same_address(attester, self.input_verifier_address):
            raise InvalidInput("Input proof not signed by the input verifier")
        if handle not in attested:
            raise InvalidInput("Input handle not covered by proof")
        if handle.fhe_type != EUINT8 or not self.runtime.contains(handle):
            raise InvalidInput("Input handle is not a registered euint8")
        return handle

    # ========================================================================
    # Reads
    # ========================================================================

    def has_active_round(self, account: str) -> bool:
        round_ = self._rounds.get(normalize_address(account))
        return bool(round_ and round_.active)

    def get_system_number(self, account: str) -> CiphertextHandle:
        round_ = self._rounds.get(normalize_address(account))
        return round_.system_number if round_ else ZERO_HANDLE

    def get_last_outcome(self, account: str) -> CiphertextHandle:
        round_ = self._rounds.get(normalize_address(account))
        return round_.outcome if round_ else ZERO_HANDLE

    def round_snapshot(self, account: str) -> dict:
        player = normalize_address(account)
        round_ = self._rounds.get(player)
        return round_.snapshot() if round_ else Round(player).snapshot()

    def events(self, player: Optional[str] = None) -> List[LedgerEvent]:
        if player is None:
            return list(self._events)
        player = normalize_address(player)
        return [e for e in self._events if e.player == player]
