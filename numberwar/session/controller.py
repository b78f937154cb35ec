"""
Round Session Controller - drives join -> submit -> reveal for one player

    Idle --join--> AwaitingConfirmation --confirmed--> Active (+ system number reveal)
    Active --submit--> AwaitingConfirmation --confirmed--> Resolved (+ outcome reveal)

All client-visible state lives in `self.view`. Every ledger write
re-reads the ledger afterwards instead of trusting local assumptions.
"""
import asyncio
from typing import Callable, List, Optional

from numberwar.config import GAME_CONFIG, SESSION_CONFIG
from numberwar.errors import NumberWarError, PreconditionUnmet, ValidationError
from numberwar.model import CiphertextHandle, ZERO_HANDLE
from numberwar.round_logger import RoundLogger

from .view import RoundView, parse_decrypted_bool, parse_decrypted_uint


class RoundSessionController:
    """
    Player-side round session.

    Args:
        ledger: HttpLedgerClient (or anything with the same async surface)
        compute: ComputeClient used to encrypt submitted numbers
        decryption: DecryptionClient used for reveals
        wallet: account and signer; may be set later with set_account()
        log_dir: RoundLogger directory (defaults to SESSION_CONFIG["log_dir"])
    """

    def __init__(
        self,
        ledger,
        compute=None,
        decryption=None,
        wallet=None,
        log_dir: Optional[str] = None,
        reveal_on_sync: Optional[bool] = None,
    ):
        self.ledger = ledger
        self.compute = compute
        self.decryption = decryption
        self.log_dir = log_dir
        self.reveal_on_sync = SESSION_CONFIG["reveal_on_sync"] if reveal_on_sync is None else reveal_on_sync

        self.view = RoundView()
        self.wallet = None
        self.logger: Optional[RoundLogger] = None

        self._listeners: List[Callable[[RoundView], None]] = []
        self._generation = 0
        self._reconcile_task: Optional[asyncio.Task] = None

        if wallet is not None:
            self._bind(wallet)

    # ========================================================================
    # Listeners
    # ========================================================================

    def on_change(self, callback: Callable[[RoundView], None]):
        self._listeners.append(callback)

    def _notify(self):
        for callback in list(self._listeners):
            callback(self.view)

    # ========================================================================
    # Account
    # ========================================================================

    def _bind(self, wallet):
        self.wallet = wallet
        self.view.reset(wallet.address if wallet is not None else None)
        self.logger = RoundLogger(wallet.address, self.log_dir) if wallet is not None else None

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def set_account(self, wallet) -> Optional[asyncio.Task]:
        """
        Switch to another account (or none).

        Cancels the running reconciliation; anything still in flight for
        the previous account is discarded when it completes.

        Returns:
            The new background reconciliation task, if any
        """
        if self._reconcile_task is not None and not self._reconcile_task.done():
            self._reconcile_task.cancel()
        self._reconcile_task = None

        self._generation += 1
        self._bind(wallet)
        self._notify()

        if wallet is None:
            return None
        self._reconcile_task = asyncio.get_running_loop().create_task(
            self._background_reconcile(self._generation)
        )
        return self._reconcile_task

    async def _background_reconcile(self, generation: int):
        try:
            await self._reconcile(generation, reveal=self.reveal_on_sync)
        except NumberWarError as e:
            # Background reads leave the view in its unknown/sentinel state
            if not self._is_stale(generation):
                print(f"[Session] Sync failed: {e.message}")

    async def sync(self, reveal: Optional[bool] = None):
        """Re-read the ledger for the current account (foreground)"""
        self._require_account()
        await self._reconcile(self._generation, reveal=self.reveal_on_sync if reveal is None else reveal)

    async def close(self):
        if self._reconcile_task is not None and not self._reconcile_task.done():
            self._reconcile_task.cancel()
            try:
                await self._reconcile_task
            except asyncio.CancelledError:
                pass
        self._reconcile_task = None

    # ========================================================================
    # Reconciliation
    # ========================================================================

    async def _reconcile(self, generation: int, reveal: bool):
        active = await self._read_round(generation)
        if active is None or not reveal:
            return
        await self._reveal_pending(generation, active)

    async def _read_round(self, generation: int) -> Optional[bool]:
        """
        Re-read the round from the ledger into the view.

        A failed read leaves whatever was not read yet in the unknown state
        (no active round, sentinel handles) and re-raises.

        Returns:
            Whether the round is active, or None when the result is stale
        """
        account = self.wallet.address
        unread = {"active_round", "system_number_handle", "outcome_handle"}
        try:
            active = await self.ledger.has_active_round(account)
            if self._is_stale(generation):
                return None
            self.view.active_round = active
            unread.discard("active_round")

            if active:
                handle = await self.ledger.get_system_number(account)
                if self._is_stale(generation):
                    return None
                self._set_system_number_handle(handle)
            unread.discard("system_number_handle")

            outcome = await self.ledger.get_last_outcome(account)
            if self._is_stale(generation):
                return None
            self._set_outcome_handle(outcome)
            unread.discard("outcome_handle")
        except NumberWarError:
            if not self._is_stale(generation):
                self._forget(unread)
                self._notify()
            raise

        self._notify()
        return active

    def _forget(self, fields):
        if "active_round" in fields:
            self.view.active_round = False
        if "system_number_handle" in fields:
            self._set_system_number_handle(ZERO_HANDLE)
        if "outcome_handle" in fields:
            self._set_outcome_handle(ZERO_HANDLE)

    async def _reveal_pending(self, generation: int, active: bool):
        if (active and self.view.system_number is None and not self.view.system_number_handle.is_sentinel
                and not self.view.decrypting_system_number):
            await self._reveal_system_number(generation)
        if (self.view.outcome is None and not self.view.outcome_handle.is_sentinel
                and not self.view.decrypting_outcome and not self._is_stale(generation)):
            await self._reveal_outcome(generation)

    def _set_system_number_handle(self, handle: CiphertextHandle):
        if handle != self.view.system_number_handle:
            self.view.system_number_handle = handle
            self.view.system_number = None

    def _set_outcome_handle(self, handle: CiphertextHandle):
        if handle != self.view.outcome_handle:
            self.view.outcome_handle = handle
            self.view.outcome = None

    # ========================================================================
    # Preconditions
    # ========================================================================

    def _fail(self, error: NumberWarError):
        self.view.error = error.message
        self._notify()
        raise error

    def _require_account(self):
        if self.wallet is None:
            self._fail(PreconditionUnmet("Connect a wallet first."))

    def _require_compute(self):
        self._require_account()
        if self.compute is None:
            self._fail(PreconditionUnmet("Encryption service not ready."))

    def _require_idle(self):
        if self.view.busy:
            self._fail(PreconditionUnmet("Another action is in progress."))

    def _validate_value(self, value) -> int:
        low, high = GAME_CONFIG["min_value"], GAME_CONFIG["max_value"]
        message = f"Please enter a number between {low} and {high}."
        if isinstance(value, bool):
            self._fail(ValidationError(message))
        if isinstance(value, str):
            try:
                value = int(value.strip())
            except ValueError:
                self._fail(ValidationError(message))
        if not isinstance(value, int) or not low <= value <= high:
            self._fail(ValidationError(message))
        return value

    # ========================================================================
    # Writes
    # ========================================================================

    async def join(self):
        """Start a new round; reveals the system number once confirmed."""
        self._require_compute()
        self._require_idle()

        generation = self._generation
        snapshot = self.view.snapshot()
        self.view.clear_round()
        self.view.joining = True
        self.view.error = None
        self.view.status = "Joining game..."
        self._notify()

        try:
            await self.ledger.join_game(self.wallet)
        except (NumberWarError, asyncio.CancelledError) as e:
            if not self._is_stale(generation):
                self.view.restore(snapshot)
                if isinstance(e, NumberWarError):
                    self.view.error = e.message
                    self.view.status = "Join failed."
                self._notify()
            raise

        if self._is_stale(generation):
            return
        self.view.status = "Joined. Waiting for system number..."
        self.logger.log_joined()
        self._notify()
        print("[Session] Round joined")

        # Still joining until the round is re-read and revealed
        try:
            await self._refresh_after_write(generation)
        finally:
            if not self._is_stale(generation):
                self.view.joining = False
                self._notify()

    async def submit(self, value):
        """Encrypt `value`, submit it and reveal the outcome once confirmed."""
        self._require_compute()
        value = self._validate_value(value)
        if not self.view.active_round:
            self._fail(ValidationError("No active round. Join a game first."))
        self._require_idle()

        generation = self._generation
        snapshot = self.view.snapshot()
        self.view.submitting = True
        self.view.error = None
        self.view.status = "Encrypting your number..."
        self._notify()

        try:
            contract = await self.ledger.contract_address()
            builder = self.compute.create_encrypted_input(contract, self.wallet.address)
            encrypted = await builder.add8(value).encrypt()
            if self._is_stale(generation):
                return

            self.view.status = "Submitting encrypted number..."
            self._notify()
            await self.ledger.submit_number(self.wallet, encrypted["handles"][0], encrypted["inputProof"])
        except (NumberWarError, ValueError, asyncio.CancelledError) as e:
            if not self._is_stale(generation):
                self.view.restore(snapshot)
                if not isinstance(e, asyncio.CancelledError):
                    self.view.error = getattr(e, "message", str(e))
                    self.view.status = "Submission failed."
                self._notify()
            raise

        if self._is_stale(generation):
            return
        self.view.status = "Submitted. Waiting for outcome..."
        self.logger.log_submitted(value)
        self._notify()
        print("[Session] Number submitted")

        try:
            await self._refresh_after_write(generation)
        finally:
            if not self._is_stale(generation):
                self.view.submitting = False
                self._notify()

    async def _refresh_after_write(self, generation: int):
        # The write is confirmed; a failed read falls back to the unknown state
        try:
            active = await self._read_round(generation)
        except NumberWarError as e:
            print(f"[Session] Refresh failed: {e.message}")
            return
        if active is None:
            return

        try:
            await self._reveal_pending(generation, active)
        except NumberWarError as e:
            # Already on view.error; the write itself succeeded
            print(f"[Session] Reveal failed: {e.message}")

    # ========================================================================
    # Reveals
    # ========================================================================

    def _require_decryption(self):
        self._require_account()
        if self.decryption is None:
            self._fail(PreconditionUnmet("Decryption service not ready."))

    async def reveal_system_number(self) -> Optional[int]:
        return await self._reveal_system_number(self._generation)

    async def reveal_outcome(self) -> Optional[bool]:
        return await self._reveal_outcome(self._generation)

    async def _decrypt(self, generation: int, handle: CiphertextHandle, flag: str, status: str):
        if getattr(self.view, flag):
            self._fail(PreconditionUnmet("Decryption already in progress."))

        setattr(self.view, flag, True)
        self.view.status = status
        self.view.error = None
        self._notify()
        try:
            results = await self.decryption.decrypt([handle], self.wallet.address, self.wallet)
        except NumberWarError as e:
            if not self._is_stale(generation):
                self.view.error = e.message
                self.view.status = "Decryption failed."
            raise
        finally:
            if not self._is_stale(generation):
                setattr(self.view, flag, False)
                self._notify()

        if self._is_stale(generation):
            return None
        return results.get(handle)

    async def _reveal_system_number(self, generation: int) -> Optional[int]:
        self._require_decryption()
        handle = self.view.system_number_handle
        if handle.is_sentinel:
            self.view.status = "No encrypted system number available."
            self._notify()
            return None

        text = await self._decrypt(generation, handle, "decrypting_system_number", "Decrypting system number...")
        if self._is_stale(generation) or handle != self.view.system_number_handle:
            return None

        value = parse_decrypted_uint(text)
        if value is None:
            self.view.status = "System number is not decryptable yet."
        else:
            self.view.system_number = value
            self.view.status = "System number revealed."
            self.logger.log_system_number(value)
        self._notify()
        return value

    async def _reveal_outcome(self, generation: int) -> Optional[bool]:
        self._require_decryption()
        handle = self.view.outcome_handle
        if handle.is_sentinel:
            self.view.status = "No encrypted outcome available."
            self._notify()
            return None

        text = await self._decrypt(generation, handle, "decrypting_outcome", "Decrypting outcome...")
        if self._is_stale(generation) or handle != self.view.outcome_handle:
            return None

        won = parse_decrypted_bool(text)
        if won is None:
            self.view.status = "Outcome is not decryptable yet."
        else:
            self.view.outcome = won
            self.view.status = "You won!" if won else "You lost."
            self.logger.log_outcome(won)
        self._notify()
        return won
