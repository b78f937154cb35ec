import asyncio

import pytest

from numberwar.errors import PreconditionUnmet, ServiceUnavailable, ValidationError
from numberwar.model import ZERO_HANDLE, EBOOL
from numberwar.service.crypto_ops import ComputeClient
from numberwar.service.decryption import DecryptionClient
from numberwar.service.ledger import HttpLedgerClient
from numberwar.service.wallet import LocalWallet
from numberwar.session import Phase, RoundSessionController, parse_decrypted_bool, parse_decrypted_uint

from .conftest import NODE_URL, fake_handle

CONTRACT = "0x" + "c0" * 20


class FakeLedger:
    """In-memory ledger surface with optional gates to hold calls open"""

    def __init__(self):
        self.active = {}
        self.system = {}
        self.outcome = {}
        self.calls = []
        self.read_gates = {}
        self.read_error = None
        self.join_gate = None
        self.join_error = None
        self.next_system = fake_handle(b"system")
        self.next_outcome = fake_handle(b"outcome", EBOOL)

    async def contract_address(self):
        return CONTRACT

    async def has_active_round(self, account):
        self.calls.append(("hasActiveRound", account))
        if self.read_error is not None:
            raise self.read_error
        gate = self.read_gates.get(account)
        if gate is not None:
            await gate.wait()
        return self.active.get(account, False)

    async def get_system_number(self, account):
        return self.system.get(account, ZERO_HANDLE)

    async def get_last_outcome(self, account):
        return self.outcome.get(account, ZERO_HANDLE)

    async def join_game(self, wallet):
        self.calls.append(("joinGame", wallet.address))
        if self.join_gate is not None:
            await self.join_gate.wait()
        if self.join_error is not None:
            raise self.join_error
        self.active[wallet.address] = True
        self.system[wallet.address] = self.next_system
        self.outcome[wallet.address] = ZERO_HANDLE
        return {"status": 1}

    async def submit_number(self, wallet, handle, proof):
        self.calls.append(("submitNumber", wallet.address))
        self.active[wallet.address] = False
        self.outcome[wallet.address] = self.next_outcome
        return {"status": 1}


class FakeBuilder:
    def __init__(self, compute):
        self.compute = compute
        self.values = []

    def add8(self, value):
        self.values.append(value)
        return self

    async def encrypt(self):
        self.compute.encrypted.extend(self.values)
        return {"handles": [fake_handle(b"input")], "inputProof": "0x00"}


class FakeCompute:
    def __init__(self):
        self.encrypted = []

    def create_encrypted_input(self, contract, user):
        return FakeBuilder(self)


class FakeDecryption:
    def __init__(self, plaintexts=None):
        self.plaintexts = plaintexts or {}
        self.requests = []
        self.gate = None

    async def decrypt(self, handles, viewer, signer):
        self.requests.append(list(handles))
        if self.gate is not None:
            await self.gate.wait()
        return {h: self.plaintexts[h] for h in handles if h in self.plaintexts}


@pytest.fixture
def fake_ledger():
    return FakeLedger()


@pytest.fixture
def fake_decryption(fake_ledger):
    return FakeDecryption({fake_ledger.next_system: "7", fake_ledger.next_outcome: "true"})


@pytest.fixture
def make_controller(fake_ledger, fake_decryption, tmp_path):
    def _make(wallet=None, **kwargs):
        kwargs.setdefault("compute", FakeCompute())
        kwargs.setdefault("decryption", fake_decryption)
        return RoundSessionController(fake_ledger, wallet=wallet, log_dir=str(tmp_path), **kwargs)
    return _make


# ============================================================================
# Parsing
# ============================================================================

def test_plaintext_parsing():
    assert parse_decrypted_uint("7") == 7
    assert parse_decrypted_uint("x") is None
    assert parse_decrypted_bool("true") is True
    assert parse_decrypted_bool("1") is True
    assert parse_decrypted_bool("false") is False
    assert parse_decrypted_bool(None) is None


# ============================================================================
# Join / submit with fakes
# ============================================================================

async def test_join_then_submit(make_controller, fake_ledger, fake_decryption, tmp_path):
    wallet = LocalWallet()
    controller = make_controller(wallet)
    phases = []
    controller.on_change(lambda view: phases.append(view.phase))

    await controller.join()

    assert controller.view.active_round
    assert controller.view.system_number == 7
    assert controller.view.phase == Phase.ACTIVE
    assert Phase.AWAITING_CONFIRMATION in phases

    await controller.submit("3")

    assert controller.view.outcome is True
    assert controller.view.active_round is False
    assert controller.view.phase == Phase.RESOLVED
    assert controller.view.status == "You won!"
    assert controller.compute.encrypted == [3]

    log = (tmp_path / "rounds.log").read_text(encoding="utf-8")
    assert "System number (decrypted): 7" in log
    assert "Outcome (decrypted): WIN" in log


async def test_join_needs_wallet_and_compute(make_controller, fake_ledger):
    with pytest.raises(PreconditionUnmet):
        await make_controller().join()
    with pytest.raises(PreconditionUnmet):
        await make_controller(LocalWallet(), compute=None).join()

    assert fake_ledger.calls == []


@pytest.mark.parametrize("value", [0, 11, "abc", True, 2.5, None])
async def test_submit_validates_before_network(make_controller, fake_ledger, value):
    wallet = LocalWallet()
    fake_ledger.active[wallet.address] = True
    controller = make_controller(wallet)
    await controller.sync(reveal=False)
    fake_ledger.calls.clear()

    with pytest.raises(ValidationError):
        await controller.submit(value)

    assert fake_ledger.calls == []
    assert controller.view.error == "Please enter a number between 1 and 10."


async def test_submit_without_active_round(make_controller, fake_ledger):
    controller = make_controller(LocalWallet())

    with pytest.raises(ValidationError, match="No active round"):
        await controller.submit(5)

    assert fake_ledger.calls == []


async def test_join_is_gated_while_busy(make_controller, fake_ledger):
    fake_ledger.join_gate = asyncio.Event()
    controller = make_controller(LocalWallet())

    first = asyncio.create_task(controller.join())
    await asyncio.sleep(0)
    assert controller.view.joining
    assert controller.view.phase == Phase.AWAITING_CONFIRMATION

    with pytest.raises(PreconditionUnmet):
        await controller.join()

    fake_ledger.join_gate.set()
    await first
    assert not controller.view.joining
    assert [c for c in fake_ledger.calls if c[0] == "joinGame"] == [("joinGame", controller.wallet.address)]


async def test_failed_join_rolls_back(make_controller, fake_ledger):
    wallet = LocalWallet()
    previous = fake_handle(b"previous outcome", EBOOL)
    fake_ledger.outcome[wallet.address] = previous
    controller = make_controller(wallet)
    await controller.sync(reveal=False)
    fake_ledger.join_error = ServiceUnavailable("node down")

    with pytest.raises(ServiceUnavailable):
        await controller.join()

    assert controller.view.outcome_handle == previous
    assert controller.view.joining is False
    assert controller.view.error == "node down"
    assert controller.view.phase == Phase.RESOLVED


async def _until(predicate):
    for _ in range(100):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never met")


async def test_join_stays_busy_until_system_number_is_revealed(make_controller, fake_ledger, fake_decryption):
    fake_decryption.gate = asyncio.Event()
    controller = make_controller(LocalWallet())

    first = asyncio.create_task(controller.join())
    await _until(lambda: fake_decryption.requests)
    assert controller.view.joining
    assert controller.view.busy

    with pytest.raises(PreconditionUnmet):
        await controller.join()

    fake_decryption.gate.set()
    await first
    assert not controller.view.joining
    assert controller.view.system_number == 7
    assert [c[0] for c in fake_ledger.calls].count("joinGame") == 1


async def test_failed_refresh_after_submit_forgets_round(make_controller, fake_ledger):
    wallet = LocalWallet()
    controller = make_controller(wallet)
    await controller.join()
    fake_ledger.read_error = ServiceUnavailable("node down")

    await controller.submit(3)

    assert fake_ledger.active[wallet.address] is False
    assert controller.view.active_round is False
    assert controller.view.system_number_handle == ZERO_HANDLE
    assert controller.view.outcome_handle == ZERO_HANDLE
    assert controller.view.error is None
    assert controller.view.submitting is False

    fake_ledger.calls.clear()
    with pytest.raises(ValidationError, match="No active round"):
        await controller.submit(4)
    assert fake_ledger.calls == []


async def test_failed_sync_leaves_round_unknown(make_controller, fake_ledger):
    wallet = LocalWallet()
    fake_ledger.active[wallet.address] = True
    fake_ledger.system[wallet.address] = fake_ledger.next_system
    controller = make_controller(wallet)
    await controller.sync(reveal=False)
    assert controller.view.active_round

    fake_ledger.read_error = ServiceUnavailable("node down")
    with pytest.raises(ServiceUnavailable):
        await controller.sync()

    assert controller.view.active_round is False
    assert controller.view.system_number_handle == ZERO_HANDLE


# ============================================================================
# Reveals
# ============================================================================

async def test_sentinel_reveal_is_skipped(make_controller, fake_decryption):
    controller = make_controller(LocalWallet())

    assert await controller.reveal_outcome() is None

    assert controller.view.status == "No encrypted outcome available."
    assert fake_decryption.requests == []


async def test_concurrent_reveal_is_rejected_without_touching_status(make_controller, fake_ledger, fake_decryption):
    wallet = LocalWallet()
    fake_ledger.active[wallet.address] = True
    fake_ledger.system[wallet.address] = fake_ledger.next_system
    controller = make_controller(wallet)
    await controller.sync(reveal=False)
    fake_decryption.gate = asyncio.Event()

    first = asyncio.create_task(controller.reveal_system_number())
    await _until(lambda: fake_decryption.requests)
    controller.view.status = "Waiting for the oracle"

    with pytest.raises(PreconditionUnmet, match="already in progress"):
        await controller.reveal_system_number()
    assert controller.view.status == "Waiting for the oracle"

    fake_decryption.gate.set()
    assert await first == 7
    assert len(fake_decryption.requests) == 1


async def test_undecryptable_handle_leaves_value_unknown(make_controller, fake_ledger):
    wallet = LocalWallet()
    fake_ledger.active[wallet.address] = True
    fake_ledger.system[wallet.address] = fake_handle(b"not on acl")
    controller = make_controller(wallet)
    await controller.sync(reveal=False)

    assert await controller.reveal_system_number() is None
    assert controller.view.system_number is None
    assert controller.view.decrypting_system_number is False


async def test_background_sync_reveals_and_fails_silently(make_controller, fake_ledger):
    wallet = LocalWallet()
    fake_ledger.active[wallet.address] = True
    fake_ledger.system[wallet.address] = fake_ledger.next_system
    controller = make_controller(reveal_on_sync=True)

    await controller.set_account(wallet)

    assert controller.view.system_number == 7

    controller.decryption = None
    fake_ledger.system[wallet.address] = fake_handle(b"another")
    other = LocalWallet()
    fake_ledger.active[other.address] = True
    fake_ledger.system[other.address] = fake_handle(b"another")
    await controller.set_account(other)
    assert controller.view.system_number is None


async def test_stale_reconciliation_is_discarded(make_controller, fake_ledger):
    first, second = LocalWallet(), LocalWallet()
    fake_ledger.active[first.address] = True
    fake_ledger.system[first.address] = fake_ledger.next_system
    fake_ledger.read_gates[first.address] = asyncio.Event()
    controller = make_controller(first, reveal_on_sync=False)

    pending = asyncio.create_task(controller.sync())
    await asyncio.sleep(0)
    await controller.set_account(second)
    fake_ledger.read_gates[first.address].set()
    await pending

    assert controller.view.account == second.address
    assert controller.view.active_round is False
    assert controller.view.system_number_handle == ZERO_HANDLE


async def test_account_switch_cancels_running_sync(make_controller, fake_ledger):
    first, second = LocalWallet(), LocalWallet()
    fake_ledger.read_gates[first.address] = asyncio.Event()
    controller = make_controller(reveal_on_sync=False)

    old_task = controller.set_account(first)
    await asyncio.sleep(0)
    await controller.set_account(second)

    assert old_task.cancelled()
    await controller.close()


# ============================================================================
# Against the dev node
# ============================================================================

@pytest.mark.parametrize("system, guess, won", [(7, 1, True), (4, 1, False)])
async def test_round_through_node(node, transport, fixed_system_number, tmp_path, system, guess, won):
    fixed_system_number(system)
    wallet = LocalWallet()
    controller = RoundSessionController(
        HttpLedgerClient(NODE_URL, transport=transport),
        compute=ComputeClient(NODE_URL, transport=transport),
        decryption=DecryptionClient(NODE_URL, transport=transport),
        wallet=wallet,
        log_dir=str(tmp_path),
    )

    await controller.sync()
    assert controller.view.phase == Phase.IDLE
    assert controller.view.outcome_handle == ZERO_HANDLE

    await controller.join()
    assert controller.view.system_number == system

    await controller.submit(guess)
    assert controller.view.outcome is won
    assert controller.view.phase == Phase.RESOLVED
