"""
Shared fixtures.

Key generation is slow, so one ConfidentialRuntime serves the whole
session; ledgers, nodes and wallets are fresh per test.
"""
import httpx
import pytest

from numberwar.model import CiphertextHandle, EUINT8
from numberwar.node import http_server
from numberwar.service.crypto_ops import ConfidentialRuntime, InputVerifier, serialize_ciphertext, u8_to_bits
from numberwar.service.ledger import NumberWarLedger
from numberwar.service.wallet import LocalWallet

NODE_URL = "http://testserver"


@pytest.fixture(scope="session")
def runtime():
    return ConfidentialRuntime()


@pytest.fixture
def verifier(runtime):
    return InputVerifier(runtime)


@pytest.fixture
def ledger(runtime, verifier):
    return NumberWarLedger(runtime, verifier.address)


@pytest.fixture
def player():
    return LocalWallet()


@pytest.fixture
def encrypt_client_value(runtime):
    """Encrypt like a player would: under the public key, serialized for the verifier."""
    def _encrypt(value: int) -> str:
        cc = runtime.cc
        plaintext = cc.MakePackedPlaintext(u8_to_bits(value))
        return serialize_ciphertext(cc, cc.Encrypt(runtime.keypair.publicKey, plaintext))
    return _encrypt


@pytest.fixture
def attested_input(verifier, ledger, encrypt_client_value):
    """(handle, proof) for `value`, bound to `ledger` and `user`."""
    def _attest(value: int, user: str, contract: str = None):
        handles, proof = verifier.verify_inputs(
            [encrypt_client_value(value)],
            contract or ledger.address,
            user,
            ledger.min_value,
            ledger.max_value,
        )
        return handles[0], proof
    return _attest


@pytest.fixture
def fixed_system_number(runtime, monkeypatch):
    """Make the next joins draw `value` instead of a random number."""
    def _fix(value: int):
        monkeypatch.setattr(runtime, "random_u8", lambda low, high: runtime.encrypt_u8(value))
    return _fix


@pytest.fixture
def node(runtime):
    return http_server.initialize_server(runtime)


@pytest.fixture
def transport(node):
    return httpx.ASGITransport(app=http_server.app)


def fake_handle(tag: bytes, fhe_type: int = EUINT8) -> CiphertextHandle:
    return CiphertextHandle.derive(tag, fhe_type)
