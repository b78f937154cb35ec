import time

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data

from numberwar.config import DECRYPTION_CONFIG
from numberwar.service.decryption import (
    DecryptionOracle,
    OracleRejection,
    create_eip712,
    generate_keypair,
    open_sealed,
    seal,
)
from numberwar.service.wallet import LocalWallet

CONTRACT = Account.create().address


@pytest.fixture
def oracle(runtime):
    return DecryptionOracle(runtime, chain_id=31337)


async def signed_request(oracle, wallet, handles, public_key, start=None, duration=10, scope=None, signer=None):
    scope = scope or [CONTRACT]
    start = int(time.time()) if start is None else start
    typed = create_eip712(public_key, scope, start, duration, oracle.address, oracle.chain_id)
    signature = await (signer or wallet).sign_typed_data(typed)
    return {
        "handleContractPairs": [{"handle": h.hex(), "contractAddress": CONTRACT} for h in handles],
        "publicKey": public_key,
        "signature": signature,
        "contractAddresses": scope,
        "userAddress": wallet.address,
        "startTimestamp": start,
        "durationDays": duration,
    }


def allowed_handle(runtime, value, viewer):
    handle = runtime.encrypt_u8(value)
    runtime.allow(handle, viewer)
    runtime.allow(handle, CONTRACT)
    return handle


# ============================================================================
# Structured message and sealing
# ============================================================================

async def test_typed_data_signature_recovers_viewer():
    wallet = LocalWallet()
    public_key, _ = generate_keypair()
    typed = create_eip712(public_key, [CONTRACT.lower()], 1700000000, 10, CONTRACT)

    signature = await wallet.sign_typed_data(typed)

    assert typed["domain"]["name"] == DECRYPTION_CONFIG["eip712_name"]
    assert typed["message"]["contractAddresses"] == [CONTRACT]
    assert Account.recover_message(encode_typed_data(full_message=typed), signature=signature) == wallet.address


def test_seal_and_open():
    public_key, private_key = generate_keypair()
    aad = b"\x01" * 32

    sealed = seal("7", public_key, aad)

    assert open_sealed(sealed, private_key, aad) == "7"
    with pytest.raises(ValueError):
        open_sealed(sealed, private_key, b"\x02" * 32)
    with pytest.raises(ValueError):
        open_sealed(sealed, generate_keypair()[1], aad)


# ============================================================================
# Oracle
# ============================================================================

async def test_oracle_returns_sealed_plaintext_for_authorized_handles(runtime, oracle):
    wallet = LocalWallet()
    public_key, private_key = generate_keypair()
    allowed = allowed_handle(runtime, 6, wallet.address)
    not_allowed = runtime.encrypt_u8(2)

    results = oracle.user_decrypt(
        await signed_request(oracle, wallet, [allowed, not_allowed], public_key)
    )

    assert list(results) == [allowed.hex()]
    assert open_sealed(results[allowed.hex()], private_key, allowed.raw) == "6"


async def test_oracle_requires_contract_on_acl(runtime, oracle):
    wallet = LocalWallet()
    public_key, _ = generate_keypair()
    handle = runtime.encrypt_u8(6)
    runtime.allow(handle, wallet.address)

    assert oracle.user_decrypt(await signed_request(oracle, wallet, [handle], public_key)) == {}


async def test_oracle_skips_contract_outside_scope(runtime, oracle):
    wallet = LocalWallet()
    public_key, _ = generate_keypair()
    handle = allowed_handle(runtime, 6, wallet.address)

    request = await signed_request(oracle, wallet, [handle], public_key, scope=[Account.create().address])

    assert oracle.user_decrypt(request) == {}


async def test_forged_signature_is_rejected(runtime, oracle):
    wallet = LocalWallet()
    public_key, _ = generate_keypair()
    handle = allowed_handle(runtime, 6, wallet.address)

    request = await signed_request(oracle, wallet, [handle], public_key, signer=LocalWallet())

    with pytest.raises(OracleRejection):
        oracle.user_decrypt(request)


async def test_signature_over_other_key_is_rejected(runtime, oracle):
    wallet = LocalWallet()
    handle = allowed_handle(runtime, 6, wallet.address)
    request = await signed_request(oracle, wallet, [handle], generate_keypair()[0])
    request["publicKey"] = generate_keypair()[0]

    with pytest.raises(OracleRejection):
        oracle.user_decrypt(request)


async def test_expired_window_is_rejected(runtime, oracle):
    wallet = LocalWallet()
    public_key, _ = generate_keypair()
    handle = allowed_handle(runtime, 6, wallet.address)
    start = int(time.time()) - 11 * 86400

    with pytest.raises(OracleRejection, match="expired"):
        oracle.user_decrypt(await signed_request(oracle, wallet, [handle], public_key, start=start))


async def test_future_window_is_rejected(runtime, oracle):
    wallet = LocalWallet()
    public_key, _ = generate_keypair()
    handle = allowed_handle(runtime, 6, wallet.address)

    with pytest.raises(OracleRejection, match="future"):
        oracle.user_decrypt(
            await signed_request(oracle, wallet, [handle], public_key, start=int(time.time()) + 3600)
        )


async def test_overlong_duration_is_rejected(runtime, oracle):
    wallet = LocalWallet()
    public_key, _ = generate_keypair()
    handle = allowed_handle(runtime, 6, wallet.address)

    with pytest.raises(OracleRejection):
        oracle.user_decrypt(await signed_request(oracle, wallet, [handle], public_key, duration=366))


async def test_request_limits(runtime, oracle):
    wallet = LocalWallet()
    public_key, _ = generate_keypair()
    handle = allowed_handle(runtime, 6, wallet.address)
    too_many = [handle] * (DECRYPTION_CONFIG["max_handles_per_request"] + 1)

    with pytest.raises(ValueError):
        oracle.user_decrypt(await signed_request(oracle, wallet, too_many, public_key))
    with pytest.raises(ValueError):
        oracle.user_decrypt({"handleContractPairs": []})
