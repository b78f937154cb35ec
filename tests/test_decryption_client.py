import asyncio

import httpx
import pytest
from eth_account import Account

from numberwar.errors import ServiceUnavailable, SignerUnavailable, ValidationError
from numberwar.model import ZERO_HANDLE
from numberwar.service.decryption import DecryptionClient
from numberwar.service.ledger import HttpLedgerClient
from numberwar.service.wallet import LocalWallet

from .conftest import NODE_URL, fake_handle


def failing_transport(calls):
    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("node down", request=request)
    return httpx.MockTransport(handler)


async def test_only_sentinels_means_no_request():
    calls = []
    client = DecryptionClient(NODE_URL, transport=failing_transport(calls))

    result = await client.decrypt([ZERO_HANDLE, "0x" + "00" * 32, None, ""], LocalWallet().address, None)

    assert result == {}
    assert calls == []


async def test_missing_signer():
    client = DecryptionClient(NODE_URL, transport=failing_transport([]))

    with pytest.raises(SignerUnavailable):
        await client.decrypt([fake_handle(b"a")], LocalWallet().address, None)


async def test_unreachable_oracle():
    wallet = LocalWallet()
    client = DecryptionClient(NODE_URL, transport=failing_transport([]))

    with pytest.raises(ServiceUnavailable):
        await client.decrypt([fake_handle(b"a")], wallet.address, wallet)


def oracle_transport(results):
    """Node that answers /v1/info and replies to every decryption with `results`"""
    deployment = {
        "contractAddress": Account.create().address,
        "oracleAddress": Account.create().address,
        "chainId": 31337,
    }

    def handler(request):
        if request.url.path == "/v1/info":
            return httpx.Response(200, json=deployment)
        return httpx.Response(200, json={"results": results})
    return httpx.MockTransport(handler)


@pytest.mark.parametrize("sealed", [123, None, ["0x00"], "0xzz"])
async def test_malformed_sealed_result(sealed):
    wallet = LocalWallet()
    handle = fake_handle(b"a")
    client = DecryptionClient(NODE_URL, transport=oracle_transport({handle.hex(): sealed}))

    with pytest.raises(ServiceUnavailable, match="Could not open sealed result"):
        await client.decrypt([handle], wallet.address, wallet)


class RefusingSigner:
    def __init__(self, address):
        self.address = address

    async def sign_typed_data(self, typed):
        raise RuntimeError("user rejected the request")


class HangingSigner(RefusingSigner):
    async def sign_typed_data(self, typed):
        await asyncio.Event().wait()


async def test_signer_refusal(transport):
    wallet = LocalWallet()
    client = DecryptionClient(NODE_URL, transport=transport)

    with pytest.raises(SignerUnavailable, match="rejected"):
        await client.decrypt([fake_handle(b"a")], wallet.address, RefusingSigner(wallet.address))


async def test_pending_signature_is_cancellable(transport):
    wallet = LocalWallet()
    client = DecryptionClient(NODE_URL, transport=transport)

    task = asyncio.create_task(client.decrypt([fake_handle(b"a")], wallet.address, HangingSigner(wallet.address)))
    await asyncio.sleep(0.05)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


async def test_contract_outside_scope(transport):
    wallet = LocalWallet()
    client = DecryptionClient(NODE_URL, transport=transport)

    with pytest.raises(ValidationError):
        await client.decrypt([(fake_handle(b"a"), Account.create().address)], wallet.address, wallet)


async def test_reveal_through_node_is_stable(node, transport):
    wallet = LocalWallet()
    ledger = HttpLedgerClient(NODE_URL, transport=transport)
    client = DecryptionClient(NODE_URL, transport=transport)
    await ledger.join_game(wallet)
    handle = await ledger.get_system_number(wallet.address)

    first = await client.decrypt([handle, handle, ZERO_HANDLE], wallet.address, wallet)
    second = await client.decrypt([handle], wallet.address, wallet)

    assert list(first) == [handle]
    assert 1 <= int(first[handle]) <= 10
    assert first == second


async def test_other_viewer_gets_nothing(node, transport):
    owner, viewer = LocalWallet(), LocalWallet()
    ledger = HttpLedgerClient(NODE_URL, transport=transport)
    await ledger.join_game(owner)
    handle = await ledger.get_system_number(owner.address)

    result = await DecryptionClient(NODE_URL, transport=transport).decrypt([handle], viewer.address, viewer)

    assert result == {}


async def test_signature_for_other_viewer_is_surfaced(node, transport):
    owner = LocalWallet()
    ledger = HttpLedgerClient(NODE_URL, transport=transport)
    await ledger.join_game(owner)
    handle = await ledger.get_system_number(owner.address)

    with pytest.raises(ServiceUnavailable) as exc:
        await DecryptionClient(NODE_URL, transport=transport).decrypt([handle], owner.address, LocalWallet())

    assert exc.value.status_code == 403
