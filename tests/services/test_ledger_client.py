import pytest
from aiohttp import test_utils, web

from config.settings import LedgerSettings
from launchpad.services.curve.ledger_client import LedgerClientError, RpcLedgerClient


def _relay(reply):
    """Поднимает JSON-RPC релей, который отвечает reply(payload) -> (status, body)."""

    received = []

    async def handle(request):
        payload = await request.json()
        received.append(payload)
        status, body = reply(payload)
        return web.json_response(body, status=status)

    app = web.Application()
    app.router.add_post("/rpc", handle)
    return test_utils.TestServer(app), received


async def _client(server):
    await server.start_server()
    settings = LedgerSettings(
        transfers_enabled=True,
        rpc_endpoint=str(server.make_url("/rpc")),
        platform_wallet="PlatformWa11et",
        request_timeout=2.0,
    )
    return RpcLedgerClient(settings)


@pytest.mark.asyncio
async def test_transfer_tokens_returns_signature():
    server, received = _relay(lambda payload: (200, {"jsonrpc": "2.0", "id": payload["id"], "result": {"signature": "5sig"}}))
    client = await _client(server)
    try:
        signature = await client.transfer_tokens("Mint1", "Buyer1", 90_081_892_629_664)
    finally:
        await client.close()
        await server.close()

    assert signature == "5sig"
    [payload] = received
    assert payload["method"] == "transferTokens"
    assert payload["params"] == {
        "from": "PlatformWa11et",
        "mint": "Mint1",
        "to": "Buyer1",
        "amount": "90081892629664",
    }


@pytest.mark.asyncio
async def test_transfer_sol_accepts_plain_string_result():
    server, received = _relay(lambda payload: (200, {"jsonrpc": "2.0", "id": payload["id"], "result": "solsig"}))
    client = await _client(server)
    try:
        assert await client.transfer_sol("Seller1", 495) == "solsig"
    finally:
        await client.close()
        await server.close()

    assert received[0]["params"]["lamports"] == "495"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        lambda payload: (502, {"message": "bad gateway"}),
        lambda payload: (200, {"jsonrpc": "2.0", "id": payload["id"], "error": {"code": -32000, "message": "insufficient funds"}}),
        lambda payload: (200, {"jsonrpc": "2.0", "id": payload["id"], "result": {}}),
    ],
    ids=["http-error", "rpc-error", "no-signature"],
)
async def test_failures_raise_ledger_client_error(reply):
    server, _ = _relay(reply)
    client = await _client(server)
    try:
        with pytest.raises(LedgerClientError):
            await client.transfer_sol("Seller1", 495)
    finally:
        await client.close()
        await server.close()


def test_missing_endpoint_is_rejected():
    with pytest.raises(LedgerClientError):
        RpcLedgerClient(LedgerSettings(transfers_enabled=True, rpc_endpoint=""))
