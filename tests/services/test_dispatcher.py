import json

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from config.settings import PushSettings
from launchpad.errors import PushNotConfigured
from launchpad.repositories import get_subscription_by_endpoint, list_subscriptions_for_wallet
from launchpad.services.push.dispatcher import PushDispatcher, PushResponse
from launchpad.services.push.webpush import PushMessage, decrypt
from launchpad.utils.encoding import b64url_decode

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
LIVE_ENDPOINT = "https://fcm.googleapis.com/fcm/send/live"
GONE_ENDPOINT = "https://updates.push.services.mozilla.com/wpush/v2/gone"


class FakeTransport:
    """Запоминает запросы и отвечает заранее заданными статусами."""

    def __init__(self, statuses=None, errors=None):
        self.statuses = statuses or {}
        self.errors = errors or {}
        self.requests = []

    async def post(self, url, body, headers):
        self.requests.append((url, body, headers))
        if url in self.errors:
            raise self.errors[url]
        return PushResponse(status=self.statuses.get(url, 201), text="gone")


async def _subscribe(dispatcher, session, subscriber, endpoint, wallet=WALLET):
    return await dispatcher.register_subscription(
        session,
        wallet_address=wallet,
        endpoint=endpoint,
        p256dh=subscriber.p256dh,
        auth=subscriber.auth,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("gone_status", [404, 410])
async def test_send_counts_results_and_prunes_gone_subscription(session, push_settings, subscriber, gone_status):
    transport = FakeTransport(statuses={GONE_ENDPOINT: gone_status})
    dispatcher = PushDispatcher(push_settings, transport=transport)
    await _subscribe(dispatcher, session, subscriber, LIVE_ENDPOINT)
    await _subscribe(dispatcher, session, subscriber, GONE_ENDPOINT)

    result = await dispatcher.send_to_wallet(
        session, WALLET, PushMessage(title="Price Alert", body="AUD +20%", token_mint="Mint1")
    )

    assert result.as_dict() == {"success": 1, "failed": 1}
    assert await get_subscription_by_endpoint(session, GONE_ENDPOINT) is None
    assert await get_subscription_by_endpoint(session, LIVE_ENDPOINT) is not None


@pytest.mark.asyncio
async def test_request_is_encrypted_and_vapid_signed(session, push_settings, vapid_keys, subscriber):
    transport = FakeTransport()
    dispatcher = PushDispatcher(push_settings, transport=transport)
    await _subscribe(dispatcher, session, subscriber, LIVE_ENDPOINT)

    await dispatcher.send_to_wallet(session, WALLET, PushMessage(title="Sold", body="ok", url="/token/Mint1"))

    [(url, body, headers)] = transport.requests
    assert url == LIVE_ENDPOINT
    assert headers["Content-Type"] == "application/octet-stream"
    assert headers["Content-Encoding"] == "aes128gcm"
    assert headers["TTL"] == "86400"

    scheme, _, params = headers["Authorization"].partition(" ")
    token_part, key_part = params.split(", ")
    assert scheme == "vapid"
    assert key_part == f"k={vapid_keys.public_key}"
    public_key = ec.EllipticCurvePublicKey.from_encoded_point(
        ec.SECP256R1(), b64url_decode(vapid_keys.public_key)
    )
    claims = jwt.decode(
        token_part.removeprefix("t="),
        public_key,
        algorithms=["ES256"],
        audience="https://fcm.googleapis.com",
    )
    assert claims["sub"] == push_settings.subject

    plaintext = decrypt(body, subscriber.private_key, subscriber.auth_secret)
    assert json.loads(plaintext) == {"title": "Sold", "body": "ok", "url": "/token/Mint1"}


@pytest.mark.asyncio
async def test_transport_error_counts_as_failure_and_keeps_subscription(session, push_settings, subscriber):
    transport = FakeTransport(errors={GONE_ENDPOINT: ConnectionError("reset by peer")}, statuses={LIVE_ENDPOINT: 500})
    dispatcher = PushDispatcher(push_settings, transport=transport)
    await _subscribe(dispatcher, session, subscriber, LIVE_ENDPOINT)
    await _subscribe(dispatcher, session, subscriber, GONE_ENDPOINT)

    result = await dispatcher.send_to_wallet(session, WALLET, PushMessage(title="t", body="b"))

    assert result.as_dict() == {"success": 0, "failed": 2}
    assert len(await list_subscriptions_for_wallet(session, WALLET)) == 2


@pytest.mark.asyncio
async def test_invalid_subscriber_keys_do_not_abort_dispatch(session, push_settings, subscriber):
    transport = FakeTransport()
    dispatcher = PushDispatcher(push_settings, transport=transport)
    await dispatcher.register_subscription(
        session, wallet_address=WALLET, endpoint=GONE_ENDPOINT, p256dh="AAAA", auth=subscriber.auth
    )
    await _subscribe(dispatcher, session, subscriber, LIVE_ENDPOINT)

    result = await dispatcher.send_to_wallet(session, WALLET, PushMessage(title="t", body="b"))

    assert result.as_dict() == {"success": 1, "failed": 1}
    assert [url for url, _, _ in transport.requests] == [LIVE_ENDPOINT]


@pytest.mark.asyncio
async def test_no_subscriptions_sends_nothing(session, push_settings):
    transport = FakeTransport()
    dispatcher = PushDispatcher(push_settings, transport=transport)

    result = await dispatcher.send_to_wallet(session, WALLET, PushMessage(title="t", body="b"))

    assert result.as_dict() == {"success": 0, "failed": 0}
    assert transport.requests == []


@pytest.mark.asyncio
async def test_unconfigured_dispatcher_refuses_to_send(session):
    dispatcher = PushDispatcher(PushSettings(), transport=FakeTransport())

    assert not dispatcher.is_configured
    with pytest.raises(PushNotConfigured):
        await dispatcher.send_to_wallet(session, WALLET, PushMessage(title="t", body="b"))


@pytest.mark.asyncio
async def test_register_upserts_by_endpoint(session, push_settings, subscriber):
    dispatcher = PushDispatcher(push_settings, transport=FakeTransport())
    first = await _subscribe(dispatcher, session, subscriber, LIVE_ENDPOINT, wallet="walletA")
    second = await _subscribe(dispatcher, session, subscriber, LIVE_ENDPOINT, wallet="walletB")

    assert first.id == second.id
    assert await list_subscriptions_for_wallet(session, "walletA") == []
    assert len(await list_subscriptions_for_wallet(session, "walletB")) == 1

    assert await dispatcher.remove_subscription(session, LIVE_ENDPOINT) is True
    assert await dispatcher.remove_subscription(session, LIVE_ENDPOINT) is False
