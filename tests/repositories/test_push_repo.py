import pytest

from launchpad.repositories import (
    delete_subscription,
    delete_subscription_by_endpoint,
    get_subscription_by_endpoint,
    list_subscriptions_for_wallet,
    upsert_subscription,
)

WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


async def _add(session, endpoint, wallet=WALLET, p256dh="BKey", auth="auth"):
    return await upsert_subscription(
        session, wallet_address=wallet, endpoint=endpoint, p256dh=p256dh, auth=auth
    )


@pytest.mark.asyncio
async def test_upsert_refreshes_keys_of_known_endpoint(session):
    first = await _add(session, "https://push.example/1")
    updated = await _add(session, "https://push.example/1", p256dh="BNewKey", auth="newauth")

    assert updated.id == first.id
    stored = await get_subscription_by_endpoint(session, "https://push.example/1")
    assert (stored.p256dh, stored.auth) == ("BNewKey", "newauth")


@pytest.mark.asyncio
async def test_list_is_scoped_to_wallet(session):
    await _add(session, "https://push.example/1")
    await _add(session, "https://push.example/2")
    await _add(session, "https://push.example/3", wallet="otherWallet")

    endpoints = {sub.endpoint for sub in await list_subscriptions_for_wallet(session, WALLET)}

    assert endpoints == {"https://push.example/1", "https://push.example/2"}


@pytest.mark.asyncio
async def test_delete_by_id_and_endpoint(session):
    first = await _add(session, "https://push.example/1")
    await _add(session, "https://push.example/2")

    await delete_subscription(session, first.id)
    assert await delete_subscription_by_endpoint(session, "https://push.example/2") is True
    assert await delete_subscription_by_endpoint(session, "https://push.example/2") is False

    assert await list_subscriptions_for_wallet(session, WALLET) == []
