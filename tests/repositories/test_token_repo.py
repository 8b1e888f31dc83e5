import pytest

from launchpad.repositories import (
    compare_and_swap_reserves,
    create_token,
    get_token_by_mint,
    set_trading_active,
)

MINT = "CASmint111111111111111111111111111111111111"


async def _swap(session, expected, new, **kwargs):
    return await compare_and_swap_reserves(
        session,
        mint_address=MINT,
        expected_sol_reserves=expected[0],
        expected_token_reserves=expected[1],
        new_sol_reserves=new[0],
        new_token_reserves=new[1],
        **kwargs,
    )


@pytest.mark.asyncio
async def test_swap_applies_when_reserves_match(session):
    await create_token(session, mint_address=MINT, sol_reserves=1000, token_reserves=1000)

    assert await _swap(session, (1000, 1000), (1100, 910), tokens_sold_delta=90, volume_delta=100)

    token = await get_token_by_mint(session, MINT)
    assert (token.sol_reserves, token.token_reserves) == (1100, 910)
    assert (token.tokens_sold, token.total_volume) == (90, 100)


@pytest.mark.asyncio
async def test_swap_is_rejected_on_stale_reserves(session):
    await create_token(session, mint_address=MINT, sol_reserves=1000, token_reserves=1000)
    assert await _swap(session, (1000, 1000), (1100, 910))

    assert not await _swap(session, (1000, 1000), (1200, 800))

    token = await get_token_by_mint(session, MINT)
    assert (token.sol_reserves, token.token_reserves) == (1100, 910)


@pytest.mark.asyncio
async def test_swap_skips_inactive_pool(session):
    await create_token(session, mint_address=MINT, sol_reserves=1000, token_reserves=1000)
    await set_trading_active(session, MINT, False)

    assert not await _swap(session, (1000, 1000), (1100, 910))

    token = await get_token_by_mint(session, MINT)
    assert token.is_active is False
    assert token.sol_reserves == 1000


@pytest.mark.asyncio
async def test_swap_on_unknown_mint_returns_false(session):
    assert not await _swap(session, (1, 1), (2, 1))
