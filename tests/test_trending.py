import asyncio

import pytest

from recoengine.core.exceptions import InvalidInputError
from recoengine.domain.services.trending_svc import trending_cache_key


@pytest.fixture
def catalog(products):
    products.add("T1", category="shoes")
    products.add("T2", category="shoes")
    products.add("T3", category="hats")
    products.add("GONE", category="shoes", inventory_quantity=0)


def test_cache_key_layout():
    assert trending_cache_key(None, "24h", 10) == "trending_all_24h_10"
    assert trending_cache_key("shoes", "1h", 5) == "trending_shoes_1h_5"


async def test_weighted_activity_with_daily_momentum(engine, catalog, add_event):
    for _ in range(2):
        add_event("u1", "T1", "view", minutes_ago=30)
    add_event("u2", "T1", "cart", minutes_ago=60)
    add_event("u3", "T1", "purchase", minutes_ago=90)
    add_event("u4", "T2", "view", minutes_ago=10)

    recs = await engine.trending(10, time_period="24h")

    assert [r.product_id for r in recs] == ["T1", "T2"]
    # (1 + 1 + 2 + 3) * 1.5 / 100
    assert recs[0].score == pytest.approx(0.105)
    assert recs[0].reason == "Trending now - 4 recent interactions"
    assert recs[0].explanation == "Popular with customers in the last 24h"
    assert recs[1].score == pytest.approx(0.015)


async def test_window_and_momentum_follow_time_period(engine, catalog, add_event):
    add_event("u1", "T1", "purchase", minutes_ago=30)
    add_event("u1", "T2", "purchase", minutes_ago=3 * 60)

    hour = await engine.trending(10, time_period="1h")
    week = await engine.trending(10, time_period="7d")

    assert [r.product_id for r in hour] == ["T1"]
    assert hour[0].score == pytest.approx(0.06)
    assert {r.product_id for r in week} == {"T1", "T2"}
    assert week[0].score == pytest.approx(0.03)


async def test_category_scope_and_stock(engine, catalog, add_event):
    add_event("u1", "T3", "purchase")
    add_event("u1", "T1", "view")
    add_event("u1", "GONE", "purchase")

    recs = await engine.trending(10, category="shoes")

    assert [r.product_id for r in recs] == ["T1"]


async def test_repeated_calls_hit_the_store_once(engine, catalog, add_event, interactions):
    add_event("u1", "T1", "view")

    first = await engine.trending(10)
    second = await engine.trending(10)

    assert first == second
    assert interactions.query_count == 1


async def test_cache_expires_after_ttl(engine, catalog, add_event, interactions, clock):
    add_event("u1", "T1", "view")
    await engine.trending(10)

    clock.advance(1800 + 1)
    await engine.trending(10)

    assert interactions.query_count == 2


async def test_concurrent_misses_share_one_fill(engine, catalog, add_event, interactions):
    add_event("u1", "T1", "view")

    results = await asyncio.gather(*(engine.trending(10) for _ in range(5)))

    assert interactions.query_count == 1
    assert all(r == results[0] for r in results)


async def test_empty_and_failed_results_are_not_cached(engine, catalog, add_event, interactions):
    assert await engine.trending(10) == []

    interactions.fail = True
    assert await engine.trending(10) == []

    interactions.fail = False
    add_event("u1", "T1", "view")
    assert [r.product_id for r in await engine.trending(10)] == ["T1"]
    assert interactions.query_count == 3


async def test_truncates_to_limit(engine, products, add_event):
    for i in range(20):
        products.add(f"P{i}")
        for _ in range(i + 1):
            add_event("u1", f"P{i}", "view")

    recs = await engine.trending(5)

    assert [r.product_id for r in recs] == ["P19", "P18", "P17", "P16", "P15"]


async def test_unknown_time_period_is_rejected(engine, interactions):
    with pytest.raises(InvalidInputError) as exc:
        await engine.trending(10, time_period="2h")
    assert exc.value.status_code == 422
    assert interactions.query_count == 0
