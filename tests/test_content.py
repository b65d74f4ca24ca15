from datetime import datetime, timedelta, timezone

import pytest

from recoengine.domain.models.interaction import Interaction
from recoengine.domain.models.product import Product
from recoengine.domain.models.reco import PriceRange, UserPreference
from recoengine.domain.services.content_svc import build_user_preference, price_band, score_candidate

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def catalog(products):
    products.add("H1", category="electronics", brand="Acme", tags=["wireless"], price=100)
    products.add("C1", category="electronics", brand="Acme", tags=["wireless"], price=100)
    products.add("C2", category="electronics", brand="Other", price=110)
    products.add("C3", category="electronics", brand="Acme", price=100, inventory_quantity=0)
    products.add("C4", category="books", brand="Acme", price=100)
    products.add("C5", category="electronics", brand="Acme", price=500)
    products.add("C6", category="books", brand="Other", price=100)


def _profile(**kw):
    kw.setdefault("price_range", PriceRange(min=50, max=150))
    return UserPreference(user_id="U", last_updated=T0, **kw)


def test_price_band_uses_quartile_positions():
    assert price_band([40, 10, 30, 20]) == (20.0, 40.0)
    assert price_band([99]) == (99.0, 99.0)
    assert price_band([]) == (0.0, 1000.0)


def test_preferences_weight_by_interaction_type():
    shoe = Product(id="s", category="shoes", brand="Run", tags=["trail"], price=80)
    hat = Product(id="h", category="hats", brand="Run", price=20)
    history = [
        Interaction(user_id="U", product_id="s", interaction_type="purchase", created_at=T0, product=shoe),
        Interaction(user_id="U", product_id="h", interaction_type="view", created_at=T0, product=hat),
        Interaction(user_id="U", product_id="h", interaction_type="wishlist", created_at=T0, product=hat),
    ]

    pref = build_user_preference("U", history, T0)

    assert pref.category_preferences == {"shoes": 3, "hats": 3}
    assert pref.brand_preferences == {"Run": 6}
    assert pref.tag_preferences == {"trail": 3}
    assert pref.top_categories(5) == ["shoes", "hats"]
    assert pref.last_updated == T0


def test_tag_overlap_contribution_is_capped():
    profile = _profile(tag_preferences={"a": 3, "b": 3})
    score, reasons = score_candidate(Product(id="x", tags=["a", "b"], price=500), profile)
    assert score == pytest.approx(0.2)
    assert reasons == ["similar features"]


def test_price_only_match_scores_the_flat_bonus():
    profile = _profile(category_preferences={"shoes": 1})
    score, reasons = score_candidate(Product(id="x", category="hats", price=100), profile)
    assert score == pytest.approx(0.1)
    assert reasons == ["in your price range"]


async def test_ranks_candidates_from_profile(engine, catalog, add_event):
    add_event("U", "H1", "purchase")

    recs = await engine.content("U", 10)

    ids = [r.product_id for r in recs]
    assert ids[0] == "C1"
    assert set(ids[1:]) == {"C2", "C4"}
    # seen, out of stock, outside the price band, or matching nothing
    assert not {"H1", "C3", "C5", "C6"} & set(ids)

    top = recs[0]
    assert top.score == pytest.approx(1.0)
    assert top.algorithm_used == "content"
    assert top.reason == (
        "Because you like same category: electronics, preferred brand: Acme, "
        "similar features, in your price range"
    )
    assert top.explanation == "Based on your browsing and purchase history"
    assert recs[1].score == pytest.approx(0.4)


async def test_truncates_to_limit(engine, catalog, add_event):
    add_event("U", "H1", "purchase")
    recs = await engine.content("U", 1)
    assert [r.product_id for r in recs] == ["C1"]


async def test_cold_start_user_gets_nothing(engine, catalog, products):
    assert await engine.content("nobody", 10) == []
    assert products.query_count == 0


async def test_history_is_limited_to_recent_interactions(engine, catalog, add_event, interactions):
    add_event("U", "H1", "view", minutes_ago=5)
    await engine.content("U", 10)

    q = interactions.queries[0]
    assert q.user_id == "U"
    assert q.newest_first is True
    assert q.limit == 50
    assert q.needs_product


async def test_store_failure_degrades_to_empty(engine, catalog, add_event, products):
    add_event("U", "H1", "purchase")
    products.fail = True
    assert await engine.content("U", 10) == []


def test_default_price_band_for_history_without_prices(clock):
    history = [
        Interaction(
            user_id="U", product_id="ghost", interaction_type="view",
            created_at=clock() - timedelta(days=1), product=None,
        )
    ]
    pref = build_user_preference("U", history, clock())
    assert (pref.price_range.min, pref.price_range.max) == (0.0, 1000.0)
    assert pref.category_preferences == {}
