import pytest
from pydantic import ValidationError

from recoengine.core.exceptions import InvalidInputError
from recoengine.domain.models.reco import (
    BlendWeights,
    PriceRange,
    Recommendation,
    RecommendationConfig,
    RecommendationFilters,
)
from recoengine.domain.services.hybrid_svc import fanout_plan, get_hybrid_recommendations, merge_weighted


def _rec(pid, score, algorithm, reason=None):
    return Recommendation(product_id=pid, score=score, reason=reason or f"{algorithm} pick", algorithm_used=algorithm)


class StubScorers(dict):
    """Scorer map that records the limit each scorer was called with."""

    def __init__(self, results):
        self.calls = {}

        def make(name, outcome):
            async def scorer(n):
                self.calls[name] = n
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
            return scorer

        super().__init__({name: make(name, outcome) for name, outcome in results.items()})


@pytest.fixture
def stock(products):
    for pid in ("X", "Y", "Z", "SHARED"):
        products.add(pid, category="shoes", brand="Acme", price=50)
    products.add("HAT", category="hats", brand="Acme", price=50)
    return products


async def _blend(scorers, products, clock, **config):
    return await get_hybrid_recommendations("U", RecommendationConfig(**config), scorers=scorers, products=products, clock=clock)


async def test_disjoint_results_are_weighted(stock, clock):
    scorers = StubScorers({
        "collaborative": [_rec("X", 1.0, "collaborative")],
        "content": [_rec("Y", 1.0, "content")],
        "trending": [_rec("Z", 1.0, "trending")],
    })

    res = await _blend(scorers, stock, clock, limit=10)

    assert [(r.product_id, r.score) for r in res.recommendations] == [
        ("X", pytest.approx(0.3)), ("Y", pytest.approx(0.3)), ("Z", pytest.approx(0.2)),
    ]
    assert all(r.algorithm_used == "hybrid" for r in res.recommendations)
    assert res.total_score == pytest.approx(0.8)
    assert res.algorithms_used == ["collaborative", "content", "trending", "similarity"]
    assert res.generated_at == clock()


async def test_overlapping_results_accumulate(stock, clock):
    scorers = StubScorers({
        "collaborative": [_rec("SHARED", 0.5, "collaborative", "bought together")],
        "content": [_rec("SHARED", 1.0, "content")],
        "trending": [],
    })

    res = await _blend(scorers, stock, clock)

    (only,) = res.recommendations
    assert only.score == pytest.approx(0.5 * 0.3 + 1.0 * 0.3)
    assert only.reason == "bought together"
    assert only.explanation == "Combined recommendation using collaborative, content algorithms"


def test_blended_score_is_capped():
    recs = merge_weighted(
        [("collaborative", [_rec("X", 1.0, "collaborative")]), ("content", [_rec("X", 1.0, "content")])],
        {"collaborative": 0.8, "content": 0.8},
    )
    assert recs[0].score == 1.0


def test_fanout_skips_zero_weights_and_sizes_requests():
    scorers = {"collaborative": None, "content": None, "trending": None}
    config = RecommendationConfig(limit=10, weights=BlendWeights(content=0))
    assert fanout_plan(config, scorers) == [("collaborative", 4), ("trending", 3)]


async def test_zero_weight_scorer_is_not_called(stock, clock):
    scorers = StubScorers({
        "collaborative": [_rec("X", 1.0, "collaborative")],
        "content": [_rec("Y", 1.0, "content")],
        "trending": [_rec("Z", 1.0, "trending")],
    })

    res = await _blend(scorers, stock, clock, limit=10, weights=BlendWeights(trending=0))

    assert "trending" not in scorers.calls
    assert scorers.calls == {"collaborative": 4, "content": 4}
    assert "trending" not in res.algorithms_used
    assert {r.product_id for r in res.recommendations} == {"X", "Y"}


async def test_failing_scorer_does_not_sink_the_blend(stock, clock):
    scorers = StubScorers({
        "collaborative": RuntimeError("boom"),
        "content": [_rec("Y", 1.0, "content")],
        "trending": [_rec("Z", 0.5, "trending")],
    })

    res = await _blend(scorers, stock, clock)

    assert [r.product_id for r in res.recommendations] == ["Y", "Z"]
    assert res.recommendations[1].score == pytest.approx(0.1)


async def test_filters_drop_non_matching_products(stock, clock):
    scorers = StubScorers({
        "collaborative": [_rec("HAT", 1.0, "collaborative")],
        "content": [_rec("X", 0.5, "content")],
        "trending": [_rec("GHOST", 1.0, "trending")],
    })

    res = await _blend(
        scorers, stock, clock,
        filters=RecommendationFilters(category="shoes", price_range=PriceRange(min=10, max=100)),
    )

    assert [r.product_id for r in res.recommendations] == ["X"]


async def test_truncates_to_limit(stock, clock):
    scorers = StubScorers({
        "collaborative": [_rec(pid, 1.0 - i * 0.1, "collaborative") for i, pid in enumerate(["X", "Y", "Z"])],
        "content": [],
        "trending": [],
    })

    res = await _blend(scorers, stock, clock, limit=2)

    assert [r.product_id for r in res.recommendations] == ["X", "Y"]
    assert res.total_score == pytest.approx(0.3 + 0.27)


async def test_unexpected_failure_returns_empty_response(stock, clock):
    scorers = StubScorers({"collaborative": [_rec("X", 1.0, "collaborative")], "content": [], "trending": []})
    stock.fail = True

    res = await _blend(scorers, stock, clock, filters=RecommendationFilters(category="shoes"))

    assert res.recommendations == []
    assert res.total_score == 0.0


async def test_engine_blend_for_cold_start_user_uses_trending(engine, products, add_event):
    products.add("T1")
    add_event("someone", "T1", "purchase")

    res = await engine.hybrid("new-user")

    assert [r.product_id for r in res.recommendations] == ["T1"]
    assert res.recommendations[0].explanation == "Combined recommendation using trending algorithms"


async def test_mapping_config_is_accepted(engine, products, add_event):
    products.add("T1")
    add_event("someone", "T1", "purchase")

    res = await engine.hybrid(
        "U", {"limit": 3, "weights": {"collaborative": 0, "content": 0, "trending": 1, "similarity": 0}}
    )

    assert res.algorithms_used == ["trending"]
    assert res.recommendations[0].score == pytest.approx(0.045)


async def test_negative_weight_is_rejected(engine, interactions):
    with pytest.raises(InvalidInputError) as exc:
        await engine.hybrid("U", {"weights": {"collaborative": -1}})
    assert exc.value.status_code == 422
    assert exc.value.details["field"] == "weights.collaborative"
    assert interactions.query_count == 0


def test_price_range_rejects_inverted_bounds():
    with pytest.raises(ValidationError):
        PriceRange(min=50, max=10)
    assert PriceRange(min=10, max=10).max == 10


async def test_inverted_price_range_in_config_is_rejected(engine, interactions):
    with pytest.raises(InvalidInputError) as exc:
        await engine.hybrid("U", {"filters": {"price_range": {"min": 50, "max": 10}}})
    assert exc.value.details["field"] == "filters.price_range"
    assert interactions.query_count == 0
