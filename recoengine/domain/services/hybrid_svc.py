import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Mapping, Tuple

from recoengine.domain.models.reco import Recommendation, RecommendationConfig, RecommendationResponse
from recoengine.domain.services.constants import HYBRID_FANOUT
from recoengine.domain.services.filters import apply_filters

logger = logging.getLogger(__name__)

# name -> coroutine taking the per-scorer limit
Scorer = Callable[[int], Awaitable[List[Recommendation]]]


@dataclass
class _Blend:
    score: float = 0.0
    reasons: List[str] = field(default_factory=list)
    algorithms: List[str] = field(default_factory=list)


def fanout_plan(config: RecommendationConfig, available: Mapping[str, Scorer]) -> List[Tuple[str, int]]:
    """Which scorers to call and with what limit; zero-weight scorers are skipped."""
    weights = config.weights.model_dump()
    return [
        (name, math.ceil(config.limit * share))
        for name, share in HYBRID_FANOUT.items()
        if weights.get(name, 0) > 0 and name in available
    ]


def merge_weighted(
    results: List[Tuple[str, List[Recommendation]]],
    weights: Dict[str, float],
) -> List[Recommendation]:
    """
    Accumulate score * weight per product across scorers.
    The first contributing reason wins; the explanation names every contributor.
    """
    acc: Dict[str, _Blend] = {}
    for name, recs in results:
        w = weights.get(name, 0.0)
        for rec in recs:
            entry = acc.setdefault(rec.product_id, _Blend())
            entry.score += rec.score * w
            entry.reasons.append(rec.reason)
            entry.algorithms.append(rec.algorithm_used)

    return [
        Recommendation(
            product_id=pid,
            score=min(entry.score, 1.0),
            reason=entry.reasons[0] if entry.reasons else "Recommended for you",
            algorithm_used="hybrid",
            explanation=f"Combined recommendation using {', '.join(entry.algorithms)} algorithms",
        )
        for pid, entry in acc.items()
    ]


async def get_hybrid_recommendations(
    user_id: str,
    config: RecommendationConfig,
    *,
    scorers: Mapping[str, Scorer],
    products,
    clock: Callable[[], datetime],
) -> RecommendationResponse:
    """
    Fan out to the collaborative / content / trending scorers concurrently, then blend.

    A scorer that raises contributes nothing; the others are neither cancelled nor
    affected. Any other failure yields an empty response with total_score 0.
    """
    t0 = time.perf_counter()
    logger.info("hybrid start user_id=%s limit=%s weights=%s", user_id, config.limit, config.weights.model_dump())

    try:
        plan = fanout_plan(config, scorers)
        outcomes = await asyncio.gather(
            *(scorers[name](n) for name, n in plan),
            return_exceptions=True,
        )

        results: List[Tuple[str, List[Recommendation]]] = []
        for (name, _), outcome in zip(plan, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("hybrid scorer failed name=%s user_id=%s err=%s", name, user_id, outcome)
                continue
            logger.debug("hybrid scorer ok name=%s items=%s", name, len(outcome))
            results.append((name, outcome))

        blended = merge_weighted(results, config.weights.model_dump())
        blended = await apply_filters(products, blended, config.filters)
        blended.sort(key=lambda r: r.score, reverse=True)
        final = blended[: config.limit]

        response = RecommendationResponse(
            recommendations=final,
            total_score=sum(r.score for r in final),
            algorithms_used=config.weights.active(),
            generated_at=clock(),
        )
    except Exception as e:
        logger.error("hybrid failed user_id=%s err=%s", user_id, e)
        return RecommendationResponse(recommendations=[], total_score=0.0, algorithms_used=[], generated_at=clock())

    logger.info(
        "hybrid done user_id=%s scorers=%s items=%s total_score=%.3f total_time=%.3fs",
        user_id, [name for name, _ in results], len(final), response.total_score, time.perf_counter() - t0,
    )
    return response
