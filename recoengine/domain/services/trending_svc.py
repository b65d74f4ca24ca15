import time
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from recoengine.domain.models.interaction import InteractionQuery
from recoengine.domain.models.reco import Recommendation
from recoengine.domain.services.constants import (
    DEFAULT_LIMIT,
    DEFAULT_TIME_PERIOD,
    IN_STOCK,
    TRENDING_DEFAULT_WEIGHT,
    TRENDING_MOMENTUM,
    TRENDING_NORMALIZER,
    TRENDING_PREFIX,
    TRENDING_WEIGHTS,
    TRENDING_WINDOWS,
)
from recoengine.utils.cache import ResultCache
from recoengine.utils.locks import KeyedLock

logger = logging.getLogger(__name__)


def trending_cache_key(category: Optional[str], time_period: str, limit: int) -> str:
    return f"{TRENDING_PREFIX}{category or 'all'}_{time_period}_{limit}"


def rank_trending(rows, time_period: str, limit: int) -> List[Recommendation]:
    """
    Weighted activity per product (view 1, cart 2, purchase 3, anything else 1),
    multiplied by the window's momentum and normalised by TRENDING_NORMALIZER.
    """
    totals: Dict[str, float] = {}
    counts: Dict[str, int] = {}
    for it in rows:
        totals[it.product_id] = totals.get(it.product_id, 0) + TRENDING_WEIGHTS.get(it.interaction_type, TRENDING_DEFAULT_WEIGHT)
        counts[it.product_id] = counts.get(it.product_id, 0) + 1

    momentum = TRENDING_MOMENTUM.get(time_period, 1.0)
    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    return [
        Recommendation(
            product_id=pid,
            score=min(total * momentum / TRENDING_NORMALIZER, 1.0),
            reason=f"Trending now - {counts[pid]} recent interactions",
            algorithm_used="trending",
            explanation=f"Popular with customers in the last {time_period}",
        )
        for pid, total in ranked
    ]


async def get_trending_recommendations(
    interactions,
    cache: ResultCache,
    locks: KeyedLock,
    clock: Callable[[], datetime],
    limit: int = DEFAULT_LIMIT,
    category: Optional[str] = None,
    time_period: str = DEFAULT_TIME_PERIOD,
) -> List[Recommendation]:
    """
    Trending products over a sliding window, optionally scoped to one category.
    Results are cached per (category, time_period, limit); concurrent misses on the
    same key share a single store query. Store failures return [] and are not cached.
    """
    start_time = time.perf_counter()
    cache_key = trending_cache_key(category, time_period, limit)
    logger.info("trending start limit=%s category=%s time_period=%s", limit, category, time_period)

    if (cached := cache.get(cache_key)) is not None:
        logger.info("trending cache_hit key=%s items=%s", cache_key, len(cached))
        return list(cached)

    async with locks.hold(cache_key):
        # another caller may have filled it while we waited
        if (cached := cache.get(cache_key)) is not None:
            logger.info("trending cache_hit(after wait) key=%s items=%s", cache_key, len(cached))
            return list(cached)

        logger.info("trending cache_miss key=%s", cache_key)
        since = clock() - timedelta(seconds=TRENDING_WINDOWS[time_period])
        query = InteractionQuery(since=since, product_category=category, min_inventory=IN_STOCK)

        db_t0 = time.perf_counter()
        try:
            rows = await interactions.query_interactions(query)
        except Exception as e:
            logger.warning("trending store error key=%s err=%s", cache_key, e)
            return []
        logger.info("trending db_ok rows=%s db_time=%.3fs", len(rows), time.perf_counter() - db_t0)

        rows = [it for it in rows if it.product is None or it.product.in_stock]
        if not rows:
            logger.info("trending no interactions since=%s category=%s", since.isoformat(), category)
            return []

        recs = rank_trending(rows, time_period, limit)
        cache.set(cache_key, list(recs))
        logger.debug("trending cache_set key=%s items=%s", cache_key, len(recs))

    logger.info("trending done items=%s total_time=%.3fs", len(recs), time.perf_counter() - start_time)
    return recs
