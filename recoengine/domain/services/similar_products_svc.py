import logging
import time
from typing import List, Optional, Tuple

from recoengine.domain.models.product import Product, ProductQuery
from recoengine.domain.models.reco import Recommendation
from recoengine.domain.services.constants import (
    DEFAULT_LIMIT,
    IN_STOCK,
    SIMILAR_PREFIX,
    SIMILARITY_BRAND_WEIGHT,
    SIMILARITY_CATEGORY_WEIGHT,
    SIMILARITY_FEATURES_THRESHOLD,
    SIMILARITY_MIN_SCORE,
    SIMILARITY_POOL_SIZE,
    SIMILARITY_PRICE_MAX_DIFF,
    SIMILARITY_PRICE_WEIGHT,
    SIMILARITY_TAG_WEIGHT,
)
from recoengine.utils.cache import ResultCache
from recoengine.utils.locks import KeyedLock

logger = logging.getLogger(__name__)

EXPLANATION = "Customers who viewed this item also viewed"


def similar_cache_key(product_id: str, limit: int) -> str:
    return f"{SIMILAR_PREFIX}{product_id}_{limit}"


def _relative_price_diff(source: Product, candidate: Product) -> Optional[float]:
    if source.price > 0:
        return abs(candidate.price - source.price) / source.price
    # free source product: only another free product is "similar price"
    return 0.0 if candidate.price == 0 else None


def jaccard(a, b) -> float:
    sa, sb = set(a), set(b)
    union = sa | sb
    return len(sa & sb) / len(union) if union else 0.0


def score_similarity(source: Product, candidate: Product) -> Tuple[float, List[str]]:
    """
    Pairwise similarity: category 0.4, brand 0.3, price proximity up to 0.2
    (0.2 * (1 - 2d) for a relative difference d < 0.5), tag Jaccard x 0.1.
    """
    score = 0.0
    reasons: List[str] = []

    if source.category is not None and candidate.category == source.category:
        score += SIMILARITY_CATEGORY_WEIGHT
        reasons.append("same category")

    if source.brand is not None and candidate.brand == source.brand:
        score += SIMILARITY_BRAND_WEIGHT
        reasons.append("same brand")

    diff = _relative_price_diff(source, candidate)
    if diff is not None and diff < SIMILARITY_PRICE_MAX_DIFF:
        score += SIMILARITY_PRICE_WEIGHT * (1 - diff * 2)
        reasons.append("similar price")

    tag_sim = jaccard(candidate.tags, source.tags)
    if tag_sim > 0:
        score += tag_sim * SIMILARITY_TAG_WEIGHT
        if tag_sim > SIMILARITY_FEATURES_THRESHOLD:
            reasons.append("similar features")

    return min(score, 1.0), reasons


async def get_similar_products_cached(
    products,
    cache: ResultCache,
    locks: KeyedLock,
    *,
    product_id: str,
    limit: int = DEFAULT_LIMIT,
) -> List[Recommendation]:
    """
    "Similar to X": score up to SIMILARITY_POOL_SIZE in-stock products against the source.
    Unknown source -> []. Results (including the empty list for a known source with no
    close match) are cached per (product_id, limit).
    """
    t0 = time.perf_counter()
    cache_key = similar_cache_key(product_id, limit)
    logger.info("similar start product_id=%s limit=%s", product_id, limit)

    if (cached := cache.get(cache_key)) is not None:
        logger.info("similar cache_hit key=%s items=%s", cache_key, len(cached))
        return list(cached)

    async with locks.hold(cache_key):
        if (cached := cache.get(cache_key)) is not None:
            logger.info("similar cache_hit(after wait) key=%s items=%s", cache_key, len(cached))
            return list(cached)

        try:
            source = await products.get_product(product_id)
            if not source:
                logger.info("similar no source product found for product_id=%s", product_id)
                return []
            candidates = await products.query_products(
                ProductQuery(exclude_ids=[product_id], min_inventory=IN_STOCK),
                limit=SIMILARITY_POOL_SIZE,
            )
        except Exception as e:
            logger.warning("similar store error product_id=%s err=%s", product_id, e)
            return []

        scored: List[Recommendation] = []
        for product in candidates[:SIMILARITY_POOL_SIZE]:
            if product.id == product_id or not product.in_stock:
                continue
            score, reasons = score_similarity(source, product)
            if score <= SIMILARITY_MIN_SCORE:
                continue
            scored.append(
                Recommendation(
                    product_id=product.id,
                    score=score,
                    reason=f"Similar product: {', '.join(reasons)}" if reasons else "Similar product",
                    algorithm_used="similarity",
                    explanation=EXPLANATION,
                )
            )

        scored.sort(key=lambda r: r.score, reverse=True)
        recs = scored[:limit]
        cache.set(cache_key, list(recs))

    logger.info(
        "similar done product_id=%s candidates=%s items=%s total_time=%.3fs",
        product_id, len(candidates), len(recs), time.perf_counter() - t0,
    )
    return recs
