# recoengine/domain/services/content_svc.py
import logging
import math
import time
from datetime import datetime
from typing import Dict, List, Sequence, Tuple

from recoengine.domain.models.interaction import Interaction, InteractionQuery
from recoengine.domain.models.product import Product, ProductQuery
from recoengine.domain.models.reco import PriceRange, Recommendation, UserPreference
from recoengine.domain.services.constants import (
    AFFINITY_WEIGHTS,
    CONTENT_BRAND_WEIGHT,
    CONTENT_CATEGORY_WEIGHT,
    CONTENT_MIN_SCORE,
    CONTENT_POOL_SIZE,
    CONTENT_PRICE_BONUS,
    CONTENT_TAG_WEIGHT,
    DEFAULT_LIMIT,
    DEFAULT_PRICE_BAND,
    IN_STOCK,
    PRICE_BAND_QUANTILES,
    PRICE_BAND_SLACK,
    PROFILE_HISTORY_SIZE,
    PROFILE_TYPES,
    TOP_PREFERENCES,
)

logger = logging.getLogger(__name__)

EXPLANATION = "Based on your browsing and purchase history"


async def fetch_profile_history(interactions, user_id: str) -> List[Interaction]:
    """Most recent view/cart/purchase/wishlist interactions, joined to their products."""
    return await interactions.query_interactions(
        InteractionQuery(
            user_id=user_id,
            interaction_types=list(PROFILE_TYPES),
            with_product=True,
            newest_first=True,
            limit=PROFILE_HISTORY_SIZE,
        )
    )


def price_band(prices: Sequence[float]) -> Tuple[float, float]:
    """
    [p25, p75] of the observed prices (element at floor(n*q) of the sorted list).
    Falls back to DEFAULT_PRICE_BAND when nothing was observed.
    """
    if not prices:
        return DEFAULT_PRICE_BAND
    ordered = sorted(prices)
    lo_q, hi_q = PRICE_BAND_QUANTILES
    low = ordered[min(math.floor(len(ordered) * lo_q), len(ordered) - 1)]
    high = ordered[min(math.floor(len(ordered) * hi_q), len(ordered) - 1)]
    return float(low), float(high)


def build_user_preference(user_id: str, history: Sequence[Interaction], now: datetime) -> UserPreference:
    """
    Fold an interaction history into weighted category / brand / tag affinities
    (purchase 3, cart 2, wishlist 2, view 1) and a preferred price band.
    """
    categories: Dict[str, float] = {}
    brands: Dict[str, float] = {}
    tags: Dict[str, float] = {}
    prices: List[float] = []

    for item in history:
        product = item.product
        if product is None:
            continue
        weight = AFFINITY_WEIGHTS.get(item.interaction_type, 1)
        if product.category:
            categories[product.category] = categories.get(product.category, 0) + weight
        if product.brand:
            brands[product.brand] = brands.get(product.brand, 0) + weight
        for tag in product.tags:
            tags[tag] = tags.get(tag, 0) + weight
        prices.append(product.price)

    low, high = price_band(prices)
    return UserPreference(
        user_id=user_id,
        category_preferences=categories,
        brand_preferences=brands,
        tag_preferences=tags,
        price_range=PriceRange(min=low, max=high),
        last_updated=now,
    )


def score_candidate(product: Product, profile: UserPreference) -> Tuple[float, List[str]]:
    """
    Weighted profile match: category 40%, brand 30%, tag overlap 20% (each divided by the
    strongest affinity in its dimension) plus a flat 10% when the price is inside the band.
    """
    score = 0.0
    reasons: List[str] = []

    cat_aff = profile.category_preferences
    if product.category and cat_aff.get(product.category):
        score += (cat_aff[product.category] / max(cat_aff.values())) * CONTENT_CATEGORY_WEIGHT
        reasons.append(f"same category: {product.category}")

    brand_aff = profile.brand_preferences
    if product.brand and brand_aff.get(product.brand):
        score += (brand_aff[product.brand] / max(brand_aff.values())) * CONTENT_BRAND_WEIGHT
        reasons.append(f"preferred brand: {product.brand}")

    tag_aff = profile.tag_preferences
    tag_score = sum(tag_aff.get(t, 0) for t in product.tags)
    if tag_score > 0:
        score += min(tag_score / max(tag_aff.values()), 1.0) * CONTENT_TAG_WEIGHT
        reasons.append("similar features")

    if profile.price_range.min <= product.price <= profile.price_range.max:
        score += CONTENT_PRICE_BONUS
        reasons.append("in your price range")

    return min(score, 1.0), reasons


async def get_content_based_recommendations(
    interactions,
    products,
    user_id: str,
    limit: int = DEFAULT_LIMIT,
    *,
    now: datetime,
) -> List[Recommendation]:
    """
    Content-based filtering from the user's own recent history.
    No history -> [] (cold start). Any store failure -> [].
    """
    t0 = time.perf_counter()
    logger.info("content start user_id=%s limit=%s", user_id, limit)

    try:
        history = await fetch_profile_history(interactions, user_id)
        if not history:
            logger.info("content cold_start user_id=%s (no history)", user_id)
            return []

        profile = build_user_preference(user_id, history, now)
        top_categories = profile.top_categories(TOP_PREFERENCES)
        top_brands = profile.top_brands(TOP_PREFERENCES)
        if not top_categories and not top_brands:
            logger.info("content no_preferences user_id=%s history=%s", user_id, len(history))
            return []

        seen = list(dict.fromkeys(h.product_id for h in history))
        low, high = profile.price_range.min, profile.price_range.max
        query = ProductQuery(
            any_category=top_categories or None,
            any_brand=top_brands or None,
            price_min=low * (1 - PRICE_BAND_SLACK),
            price_max=high * (1 + PRICE_BAND_SLACK),
            min_inventory=IN_STOCK,
            exclude_ids=seen,
        )
        logger.debug("content candidate_query user_id=%s query=%s", user_id, query.model_dump(exclude_none=True))
        candidates = await products.query_products(query, limit=CONTENT_POOL_SIZE)
    except Exception as e:
        logger.warning("content store error user_id=%s err=%s", user_id, e)
        return []

    excluded = set(seen)
    scored: List[Recommendation] = []
    for product in candidates[:CONTENT_POOL_SIZE]:
        if product.id in excluded or not product.in_stock:
            continue
        score, reasons = score_candidate(product, profile)
        if score <= CONTENT_MIN_SCORE:
            continue
        scored.append(
            Recommendation(
                product_id=product.id,
                score=score,
                reason=f"Because you like {', '.join(reasons)}" if reasons else "Recommended for you",
                algorithm_used="content",
                explanation=EXPLANATION,
            )
        )

    scored.sort(key=lambda r: r.score, reverse=True)
    recs = scored[:limit]
    logger.info(
        "content done user_id=%s history=%s candidates=%s items=%s total_time=%.3fs",
        user_id, len(history), len(candidates), len(recs), time.perf_counter() - t0,
    )
    return recs
