from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from datetime import timedelta
from typing import TYPE_CHECKING, List, Optional, Sequence

from recoengine.domain.models.interaction import InteractionQuery
from recoengine.domain.models.reco import PersonalizedBundle, Recommendation, RecommendationConfig
from recoengine.domain.services.constants import (
    BUNDLE_ANCHORS,
    BUNDLE_PER_ANCHOR,
    BUNDLE_SECTION_SIZE,
    PROFILE_HISTORY_SIZE,
)

if TYPE_CHECKING:
    from recoengine.domain.engine import RecommendationEngine

logger = logging.getLogger(__name__)

FALLBACK_REASON = "Popular product"


def bundle_cache_key(user_id: str, config: Optional[RecommendationConfig] = None) -> str:
    if config is None:
        return f"bundle_{user_id}"
    # one entry per distinct blend config
    digest = hashlib.md5(config.model_dump_json().encode()).hexdigest()
    return f"bundle_{user_id}_{digest}"


async def _recent_products(engine: RecommendationEngine, user_id: str, interaction_type: str, n: int) -> List[str]:
    try:
        rows = await engine.interactions.query_interactions(
            InteractionQuery(
                user_id=user_id,
                interaction_types=[interaction_type],
                newest_first=True,
                limit=PROFILE_HISTORY_SIZE,
            )
        )
    except Exception as e:
        logger.warning("bundle recent %s lookup failed user_id=%s err=%s", interaction_type, user_id, e)
        return []
    return list(dict.fromkeys(r.product_id for r in rows))[:n]


async def _similar_to(engine: RecommendationEngine, anchors: Sequence[str], exclude: Sequence[str] = ()) -> List[Recommendation]:
    """Similar products for each anchor, flattened, de-duplicated, capped."""
    if not anchors:
        return []
    lists = await asyncio.gather(*(engine.similar(pid, BUNDLE_PER_ANCHOR) for pid in anchors))
    skip = set(exclude)
    out: List[Recommendation] = []
    for recs in lists:
        for rec in recs:
            if rec.product_id in skip:
                continue
            skip.add(rec.product_id)
            out.append(rec)
    return out[:BUNDLE_SECTION_SIZE]


async def _for_you(
    engine: RecommendationEngine, user_id: str, config: Optional[RecommendationConfig] = None
) -> List[Recommendation]:
    response = await engine.hybrid(user_id, config)
    picks = response.recommendations[:BUNDLE_SECTION_SIZE]
    if picks:
        return picks
    # never show an empty "for you" surface: fall back to what is popular
    trending = await engine.trending(BUNDLE_SECTION_SIZE)
    logger.info("bundle for_you fallback=trending user_id=%s items=%s", user_id, len(trending))
    return [r.model_copy(update={"reason": FALLBACK_REASON}) for r in trending]


async def _trending_in_categories(engine: RecommendationEngine, user_id: str) -> List[Recommendation]:
    profile = await engine.preferences_for(user_id)
    top = profile.top_categories(1) if profile else []
    if top:
        scoped = await engine.trending(BUNDLE_SECTION_SIZE, category=top[0])
        if scoped:
            return scoped
    return await engine.trending(BUNDLE_SECTION_SIZE)


async def build_personalized_bundle(
    engine: RecommendationEngine,
    user_id: str,
    config: Optional[RecommendationConfig] = None,
) -> PersonalizedBundle:
    """
    Assemble the named recommendation lists shown on a user's home page.
    Sections are computed concurrently; each degrades to [] on its own.
    """
    t0 = time.perf_counter()
    logger.info("bundle start user_id=%s", user_id)

    viewed, carted = await asyncio.gather(
        _recent_products(engine, user_id, "view", BUNDLE_ANCHORS),
        _recent_products(engine, user_id, "cart", BUNDLE_ANCHORS),
    )

    for_you, trending, because_viewed, similar_cart = await asyncio.gather(
        _for_you(engine, user_id, config),
        _trending_in_categories(engine, user_id),
        _similar_to(engine, viewed),
        _similar_to(engine, carted, exclude=carted),
    )

    now = engine.clock()
    bundle = PersonalizedBundle(
        user_id=user_id,
        for_you=for_you,
        because_you_viewed=because_viewed,
        similar_to_cart=similar_cart,
        trending_in_categories=trending,
        generated_at=now,
        expires_at=now + timedelta(seconds=engine.settings.bundle_ttl),
    )
    logger.info(
        "bundle done user_id=%s for_you=%s viewed=%s cart=%s trending=%s total_time=%.3fs",
        user_id, len(for_you), len(because_viewed), len(similar_cart), len(trending), time.perf_counter() - t0,
    )
    return bundle
