# recoengine/domain/engine.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set, Union

from recoengine.core.config import Settings, get_settings
from recoengine.domain.models.interaction import InteractionData
from recoengine.domain.models.reco import (
    PersonalizedBundle,
    Recommendation,
    RecommendationConfig,
    RecommendationResponse,
    UserPreference,
)
from recoengine.domain.repositories.interaction_repo import InteractionRepo
from recoengine.domain.repositories.product_repo import ProductRepo
from recoengine.domain.services.collaborative_svc import get_collaborative_recommendations
from recoengine.domain.services.constants import DEFAULT_LIMIT, DEFAULT_TIME_PERIOD
from recoengine.domain.services.content_svc import get_content_based_recommendations
from recoengine.domain.services.filters import validate_config, validate_limit, validate_time_period
from recoengine.domain.services.hybrid_svc import get_hybrid_recommendations
from recoengine.domain.services.interaction_svc import (
    build_interaction,
    record_interaction,
    refresh_user_preferences,
)
from recoengine.domain.services.personalized_svc import build_personalized_bundle, bundle_cache_key
from recoengine.domain.services.similar_products_svc import get_similar_products_cached
from recoengine.domain.services.trending_svc import get_trending_recommendations
from recoengine.utils.cache import Clock, ResultCache, utc_now
from recoengine.utils.locks import KeyedLock

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """
    Entry point for every recommendation query.

    One instance per process. It owns the result cache (trending + similar), the
    personalized bundle cache, the per-key fill locks, the bounded preference profile
    cache (filled by background refreshes, rebuilt from history on a miss) and the set
    of in-flight background tasks.

    `interactions` must expose insert_interaction / query_interactions and `products`
    must expose get_product / query_products (see the Mongo repositories).
    """

    def __init__(
        self,
        interactions,
        products,
        *,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
    ):
        self.interactions = interactions
        self.products = products
        self.settings = settings or get_settings()
        self.clock = clock
        self.cache = ResultCache(
            ttl_seconds=self.settings.result_cache_ttl,
            max_entries=self.settings.result_cache_max_entries,
            clock=clock,
        )
        self.bundles = ResultCache(
            ttl_seconds=self.settings.bundle_ttl,
            max_entries=self.settings.bundle_cache_max_entries,
            clock=clock,
        )
        self.profiles = ResultCache(
            ttl_seconds=self.settings.profile_ttl,
            max_entries=self.settings.profile_cache_max_entries,
            clock=clock,
        )
        self._locks = KeyedLock()
        self._background: Set[asyncio.Task] = set()

    @classmethod
    def from_db(cls, db, settings: Optional[Settings] = None, clock: Clock = utc_now) -> "RecommendationEngine":
        settings = settings or get_settings()
        return cls(
            InteractionRepo(
                db,
                collection_name=settings.interactions_collection,
                products_collection=settings.products_collection,
            ),
            ProductRepo(db, collection_name=settings.products_collection),
            settings=settings,
            clock=clock,
        )

    # ----- Recording ------------------------------------------------------------

    async def record_interaction(
        self,
        user_id: str,
        product_id: str,
        interaction_type: str,
        interaction_data: Optional[Union[InteractionData, Dict[str, Any]]] = None,
    ) -> None:
        """
        Append an interaction and schedule a detached preference refresh.
        Invalid input raises InvalidInputError; store failures never raise.
        """
        record = build_interaction(user_id, product_id, interaction_type, interaction_data, self.clock())
        if await record_interaction(self.interactions, record):
            self._spawn(self._refresh_preferences_safely(user_id), name=f"refresh-preferences-{user_id}")

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _refresh_preferences_safely(self, user_id: str) -> None:
        try:
            await self.refresh_preferences(user_id)
        except Exception as e:
            logger.error("background preferences refresh crashed user_id=%s err=%s", user_id, e)

    async def refresh_preferences(self, user_id: str) -> Optional[UserPreference]:
        profile = await refresh_user_preferences(self.interactions, user_id, self.clock())
        if profile is not None:
            self.profiles.set(user_id, profile)
        return profile

    def get_preferences(self, user_id: str) -> Optional[UserPreference]:
        return self.profiles.get(user_id)

    async def preferences_for(self, user_id: str) -> Optional[UserPreference]:
        """Cached profile, or one rebuilt from stored history (after a restart or eviction)."""
        return self.get_preferences(user_id) or await self.refresh_preferences(user_id)

    @property
    def pending_tasks(self) -> int:
        return len(self._background)

    # ----- Scorers --------------------------------------------------------------

    async def collaborative(self, user_id: str, limit: int = DEFAULT_LIMIT) -> List[Recommendation]:
        validate_limit(limit)
        return await get_collaborative_recommendations(self.interactions, user_id, limit)

    async def content(self, user_id: str, limit: int = DEFAULT_LIMIT) -> List[Recommendation]:
        validate_limit(limit)
        return await get_content_based_recommendations(
            self.interactions, self.products, user_id, limit, now=self.clock()
        )

    async def trending(
        self,
        limit: int = DEFAULT_LIMIT,
        category: Optional[str] = None,
        time_period: str = DEFAULT_TIME_PERIOD,
    ) -> List[Recommendation]:
        validate_limit(limit)
        validate_time_period(time_period)
        return await get_trending_recommendations(
            self.interactions, self.cache, self._locks, self.clock,
            limit=limit, category=category, time_period=time_period,
        )

    async def similar(self, product_id: str, limit: int = DEFAULT_LIMIT) -> List[Recommendation]:
        validate_limit(limit)
        return await get_similar_products_cached(
            self.products, self.cache, self._locks, product_id=product_id, limit=limit
        )

    async def hybrid(
        self,
        user_id: str,
        config: Optional[Union[RecommendationConfig, Dict[str, Any]]] = None,
    ) -> RecommendationResponse:
        """`config` may be a RecommendationConfig or a plain mapping; invalid values raise InvalidInputError."""
        config = validate_config(config)
        scorers = {
            "collaborative": lambda n: self.collaborative(user_id, n),
            "content": lambda n: self.content(user_id, n),
            "trending": lambda n: self.trending(n),
        }
        return await get_hybrid_recommendations(
            user_id, config, scorers=scorers, products=self.products, clock=self.clock
        )

    async def personalized(
        self,
        user_id: str,
        config: Optional[Union[RecommendationConfig, Dict[str, Any]]] = None,
    ) -> PersonalizedBundle:
        """
        Cached per (user, config) for settings.bundle_ttl; a stale bundle is rebuilt, never patched.
        `config` drives the "for you" blend; None means the default blend.
        """
        config = validate_config(config) if config is not None else None
        key = bundle_cache_key(user_id, config)
        cached = self.bundles.get(key)
        if cached is not None and not cached.is_stale(self.clock()):
            logger.info("bundle cache_hit user_id=%s", user_id)
            return cached
        bundle = await build_personalized_bundle(self, user_id, config)
        self.bundles.set(key, bundle)
        return bundle

    # ----- Housekeeping ---------------------------------------------------------

    def invalidate_cache(self, prefix: Optional[str] = None) -> int:
        removed = self.cache.invalidate_prefix(prefix) if prefix else self.cache.clear()
        logger.info("result cache invalidated prefix=%s removed=%s", prefix, removed)
        return removed

    async def aclose(self) -> None:
        """Wait for in-flight background refreshes (used on shutdown and in tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
