import logging
from typing import Any, List

from pydantic import ValidationError

from recoengine.core.exceptions import InvalidInputError
from recoengine.domain.models.interaction import INTERACTION_TYPES
from recoengine.domain.models.product import ProductQuery
from recoengine.domain.models.reco import TIME_PERIODS, Recommendation, RecommendationConfig, RecommendationFilters
from recoengine.domain.services.constants import IN_STOCK

logger = logging.getLogger(__name__)

# ---- Input validation (rejected before any scoring work) ----------------------

def validate_limit(limit: Any) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidInputError("limit", limit, "integer >= 1")
    return limit

def validate_time_period(time_period: Any) -> str:
    if time_period not in TIME_PERIODS:
        raise InvalidInputError("time_period", time_period, list(TIME_PERIODS))
    return time_period

def validate_interaction_type(interaction_type: Any) -> str:
    if interaction_type not in INTERACTION_TYPES:
        raise InvalidInputError("interaction_type", interaction_type, list(INTERACTION_TYPES))
    return interaction_type

def validate_config(config: Any) -> RecommendationConfig:
    """
    Accept a RecommendationConfig, a plain mapping or None (defaults).
    Mappings are validated here so bad weights, limits or price ranges surface as
    InvalidInputError instead of a pydantic ValidationError.
    """
    if config is None:
        return RecommendationConfig()
    if isinstance(config, RecommendationConfig):
        return config
    try:
        return RecommendationConfig.model_validate(config)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(p) for p in err["loc"]) or "config"
        raise InvalidInputError(field, err.get("input"), err["msg"]) from e

def _normalize_text(value):
    """
    Normalize a free-text filter value (category/brand) to a stripped string.
    Returns None if empty.
    """
    if value is None:
        return None
    s = str(value).strip()
    return s or None

# ---- Post-blend filters -------------------------------------------------------

def filters_to_query(ids: List[str], filters: RecommendationFilters) -> ProductQuery:
    """
    Build the product lookup used to keep only candidates matching the caller's filters.
    """
    price_min = filters.price_range.min if filters.price_range else None
    price_max = filters.price_range.max if filters.price_range else None
    return ProductQuery(
        ids=ids,
        category=_normalize_text(filters.category),
        brand=_normalize_text(filters.brand),
        price_min=price_min,
        price_max=price_max,
        min_inventory=IN_STOCK if filters.in_stock else None,
    )

async def apply_filters(products, recs: List[Recommendation], filters: RecommendationFilters) -> List[Recommendation]:
    """
    Keep only recommendations whose product matches `filters`, preserving order.
    `products` is any object exposing `query_products(ProductQuery, limit)`.
    """
    if not recs or filters.is_empty():
        return recs
    ids = [r.product_id for r in recs]
    found = await products.query_products(filters_to_query(ids, filters), limit=len(ids))
    allowed = {p.id for p in found}
    kept = [r for r in recs if r.product_id in allowed]
    logger.info(
        "filters applied category=%s brand=%s price_range=%s kept=%s/%s",
        filters.category, filters.brand, filters.price_range, len(kept), len(recs),
    )
    return kept
