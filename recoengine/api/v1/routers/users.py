from __future__ import annotations
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from recoengine.api.deps import engine_dep
from recoengine.api.v1.schemas.reco import RecoListOut
from recoengine.domain.models.reco import BlendWeights, PriceRange, RecommendationConfig, RecommendationFilters

import logging
import time
logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])

@router.get("/users/{user_id}/recommendations")
async def hybrid_recommendations(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    w_collaborative: float = Query(0.3, ge=0),
    w_content: float = Query(0.3, ge=0),
    w_trending: float = Query(0.2, ge=0),
    w_similarity: float = Query(0.2, ge=0),
    category: Optional[str] = Query(None),
    brand: Optional[str] = Query(None),
    price_min: Optional[float] = Query(None, ge=0),
    price_max: Optional[float] = Query(None, ge=0),
    engine = Depends(engine_dep),
):
    """
    Blended "for you" feed: collaborative + content + trending under the given weights.
    """
    price_range = None
    if price_min is not None or price_max is not None:
        try:
            price_range = PriceRange(min=price_min or 0, max=price_max if price_max is not None else float("inf"))
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e))
    config = RecommendationConfig(
        weights=BlendWeights(
            collaborative=w_collaborative, content=w_content,
            trending=w_trending, similarity=w_similarity,
        ),
        limit=limit,
        filters=RecommendationFilters(category=category, brand=brand, price_range=price_range),
    )

    t0 = time.perf_counter()
    res = await engine.hybrid(user_id, config)
    logger.info(
        "Response: hybrid_recommendations user_id=%s count=%s elapsed_time=%.4fs",
        user_id, len(res.recommendations), time.perf_counter() - t0,
    )
    return res.model_dump(mode="json")

@router.get("/users/{user_id}/recommendations/collaborative", response_model=RecoListOut)
async def collaborative_recommendations(
    user_id: str,
    limit: int = Query(10, ge=1, le=100),
    engine = Depends(engine_dep),
):
    items = await engine.collaborative(user_id, limit)
    logger.info("Response: collaborative user_id=%s count=%s", user_id, len(items))
    return {"items": [i.model_dump() for i in items], "count": len(items)}

@router.get("/users/{user_id}/recommendations/content", response_model=RecoListOut)
async def content_recommendations(
    user_id: str,
    limit: int = Query(10, ge=1, le=100),
    engine = Depends(engine_dep),
):
    items = await engine.content(user_id, limit)
    logger.info("Response: content user_id=%s count=%s", user_id, len(items))
    return {"items": [i.model_dump() for i in items], "count": len(items)}

@router.get("/users/{user_id}/personalized")
async def personalized_bundle(user_id: str, engine = Depends(engine_dep)):
    """
    Named recommendation lists for the user's home page, regenerated at most once an hour.
    """
    bundle = await engine.personalized(user_id)
    logger.info("Response: personalized_bundle user_id=%s for_you=%s", user_id, len(bundle.for_you))
    return bundle.model_dump(mode="json")
