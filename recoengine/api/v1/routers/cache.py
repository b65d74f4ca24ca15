from typing import Optional
from fastapi import APIRouter, Depends, Query

from recoengine.api.deps import engine_dep
from recoengine.api.v1.schemas.reco import CacheInvalidationOut

router = APIRouter(tags=["cache"])

@router.delete("/cache", response_model=CacheInvalidationOut)
async def invalidate_cache(
    prefix: Optional[str] = Query(None, description="e.g. 'trending_' or 'similar_p1_'; omit to clear all"),
    engine = Depends(engine_dep),
):
    removed = engine.invalidate_cache(prefix)
    return CacheInvalidationOut(removed=removed, prefix=prefix)
