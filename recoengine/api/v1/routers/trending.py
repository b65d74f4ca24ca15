from fastapi import APIRouter, Depends, Query
from recoengine.api.deps import engine_dep
from typing import Optional
from recoengine.api.v1.schemas.reco import RecoListOut
from recoengine.domain.models.reco import TimePeriod

import logging
import time
logger = logging.getLogger(__name__)

router = APIRouter(tags=["trending"])

@router.get("/trending", response_model=RecoListOut)
async def get_trending(
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = Query(None),
    time_period: TimePeriod = Query("24h"),
    engine = Depends(engine_dep),
):
    t0 = time.perf_counter()
    items = await engine.trending(limit, category=category, time_period=time_period)
    dt = time.perf_counter() - t0

    logger.info(
        "Response: get_trending returned %s items in %.4fs with filters category=%s, time_period=%s",
        len(items), dt, category, time_period
    )
    return {"items": [i.model_dump() for i in items], "count": len(items)}
