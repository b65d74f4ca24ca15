# recoengine/api/v1/routers/similar.py
from fastapi import APIRouter, Depends, Query
import time
import logging

from recoengine.api.deps import engine_dep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["similar"])

@router.get("/products/{product_id}/similar")
async def similar_products(
    product_id: str,
    limit: int = Query(10, ge=1, le=50),
    engine = Depends(engine_dep),
):
    """
    Substitutable/similar products (category, brand, price proximity, shared tags).
    An unknown product yields an empty list, not a 404.
    """
    logger.info("Request: similar_products product_id=%s, limit=%s", product_id, limit)

    start_time = time.perf_counter()
    items = await engine.similar(product_id, limit)

    elapsed_time = time.perf_counter() - start_time
    logger.info(
        "Response: similar_products product_id=%s, count=%s, elapsed_time=%.4fs",
        product_id, len(items), elapsed_time,
    )
    return {"source_product_id": product_id, "items": [i.model_dump() for i in items], "count": len(items)}
