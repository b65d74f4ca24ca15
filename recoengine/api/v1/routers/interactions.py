# recoengine/api/v1/routers/interactions.py
from fastapi import APIRouter, Depends
import logging

from recoengine.api.deps import engine_dep
from recoengine.api.v1.schemas.reco import InteractionAccepted, InteractionIn

logger = logging.getLogger(__name__)

router = APIRouter(tags=["interactions"])

@router.post("/interactions", status_code=202, response_model=InteractionAccepted)
async def track_interaction(body: InteractionIn, engine = Depends(engine_dep)):
    """
    Record a user interaction. Always 202 once the payload is valid:
    a store outage must not surface to the page that sent the event.
    """
    logger.info(
        "Request: track_interaction user_id=%s product_id=%s type=%s",
        body.user_id, body.product_id, body.interaction_type,
    )
    await engine.record_interaction(
        body.user_id, body.product_id, body.interaction_type, body.interaction_data
    )
    return InteractionAccepted()
