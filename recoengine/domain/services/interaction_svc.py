import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from recoengine.core.exceptions import InvalidInputError
from recoengine.domain.models.interaction import Interaction, InteractionData
from recoengine.domain.models.reco import UserPreference
from recoengine.domain.services.content_svc import build_user_preference, fetch_profile_history
from recoengine.domain.services.filters import validate_interaction_type

logger = logging.getLogger(__name__)


def build_interaction(
    user_id: str,
    product_id: str,
    interaction_type: str,
    interaction_data: Optional[Union[InteractionData, Dict[str, Any]]],
    now: datetime,
) -> Interaction:
    """Validate caller input into an Interaction. Raises InvalidInputError."""
    validate_interaction_type(interaction_type)
    if not user_id:
        raise InvalidInputError("user_id", user_id)
    if not product_id:
        raise InvalidInputError("product_id", product_id)
    try:
        data = (
            interaction_data
            if isinstance(interaction_data, InteractionData)
            else InteractionData.model_validate(interaction_data or {})
        )
    except ValidationError as e:
        raise InvalidInputError("interaction_data", interaction_data, str(e)) from e
    return Interaction(
        user_id=user_id,
        product_id=product_id,
        interaction_type=interaction_type,
        interaction_data=data,
        created_at=now,
    )


async def record_interaction(interactions, record: Interaction) -> bool:
    """
    Append one interaction. Tracking must never break the action that triggered it,
    so store failures are logged and reported as False instead of raised.
    """
    t0 = time.perf_counter()
    try:
        await interactions.insert_interaction(record)
    except Exception as e:
        logger.error(
            "interaction insert failed user_id=%s product_id=%s type=%s err=%s",
            record.user_id, record.product_id, record.interaction_type, e,
        )
        return False
    logger.info(
        "interaction recorded user_id=%s product_id=%s type=%s db_time=%.3fs",
        record.user_id, record.product_id, record.interaction_type, time.perf_counter() - t0,
    )
    return True


async def refresh_user_preferences(interactions, user_id: str, now: datetime) -> Optional[UserPreference]:
    """
    Rebuild a user's preference profile from recent history.
    Runs detached from the recording call; returns None on failure or empty history.
    """
    try:
        history = await fetch_profile_history(interactions, user_id)
    except Exception as e:
        logger.warning("preferences refresh failed user_id=%s err=%s", user_id, e)
        return None
    if not history:
        logger.debug("preferences refresh skipped user_id=%s (no history)", user_id)
        return None
    profile = build_user_preference(user_id, history, now)
    logger.info(
        "preferences refreshed user_id=%s categories=%s brands=%s tags=%s price_range=%s-%s",
        user_id, len(profile.category_preferences), len(profile.brand_preferences),
        len(profile.tag_preferences), profile.price_range.min, profile.price_range.max,
    )
    return profile
