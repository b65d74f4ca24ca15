# recoengine/domain/services/collaborative_svc.py
import logging
import time
from typing import Dict, List

from recoengine.domain.models.interaction import STRONG_SIGNAL_TYPES, InteractionQuery
from recoengine.domain.models.reco import Recommendation
from recoengine.domain.services.constants import (
    CANDIDATE_TYPES,
    CANDIDATE_WEIGHTS,
    COLLABORATIVE_NORMALIZER,
    DEFAULT_LIMIT,
    IN_STOCK,
    MAX_NEIGHBORS,
    NEIGHBOR_WEIGHTS,
)

logger = logging.getLogger(__name__)

REASON = "Customers like you also bought this"
EXPLANATION = "Recommended based on similar customer preferences"


def _top_neighbors(neighbor_scores: Dict[str, float], n: int) -> List[str]:
    return [uid for uid, _ in sorted(neighbor_scores.items(), key=lambda kv: kv[1], reverse=True)[:n]]


async def get_collaborative_recommendations(
    interactions,
    user_id: str,
    limit: int = DEFAULT_LIMIT,
) -> List[Recommendation]:
    """
    User-user collaborative filtering over strong-signal interactions.

      1) P = products the user purchased / carted / wishlisted (empty -> cold start, []).
      2) Neighbours = other users with strong-signal interactions on P,
         scored purchase=3, cart=2, wishlist=1; keep the top MAX_NEIGHBORS.
      3) Candidates = neighbours' purchase/cart interactions on in-stock products not in P,
         scored purchase=2, cart=1.
      4) score = min(raw / COLLABORATIVE_NORMALIZER, 1).

    Any store failure degrades to [].
    """
    t0 = time.perf_counter()
    logger.info("collaborative start user_id=%s limit=%s", user_id, limit)

    try:
        own = await interactions.query_interactions(
            InteractionQuery(user_id=user_id, interaction_types=list(STRONG_SIGNAL_TYPES))
        )
        if not own:
            logger.info("collaborative cold_start user_id=%s (no strong-signal history)", user_id)
            return []

        # dict.fromkeys keeps first-seen order, so queries are deterministic
        seen = list(dict.fromkeys(i.product_id for i in own))

        overlap = await interactions.query_interactions(
            InteractionQuery(
                product_ids=seen,
                exclude_user_id=user_id,
                interaction_types=list(STRONG_SIGNAL_TYPES),
            )
        )
        if not overlap:
            logger.info("collaborative no_neighbors user_id=%s seen=%s", user_id, len(seen))
            return []

        neighbor_scores: Dict[str, float] = {}
        for it in overlap:
            if it.user_id == user_id:
                continue
            neighbor_scores[it.user_id] = neighbor_scores.get(it.user_id, 0) + NEIGHBOR_WEIGHTS.get(it.interaction_type, 1)
        neighbors = _top_neighbors(neighbor_scores, MAX_NEIGHBORS)
        logger.debug("collaborative neighbors user_id=%s n=%s top=%s", user_id, len(neighbors), neighbors[:5])
        if not neighbors:
            return []

        rows = await interactions.query_interactions(
            InteractionQuery(
                user_ids=neighbors,
                exclude_product_ids=seen,
                interaction_types=list(CANDIDATE_TYPES),
                min_inventory=IN_STOCK,
            )
        )
    except Exception as e:
        logger.warning("collaborative store error user_id=%s err=%s", user_id, e)
        return []

    excluded = set(seen)
    raw_scores: Dict[str, float] = {}
    for it in rows:
        if it.product_id in excluded:
            continue
        if it.product is not None and not it.product.in_stock:
            continue
        raw_scores[it.product_id] = raw_scores.get(it.product_id, 0) + CANDIDATE_WEIGHTS.get(it.interaction_type, 1)

    ranked = sorted(raw_scores.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    recs = [
        Recommendation(
            product_id=pid,
            score=min(raw / COLLABORATIVE_NORMALIZER, 1.0),
            reason=REASON,
            algorithm_used="collaborative",
            explanation=EXPLANATION,
        )
        for pid, raw in ranked
    ]

    logger.info(
        "collaborative done user_id=%s neighbors=%s candidates=%s items=%s total_time=%.3fs",
        user_id, len(neighbors), len(raw_scores), len(recs), time.perf_counter() - t0,
    )
    return recs
