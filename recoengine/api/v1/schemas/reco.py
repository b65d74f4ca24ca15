# api/v1/schemas/reco.py
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from recoengine.domain.models.interaction import InteractionType
from recoengine.domain.models.reco import Recommendation

class InteractionIn(BaseModel):
    user_id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)
    interaction_type: InteractionType
    interaction_data: Optional[Dict[str, Any]] = None

class InteractionAccepted(BaseModel):
    accepted: bool = True

class RecoListOut(BaseModel):
    items: List[Recommendation]
    count: int

class CacheInvalidationOut(BaseModel):
    removed: int
    prefix: Optional[str] = None
