from datetime import datetime
from typing import List, Literal, Optional, get_args

from pydantic import BaseModel, Field

from recoengine.domain.models.product import Product

InteractionType = Literal["view", "cart", "purchase", "wishlist", "impression", "click"]
INTERACTION_TYPES = get_args(InteractionType)

# purchase / cart / wishlist: the basis of collaborative and content profiling
STRONG_SIGNAL_TYPES = ("purchase", "cart", "wishlist")


class InteractionData(BaseModel):
    """
    Payload attached to an interaction.
    Known analytics fields are typed; anything else is kept as an extra key.
    """
    recommendation_reason: Optional[str] = None
    category: Optional[str] = None
    algorithm: Optional[str] = None
    score: Optional[float] = None
    source: Optional[str] = None
    position: Optional[int] = None

    model_config = {"frozen": True, "extra": "allow"}


class Interaction(BaseModel):
    user_id: str
    product_id: str
    interaction_type: InteractionType
    interaction_data: InteractionData = Field(default_factory=InteractionData)
    created_at: datetime
    # Only set when the query asked for joined product fields
    product: Optional[Product] = None

    model_config = {"frozen": True}


class InteractionQuery(BaseModel):
    """
    Filter for the interaction store. Every field is optional; unset fields do not filter.
    Product-side fields (product_category, min_inventory) imply a product join.
    """
    user_id: Optional[str] = None
    user_ids: Optional[List[str]] = None
    exclude_user_id: Optional[str] = None
    product_ids: Optional[List[str]] = None
    exclude_product_ids: Optional[List[str]] = None
    interaction_types: Optional[List[InteractionType]] = None
    since: Optional[datetime] = None
    with_product: bool = False
    product_category: Optional[str] = None
    min_inventory: Optional[int] = None
    newest_first: bool = False
    limit: Optional[int] = None

    model_config = {"frozen": True}

    @property
    def needs_product(self) -> bool:
        return self.with_product or self.product_category is not None or self.min_inventory is not None
