from pydantic import BaseModel
from typing import Optional, List

class Product(BaseModel):
    id: str
    name: str = ""
    category: Optional[str] = None
    brand: Optional[str] = None
    tags: List[str] = []
    price: float = 0.0
    inventory_quantity: int = 0

    model_config = {"frozen": True}  # immuable = safe

    @property
    def in_stock(self) -> bool:
        return self.inventory_quantity > 0


class ProductQuery(BaseModel):
    """
    Filter for the product store. Unset fields do not filter.
    any_category / any_brand are OR-ed together: a product matches if its category
    is in any_category OR its brand is in any_brand. All other fields are AND-ed.
    """
    ids: Optional[List[str]] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    any_category: Optional[List[str]] = None
    any_brand: Optional[List[str]] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    min_inventory: Optional[int] = None
    exclude_ids: Optional[List[str]] = None

    model_config = {"frozen": True}
