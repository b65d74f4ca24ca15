# recoengine/domain/repositories/product_repo.py

from __future__ import annotations
from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from recoengine.domain.models.product import Product, ProductQuery

PRODUCT_PROJECTION = {
    "_id": 0,
    "id": 1,
    "name": 1,
    "category": 1,
    "brand": 1,
    "tags": 1,
    "price": 1,
    "inventory_quantity": 1,
}


def build_product_filter(query: ProductQuery) -> Dict[str, Any]:
    """
    Translate a ProductQuery into a Mongo filter document.
    any_category / any_brand become a single $or clause.
    """
    filt: Dict[str, Any] = {}

    id_cond: Dict[str, Any] = {}
    if query.ids is not None:
        id_cond["$in"] = list(query.ids)
    if query.exclude_ids:
        id_cond["$nin"] = list(query.exclude_ids)
    if id_cond:
        filt["id"] = id_cond

    if query.category is not None:
        filt["category"] = query.category
    if query.brand is not None:
        filt["brand"] = query.brand

    any_of: List[Dict[str, Any]] = []
    if query.any_category:
        any_of.append({"category": {"$in": list(query.any_category)}})
    if query.any_brand:
        any_of.append({"brand": {"$in": list(query.any_brand)}})
    if any_of:
        filt["$or"] = any_of

    price: Dict[str, Any] = {}
    if query.price_min is not None:
        price["$gte"] = query.price_min
    if query.price_max is not None:
        price["$lte"] = query.price_max
    if price:
        filt["price"] = price

    if query.min_inventory is not None:
        filt["inventory_quantity"] = {"$gte": query.min_inventory}

    return filt


class ProductRepo:
    """
    Product repository backed by the 'products' collection.
    Read-only: products are owned by the catalogue, not by the engine.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products"):
        self.col = db[collection_name]

    async def get_product(self, product_id: str) -> Optional[Product]:
        doc = await self.col.find_one({"id": product_id}, PRODUCT_PROJECTION)
        return Product.model_validate(doc) if doc else None

    async def query_products(self, query: ProductQuery, limit: Optional[int] = None) -> List[Product]:
        cursor = self.col.find(build_product_filter(query), PRODUCT_PROJECTION)
        if limit:
            cursor = cursor.limit(limit)
        return [Product.model_validate(doc) async for doc in cursor]
