# recoengine/domain/repositories/interaction_repo.py

from __future__ import annotations
from typing import Any, Dict, List
from motor.motor_asyncio import AsyncIOMotorDatabase
from recoengine.domain.models.interaction import Interaction, InteractionQuery


def build_interaction_pipeline(query: InteractionQuery, products_collection: str = "products") -> List[Dict[str, Any]]:
    """
    Translate an InteractionQuery into an aggregation pipeline.

    Interaction-side filters go first so indexes on user_id / product_id / created_at
    can be used; the product $lookup only happens when the query needs product fields.
    """
    match: Dict[str, Any] = {}

    user_cond: Dict[str, Any] = {}
    if query.user_id is not None:
        user_cond["$eq"] = query.user_id
    if query.user_ids is not None:
        user_cond["$in"] = list(query.user_ids)
    if query.exclude_user_id is not None:
        user_cond["$ne"] = query.exclude_user_id
    if user_cond:
        match["user_id"] = user_cond

    product_cond: Dict[str, Any] = {}
    if query.product_ids is not None:
        product_cond["$in"] = list(query.product_ids)
    if query.exclude_product_ids:
        product_cond["$nin"] = list(query.exclude_product_ids)
    if product_cond:
        match["product_id"] = product_cond

    if query.interaction_types is not None:
        match["interaction_type"] = {"$in": list(query.interaction_types)}
    if query.since is not None:
        match["created_at"] = {"$gte": query.since}

    pipeline: List[Dict[str, Any]] = [{"$match": match}]

    if query.newest_first:
        pipeline.append({"$sort": {"created_at": -1}})

    if query.needs_product:
        pipeline += [
            {"$lookup": {
                "from": products_collection,
                "localField": "product_id",
                "foreignField": "id",
                "as": "product",
            }},
            # inner join: interactions on unknown products are dropped
            {"$unwind": {"path": "$product", "preserveNullAndEmptyArrays": False}},
        ]
        post_lookup: Dict[str, Any] = {}
        if query.product_category is not None:
            post_lookup["product.category"] = query.product_category
        if query.min_inventory is not None:
            post_lookup["product.inventory_quantity"] = {"$gte": query.min_inventory}
        if post_lookup:
            pipeline.append({"$match": post_lookup})

    if query.limit:
        pipeline.append({"$limit": query.limit})

    pipeline.append({"$project": {"_id": 0, "product._id": 0} if query.needs_product else {"_id": 0}})
    return pipeline


class InteractionRepo:
    """
    Append-only store of user interactions ('user_interactions' collection).
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        collection_name: str = "user_interactions",
        products_collection: str = "products",
    ):
        self.col = db[collection_name]
        self.products_collection = products_collection

    async def insert_interaction(self, record: Interaction) -> None:
        doc = record.model_dump(exclude={"product"})
        await self.col.insert_one(doc)

    async def query_interactions(self, query: InteractionQuery) -> List[Interaction]:
        pipeline = build_interaction_pipeline(query, self.products_collection)
        docs = await self.col.aggregate(pipeline).to_list(length=None)
        return [Interaction.model_validate(d) for d in docs]
