"""Shared fixtures: in-memory stores, a controllable clock and a wired engine."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from recoengine.core.config import Settings
from recoengine.domain.engine import RecommendationEngine
from recoengine.domain.models.interaction import Interaction, InteractionQuery
from recoengine.domain.models.product import Product, ProductQuery

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class InMemoryProductRepo:
    """Same contract as ProductRepo, backed by a dict."""

    def __init__(self):
        self.items: Dict[str, Product] = {}
        self.query_count = 0
        self.fail = False

    def add(self, id: str, **fields) -> Product:
        fields.setdefault("name", id)
        fields.setdefault("inventory_quantity", 10)
        product = Product(id=id, **fields)
        self.items[id] = product
        return product

    async def get_product(self, product_id: str) -> Optional[Product]:
        self.query_count += 1
        if self.fail:
            raise ConnectionError("product store down")
        return self.items.get(product_id)

    async def query_products(self, query: ProductQuery, limit: Optional[int] = None) -> List[Product]:
        self.query_count += 1
        await asyncio.sleep(0)
        if self.fail:
            raise ConnectionError("product store down")
        out = []
        for p in self.items.values():
            if query.ids is not None and p.id not in query.ids:
                continue
            if query.exclude_ids and p.id in query.exclude_ids:
                continue
            if query.category is not None and p.category != query.category:
                continue
            if query.brand is not None and p.brand != query.brand:
                continue
            if query.any_category or query.any_brand:
                in_cat = bool(query.any_category) and p.category in query.any_category
                in_brand = bool(query.any_brand) and p.brand in query.any_brand
                if not (in_cat or in_brand):
                    continue
            if query.price_min is not None and p.price < query.price_min:
                continue
            if query.price_max is not None and p.price > query.price_max:
                continue
            if query.min_inventory is not None and p.inventory_quantity < query.min_inventory:
                continue
            out.append(p)
            if limit and len(out) >= limit:
                break
        return out


class InMemoryInteractionRepo:
    """Same contract as InteractionRepo; joins against an InMemoryProductRepo."""

    def __init__(self, products: InMemoryProductRepo):
        self.rows: List[Interaction] = []
        self.products = products
        self.queries: List[InteractionQuery] = []
        self.fail = False
        self.fail_inserts = False

    @property
    def query_count(self) -> int:
        return len(self.queries)

    async def insert_interaction(self, record: Interaction) -> None:
        if self.fail_inserts:
            raise ConnectionError("interaction store down")
        self.rows.append(record)

    async def query_interactions(self, query: InteractionQuery) -> List[Interaction]:
        self.queries.append(query)
        await asyncio.sleep(0)
        if self.fail:
            raise ConnectionError("interaction store down")
        rows = sorted(self.rows, key=lambda r: r.created_at, reverse=True) if query.newest_first else list(self.rows)
        out = []
        for r in rows:
            if query.user_id is not None and r.user_id != query.user_id:
                continue
            if query.user_ids is not None and r.user_id not in query.user_ids:
                continue
            if query.exclude_user_id is not None and r.user_id == query.exclude_user_id:
                continue
            if query.product_ids is not None and r.product_id not in query.product_ids:
                continue
            if query.exclude_product_ids and r.product_id in query.exclude_product_ids:
                continue
            if query.interaction_types is not None and r.interaction_type not in query.interaction_types:
                continue
            if query.since is not None and r.created_at < query.since:
                continue
            if query.needs_product:
                p = self.products.items.get(r.product_id)
                if p is None:
                    continue
                if query.product_category is not None and p.category != query.product_category:
                    continue
                if query.min_inventory is not None and p.inventory_quantity < query.min_inventory:
                    continue
                r = r.model_copy(update={"product": p})
            out.append(r)
            if query.limit and len(out) >= query.limit:
                break
        return out


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(MONGO_URI="", result_cache_ttl=1800, result_cache_max_entries=64, bundle_ttl=3600)


@pytest.fixture
def products():
    return InMemoryProductRepo()


@pytest.fixture
def interactions(products):
    return InMemoryInteractionRepo(products)


@pytest.fixture
def engine(interactions, products, settings, clock):
    return RecommendationEngine(interactions, products, settings=settings, clock=clock)


@pytest.fixture
def add_event(interactions, clock):
    """add_event(user, product, type, minutes_ago=0) appends a row directly to the store."""

    def _add(user_id: str, product_id: str, interaction_type: str, minutes_ago: float = 0) -> Interaction:
        row = Interaction(
            user_id=user_id,
            product_id=product_id,
            interaction_type=interaction_type,
            created_at=clock() - timedelta(minutes=minutes_ago),
        )
        interactions.rows.append(row)
        return row

    return _add
