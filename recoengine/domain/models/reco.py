from datetime import datetime
from typing import Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, Field, model_validator

Algorithm = Literal["collaborative", "content", "trending", "similarity", "hybrid"]
ALGORITHMS = get_args(Algorithm)

TimePeriod = Literal["1h", "24h", "7d", "30d"]
TIME_PERIODS = get_args(TimePeriod)


class Recommendation(BaseModel):
    product_id: str
    score: float = Field(ge=0, le=1)
    reason: str
    algorithm_used: Algorithm
    explanation: Optional[str] = None
    model_config = {"frozen": True}  # immuable = safe


class BlendWeights(BaseModel):
    collaborative: float = Field(0.3, ge=0)
    content: float = Field(0.3, ge=0)
    trending: float = Field(0.2, ge=0)
    # Only used by direct "similar to X" queries, never invoked by the blend
    similarity: float = Field(0.2, ge=0)
    model_config = {"frozen": True}

    def active(self) -> List[str]:
        return [name for name, w in self.model_dump().items() if w > 0]


class PriceRange(BaseModel):
    min: float = Field(0, ge=0)
    max: float = Field(ge=0)
    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _ordered(self) -> "PriceRange":
        if self.min > self.max:
            raise ValueError(f"price range min ({self.min}) must not exceed max ({self.max})")
        return self


class RecommendationFilters(BaseModel):
    category: Optional[str] = None
    brand: Optional[str] = None
    price_range: Optional[PriceRange] = None
    in_stock: bool = True
    model_config = {"frozen": True}

    def is_empty(self) -> bool:
        return self.category is None and self.brand is None and self.price_range is None


class RecommendationConfig(BaseModel):
    weights: BlendWeights = Field(default_factory=BlendWeights)
    limit: int = Field(20, ge=1)
    filters: RecommendationFilters = Field(default_factory=RecommendationFilters)
    model_config = {"frozen": True}


class RecommendationResponse(BaseModel):
    recommendations: List[Recommendation]
    total_score: float
    algorithms_used: List[str]
    generated_at: datetime
    model_config = {"frozen": True}


class PersonalizedBundle(BaseModel):
    user_id: str
    for_you: List[Recommendation] = []
    because_you_viewed: List[Recommendation] = []
    similar_to_cart: List[Recommendation] = []
    trending_in_categories: List[Recommendation] = []
    generated_at: datetime
    expires_at: datetime
    model_config = {"frozen": True}

    def is_stale(self, now: datetime) -> bool:
        return now >= self.expires_at


class UserPreference(BaseModel):
    user_id: str
    category_preferences: Dict[str, float] = {}
    brand_preferences: Dict[str, float] = {}
    tag_preferences: Dict[str, float] = {}
    price_range: PriceRange
    last_updated: datetime
    model_config = {"frozen": True}

    def top_categories(self, n: int) -> List[str]:
        return _top_keys(self.category_preferences, n)

    def top_brands(self, n: int) -> List[str]:
        return _top_keys(self.brand_preferences, n)


def _top_keys(scores: Dict[str, float], n: int) -> List[str]:
    # sorted() is stable: ties keep first-seen order
    return [k for k, _ in sorted(scores.items(), key=lambda kv: kv[1], reverse=True)[:n]]
