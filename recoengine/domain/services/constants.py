# Calibration constants for the scorers.
# These are tuned values, not derived ones: changing them changes ranking behaviour.

IN_STOCK = 1  # min inventory_quantity for a candidate

# --- Collaborative -------------------------------------------------------------
NEIGHBOR_WEIGHTS = {"purchase": 3, "cart": 2, "wishlist": 1}  # user-user overlap
CANDIDATE_WEIGHTS = {"purchase": 2, "cart": 1}                # neighbour -> candidate
CANDIDATE_TYPES = ("purchase", "cart")
MAX_NEIGHBORS = 20
COLLABORATIVE_NORMALIZER = 10.0  # score = min(raw / 10, 1)

# --- Content -------------------------------------------------------------------
AFFINITY_WEIGHTS = {"purchase": 3, "cart": 2, "wishlist": 2, "view": 1}
PROFILE_TYPES = ("view", "cart", "purchase", "wishlist")
PROFILE_HISTORY_SIZE = 50
TOP_PREFERENCES = 5
DEFAULT_PRICE_BAND = (0.0, 1000.0)  # cold-start band
PRICE_BAND_QUANTILES = (0.25, 0.75)
PRICE_BAND_SLACK = 0.2             # candidates within band +-20%
CONTENT_POOL_SIZE = 100
CONTENT_CATEGORY_WEIGHT = 0.4
CONTENT_BRAND_WEIGHT = 0.3
CONTENT_TAG_WEIGHT = 0.2
CONTENT_PRICE_BONUS = 0.1
CONTENT_MIN_SCORE = 0.1  # noise floor (exclusive)

# --- Trending ------------------------------------------------------------------
TRENDING_WEIGHTS = {"view": 1, "cart": 2, "purchase": 3}
TRENDING_DEFAULT_WEIGHT = 1  # wishlist / click / impression
TRENDING_WINDOWS = {"1h": 3600, "24h": 24 * 3600, "7d": 7 * 24 * 3600, "30d": 30 * 24 * 3600}
TRENDING_MOMENTUM = {"1h": 2.0, "24h": 1.5}  # other windows: x1
TRENDING_NORMALIZER = 100.0
DEFAULT_TIME_PERIOD = "24h"

# --- Similarity ----------------------------------------------------------------
SIMILARITY_POOL_SIZE = 100
SIMILARITY_CATEGORY_WEIGHT = 0.4
SIMILARITY_BRAND_WEIGHT = 0.3
SIMILARITY_PRICE_WEIGHT = 0.2
SIMILARITY_PRICE_MAX_DIFF = 0.5
SIMILARITY_TAG_WEIGHT = 0.1
SIMILARITY_FEATURES_THRESHOLD = 0.3
SIMILARITY_MIN_SCORE = 0.2  # exclusive

# --- Hybrid --------------------------------------------------------------------
# Share of the requested limit asked from each scorer
HYBRID_FANOUT = {"collaborative": 0.4, "content": 0.4, "trending": 0.3}
DEFAULT_LIMIT = 10
DEFAULT_HYBRID_LIMIT = 20

# --- Personalized bundle -------------------------------------------------------
BUNDLE_SECTION_SIZE = 10
BUNDLE_ANCHORS = 3       # recently viewed / cart products used as anchors
BUNDLE_PER_ANCHOR = 3    # similar products per anchor

# Cache key prefixes
TRENDING_PREFIX = "trending_"
SIMILAR_PREFIX = "similar_"
