# Constants for the catalog, search and cart engine.

# Weighted fields of the search index (must sum to 1.0)
SEARCH_FIELD_WEIGHTS = {
    "name": 0.4,
    "description": 0.3,
    "category": 0.2,
    "tags": 0.1,
}

DEFAULT_SEARCH_THRESHOLD = 0.4      # 0 = exact only, 1 = match anything
DEFAULT_MIN_MATCH_CHARS = 2         # shorter query tokens are ignored

# Cart
DEFAULT_MAX_QTY = 99

# Order transcript separators
ORDER_RULE = "━━━━━━━━━━━━━━━━"
