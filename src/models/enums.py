"""
Enumerations shared across the catalog proxy.
"""
from enum import Enum


class RetrievalMode(str, Enum):
    """What a catalog request asks for."""
    PRODUCTS = "products"
    CATEGORIES = "categories"


class MatchKind(str, Enum):
    """How a request selects its category IDs."""
    FIXED_IDS = "fixed_ids"
    NAME_SUBSTRING = "name_substring"


class DataSource(str, Enum):
    """Provenance of a served payload (sent as the X-Data-Source header)."""
    CACHE = "cache"
    UPSTREAM = "upstream"
    EMPTY = "empty"


class CategoryCacheMode(str, Enum):
    """Granularity of the category cache."""
    TREE = "tree"
    RESOLVED = "resolved"


class UpstreamMethod(str, Enum):
    """RPC method names understood by the Keno API."""
    GET_PRODUCT_CATEGORIES = "GetProductCategories"
    GET_PRODUCT_BASE = "GetProductBase"


__all__ = [
    "RetrievalMode",
    "MatchKind",
    "DataSource",
    "CategoryCacheMode",
    "UpstreamMethod",
]
