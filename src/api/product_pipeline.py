"""
Product pipeline for the Keno catalog.

Fetches the full product base, keeps the rows that belong to the resolved
categories and projects their multi-locale text fields to one locale. The
filtered result is cached per (locale, category set) with a short TTL.
"""
import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Tuple

from api.cache import CacheStore, CacheTTL
from api.errors import UpstreamError, UpstreamUnavailable
from models.catalog import (
    CatalogResponse,
    NormalizedProduct,
    RawProduct,
    ResolvedIdSet,
    localized_text,
)
from models.enums import DataSource

logger = logging.getLogger(__name__)

LOCALIZED_FIELDS = ("description", "long_description")
EMPTY_CONNECTION_STATUS = "Success"


def product_cache_key(ids: Iterable[int], locale: str) -> str:
    """
    Cache key for a category set.

    IDs are sorted, so two sets with the same members always share a key.
    """
    members = ",".join(str(i) for i in sorted(set(ids)))
    return f"keno:products:{locale}:{members}"


def coerce_category_id(value: Any) -> Optional[int]:
    """
    Coerce a vendor category id to int.

    The vendor sends ids as numbers or numeric strings. Anything that is not
    an integral number (None, booleans, blank or non-numeric strings,
    fractional values) becomes None, which never matches.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if number.is_integer() else None
    return None


def normalize_product(product: RawProduct, locale: str) -> NormalizedProduct:
    """Return a copy of ``product`` with its text fields flattened to ``locale``."""
    normalized = dict(product)
    for field in LOCALIZED_FIELDS:
        normalized[field] = localized_text(product.get(field), locale)
    return normalized


def filter_products(
    products: Iterable[RawProduct],
    ids: ResolvedIdSet,
    locale: str,
) -> List[NormalizedProduct]:
    """Normalized products whose ``subcategory_id`` is in ``ids``, in input order."""
    return [
        normalize_product(product, locale)
        for product in products
        if coerce_category_id(product.get("subcategory_id")) in ids
    ]


def summarize(products: Iterable[RawProduct]) -> Dict[Optional[int], int]:
    """Count products per (coerced) subcategory id."""
    return dict(Counter(coerce_category_id(p.get("subcategory_id")) for p in products))


class ProductPipeline:
    """Read-through product cache in front of ``GetProductBase``."""

    def __init__(
        self,
        client,
        cache: CacheStore,
        ttl: float = CacheTTL.PRODUCTS,
        locale: str = "lt",
    ):
        self.client = client
        self.cache = cache
        self.ttl = ttl
        self.locale = locale

    async def _load(self, ids: ResolvedIdSet) -> CatalogResponse:
        try:
            base = await self.client.fetch_product_base()
        except UpstreamError as e:
            logger.error(f"Product base fetch failed: {e.message}")
            raise UpstreamUnavailable.from_upstream(e) from e

        kept = filter_products(base.products_base, ids, self.locale)
        logger.info(f"raw: {len(base.products_base)}  kept: {len(kept)}")
        if kept:
            logger.debug(f"first SKU: {kept[0].get('index')}")

        return CatalogResponse(connection_status=base.connection_status, products_base=kept)

    async def run(self, ids: ResolvedIdSet) -> Tuple[CatalogResponse, DataSource]:
        """
        Filtered catalog for ``ids``.

        An empty id set short-circuits to an empty success without touching
        the upstream API or the cache.

        Raises:
            UpstreamUnavailable: the product base could not be fetched
        """
        if not ids:
            logger.info("No categories resolved, returning empty product list")
            return CatalogResponse(connection_status=EMPTY_CONNECTION_STATUS, products_base=[]), DataSource.EMPTY

        key = product_cache_key(ids, self.locale)
        response, hit = await self.cache.get_or_load(key, self.ttl, lambda: self._load(ids))
        if hit:
            logger.info(f"cache hit for {key}")
        return response, DataSource.CACHE if hit else DataSource.UPSTREAM
