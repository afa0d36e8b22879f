"""
Catalog service: category resolution followed by the product pipeline.

Constructed once per process around the shared cache store and Keno client,
and used by both the HTTP route and the MCP tools.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from api.cache import CacheStore, CacheTTL
from api.errors import ValidationError
from api.category_cache import CategoryResolver
from api.product_pipeline import ProductPipeline, summarize
from models.catalog import (
    CatalogResponse,
    CategoryListResponse,
    FixedIds,
    MatchSpec,
    NameSubstring,
    ResolvedIdSet,
)
from models.enums import CategoryCacheMode, DataSource

logger = logging.getLogger(__name__)


def parse_match_spec(
    ids: Union[str, Iterable[int], None] = None,
    name: Optional[str] = None,
) -> Optional[MatchSpec]:
    """
    Build a match specification from request parameters.

    ``ids`` may be a comma separated string (``"101,102"``) or a sequence of
    ints. Returns None when neither parameter is given.

    Raises:
        ValidationError: both parameters given, or ids that are not integers
    """
    if isinstance(ids, str):
        if not ids.strip():
            ids = None
    elif ids is not None:
        # An empty sequence means no override, like an empty query string
        ids = list(ids) or None
    if name is not None and not name.strip():
        name = None

    if ids is not None and name is not None:
        raise ValidationError(
            "Pass either ids or name, not both",
            field_errors={"ids": "conflicts with name", "name": "conflicts with ids"}
        )

    if name is not None:
        return NameSubstring(name=name)

    if ids is None:
        return None

    parts = ids.split(",") if isinstance(ids, str) else list(ids)
    try:
        parsed = frozenset(int(str(part).strip()) for part in parts if str(part).strip())
    except ValueError:
        raise ValidationError(
            f"Invalid category ids: {ids!r}",
            field_errors={"ids": "must be a comma separated list of integers"}
        )
    if not parsed:
        raise ValidationError("No category ids given", field_errors={"ids": "empty"})
    return FixedIds(ids=parsed)


@dataclass(frozen=True)
class CatalogResult:
    """A served payload together with where it came from."""
    payload: Union[CatalogResponse, CategoryListResponse]
    data_source: DataSource
    resolved_ids: ResolvedIdSet = field(default_factory=frozenset)

    def to_dict(self):
        return self.payload.model_dump(mode="json")


class CatalogService:
    """Resolves categories and serves the filtered, normalized catalog."""

    def __init__(
        self,
        client,
        cache: CacheStore,
        default_spec: MatchSpec,
        locale: str = "lt",
        category_ttl: float = CacheTTL.CATEGORIES,
        product_ttl: float = CacheTTL.PRODUCTS,
        category_cache_mode: CategoryCacheMode = CategoryCacheMode.TREE,
    ):
        self.client = client
        self.cache = cache
        self.default_spec = default_spec
        self.resolver = CategoryResolver(
            client, cache, ttl=category_ttl, locale=locale, cache_mode=category_cache_mode
        )
        self.pipeline = ProductPipeline(client, cache, ttl=product_ttl, locale=locale)

    @classmethod
    def from_config(cls, config, client, cache: CacheStore) -> "CatalogService":
        """Build the service from a ProxyConfig."""
        return cls(
            client,
            cache,
            default_spec=config.default_match_spec(),
            locale=config.locale,
            category_ttl=config.category_ttl,
            product_ttl=config.product_ttl,
            category_cache_mode=config.category_cache_mode,
        )

    async def get_products(self, spec: Optional[MatchSpec] = None) -> CatalogResult:
        """
        Filtered product list for ``spec`` (the configured spec by default).

        Raises:
            UpstreamUnavailable: the category tree or product base is unreachable
        """
        if spec is None:
            spec = self.default_spec
        ids, _ = await self.resolver.resolve(spec)
        response, source = await self.pipeline.run(ids)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"served products per subcategory: {summarize(response.products_base)}")

        return CatalogResult(payload=response, data_source=source, resolved_ids=ids)

    async def list_categories(self) -> CatalogResult:
        """
        Flattened category tree, for inspection.

        Raises:
            UpstreamUnavailable: the category tree is unreachable
        """
        response, hit = await self.resolver.list_categories()
        source = DataSource.CACHE if hit else DataSource.UPSTREAM
        return CatalogResult(payload=response, data_source=source)

    async def close(self) -> None:
        await self.client.close()
