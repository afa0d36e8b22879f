"""
Keno category tree cache and resolver.

Fetches the vendor category tree, flattens it once per cache window and
resolves a match specification into the set of category IDs a request
should keep.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from api.cache import CacheStore, CacheTTL
from api.errors import UpstreamError, UpstreamUnavailable
from models.catalog import (
    CategoryListResponse,
    CategoryNode,
    FixedIds,
    FlatCategory,
    LocalizedText,
    MatchSpec,
    NameSubstring,
    ResolvedIdSet,
    localized_text,
)
from models.enums import CategoryCacheMode

logger = logging.getLogger(__name__)


def _display_name(name: LocalizedText, locale: str) -> Optional[str]:
    if isinstance(name, str):
        return name
    text = localized_text(name, locale)
    if text is None and isinstance(name, dict):
        # Category names are for matching, so any translation beats none
        text = next((v for v in name.values() if v), None)
    return text


def flatten_category_tree(roots: Iterable[CategoryNode], locale: str) -> List[FlatCategory]:
    """
    Flatten a category forest depth-first.

    Every node, root or nested, yields one FlatCategory in pre-order. The
    parent is the node it was reached from, None for roots.
    """
    flat: List[FlatCategory] = []

    # Explicit stack: vendor trees can be deeper than is comfortable to recurse
    stack: List[Tuple[CategoryNode, Optional[int]]] = [
        (node, None) for node in reversed(list(roots))
    ]
    while stack:
        node, parent = stack.pop()
        flat.append(FlatCategory(id=node.id, name=_display_name(node.name, locale), parent=parent))
        for child in reversed(node.children):
            stack.append((child, node.id))

    return flat


def match_categories(flat: Iterable[FlatCategory], name: str) -> ResolvedIdSet:
    """IDs of every category whose name contains ``name``, ignoring case."""
    needle = name.casefold()
    return frozenset(
        category.id for category in flat
        if category.name and needle in category.name.casefold()
    )


class CategoryResolver:
    """
    Resolves match specifications against the cached category tree.

    The flattened tree is cached under one key per locale with a long TTL.
    In ``resolved`` cache mode the resulting ID set of each name lookup is
    cached as well, on the same cadence as the tree.
    """

    def __init__(
        self,
        client,
        cache: CacheStore,
        ttl: float = CacheTTL.CATEGORIES,
        locale: str = "lt",
        cache_mode: CategoryCacheMode = CategoryCacheMode.TREE,
    ):
        self.client = client
        self.cache = cache
        self.ttl = ttl
        self.locale = locale
        self.cache_mode = cache_mode

    @property
    def tree_key(self) -> str:
        return f"keno:categories:tree:{self.locale}"

    def resolved_key(self, spec: MatchSpec, tree_version: datetime) -> str:
        return f"keno:categories:resolved:{self.locale}:{spec.cache_token()}@{tree_version.isoformat()}"

    async def _load_flat_tree(self) -> List[FlatCategory]:
        logger.info("Fetching fresh category tree from Keno API")
        try:
            roots = await self.client.fetch_category_tree()
        except UpstreamError as e:
            logger.error(f"Category tree fetch failed: {e.message}")
            raise UpstreamUnavailable.from_upstream(e) from e
        flat = flatten_category_tree(roots, self.locale)
        logger.info(f"Flattened {len(flat)} categories from {len(roots)} roots")
        return flat

    async def get_flat_categories(self, force_refresh: bool = False) -> Tuple[List[FlatCategory], bool]:
        """
        Get the flattened category tree from cache or API.

        Returns:
            ``(categories, hit)`` where ``hit`` tells whether the cache served it
        """
        if force_refresh:
            flat = await self._load_flat_tree()
            self.cache.put(self.tree_key, flat)
            return flat, False
        return await self.cache.get_or_load(self.tree_key, self.ttl, self._load_flat_tree)

    async def list_categories(self) -> Tuple[CategoryListResponse, bool]:
        """Inspection path: the flattened tree, no resolution."""
        flat, hit = await self.get_flat_categories()
        return CategoryListResponse(categories=flat), hit

    async def resolve(self, spec: MatchSpec) -> Tuple[ResolvedIdSet, bool]:
        """
        Resolve ``spec`` into a deduplicated set of category IDs.

        An empty set is a valid "nothing matched" outcome.

        Returns:
            ``(ids, hit)`` where ``hit`` tells whether the cache served the lookup;
            fixed IDs always count as a hit

        Raises:
            UpstreamUnavailable: the category tree could not be fetched
        """
        if isinstance(spec, FixedIds):
            return frozenset(spec.ids), True

        if not isinstance(spec, NameSubstring):
            raise TypeError(f"Unsupported match specification: {type(spec).__name__}")

        if self.cache_mode == CategoryCacheMode.RESOLVED:
            flat, _ = await self.get_flat_categories()
            # Keyed on the tree's fetch time: a refreshed tree never reuses older sets
            tree_version = self.cache.get(self.tree_key).stored_at

            async def load_resolved() -> ResolvedIdSet:
                return match_categories(flat, spec.name)

            ids, hit = await self.cache.get_or_load(
                self.resolved_key(spec, tree_version), self.ttl, load_resolved
            )
        else:
            flat, hit = await self.get_flat_categories()
            ids = match_categories(flat, spec.name)

        if not ids:
            logger.info(f"No categories match {spec.name!r}")
        else:
            logger.debug(f"Categories matching {spec.name!r}: {sorted(ids)}")
        return ids, hit
