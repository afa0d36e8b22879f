"""
Catalog Models for the Keno API

Pydantic models for the vendor category tree, the match specifications a
request resolves into category IDs, and the payloads served to clients.
Vendor records themselves stay plain dicts: the proxy only projects two
fields and passes everything else through untouched.
"""

from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .enums import MatchKind

RawProduct = Dict[str, Any]
NormalizedProduct = Dict[str, Any]
ResolvedIdSet = FrozenSet[int]
LocalizedText = Union[str, Dict[str, Optional[str]], None]


def localized_text(value: LocalizedText, locale: str) -> Optional[str]:
    """
    Project a multi-locale text field to one locale.

    Only a mapping carries translations; anything else, a bare string
    included, has no entry for the locale and projects to None.
    """
    if isinstance(value, dict):
        return value.get(locale)
    return None


class CategoryNode(BaseModel):
    """
    One node of the vendor category tree.

    The vendor has used a few spellings for the same keys over time, so the
    common aliases are accepted. A ``null`` children list means a leaf.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(..., validation_alias=AliasChoices("id", "category_id", "categoryId"))
    name: LocalizedText = Field(
        None, validation_alias=AliasChoices("name", "category_name", "title")
    )
    parent_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("parent_id", "parentId")
    )
    children: List["CategoryNode"] = Field(
        default_factory=list,
        validation_alias=AliasChoices("children", "subcategories", "childs"),
    )

    @field_validator("children", mode="before")
    @classmethod
    def null_children_as_leaf(cls, v):
        return [] if v is None else v


CategoryNode.model_rebuild()


class FlatCategory(BaseModel):
    """Flattened view of a category: its id, display name and traversal parent."""
    model_config = ConfigDict(frozen=True)

    id: int
    name: Optional[str] = None
    parent: Optional[int] = None


class FixedIds(BaseModel):
    """Match a fixed, non-empty set of category IDs."""
    model_config = ConfigDict(frozen=True)

    kind: Literal[MatchKind.FIXED_IDS] = MatchKind.FIXED_IDS
    ids: FrozenSet[int] = Field(..., min_length=1, description="Category IDs to keep")

    def cache_token(self) -> str:
        return "ids:" + ",".join(str(i) for i in sorted(self.ids))


class NameSubstring(BaseModel):
    """Match every category whose name contains ``name``, ignoring case."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    kind: Literal[MatchKind.NAME_SUBSTRING] = MatchKind.NAME_SUBSTRING
    name: str = Field(..., min_length=1, description="Case-insensitive name fragment")

    def cache_token(self) -> str:
        return "name:" + self.name.casefold()


MatchSpec = Annotated[Union[FixedIds, NameSubstring], Field(discriminator="kind")]


class ProductBase(BaseModel):
    """Decoded ``GetProductBase`` payload."""
    model_config = ConfigDict(extra="ignore")

    connection_status: Optional[str] = None
    products_base: List[RawProduct] = Field(default_factory=list)


class CatalogResponse(BaseModel):
    """
    Filtered product list.

    This is both what the product cache stores and what goes on the wire, so a
    cache hit is served as-is.
    """
    model_config = ConfigDict(frozen=True)

    connection_status: Optional[str] = None
    products_base: List[NormalizedProduct] = Field(default_factory=list)


class CategoryListResponse(BaseModel):
    """Inspection payload: the flattened category tree."""
    model_config = ConfigDict(frozen=True)

    categories: List[FlatCategory] = Field(default_factory=list)


__all__ = [
    "RawProduct",
    "NormalizedProduct",
    "ResolvedIdSet",
    "LocalizedText",
    "localized_text",
    "CategoryNode",
    "FlatCategory",
    "FixedIds",
    "NameSubstring",
    "MatchSpec",
    "ProductBase",
    "CatalogResponse",
    "CategoryListResponse",
]
