"""
Keno catalog tools.

MCP tools over the same catalog service as the HTTP route: the filtered
product list, the flattened category tree, and cache statistics. Every tool
returns the standard JSON envelope from ``data_types``.
"""
from typing import List, Optional

from fastmcp import Context

from api.catalog_service import parse_match_spec
from api.errors import CatalogApiException
from data_types import success_response, error_response, error_code_for, ErrorCode
from catalog_server import mcp


async def _error(ctx: Context, what: str, e: CatalogApiException) -> str:
    await ctx.error(f"{what}: {e.message}")
    return error_response(
        error_code_for(e),
        e.message,
        e.get_full_error_details()
    ).to_json_string()


@mcp.tool
async def get_catalog_products(
    ctx: Context,
    category_ids: Optional[List[int]] = None,
    category_name: Optional[str] = None
) -> str:
    """
    Get the filtered Keno product list.

    Products are kept when their subcategory is one of the selected categories;
    description fields are reduced to the configured locale. Without arguments
    the configured category selection is used.

    Args:
        category_ids: Keep products from exactly these category IDs
        category_name: Keep products from every category whose name contains this
            text (case-insensitive). Mutually exclusive with category_ids.
        ctx: MCP context

    Returns:
        JSON response with connection_status and products_base
    """
    await ctx.info("Getting Keno catalog products")

    try:
        mcp.config.validate_credentials()
        spec = parse_match_spec(ids=category_ids, name=category_name)
        result = await mcp.catalog_service.get_products(spec)
    except CatalogApiException as e:
        return await _error(ctx, "Failed to get catalog products", e)

    count = len(result.payload.products_base)
    await ctx.info(f"Serving {count} products from {result.data_source.value}")

    return success_response(
        data=result.to_dict(),
        message=f"{count} products in {len(result.resolved_ids)} categories",
        metadata={
            "data_source": result.data_source.value,
            "resolved_category_ids": sorted(result.resolved_ids)
        }
    ).to_json_string()


@mcp.tool
async def list_catalog_categories(ctx: Context) -> str:
    """
    Get the flattened Keno category tree.

    Each entry has the category id, its name in the configured locale and the
    id of its parent (null for top-level categories). Useful for picking a
    category_name or category_ids for get_catalog_products.

    Args:
        ctx: MCP context

    Returns:
        JSON response with the category list
    """
    await ctx.info("Listing Keno categories")

    try:
        mcp.config.validate_credentials()
        result = await mcp.catalog_service.list_categories()
    except CatalogApiException as e:
        return await _error(ctx, "Failed to list categories", e)

    return success_response(
        data=result.to_dict(),
        message=f"{len(result.payload.categories)} categories",
        metadata={"data_source": result.data_source.value}
    ).to_json_string()


@mcp.tool
async def get_cache_stats(ctx: Context) -> str:
    """
    Get hit/miss statistics of the in-process catalog cache.

    Args:
        ctx: MCP context

    Returns:
        JSON response with cache counters
    """
    cache_store = getattr(mcp, "cache_store", None)
    if cache_store is None:
        return error_response(
            ErrorCode.INTERNAL_ERROR,
            "Cache store is not initialized"
        ).to_json_string()

    return success_response(
        data=cache_store.get_stats(),
        message="Catalog cache statistics"
    ).to_json_string()
