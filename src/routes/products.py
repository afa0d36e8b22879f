"""
HTTP catalog endpoint.

``GET /api/products`` serves the filtered product list; ``?mode=categories``
serves the flattened category tree instead. ``ids=101,102`` or
``name=Storage`` override the configured category selection. Every response
carries ``X-Data-Source`` telling whether it came from cache.
"""
import logging
import time
import uuid
from typing import Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from api.catalog_service import parse_match_spec
from api.errors import CatalogApiException, ErrorResponse, MethodNotAllowedError
from logging_config import log_context
from models.enums import RetrievalMode
from catalog_server import mcp

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ["GET", "HEAD"]
ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
DATA_SOURCE_HEADER = "X-Data-Source"


def parse_mode(raw: Optional[str]) -> RetrievalMode:
    """Parse the ``mode`` query flag; unknown modes are not allowed."""
    if raw is None or not raw.strip():
        return RetrievalMode.PRODUCTS
    try:
        return RetrievalMode(raw.strip().lower())
    except ValueError:
        raise MethodNotAllowedError(
            f"Unsupported retrieval mode: {raw}",
            allowed=ALLOWED_METHODS
        )


def _error_response(error: CatalogApiException) -> JSONResponse:
    headers = None
    if isinstance(error, MethodNotAllowedError):
        headers = {"Allow": ", ".join(error.allowed)}
    return JSONResponse(
        ErrorResponse.from_exception(error).model_dump(),
        status_code=error.http_status,
        headers=headers
    )


@mcp.custom_route("/api/products", methods=ROUTED_METHODS)
async def products_endpoint(request: Request) -> Response:
    """Serve the catalog; see the module docstring for the query flags."""
    config = mcp.config
    service = mcp.catalog_service
    proxy_logger = mcp.logger
    start_time = time.time()
    operation = "products"

    with log_context(request_id=uuid.uuid4().hex[:12], method=request.method):
        try:
            config.validate_credentials()

            if request.method not in ALLOWED_METHODS:
                raise MethodNotAllowedError(allowed=ALLOWED_METHODS)

            mode = parse_mode(request.query_params.get("mode"))
            operation = mode.value
            if mode == RetrievalMode.CATEGORIES:
                result = await service.list_categories()
            else:
                spec = parse_match_spec(
                    ids=request.query_params.get("ids"),
                    name=request.query_params.get("name")
                )
                result = await service.get_products(spec)

        except CatalogApiException as e:
            duration_ms = round((time.time() - start_time) * 1000, 2)
            proxy_logger.request_failed(
                operation, e.message, duration_ms,
                status_code=e.http_status, error_type=type(e).__name__
            )
            return _error_response(e)

        duration_ms = round((time.time() - start_time) * 1000, 2)
        proxy_logger.request_completed(operation, duration_ms, result.data_source.value)
        logger.debug(f"{request.method} {request.url.path} served from {result.data_source.value}")

        return JSONResponse(
            result.to_dict(),
            headers={DATA_SOURCE_HEADER: result.data_source.value}
        )
