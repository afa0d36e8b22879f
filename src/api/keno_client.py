"""
Keno API client.

The Keno pricing API exposes every operation behind one URL: each call is a
JSON POST whose ``method`` field names the operation. This client wraps the
two operations the proxy needs and turns transport and application failures
into the exceptions in ``api.errors``. Calls are not retried; the caller
decides what an outage means for its request.
"""
import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union
import aiohttp
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError
import logging
from contextlib import asynccontextmanager

from api.errors import (
    UpstreamApplicationError,
    UpstreamTransportError,
    describe_application_errors,
)
from models.catalog import CategoryNode, ProductBase
from models.enums import UpstreamMethod

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.wycena.keno-energy.com"


class KenoClientConfig(BaseModel):
    """Configuration for the Keno API client."""
    api_url: str = Field(default=DEFAULT_API_URL, description="Keno API endpoint")
    api_key: str = Field(default="", description="Keno API key")
    timeout_seconds: float = Field(default=30, gt=0, description="Request timeout in seconds")


class KenoClient:
    """
    Keno API client with bounded timeouts and structured errors.

    Features:
    - One lazily created aiohttp session reused across calls
    - Timeout, connection and status failures as UpstreamTransportError
    - ``errors`` bodies as UpstreamApplicationError
    - Request/response logging with latency
    """

    def __init__(self, config: Optional[KenoClientConfig] = None, proxy_logger=None):
        """
        Initialize Keno API client.

        Args:
            config: client configuration
            proxy_logger: optional ProxyLogger for structured upstream call events
        """
        self.config = config or KenoClientConfig()
        self.proxy_logger = proxy_logger
        self._session: Optional[aiohttp.ClientSession] = None

    @asynccontextmanager
    async def _get_session(self):
        """Get or create aiohttp session."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                raise_for_status=False
            )
        yield self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def call(self, method: UpstreamMethod) -> Dict[str, Any]:
        """
        Issue one RPC and return the decoded body.

        Raises:
            UpstreamTransportError: non-2xx status, timeout, network failure,
                or a body that is not a JSON object
            UpstreamApplicationError: the body carries an ``errors`` field
        """
        body = {
            "apikey": self.config.api_key,
            "method": method.value,
            "parameters": [],
        }
        logger.debug(f"POST {self.config.api_url} method={method.value}")
        start_time = time.time()

        try:
            async with self._get_session() as session:
                async with session.post(
                    self.config.api_url,
                    json=body,
                    headers={"Content-Type": "application/json"}
                ) as response:
                    duration_ms = round((time.time() - start_time) * 1000, 2)
                    logger.info(f"Keno {method.value} -> HTTP {response.status} ({duration_ms}ms)")
                    if self.proxy_logger:
                        self.proxy_logger.upstream_call(method.value, duration_ms, response.status)

                    if not 200 <= response.status < 300:
                        raise UpstreamTransportError(
                            f"KENO API {response.status}",
                            status_code=response.status
                        )

                    try:
                        data = await response.json(content_type=None)
                    except (aiohttp.ContentTypeError, ValueError) as e:
                        raise UpstreamTransportError(
                            f"KENO API returned an undecodable body for {method.value}",
                            status_code=response.status,
                            original_error=e
                        ) from e

        except asyncio.TimeoutError as e:
            logger.error(f"Keno {method.value} timed out after {self.config.timeout_seconds}s")
            raise UpstreamTransportError(
                f"KENO API timed out after {self.config.timeout_seconds}s",
                timed_out=True,
                original_error=e
            ) from e
        except aiohttp.ClientError as e:
            logger.error(f"Network error calling Keno {method.value}: {str(e)}")
            raise UpstreamTransportError(
                f"KENO API network error: {str(e)}",
                original_error=e
            ) from e

        if not isinstance(data, dict):
            raise UpstreamTransportError(
                f"KENO API returned a non-object body for {method.value}"
            )

        if data.get("errors"):
            message = describe_application_errors(data["errors"])
            logger.error(f"Keno {method.value} application error: {message}")
            raise UpstreamApplicationError(message, errors=data["errors"], method=method.value)

        return data

    async def fetch_category_tree(self) -> List[CategoryNode]:
        """Fetch the vendor category forest (``GetProductCategories``)."""
        data = await self.call(UpstreamMethod.GET_PRODUCT_CATEGORIES)
        categories = data.get("categories")
        if categories is None:
            raise UpstreamApplicationError(
                "KENO API response has no categories",
                method=UpstreamMethod.GET_PRODUCT_CATEGORIES.value
            )
        # Some accounts get a single root object instead of a list
        if isinstance(categories, dict):
            categories = [categories]
        try:
            return [CategoryNode.model_validate(node) for node in categories]
        except PydanticValidationError as e:
            raise UpstreamApplicationError(
                f"KENO API returned a malformed category tree: {e.error_count()} errors",
                errors=e.errors(include_url=False),
                method=UpstreamMethod.GET_PRODUCT_CATEGORIES.value
            ) from e

    async def fetch_product_base(self) -> ProductBase:
        """Fetch every product with the connection status (``GetProductBase``)."""
        data = await self.call(UpstreamMethod.GET_PRODUCT_BASE)
        if not isinstance(data.get("products_base"), list):
            raise UpstreamApplicationError(
                "KENO API response has no products_base list",
                method=UpstreamMethod.GET_PRODUCT_BASE.value
            )
        return ProductBase(
            connection_status=data.get("connection_status"),
            products_base=[p for p in data["products_base"] if isinstance(p, dict)]
        )


class MockKenoClient:
    """
    Mock Keno client for testing.

    Records every call and returns pre-configured payloads. A configured
    value that is an exception instance is raised instead; a callable is
    invoked on every call.
    """

    def __init__(
        self,
        categories: Union[List[Any], Exception, Callable, None] = None,
        product_base: Union[Dict[str, Any], Exception, Callable, None] = None,
    ):
        self.categories = categories if categories is not None else []
        self.product_base = product_base if product_base is not None else {
            "connection_status": "Success",
            "products_base": [],
        }
        self.call_history: List[Dict[str, Any]] = []

    def _record(self, method: UpstreamMethod) -> None:
        self.call_history.append({
            "method": method.value,
            "timestamp": datetime.now(timezone.utc)
        })

    def calls(self, method: UpstreamMethod) -> int:
        """Number of recorded calls for ``method``."""
        return sum(1 for call in self.call_history if call["method"] == method.value)

    @staticmethod
    def _resolve(configured: Any) -> Any:
        if isinstance(configured, Exception):
            raise configured
        if callable(configured):
            return configured()
        return configured

    async def fetch_category_tree(self) -> List[CategoryNode]:
        self._record(UpstreamMethod.GET_PRODUCT_CATEGORIES)
        nodes = self._resolve(self.categories)
        return [
            node if isinstance(node, CategoryNode) else CategoryNode.model_validate(node)
            for node in nodes
        ]

    async def fetch_product_base(self) -> ProductBase:
        self._record(UpstreamMethod.GET_PRODUCT_BASE)
        payload = self._resolve(self.product_base)
        if isinstance(payload, ProductBase):
            return payload
        return ProductBase.model_validate(payload)

    async def close(self) -> None:
        """No-op for mock client."""
        pass
