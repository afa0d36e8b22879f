"""Configuration for the Keno catalog proxy."""
import os
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, field_validator

from api.cache import CacheTTL
from api.errors import ConfigurationError
from api.keno_client import DEFAULT_API_URL
from models.catalog import FixedIds, MatchSpec, NameSubstring
from models.enums import CategoryCacheMode


def _parse_ids(raw: str) -> List[int]:
    """Parse a comma separated id list such as ``"78, 79"``."""
    return [int(part) for part in raw.split(",") if part.strip()]


class ProxyConfig(BaseModel):
    """Configuration for the Keno catalog proxy."""

    # Server identification
    server_name: str = Field("keno-catalog-proxy", description="Server name for logging")
    log_level: str = Field("INFO", description="Logging level")

    # Transport settings
    transport: str = Field("stdio", description="Transport type: stdio, sse, http")
    host: str = Field("127.0.0.1", description="Host for network transports")
    port: int = Field(8000, description="Port for network transports")

    # Required credentials
    api_key: str = Field("", description="Keno API key")

    # API settings
    api_url: str = Field(DEFAULT_API_URL, description="Keno API endpoint")
    timeout: float = Field(30, gt=0, description="API request timeout in seconds")

    # Catalog selection
    locale: str = Field("lt", min_length=1, description="Locale kept in description fields")
    category_ids: List[int] = Field(default_factory=lambda: [78], description="Fixed category IDs")
    category_name: Optional[str] = Field(None, description="Category name fragment; overrides category_ids")

    # Cache settings
    category_ttl: int = Field(CacheTTL.CATEGORIES, gt=0, description="Category tree TTL in seconds")
    product_ttl: int = Field(CacheTTL.PRODUCTS, gt=0, description="Product list TTL in seconds")
    category_cache_mode: CategoryCacheMode = Field(
        CategoryCacheMode.TREE, description="Cache the whole tree or resolved ID sets"
    )
    single_flight: bool = Field(True, description="Coalesce concurrent misses on one cache key")

    @field_validator("category_name")
    @classmethod
    def blank_name_as_unset(cls, v):
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    @classmethod
    def from_env(cls) -> "ProxyConfig":
        """Create config from environment variables."""
        return cls(
            api_key=os.environ.get("KENO_API_KEY", ""),
            api_url=os.environ.get("KENO_API_URL", DEFAULT_API_URL),
            timeout=float(os.environ.get("KENO_TIMEOUT", "30")),
            log_level=os.environ.get("KENO_LOG_LEVEL", "INFO"),
            transport=os.environ.get("KENO_TRANSPORT", "stdio"),
            host=os.environ.get("KENO_HOST", "127.0.0.1"),
            port=int(os.environ.get("KENO_PORT", "8000")),
            locale=os.environ.get("KENO_LOCALE", "lt"),
            category_ids=_parse_ids(os.environ.get("KENO_CATEGORY_IDS", "78")),
            category_name=os.environ.get("KENO_CATEGORY_NAME"),
            category_ttl=int(os.environ.get("KENO_CATEGORY_TTL", str(CacheTTL.CATEGORIES))),
            product_ttl=int(os.environ.get("KENO_PRODUCT_TTL", str(CacheTTL.PRODUCTS))),
            category_cache_mode=os.environ.get("KENO_CATEGORY_CACHE_MODE", "tree").lower(),
            single_flight=os.environ.get("KENO_SINGLE_FLIGHT", "true").lower() == "true",
        )

    def default_match_spec(self) -> MatchSpec:
        """The match specification used when a request does not bring its own."""
        if self.category_name:
            return NameSubstring(name=self.category_name)
        if not self.category_ids:
            raise ConfigurationError(
                "Set KENO_CATEGORY_IDS or KENO_CATEGORY_NAME",
                missing_fields=["KENO_CATEGORY_IDS", "KENO_CATEGORY_NAME"]
            )
        return FixedIds(ids=frozenset(self.category_ids))

    def validate_credentials(self) -> None:
        """Validate that required credentials are present."""
        if not self.api_key:
            raise ConfigurationError(
                "Missing KENO_API_KEY env var",
                missing_fields=["KENO_API_KEY"]
            )

    def check_credential_status(self) -> Dict[str, Any]:
        """Check credential status and provide helpful guidance."""
        status = {
            "api_key": bool(self.api_key),
            "ready": bool(self.api_key),
        }

        messages = []
        if not self.api_key:
            messages.append("KENO_API_KEY missing - every catalog request will fail")
        else:
            messages.append("KENO_API_KEY configured")

        try:
            spec = self.default_match_spec()
        except ConfigurationError as e:
            status["ready"] = False
            messages.append(e.message)
            status["messages"] = messages
            return status

        if isinstance(spec, NameSubstring):
            messages.append(f"Matching categories by name: {spec.name!r}")
        else:
            messages.append(f"Matching fixed categories: {sorted(spec.ids)}")

        status["messages"] = messages
        return status
