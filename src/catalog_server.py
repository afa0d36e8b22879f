"""Keno catalog proxy server implementation."""
from dotenv import load_dotenv
from fastmcp import FastMCP
from config import ProxyConfig
from logging_config import setup_proxy_logging
from __version__ import __version__
from api.cache import init_cache_store
from api.catalog_service import CatalogService
from api.keno_client import KenoClient, KenoClientConfig

# Load environment variables
load_dotenv()

# Load configuration
config = ProxyConfig.from_env()

# Setup logging
logger = setup_proxy_logging(config, version=__version__)

# Report credential status; a missing key is rejected per request, not at startup
credential_status = config.check_credential_status()
logger.config_status(ready=credential_status["ready"], messages=credential_status["messages"])

# One cache store and one upstream client for the whole process
cache_store = init_cache_store(single_flight=config.single_flight)
keno_client = KenoClient(
    KenoClientConfig(
        api_url=config.api_url,
        api_key=config.api_key,
        timeout_seconds=config.timeout
    ),
    proxy_logger=logger
)
catalog_service = CatalogService.from_config(config, keno_client, cache_store)

# Create global MCP instance
mcp = FastMCP(
    "Keno Catalog Proxy",
    version=__version__
)

# Store shared state for tool and route access
mcp.config = config
mcp.logger = logger
mcp.cache_store = cache_store
mcp.catalog_service = catalog_service


def create_catalog_server():
    """Create and configure the catalog proxy server."""
    # Imported here to avoid circular imports; registration happens via decorators
    import tools.catalog_api
    import routes.products

    return mcp


def main():
    """Entry point for keno-catalog-proxy command."""
    from main import main as main_func
    main_func()
