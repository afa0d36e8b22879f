"""Tests for the /api/products HTTP route."""
import pytest
from unittest.mock import Mock, patch
from starlette.applications import Starlette
from starlette.routing import Route
from starlette.testclient import TestClient

from routes.products import ROUTED_METHODS, parse_mode, products_endpoint
from api.catalog_service import CatalogService
from api.errors import MethodNotAllowedError, UpstreamApplicationError, UpstreamTransportError
from api.keno_client import MockKenoClient
from config import ProxyConfig
from models.catalog import FixedIds
from models.enums import RetrievalMode, UpstreamMethod


@pytest.fixture
def mock_global_mcp(mock_keno_client, cache_store):
    """Mock the global mcp instance with a service over the mock client."""
    with patch('routes.products.mcp') as mock_mcp:
        mock_mcp.config = ProxyConfig(api_key="test_api_key")
        mock_mcp.catalog_service = CatalogService(
            mock_keno_client, cache_store, default_spec=FixedIds(ids={78})
        )
        mock_mcp.logger = Mock()
        yield mock_mcp


@pytest.fixture
def client(mock_global_mcp):
    app = Starlette(routes=[
        Route("/api/products", products_endpoint, methods=ROUTED_METHODS)
    ])
    with TestClient(app) as test_client:
        yield test_client


def use_client(mock_global_mcp, cache_store, keno_client):
    mock_global_mcp.catalog_service = CatalogService(
        keno_client, cache_store, default_spec=FixedIds(ids={78})
    )


class TestParseMode:

    def test_default_is_products(self):
        assert parse_mode(None) == RetrievalMode.PRODUCTS
        assert parse_mode("") == RetrievalMode.PRODUCTS

    def test_known_modes(self):
        assert parse_mode("categories") == RetrievalMode.CATEGORIES
        assert parse_mode(" Products ") == RetrievalMode.PRODUCTS

    def test_unknown_mode(self):
        with pytest.raises(MethodNotAllowedError):
            parse_mode("stock")


def test_first_request_goes_upstream(client, mock_keno_client):
    response = client.get("/api/products")

    assert response.status_code == 200
    assert response.headers["X-Data-Source"] == "upstream"
    body = response.json()
    assert body["connection_status"] == "Success"
    assert [p["index"] for p in body["products_base"]] == ["SKU-1"]
    assert body["products_base"][0]["description"] == "baterija"
    assert body["products_base"][0]["long_description"] == "ilgas aprašymas"


def test_repeat_request_served_from_cache(client, mock_keno_client):
    first = client.get("/api/products")
    second = client.get("/api/products")

    assert second.headers["X-Data-Source"] == "cache"
    assert second.json() == first.json()
    assert mock_keno_client.calls(UpstreamMethod.GET_PRODUCT_BASE) == 1


def test_head_is_allowed(client):
    response = client.head("/api/products")

    assert response.status_code == 200
    assert response.headers["X-Data-Source"] == "upstream"


def test_missing_api_key(client, mock_global_mcp, mock_keno_client):
    mock_global_mcp.config = ProxyConfig(api_key="")

    response = client.get("/api/products")

    assert response.status_code == 500
    assert response.json() == {"error": "Missing KENO_API_KEY env var"}
    assert mock_keno_client.call_history == []


@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
def test_other_methods_rejected(client, mock_keno_client, method):
    response = client.request(method, "/api/products")

    assert response.status_code == 405
    assert response.headers["Allow"] == "GET, HEAD"
    assert response.json() == {"error": "Method Not Allowed"}
    assert mock_keno_client.call_history == []


def test_unknown_mode_rejected(client, mock_keno_client):
    response = client.get("/api/products", params={"mode": "stock"})

    assert response.status_code == 405
    assert response.headers["Allow"] == "GET, HEAD"
    assert mock_keno_client.call_history == []


def test_categories_mode(client):
    response = client.get("/api/products", params={"mode": "categories"})

    assert response.status_code == 200
    assert response.headers["X-Data-Source"] == "upstream"
    assert response.json()["categories"][0] == {"id": 1, "name": "Energy Storage", "parent": None}


def test_ids_override(client):
    response = client.get("/api/products", params={"ids": "2,79"})

    assert response.status_code == 200
    assert [p["index"] for p in response.json()["products_base"]] == ["SKU-2", "SKU-3"]


def test_name_override(client, mock_keno_client):
    response = client.get("/api/products", params={"name": "racks"})

    assert response.status_code == 200
    assert [p["index"] for p in response.json()["products_base"]] == ["SKU-2"]
    assert mock_keno_client.calls(UpstreamMethod.GET_PRODUCT_CATEGORIES) == 1


def test_invalid_ids(client, mock_keno_client):
    response = client.get("/api/products", params={"ids": "78,abc"})

    assert response.status_code == 400
    assert "Invalid category ids" in response.json()["error"]
    assert mock_keno_client.call_history == []


def test_name_matching_nothing_is_empty_success(client, mock_keno_client):
    response = client.get("/api/products", params={"name": "Wind turbines"})

    assert response.status_code == 200
    assert response.headers["X-Data-Source"] == "empty"
    assert response.json() == {"connection_status": "Success", "products_base": []}
    assert mock_keno_client.calls(UpstreamMethod.GET_PRODUCT_BASE) == 0


def test_upstream_status_failure(client, mock_global_mcp, cache_store):
    use_client(mock_global_mcp, cache_store, MockKenoClient(
        product_base=UpstreamTransportError("KENO API 500", status_code=500)
    ))

    response = client.get("/api/products")

    assert response.status_code == 502
    assert response.json() == {"error": "KENO API 500"}
    mock_global_mcp.logger.request_failed.assert_called_once()


def test_upstream_application_failure(client, mock_global_mcp, cache_store):
    use_client(mock_global_mcp, cache_store, MockKenoClient(
        product_base=UpstreamApplicationError("Invalid API key")
    ))

    response = client.get("/api/products")

    assert response.status_code == 502
    assert response.json() == {"error": "Invalid API key"}


def test_completed_request_is_logged(client, mock_global_mcp):
    client.get("/api/products")

    mock_global_mcp.logger.request_completed.assert_called_once()
    operation, _, data_source = mock_global_mcp.logger.request_completed.call_args.args
    assert (operation, data_source) == ("products", "upstream")
