"""Tests for product filtering, normalization and the product cache."""
import pytest

from api.errors import UpstreamTransportError, UpstreamUnavailable
from api.keno_client import MockKenoClient
from api.product_pipeline import (
    ProductPipeline,
    coerce_category_id,
    filter_products,
    normalize_product,
    product_cache_key,
    summarize,
)
from models.catalog import CatalogResponse
from models.enums import DataSource, UpstreamMethod


@pytest.fixture
def pipeline(mock_keno_client, cache_store):
    return ProductPipeline(mock_keno_client, cache_store, ttl=600, locale="lt")


def test_cache_key_ignores_order_and_duplicates():
    assert product_cache_key([3, 1, 2], "lt") == "keno:products:lt:1,2,3"
    assert product_cache_key({2, 3, 1}, "lt") == product_cache_key([1, 2, 3, 3], "lt")
    assert product_cache_key([1], "lt") != product_cache_key([1], "en")


@pytest.mark.parametrize("raw,expected", [
    (78, 78),
    ("78", 78),
    (" 78 ", 78),
    (78.0, 78),
    ("78.0", 78),
    (78.5, None),
    ("abc", None),
    ("", None),
    (None, None),
    (True, None),
    ([78], None),
])
def test_coerce_category_id(raw, expected):
    assert coerce_category_id(raw) == expected


def test_normalize_projects_locale_without_mutating_input():
    raw = {
        "index": "A1",
        "description": {"lt": "x", "en": "y"},
        "long_description": None,
        "price": 12.5,
    }

    normalized = normalize_product(raw, "lt")

    assert normalized == {
        "index": "A1",
        "description": "x",
        "long_description": None,
        "price": 12.5,
    }
    assert raw["description"] == {"lt": "x", "en": "y"}


def test_normalize_missing_locale_and_plain_strings():
    raw = {"description": {"en": "only english"}, "long_description": "plain text"}

    normalized = normalize_product(raw, "lt")

    assert normalized["description"] is None
    assert normalized["long_description"] is None
    assert raw["long_description"] == "plain text"


def test_normalize_unexpected_shapes_become_none():
    normalized = normalize_product({"description": 42, "long_description": ["a"]}, "lt")

    assert normalized["description"] is None
    assert normalized["long_description"] is None


def test_normalize_adds_missing_localized_fields():
    normalized = normalize_product({"index": "B2"}, "lt")

    assert normalized == {"index": "B2", "description": None, "long_description": None}


def test_filter_keeps_matching_rows_in_order():
    products = [
        {"index": "A", "subcategory_id": 78, "description": {"lt": "a"}},
        {"index": "B", "subcategory_id": "78", "description": {"lt": "b"}},
        {"index": "C", "subcategory_id": 79, "description": {"lt": "c"}},
    ]

    kept = filter_products(products, frozenset({78}), "lt")

    assert [p["index"] for p in kept] == ["A", "B"]
    assert [p["description"] for p in kept] == ["a", "b"]
    # pass-through fields are untouched, including the vendor's id spelling
    assert kept[1]["subcategory_id"] == "78"


def test_filter_drops_rows_without_category():
    products = [{"index": "A"}, {"index": "B", "subcategory_id": None}]

    assert filter_products(products, frozenset({78}), "lt") == []


def test_summarize(product_base):
    assert summarize(product_base["products_base"]) == {78: 1, 79: 1, 2: 1}


@pytest.mark.asyncio
async def test_first_request_goes_upstream(pipeline, mock_keno_client):
    response, source = await pipeline.run(frozenset({78}))

    assert source == DataSource.UPSTREAM
    assert isinstance(response, CatalogResponse)
    assert response.connection_status == "Success"
    assert [p["index"] for p in response.products_base] == ["SKU-1"]
    assert response.products_base[0]["description"] == "baterija"
    assert mock_keno_client.calls(UpstreamMethod.GET_PRODUCT_BASE) == 1


@pytest.mark.asyncio
async def test_repeat_within_ttl_is_served_from_cache(pipeline, mock_keno_client, clock):
    first, _ = await pipeline.run(frozenset({78}))
    clock.advance(minutes=5)

    second, source = await pipeline.run(frozenset({78}))

    assert source == DataSource.CACHE
    assert second == first
    assert mock_keno_client.calls(UpstreamMethod.GET_PRODUCT_BASE) == 1


@pytest.mark.asyncio
async def test_refetch_after_ttl(pipeline, mock_keno_client, clock):
    await pipeline.run(frozenset({78}))
    clock.advance(minutes=11)

    _, source = await pipeline.run(frozenset({78}))

    assert source == DataSource.UPSTREAM
    assert mock_keno_client.calls(UpstreamMethod.GET_PRODUCT_BASE) == 2
    assert pipeline.cache.get(product_cache_key({78}, "lt")).stored_at == clock()


@pytest.mark.asyncio
async def test_different_sets_are_cached_separately(pipeline, mock_keno_client):
    await pipeline.run(frozenset({78}))
    response, source = await pipeline.run(frozenset({78, 79}))

    assert source == DataSource.UPSTREAM
    assert [p["index"] for p in response.products_base] == ["SKU-1", "SKU-2"]
    assert mock_keno_client.calls(UpstreamMethod.GET_PRODUCT_BASE) == 2


@pytest.mark.asyncio
async def test_upstream_failure_with_no_cache(cache_store):
    failure = UpstreamTransportError("KENO API 500", status_code=500)
    pipeline = ProductPipeline(MockKenoClient(product_base=failure), cache_store)

    with pytest.raises(UpstreamUnavailable) as exc_info:
        await pipeline.run(frozenset({78}))

    assert exc_info.value.message == "KENO API 500"
    assert exc_info.value.http_status == 502
    assert cache_store.size() == 0


@pytest.mark.asyncio
async def test_stale_entry_is_not_served_when_upstream_fails(product_base, cache_store, clock):
    responses = [product_base, UpstreamTransportError("KENO API 503", status_code=503)]

    def next_payload():
        payload = responses.pop(0)
        if isinstance(payload, Exception):
            raise payload
        return payload

    pipeline = ProductPipeline(MockKenoClient(product_base=next_payload), cache_store)
    await pipeline.run(frozenset({78}))
    stale = cache_store.get(product_cache_key({78}, "lt"))
    clock.advance(minutes=15)

    with pytest.raises(UpstreamUnavailable):
        await pipeline.run(frozenset({78}))

    # the stale entry is left alone but never served
    assert cache_store.get(product_cache_key({78}, "lt")) is stale


@pytest.mark.asyncio
async def test_empty_ids_short_circuit(pipeline, mock_keno_client, cache_store):
    response, source = await pipeline.run(frozenset())

    assert source == DataSource.EMPTY
    assert response.model_dump() == {"connection_status": "Success", "products_base": []}
    assert mock_keno_client.call_history == []
    assert cache_store.size() == 0
