import base64
import json

import pytest
import responses

from addons_importer.woocommerce import (
    Auth,
    CategoryInfo,
    ProductCreationResult,
    ProductInfo,
    WordPressError,
)

BASE = "https://shop.example.com"
PRODUCTS = f"{BASE}/wp-json/wc/v3/products"
CATEGORIES = f"{BASE}/wp-json/wc/v3/products/categories"


@pytest.fixture
def auth():
    password = "password"
    return Auth(BASE, "user", password)


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def _create(auth, **overrides):
    arguments = dict(
        name="Module",
        status="draft",
        product_type="simple",
        virtual=True,
        downloadable=True,
        short_description="features",
        description="desc",
        regular_price="49.99",
        categories=[7, 9],
        images=["https://addons.prestashop.com/a.jpg"],
        ps_product_id=1234,
        ps_product_url="https://addons.prestashop.com/fr/x/1234-mod.html",
    )
    arguments.update(overrides)
    return auth.create_product(**arguments)


def test_create_headers_default_json_and_unpadded_credentials(auth):
    headers = auth.create_headers()
    assert headers["Content-Type"] == "application/json"
    scheme, encoded = headers["Authorization"].split(" ")
    assert scheme == "Basic"
    assert "=" not in encoded
    padded = encoded + "=" * (-len(encoded) % 4)
    assert base64.b64decode(padded).decode() == "user:password"


def test_create_headers_custom_content_type(auth):
    headers = auth.create_headers("multipart/form-data")
    assert headers["Content-Type"] == "multipart/form-data"


def test_create_headers_rejects_control_characters(auth):
    with pytest.raises(WordPressError):
        auth.create_headers("text/plain\nX: y")


def test_create_product_sends_payload_and_returns_result(auth, mocked):
    mocked.add(responses.POST, PRODUCTS, json={"id": 55}, status=201)
    result = _create(auth)
    assert result == ProductCreationResult(
        http_status=201, response_body='{"id": 55}', response_json={"id": 55}
    )
    sent = json.loads(mocked.calls[0].request.body)
    assert sent["type"] == "simple"
    assert sent["categories"] == [{"id": 7}, {"id": 9}]
    assert sent["images"] == [{"src": "https://addons.prestashop.com/a.jpg"}]
    assert sent["meta_data"] == [
        {"key": "ps_product_id", "value": "1234"},
        {"key": "ps_product_url", "value": "https://addons.prestashop.com/fr/x/1234-mod.html"},
    ]
    assert mocked.calls[0].request.headers["Authorization"].startswith("Basic ")


def test_create_product_keeps_raw_body_when_not_json(auth, mocked):
    mocked.add(responses.POST, PRODUCTS, body="created", status=200)
    result = _create(auth)
    assert result.response_json == {"raw_body": "created"}
    assert result.http_status == 200


def test_create_product_error_carries_http_code(auth, mocked):
    mocked.add(responses.POST, PRODUCTS, body="boom", status=500)
    with pytest.raises(WordPressError) as excinfo:
        _create(auth)
    assert str(excinfo.value) == "HTTP 500: boom"


def test_create_product_connection_failure(auth, mocked):
    with pytest.raises(WordPressError, match="Failed to send create product request"):
        _create(auth)


def test_find_product_found(auth, mocked):
    products = [
        {"id": 3, "meta_data": [{"key": "ps_product_id", "value": "99"}]},
        {"id": 12, "meta_data": [{"key": "ps_product_id", "value": "1234"}]},
    ]
    mocked.add(responses.GET, PRODUCTS, json=products)
    info = auth.find_product_by_custom_field("ps_product_id", "1234")
    assert info == ProductInfo(
        status="found",
        message="Product already exists",
        product_id=12,
        custom_field_value="1234",
    )
    assert "ps_product_id=1234" in mocked.calls[0].request.url


def test_find_product_value_must_be_string(auth, mocked):
    products = [{"id": 12, "meta_data": [{"key": "ps_product_id", "value": 1234}]}]
    mocked.add(responses.GET, PRODUCTS, json=products)
    info = auth.find_product_by_custom_field("ps_product_id", "1234")
    assert info.status == "notfound"
    assert info.product_id is None


def test_find_product_not_found(auth, mocked):
    mocked.add(responses.GET, PRODUCTS, json=[])
    info = auth.find_product_by_custom_field("ps_product_id", "1")
    assert info == ProductInfo(
        status="notfound",
        message="No product found with the given custom field value",
    )


def test_find_product_http_error(auth, mocked):
    mocked.add(responses.GET, PRODUCTS, status=404)
    with pytest.raises(WordPressError) as excinfo:
        auth.find_product_by_custom_field("ps_product_id", "1")
    assert str(excinfo.value) == "Failed to search for product: 404 Not Found"


def test_find_product_invalid_json(auth, mocked):
    mocked.add(responses.GET, PRODUCTS, body="not json")
    with pytest.raises(WordPressError, match="Failed to parse response as JSON"):
        auth.find_product_by_custom_field("ps_product_id", "1")


def test_find_category_found(auth, mocked):
    categories = [
        {"id": 4, "name": "Other", "ps_addons_cat_id": 1},
        {"id": 8, "name": "Payments", "ps_addons_cat_id": 481},
    ]
    mocked.add(responses.GET, CATEGORIES, json=categories)
    info = auth.find_category_by_custom_field(481)
    assert info == CategoryInfo(
        status="found",
        message="Category already exists",
        category_id=8,
        ps_addons_cat_id=481,
        category_name="Payments",
    )
    assert "ps_addons_cat_id=481" in mocked.calls[0].request.url


def test_find_category_empty_is_notfound(auth, mocked):
    mocked.add(responses.GET, CATEGORIES, json=[])
    info = auth.find_category_by_custom_field(481)
    assert info == CategoryInfo(
        status="notfound", message="No category found with the given ID"
    )


@pytest.mark.parametrize("stored", [480, "481", 481.0, None])
def test_find_category_without_match_is_error(auth, mocked, stored):
    mocked.add(
        responses.GET, CATEGORIES, json=[{"id": 8, "name": "x", "ps_addons_cat_id": stored}]
    )
    info = auth.find_category_by_custom_field(481)
    assert info == CategoryInfo(status="error", message="Unknown error occurred")


def test_find_category_http_error(auth, mocked):
    mocked.add(responses.GET, CATEGORIES, status=500)
    with pytest.raises(WordPressError, match="Failed to search for category: 500"):
        auth.find_category_by_custom_field(481)


def test_create_category_returns_json(auth, mocked):
    mocked.add(responses.POST, CATEGORIES, json={"id": 21, "name": "SEO"}, status=201)
    result = auth.create_category("SEO", 3, 481)
    assert result == {"id": 21, "name": "SEO"}
    sent = json.loads(mocked.calls[0].request.body)
    assert sent == {"name": "SEO", "parent": 3, "ps_addons_cat_id": 481}


def test_create_category_bad_request_raises_body(auth, mocked):
    mocked.add(responses.POST, CATEGORIES, json={"code": "term_exists"}, status=400)
    with pytest.raises(WordPressError) as excinfo:
        auth.create_category("SEO", 3, 481)
    assert json.loads(str(excinfo.value)) == {"code": "term_exists"}


def test_create_category_other_status(auth, mocked):
    mocked.add(responses.POST, CATEGORIES, json={"error": 1}, status=500)
    with pytest.raises(WordPressError, match="Failed to create category with status 500"):
        auth.create_category("SEO", 3, 481)


def test_create_category_invalid_json_fails_even_when_created(auth, mocked):
    mocked.add(responses.POST, CATEGORIES, body="<html>", status=201)
    with pytest.raises(WordPressError, match="Failed to parse response body as JSON"):
        auth.create_category("SEO", 3, 481)