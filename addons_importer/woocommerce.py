"""Client for the WordPress and WooCommerce REST APIs."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Iterable

import requests

_U64_MAX = 2**64 - 1
_U32_MASK = 0xFFFFFFFF
_DEFAULT_CONTENT_TYPE = "application/json"


class WordPressError(Exception):
    """Raised when a WordPress or WooCommerce request fails."""


@dataclass
class ProductCreationResult:
    """The answer WooCommerce gave to a product creation request."""

    http_status: int
    response_body: str
    response_json: Any


@dataclass
class CategoryInfo:
    """The outcome of a category lookup: ``found``, ``notfound`` or ``error``."""

    status: str
    message: str
    category_id: int | None = None
    ps_addons_cat_id: int | None = None
    category_name: str | None = None


@dataclass
class ProductInfo:
    """The outcome of a product lookup: ``found`` or ``notfound``."""

    status: str
    message: str
    product_id: int | None = None
    custom_field_value: str | None = None


def _status_text(code: int) -> str:
    try:
        phrase = HTTPStatus(code).phrase
    except ValueError:
        phrase = "<unknown status code>"
    return f"{code} {phrase}"


def _as_u32(value: Any) -> int | None:
    """An unsigned JSON integer truncated to 32 bits, or None."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if not 0 <= value <= _U64_MAX:
        return None
    return value & _U32_MASK


def _is_valid_header_value(value: str) -> bool:
    return all(byte >= 32 and byte != 127 or byte == 9 for byte in value.encode("utf-8"))


def _decode_list(response: requests.Response, context: str) -> list[Any]:
    try:
        data = response.json()
    except ValueError as error:
        raise WordPressError(context) from error
    if not isinstance(data, list):
        raise WordPressError(f"{context}: expected a JSON array")
    return data


class Auth:
    """Credentials and base address of a WordPress site."""

    def __init__(self, base_url: str, username: str, password: str) -> None:
        self.base_url = base_url
        self._username = username
        self._password = password

    def create_headers(self, content_type: str | None = None) -> dict[str, str]:
        """Build Basic authentication headers, with JSON as the default content type."""
        credentials = f"{self._username}:{self._password}".encode("utf-8")
        encoded = base64.b64encode(credentials).decode("ascii").rstrip("=")
        authorization = f"Basic {encoded}"
        content_type = _DEFAULT_CONTENT_TYPE if content_type is None else content_type
        for value in (authorization, content_type):
            if not _is_valid_header_value(value):
                raise WordPressError(f"invalid HTTP header value: {value!r}")
        return {"Authorization": authorization, "Content-Type": content_type}

    def create_product(
        self,
        name: str,
        status: str,
        product_type: str,
        virtual: bool,
        downloadable: bool,
        short_description: str,
        description: str,
        regular_price: str,
        categories: Iterable[int],
        images: Iterable[str],
        ps_product_id: int,
        ps_product_url: str,
    ) -> ProductCreationResult:
        """Create a WooCommerce product.

        Raises WordPressError with a message of the form ``HTTP <code>: <body>``
        when the API answers with anything but 200 or 201.
        """
        headers = self.create_headers()
        url = f"{self.base_url}/wp-json/wc/v3/products"
        product = {
            "name": name,
            "type": product_type,
            "status": status,
            "virtual": virtual,
            "downloadable": downloadable,
            "short_description": short_description,
            "description": description,
            "regular_price": regular_price,
            "categories": [{"id": category} for category in categories],
            "images": [{"src": image} for image in images],
            "meta_data": [
                {"key": "ps_product_id", "value": str(ps_product_id)},
                {"key": "ps_product_url", "value": ps_product_url},
            ],
        }
        try:
            response = requests.post(url, headers=headers, json=product)
        except requests.RequestException as error:
            raise WordPressError("Failed to send create product request") from error

        body = response.text
        try:
            body_json = json.loads(body)
        except ValueError:
            body_json = {"raw_body": body}

        if response.status_code not in (200, 201):
            raise WordPressError(f"HTTP {response.status_code}: {body}")
        return ProductCreationResult(
            http_status=response.status_code,
            response_body=body,
            response_json=body_json,
        )

    def find_product_by_custom_field(
        self, custom_field_key: str, custom_field_value: str
    ) -> ProductInfo:
        """Look for a product whose meta data holds the given key and value."""
        headers = self.create_headers()
        url = (
            f"{self.base_url}/wp-json/wc/v3/products"
            f"?{custom_field_key}={custom_field_value}"
        )
        try:
            response = requests.get(url, headers=headers)
        except requests.RequestException as error:
            raise WordPressError("Failed to send request to WooCommerce API") from error

        if not response.ok:
            raise WordPressError(
                f"Failed to search for product: {_status_text(response.status_code)}"
            )

        for product in _decode_list(response, "Failed to parse response as JSON"):
            if not isinstance(product, dict):
                continue
            meta_data = product.get("meta_data")
            if not isinstance(meta_data, list):
                continue
            for meta in meta_data:
                if not isinstance(meta, dict):
                    continue
                key, value = meta.get("key"), meta.get("value")
                if (
                    isinstance(key, str)
                    and isinstance(value, str)
                    and key == custom_field_key
                    and value == custom_field_value
                ):
                    return ProductInfo(
                        status="found",
                        message="Product already exists",
                        product_id=_as_u32(product.get("id")),
                        custom_field_value=custom_field_value,
                    )

        return ProductInfo(
            status="notfound",
            message="No product found with the given custom field value",
        )

    def find_category_by_custom_field(self, custom_field: int) -> CategoryInfo:
        """Look for a product category carrying the given addons category id."""
        headers = self.create_headers()
        url = (
            f"{self.base_url}/wp-json/wc/v3/products/categories"
            f"?ps_addons_cat_id={custom_field}"
        )
        try:
            response = requests.get(url, headers=headers)
        except requests.RequestException as error:
            raise WordPressError("Failed to send search request for category") from error

        if not response.ok:
            raise WordPressError(
                f"Failed to search for category: {_status_text(response.status_code)}"
            )

        categories = _decode_list(
            response, "Failed to parse search response for category as JSON"
        )
        if not categories:
            return CategoryInfo(
                status="notfound",
                message="No category found with the given ID",
            )

        for category in categories:
            if not isinstance(category, dict):
                continue
            cat_id = category.get("ps_addons_cat_id")
            if _as_u32(cat_id) is not None and cat_id == custom_field:
                name = category.get("name")
                return CategoryInfo(
                    status="found",
                    message="Category already exists",
                    category_id=_as_u32(category.get("id")),
                    ps_addons_cat_id=custom_field,
                    category_name=name if isinstance(name, str) else None,
                )

        return CategoryInfo(status="error", message="Unknown error occurred")

    def create_category(self, name: str, parent: int, ps_addons_cat_id: int) -> Any:
        """Create a product category and return the decoded API answer."""
        headers = self.create_headers()
        url = f"{self.base_url}/wp-json/wc/v3/products/categories"
        category = {
            "name": name,
            "parent": parent,
            "ps_addons_cat_id": ps_addons_cat_id,
        }
        try:
            response = requests.post(url, headers=headers, json=category)
        except requests.RequestException as error:
            raise WordPressError("Failed to send create category request") from error

        body = response.text
        try:
            body_json = json.loads(body)
        except ValueError as error:
            raise WordPressError("Failed to parse response body as JSON") from error

        if response.status_code == 201:
            return body_json
        if response.status_code == 400:
            raise WordPressError(body)
        raise WordPressError(
            f"Failed to create category with status "
            f"{_status_text(response.status_code)}: {body}"
        )