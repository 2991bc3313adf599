"""WordPress pages and media uploads."""

from __future__ import annotations

import html
import json
import sys
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping
from urllib.parse import quote

import requests

from addons_importer.scraped import ScrapedData
from addons_importer.woocommerce import Auth, WordPressError

_U64_MAX = 2**64 - 1
_DEFAULT_FILE_NAME = "default.jpg"
_OCTET_STREAM = "application/octet-stream"


def _status_text(code: int) -> str:
    try:
        phrase = HTTPStatus(code).phrase
    except ValueError:
        phrase = "<unknown status code>"
    return f"{code} {phrase}"


@dataclass
class MediaResponse:
    """The part of a WordPress media answer the importer needs."""

    id: int
    guid: str
    source_url: str

    @classmethod
    def from_dict(cls, data: Any) -> MediaResponse:
        """Build from decoded JSON; raise ValueError when a field is missing or mistyped."""
        if not isinstance(data, Mapping):
            raise ValueError("invalid type: expected media object")
        media_id = data.get("id")
        if isinstance(media_id, bool) or not isinstance(media_id, int) or not 0 <= media_id <= _U64_MAX:
            raise ValueError("invalid or missing field `id`")
        guid = data.get("guid")
        if not isinstance(guid, Mapping) or not isinstance(guid.get("rendered"), str):
            raise ValueError("invalid or missing field `guid`")
        source_url = data.get("source_url")
        if not isinstance(source_url, str):
            raise ValueError("invalid or missing field `source_url`")
        return cls(id=media_id, guid=guid["rendered"], source_url=source_url)


def create_page(
    auth: Auth,
    title: str,
    content: str,
    product_id: int,
    product_url: str,
    status: str,
    author: int,
    parent: int,
) -> str:
    """Create a WordPress page and return the raw answer body."""
    headers = auth.create_headers()
    url = f"{auth.base_url}/wp-json/wp/v2/pages"
    page = {
        "post_type": "page",
        "title": title,
        "content": content,
        "meta": {"ps_product_id": product_id, "ps_product_url": product_url},
        "status": status,
        "author": author,
        "parent": parent,
    }
    try:
        response = requests.post(url, headers=headers, json=page)
    except requests.RequestException as error:
        raise WordPressError("Failed to send create page request") from error

    body = response.text
    if response.status_code in (200, 201):
        return body
    if response.status_code == 400:
        raise WordPressError(body)
    raise WordPressError(
        f"Failed to create page with status {_status_text(response.status_code)}: {body}"
    )


def find_page(auth: Auth, title: str) -> str | None:
    """Look for a draft or published page with this title.

    Returns a JSON description of the page when one is found, otherwise None.
    """
    headers = auth.create_headers()
    url = (
        f"{auth.base_url}/wp-json/wp/v2/pages"
        f"?search={quote(title, safe='')}&status=draft,publish"
    )
    try:
        response = requests.get(url, headers=headers)
    except requests.RequestException as error:
        raise WordPressError("Failed to send search request") from error

    if not response.ok:
        raise WordPressError(f"Failed to search for page: {_status_text(response.status_code)}")

    try:
        pages = response.json()
    except ValueError as error:
        raise WordPressError("Failed to parse search response as JSON") from error
    if not isinstance(pages, list):
        raise WordPressError("Failed to parse search response as JSON")

    wanted = html.unescape(title)
    for page in pages:
        page = page if isinstance(page, dict) else {}
        title_field = page.get("title")
        rendered = title_field.get("rendered") if isinstance(title_field, dict) else None
        found_title = html.unescape(rendered if isinstance(rendered, str) else "")
        if found_title == wanted:
            return json.dumps(
                {
                    "status": "exists",
                    "message": "Page already exists",
                    "page_id": page.get("id"),
                    "title": found_title,
                },
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
            )
    return None


def upload_image(auth: Auth, image_url: str) -> requests.Response:
    """Download an image and upload it to the WordPress media library."""
    headers = {
        key: value
        for key, value in auth.create_headers("multipart/form-data").items()
        if key != "Content-Type"
    }
    try:
        image_response = requests.get(image_url)
    except requests.RequestException as error:
        raise WordPressError(f"Failed to download image: {error}") from error
    if not image_response.ok:
        raise WordPressError(
            f"Failed to download image: Status {_status_text(image_response.status_code)}"
        )

    content_type = image_response.headers.get("Content-Type", _OCTET_STREAM)
    file_name = image_url.rsplit("/", 1)[-1] or _DEFAULT_FILE_NAME
    url = f"{auth.base_url}/wp-json/wp/v2/media"
    try:
        response = requests.post(
            url,
            headers=headers,
            files={"file": (file_name, image_response.content, content_type)},
        )
    except requests.RequestException as error:
        raise WordPressError(f"Failed to upload image: {error}") from error

    if response.status_code == 201:
        return response
    raise WordPressError(f"Failed to upload image: {response.text}")


def process_images(
    wordpress_url: str, username: str, password: str, scraped: ScrapedData
) -> str:
    """Upload every image of *scraped* and return the gallery tags for them."""
    auth = Auth(wordpress_url, username, password)
    tags: list[str] = []
    for image_url in scraped.image_urls:
        print(f"Uploading image from URL: {image_url}")
        try:
            response = upload_image(auth, image_url)
        except WordPressError as error:
            print(f"Failed to upload image: {image_url}. Error: {error}", file=sys.stderr)
            continue
        print(f"Image uploaded successfully: {image_url}")
        try:
            media = MediaResponse.from_dict(response.json())
        except ValueError:
            print(f"Failed to parse response as JSON: {image_url}", file=sys.stderr)
            continue
        tags.append(
            f'[fusion_image linktarget="_self" image="{media.source_url}" '
            f'image_id="{media.id}|full" /]'
        )
    return "".join(tags)