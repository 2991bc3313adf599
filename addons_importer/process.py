"""Scraping product pages through FlareSolverr and importing them into WooCommerce."""

from __future__ import annotations

import re
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from http import HTTPStatus

import requests
from termcolor import colored

from addons_importer.config import get_configuration_value, get_configuration_value_as_int
from addons_importer.database import Database
from addons_importer.scraped import FlareSolverrResponse, ScrapedData, extract_data
from addons_importer.utils import extract_id_from_url, generate_random_delay
from addons_importer.woocommerce import Auth, WordPressError

FLARESOLVERR_MAX_TIMEOUT_MS = 60000

_HTTP_CODE = re.compile(r"HTTP (\d+):")
_DEFAULT_ERROR_CODE = 500
_U16_MAX = 2**16 - 1
_U32_MASK = 0xFFFFFFFF
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


class ProcessingError(Exception):
    """Raised when a URL cannot be scraped or imported."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _status_text(code: int) -> str:
    try:
        phrase = HTTPStatus(code).phrase
    except ValueError:
        phrase = "<unknown status code>"
    return f"{code} {phrase}"


def _is_success(code: int) -> bool:
    return 200 <= code < 300


def _parse_rfc3339(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as error:
        raise ProcessingError(f"Invalid date: {value}") from error
    if parsed.tzinfo is None:
        raise ProcessingError(f"Invalid date: {value}")
    return parsed


def http_code_from_error(message: str) -> int:
    """Return the code of an ``HTTP <code>:`` error message, 500 when there is none."""
    match = _HTTP_CODE.search(message)
    if match is None:
        return _DEFAULT_ERROR_CODE
    digits = match.group(1)
    if not digits.isascii() or int(digits) > _U16_MAX:
        return _DEFAULT_ERROR_CODE
    return int(digits)


def get_urls_batch(db: Database, offset: int, limit: int) -> list[str]:
    """Return up to *limit* stored URLs, in insertion order, from *offset*."""
    with db.lock:
        rows = db.connection.execute(
            "SELECT url FROM urls ORDER BY id LIMIT ? OFFSET ?", (limit, offset)
        ).fetchall()
    return [row[0] for row in rows]


def update_url_in_database(db: Database, url: str, date_modified: str, http_code: int) -> None:
    """Record when *url* was last processed and the HTTP code it ended with."""
    with db.lock:
        db.connection.execute(
            "UPDATE urls SET date_modified = ?, http_code = ? WHERE url = ?",
            (date_modified, http_code, url),
        )


def send_url_to_flaresolverr(db: Database, url: str) -> tuple[int, FlareSolverrResponse]:
    """Ask FlareSolverr to load *url*; return the HTTP status and the decoded answer."""
    flaresolverr_url = get_configuration_value(db, "flaresolverr_url")
    payload = {"cmd": "request.get", "url": url, "maxTimeout": FLARESOLVERR_MAX_TIMEOUT_MS}
    try:
        response = requests.post(
            flaresolverr_url,
            headers={"Content-Type": "application/json"},
            json=payload,
        )
    except requests.RequestException as error:
        raise ProcessingError("Failed to send request to Flaresolverr") from error
    try:
        body = FlareSolverrResponse.from_dict(response.json())
    except ValueError as error:
        raise ProcessingError("Failed to read response body") from error
    return response.status_code, body


def _recently_processed(db: Database, url: str, age_url: int) -> bool:
    with db.lock:
        row = db.connection.execute(
            "SELECT date_modified, http_code FROM urls WHERE url = ?", (url,)
        ).fetchone()
    if row is None:
        return False
    date_modified, http_code = row
    if date_modified is None:
        return False
    if not isinstance(http_code, int):
        http_code = 0
    elapsed = datetime.now(timezone.utc) - _parse_rfc3339(date_modified)
    hours = int(elapsed / timedelta(hours=1))
    if hours <= age_url and http_code == 200:
        print(
            colored(
                f"Skipping URL as it was modified less than {age_url} hours ago: {url}",
                "cyan",
            )
        )
        return True
    return False


def _import_product(
    db: Database,
    wp: Auth,
    url: str,
    scraped: ScrapedData,
    product_url: str,
    parent: int,
) -> bool:
    """Create the product unless it exists; tell whether the category step should follow."""
    try:
        info = wp.find_product_by_custom_field("ps_product_id", str(scraped.product_id))
    except WordPressError as error:
        print(f"Error occurred: {error}", file=sys.stderr)
    else:
        if info.status == "found":
            print(colored(f"Product found, with id: {info.product_id or 0}", "yellow"))
            return False
        if info.status == "notfound":
            print(colored("Product not found", "cyan"))
        else:
            print(colored("An unknown error occurred", "red"))

    print(
        colored(
            f"Creating product: {scraped.title} | id: {scraped.product_id}",
            "green",
            attrs=["bold"],
        )
    )
    try:
        wp.create_product(
            scraped.title,
            "draft",
            "simple",
            True,
            True,
            scraped.features,
            scraped.description,
            scraped.price_ht,
            [parent & _U32_MASK],
            scraped.image_urls,
            scraped.product_id,
            product_url,
        )
    except WordPressError as error:
        print(colored("Product created failed", "red"), file=sys.stderr)
        update_url_in_database(db, url, _now(), http_code_from_error(str(error)))
        return False
    print(colored("Product created successfully", "green"))
    return True


def _sync_category(wp: Auth, breadcrumb: dict[str, str], crumb_id: str, parent: int) -> int:
    """Find or create the category of *breadcrumb*; return the parent for the next one."""
    ps_category = extract_id_from_url(crumb_id)
    try:
        info = wp.find_category_by_custom_field(ps_category)
    except WordPressError as error:
        print(colored(f"Failed to find category: {error}", "red"), file=sys.stderr)
        return parent

    if info.status == "found":
        print(colored(f'Category found: "{info.category_name or "Unknown"}"', "yellow"))
        return parent if info.category_id is None else info.category_id

    if info.status == "notfound":
        print(colored("No category found", "cyan"))
        try:
            response = wp.create_category(breadcrumb["name"], parent & _U32_MASK, ps_category)
        except WordPressError as error:
            print(colored(f"Failed to create category: {error}", "red"), file=sys.stderr)
            return parent
        print(colored("Category created successfully", "green"))
        new_id = response.get("id") if isinstance(response, dict) else None
        if isinstance(new_id, int) and not isinstance(new_id, bool) and _I64_MIN <= new_id <= _I64_MAX:
            return new_id
        print(colored("Failed to extract parent_id from the response", "red"), file=sys.stderr)
        return parent

    print(colored(f"Failed to create category: {info.message!r}", "red"), file=sys.stderr)
    return parent


def process_url(db: Database, url: str) -> None:
    """Scrape *url* and import its categories and product, unless it was done recently."""
    age_url = get_configuration_value_as_int(db, "age_url")
    if _recently_processed(db, url, age_url):
        return

    status, body = send_url_to_flaresolverr(db, url)
    if not _is_success(status):
        print(
            colored(
                f"Failed to create product with status {_status_text(status)}: {body!r}",
                "red",
            ),
            file=sys.stderr,
        )
        update_url_in_database(db, url, _now(), status)
        generate_random_delay(500, 6000)
        raise ProcessingError("Failed to process URL due to FlareSolverr error")

    print(colored("Scraping success", "green"))
    scraped = extract_data(body)

    wp = Auth(
        get_configuration_value(db, "wordpress_url"),
        get_configuration_value(db, "username_api"),
        get_configuration_value(db, "password_api"),
    )
    breadcrumbs = scraped.breadcrumbs
    if not breadcrumbs:
        raise ProcessingError(f"No breadcrumbs found on page: {url}")
    last_index = len(breadcrumbs) - 1

    parent = get_configuration_value_as_int(db, "wordpress_parent")
    for index, breadcrumb in enumerate(breadcrumbs):
        crumb_id = breadcrumb.get("id")
        if crumb_id is None:
            continue
        if index == last_index and not _import_product(
            db, wp, url, scraped, body.solution.url, parent
        ):
            continue
        parent = _sync_category(wp, breadcrumb, crumb_id, parent)

    generate_random_delay(1000, 8000)
    update_url_in_database(db, url, _now(), status)


def _process_logged(db: Database, url: str) -> None:
    try:
        process_url(db, url)
    except Exception as error:  # one failing URL must not stop the others
        print(f"Failed to process URL: {error!r}", file=sys.stderr)


def process_urls_dynamically(db: Database, batch_size: int, max_concurrent_tasks: int) -> None:
    """Process every stored URL, batch by batch, with a bounded number of workers."""
    if max_concurrent_tasks < 1:
        raise ValueError("max_concurrent_tasks must be at least 1")
    offset = 0
    with ThreadPoolExecutor(max_workers=max_concurrent_tasks) as executor:
        while urls := get_urls_batch(db, offset, batch_size):
            list(executor.map(lambda url: _process_logged(db, url), urls))
            offset += batch_size