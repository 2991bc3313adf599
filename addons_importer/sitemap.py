"""Fetching the marketplace sitemap through FlareSolverr and storing its URLs."""

from __future__ import annotations

import re
import sqlite3
import sys
from datetime import datetime, timedelta, timezone
from xml.parsers import expat

import requests
from termcolor import colored

from addons_importer.config import ConfigurationError, get_configuration_value
from addons_importer.database import Database, insert_sitemap_into_sql

_PRE = re.compile(r"<pre.*?>(.*?)</pre>", re.S)
_SITEMAP_INDEX = re.compile(r"<sitemapindex[^>]*>(.*?)</sitemapindex>", re.S)
_URLSET = re.compile(r"<urlset[^>]*>(.*?)</urlset>", re.S)
_SITEMAP_LINE = re.compile(r"^Sitemap:\s*(?P<url>https?://\S+)$", re.I | re.M)
_XML_DECLARATION = re.compile(r"\A\s*<\?xml[^>]*\?>")
_WRAPPER = "sitemap-index-fragment"


class SitemapError(Exception):
    """Raised when the sitemap cannot be fetched or understood."""


def _first_group(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return None if match is None else match.group(1)


def extract_pre_content(html: str) -> str | None:
    """Return the content of the first ``<pre>`` element."""
    return _first_group(_PRE, html)


def extract_sitemap_content(html: str) -> str | None:
    """Return the content inside the first ``<sitemapindex>`` element."""
    return _first_group(_SITEMAP_INDEX, html)


def extract_urlset_content(html: str) -> str | None:
    """Return the content inside the first ``<urlset>`` element."""
    return _first_group(_URLSET, html)


def _fetch_via_flaresolverr(flaresolverr_url: str, url: str, user_agent: str) -> str:
    payload = {"cmd": "request.get", "url": url, "user_agent": user_agent}
    try:
        response = requests.post(flaresolverr_url, json=payload)
    except requests.RequestException as error:
        raise SitemapError("Failed to send request to Flaresolverr") from error
    try:
        data = response.json()
    except ValueError as error:
        raise SitemapError("Failed to parse Flaresolverr response as JSON") from error
    solution = data.get("solution") if isinstance(data, dict) else None
    body = solution.get("response") if isinstance(solution, dict) else None
    if not isinstance(body, str):
        raise SitemapError("Failed to parse Flaresolverr response as JSON")
    return body


def get_sitemap_index_content(db: Database, robots_url: str) -> str:
    """Find the sitemap named in robots.txt and return the inside of its index."""
    flaresolverr_url = get_configuration_value(db, "flaresolverr_url")
    user_agent = get_configuration_value(db, "user_agent")

    robots_body = _fetch_via_flaresolverr(flaresolverr_url, robots_url, user_agent)
    pre_content = extract_pre_content(robots_body)
    if pre_content is None:
        raise SitemapError("Failed to extract content from <pre> tags")

    match = _SITEMAP_LINE.search(pre_content)
    if match is None:
        raise SitemapError("Failed to find sitemap URL in robots.txt")

    sitemap_body = _fetch_via_flaresolverr(flaresolverr_url, match.group("url"), user_agent)
    content = extract_sitemap_content(sitemap_body)
    if content is None:
        raise SitemapError("Failed to extract content from <sitemapindex> tags")
    return content


def _sitemap_locations(index_content: str) -> list[str]:
    """The ``<loc>`` values found inside ``<sitemap>`` entries, in order."""
    locations: list[str] = []
    sitemap_depth = 0
    loc_text: list[str] | None = None

    def start(name: str, _attrs: dict) -> None:
        nonlocal sitemap_depth, loc_text
        if name == "sitemap":
            sitemap_depth += 1
        elif name == "loc" and sitemap_depth and loc_text is None:
            loc_text = []

    def end(name: str) -> None:
        nonlocal sitemap_depth, loc_text
        if name == "sitemap":
            sitemap_depth = max(sitemap_depth - 1, 0)
        elif name == "loc" and loc_text is not None:
            locations.append("".join(loc_text).strip())
            loc_text = None

    def characters(data: str) -> None:
        if loc_text is not None:
            loc_text.append(data)

    parser = expat.ParserCreate()
    parser.StartElementHandler = start
    parser.EndElementHandler = end
    parser.CharacterDataHandler = characters
    body = _XML_DECLARATION.sub("", index_content, count=1)
    try:
        parser.Parse(f"<{_WRAPPER}>{body}</{_WRAPPER}>", True)
    except expat.ExpatError as error:
        raise SitemapError(
            f"Error at position {error.lineno}:{error.offset}: {error}"
        ) from error
    return locations


def get_sitemap_urls_content(
    db: Database, sitemap_index_content: str, sitemap_lang: str
) -> str:
    """Fetch the first sitemap for *sitemap_lang* and return the inside of its urlset."""
    flaresolverr_url = get_configuration_value(db, "flaresolverr_url")
    user_agent = get_configuration_value(db, "user_agent")
    marker = f"sitemap_{sitemap_lang}"

    for location in _sitemap_locations(sitemap_index_content):
        if marker not in location:
            continue
        body = _fetch_via_flaresolverr(flaresolverr_url, location, user_agent)
        content = extract_urlset_content(body)
        if content is None:
            raise SitemapError("Failed to extract XML content from response")
        return content
    raise SitemapError("No matching sitemap URL found")


def get_last_sitemap_insert_date(db: Database) -> str | None:
    """Return when the sitemap was last stored, if ever."""
    with db.lock:
        row = db.connection.execute(
            "SELECT value FROM configuration WHERE key = 'last_sitemap_insert_date'"
        ).fetchone()
    return None if row is None else row[0]


def _parse_rfc3339(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as error:
        raise SitemapError(f"Invalid date: {value}") from error
    if parsed.tzinfo is None:
        raise SitemapError(f"Invalid date: {value}")
    return parsed


def _updated_recently(db: Database, sitemap_frequency_update: int) -> bool:
    try:
        last_insert = get_last_sitemap_insert_date(db)
    except sqlite3.Error:
        return False
    if last_insert is None:
        return False
    elapsed = datetime.now(timezone.utc) - _parse_rfc3339(last_insert)
    if elapsed < timedelta(days=sitemap_frequency_update):
        print(
            colored(
                f"Last sitemap update was less than {sitemap_frequency_update} days ago",
                "yellow",
            )
        )
        return True
    return False


def sitemap_update(db: Database, sitemap_frequency_update: int) -> None:
    """Refresh the stored URLs unless the sitemap was stored less than N days ago."""
    robots_url = get_configuration_value(db, "robots_url")
    sitemap_lang = get_configuration_value(db, "sitemap_lang")

    if _updated_recently(db, sitemap_frequency_update):
        print(colored("Skipping update sitemap", "yellow"))
        return

    try:
        index_content = get_sitemap_index_content(db, robots_url)
    except (SitemapError, ConfigurationError) as error:
        print(colored(f"Failed to extract sitemap index data: {error}", "red"), file=sys.stderr)
        raise

    try:
        urls_content = get_sitemap_urls_content(db, index_content, sitemap_lang)
    except (SitemapError, ConfigurationError) as error:
        print(colored(f"Failed to fetch sitemap url data: {error}", "red"), file=sys.stderr)
        raise

    try:
        insert_sitemap_into_sql(db, urls_content)
    except (ValueError, sqlite3.Error) as error:
        print(
            colored(f"Failed to added sitemap data into database: {error}", "red"),
            file=sys.stderr,
        )
        raise
    print(colored("Added sitemap data successfully into database", "green"))