"""SQLite storage for sitemap URLs and configuration."""

from __future__ import annotations

import re
import sqlite3
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable
from xml.parsers import expat

DATABASE_FILENAME = "urls.sqlite"
BASE_URL = "https://addons.prestashop.com"
CONTENT_PATH = "/content/"

_PRODUCT_SLUG = re.compile(r"\d+-")
_RFC3339 = re.compile(
    r"\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:[Zz]|[+-]\d{2}:\d{2})",
    re.ASCII,
)
_XML_DECLARATION = re.compile(r"\A\s*<\?xml[^>]*\?>")
_WRAPPER = "sitemap-fragment"

_CREATE_URLS = """
    CREATE TABLE IF NOT EXISTS urls (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        url TEXT NOT NULL UNIQUE,
        last_mod TEXT,
        change_freq TEXT,
        http_code INTEGER,
        date_modified TEXT
    )
"""

_CREATE_CONFIGURATION = """
    CREATE TABLE IF NOT EXISTS configuration (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        key TEXT NOT NULL UNIQUE,
        value TEXT NOT NULL
    )
"""

_UPSERT_URL = """
    INSERT INTO urls (url, last_mod, change_freq) VALUES (?, ?, ?)
    ON CONFLICT(url) DO UPDATE SET last_mod = excluded.last_mod,
                                   change_freq = excluded.change_freq
"""

_UPSERT_INSERT_DATE = """
    INSERT INTO configuration (key, value) VALUES ('last_sitemap_insert_date', ?)
    ON CONFLICT(key) DO UPDATE SET value = excluded.value
"""


class Database:
    """A SQLite connection shared between worker threads, guarded by a lock."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.connection = connection
        self.lock = threading.RLock()


def init_database(directory: str | Path) -> Database:
    """Open ``urls.sqlite`` in *directory*, creating the tables for a new file."""
    path = Path(directory) / DATABASE_FILENAME
    existed = path.exists()
    connection = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
    if not existed:
        connection.execute(_CREATE_URLS)
        connection.execute(_CREATE_CONFIGURATION)
    return Database(connection)


def is_product_url(url: str) -> bool:
    """Tell whether *url* is a product page of the addons marketplace."""
    if BASE_URL in url and CONTENT_PATH in url:
        return False
    if not url.startswith(BASE_URL):
        return False
    parts = url[len(BASE_URL):].split("/")
    if len(parts) < 4:
        return False
    id_and_name = parts[3]
    return bool(_PRODUCT_SLUG.match(id_and_name)) and id_and_name.endswith(".html")


def _is_rfc3339(value: str) -> bool:
    if not _RFC3339.fullmatch(value):
        return False
    normalized = value[:10] + "T" + value[11:]
    if normalized[-1] in "Zz":
        normalized = normalized[:-1] + "+00:00"
    try:
        datetime.fromisoformat(normalized)
    except ValueError:
        return False
    return True


class _UrlEntryReader:
    """Streams ``<url>`` entries out of sitemap XML, keeping state between them."""

    _FIELDS = ("loc", "lastmod", "changefreq")

    def __init__(self, on_entry: Callable[[str, str, str], None]) -> None:
        self._on_entry = on_entry
        self.url = ""
        self.last_mod = ""
        self.change_freq = ""
        self.skip = False
        self._field: str | None = None
        self._nested = 0
        self._text: list[str] = []

    def start(self, name: str, _attrs: dict) -> None:
        if self._field is not None:
            self._nested += 1
        elif name in self._FIELDS:
            self._field = name
            self._nested = 0
            self._text = []

    def end(self, name: str) -> None:
        if self._field is not None:
            if self._nested:
                self._nested -= 1
                return
            field, self._field = self._field, None
            self._finish_field(field, "".join(self._text).strip())
        elif name == "url" and not self.skip:
            self._on_entry(self.url, self.last_mod, self.change_freq)

    def characters(self, data: str) -> None:
        if self._field is not None:
            self._text.append(data)

    def _finish_field(self, field: str, text: str) -> None:
        if field == "loc":
            self.url = text
            self.skip = not is_product_url(text)
            if self.skip:
                print(f"Skipping URL: {text}", file=sys.stderr)
        elif field == "lastmod":
            self.last_mod = text
            if not _is_rfc3339(text):
                print(f"Invalid date format: {text}", file=sys.stderr)
                self.skip = True
        else:
            self.change_freq = text


def insert_sitemap_into_sql(db: Database, xml_content: str) -> None:
    """Insert or update the product URLs listed in sitemap XML.

    Records the time of the insert under ``last_sitemap_insert_date``.
    Raises ValueError when the XML is malformed.
    """
    with db.lock:
        connection = db.connection

        def store(url: str, last_mod: str, change_freq: str) -> None:
            connection.execute(_UPSERT_URL, (url, last_mod, change_freq))

        reader = _UrlEntryReader(store)
        parser = expat.ParserCreate()
        parser.StartElementHandler = reader.start
        parser.EndElementHandler = reader.end
        parser.CharacterDataHandler = reader.characters

        body = _XML_DECLARATION.sub("", xml_content, count=1)
        try:
            parser.Parse(f"<{_WRAPPER}>{body}</{_WRAPPER}>", True)
        except expat.ExpatError as error:
            raise ValueError(
                f"Error at position {error.lineno}:{error.offset}: {error}"
            ) from error

        current_date = datetime.now(timezone.utc).isoformat()
        connection.execute(_UPSERT_INSERT_DATE, (current_date,))