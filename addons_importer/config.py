"""Loading the settings file into the database and reading values back."""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import NamedTuple

from termcolor import colored

from addons_importer.database import Database

_U32_MAX = 2**32 - 1
_USIZE_MAX = 2**64 - 1
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1

_UNSIGNED = re.compile(r"\+?[0-9]+")
_SIGNED = re.compile(r"[+-]?[0-9]+")


class ConfigurationError(Exception):
    """Raised when the settings cannot be read, parsed or found."""


class _Setting(NamedTuple):
    section: str
    field: str
    key: str
    numeric: bool


_SETTINGS = (
    _Setting("base", "app_name", "app_name", False),
    _Setting("base", "app_version", "app_version", False),
    _Setting("processing", "batch_size", "batch_size", True),
    _Setting("processing", "max_concurrency", "max_concurrency", True),
    _Setting("processing", "age_url", "age_url", True),
    _Setting("prestashop_addon", "robots_url", "robots_url", False),
    _Setting("prestashop_addon", "sitemap_lang", "sitemap_lang", False),
    _Setting("prestashop_addon", "sitemap_frequency_update", "sitemap_frequency_update", True),
    _Setting("flaresolverr", "flaresolverr_url", "flaresolverr_url", False),
    _Setting("flaresolverr", "user_agent", "user_agent", False),
    _Setting("wordpress_api", "wordpress_url", "wordpress_url", False),
    _Setting("wordpress_api", "username_api", "username_api", False),
    _Setting("wordpress_api", "password_api", "password_api", False),
    _Setting("wordpress_page", "template", "wordpress_template", False),
    _Setting("wordpress_page", "status", "wordpress_status", False),
    _Setting("wordpress_page", "parent", "wordpress_parent", True),
    _Setting("wordpress_page", "author", "wordpress_author", True),
)


def _parse_settings(text: str) -> dict[str, str]:
    try:
        document = tomllib.loads(text)
    except tomllib.TOMLDecodeError as error:
        raise ConfigurationError(f"Failed to parse settings file: {error}") from error

    values: dict[str, str] = {}
    for setting in _SETTINGS:
        table = document.get(setting.section)
        if not isinstance(table, dict):
            raise ConfigurationError(
                f"Failed to parse settings file: missing table [{setting.section}]"
            )
        if setting.field not in table:
            raise ConfigurationError(
                f"Failed to parse settings file: missing field "
                f"'{setting.field}' in [{setting.section}]"
            )
        value = table[setting.field]
        if setting.numeric:
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U32_MAX:
                raise ConfigurationError(
                    f"Failed to parse settings file: '{setting.field}' in "
                    f"[{setting.section}] must be an unsigned 32-bit integer"
                )
            values[setting.key] = str(value)
        else:
            if not isinstance(value, str):
                raise ConfigurationError(
                    f"Failed to parse settings file: '{setting.field}' in "
                    f"[{setting.section}] must be a string"
                )
            values[setting.key] = value
    return values


def load_configuration(db: Database, file_path: str | Path) -> None:
    """Read the TOML settings file and store every value in the configuration table."""
    try:
        text = Path(file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as error:
        raise ConfigurationError("Failed to read settings file") from error

    values = _parse_settings(text)
    with db.lock:
        db.connection.executemany(
            "INSERT OR REPLACE INTO configuration (key, value) VALUES (?, ?)",
            values.items(),
        )
    print(colored("Configurations loaded and added or updated into database", "green"))


def get_configuration_value(db: Database, key: str) -> str:
    """Return the stored value for *key*."""
    with db.lock:
        row = db.connection.execute(
            "SELECT value FROM configuration WHERE key = ?", (key,)
        ).fetchone()
    if row is None or not isinstance(row[0], str):
        raise ConfigurationError(f"Failed to get configuration for key: {key}")
    return row[0]


def get_configuration_value_as_count(db: Database, key: str) -> int:
    """Return the value for *key* as a non-negative integer."""
    value = get_configuration_value(db, key)
    if _UNSIGNED.fullmatch(value) and int(value) <= _USIZE_MAX:
        return int(value)
    raise ConfigurationError(
        f"Failed to parse configuration value as a non-negative integer for key: {key}"
    )


def get_configuration_value_as_int(db: Database, key: str) -> int:
    """Return the value for *key* as a signed 64-bit integer."""
    value = get_configuration_value(db, key)
    if _SIGNED.fullmatch(value) and _I64_MIN <= int(value) <= _I64_MAX:
        return int(value)
    raise ConfigurationError(
        f"Failed to parse configuration value as an integer for key: {key}"
    )