"""Command line entry point: refresh the sitemap, then import every product."""

from __future__ import annotations

import argparse
import sqlite3
import sys
import time
from pathlib import Path

from termcolor import colored

from addons_importer.config import (
    ConfigurationError,
    get_configuration_value_as_count,
    get_configuration_value_as_int,
    load_configuration,
)
from addons_importer.database import Database, init_database
from addons_importer.process import process_urls_dynamically
from addons_importer.sitemap import SitemapError, sitemap_update

SETTINGS_FILENAME = "Settings.toml"

_CONFIG_ERRORS = (ConfigurationError, sqlite3.Error)
_SITEMAP_ERRORS = (SitemapError, ConfigurationError, ValueError, sqlite3.Error)
_PROCESS_ERRORS = (ValueError, sqlite3.Error)


def _fail(message: str) -> int:
    print(colored(message, "red"), file=sys.stderr)
    return 1


def _run(db: Database, directory: Path) -> int:
    config_path = directory / SETTINGS_FILENAME
    if not config_path.exists():
        return _fail("Settings.toml file not found")

    try:
        load_configuration(db, config_path)
    except _CONFIG_ERRORS as error:
        return _fail(f"Failed to load configuration: {error}")

    try:
        frequency = get_configuration_value_as_int(db, "sitemap_frequency_update")
    except _CONFIG_ERRORS as error:
        return _fail(str(error))

    try:
        sitemap_update(db, frequency)
    except _SITEMAP_ERRORS as error:
        return _fail(f"Failed to update sitemap: {error}")

    try:
        batch_size = get_configuration_value_as_count(db, "batch_size")
        max_concurrency = get_configuration_value_as_count(db, "max_concurrency")
    except _CONFIG_ERRORS as error:
        return _fail(str(error))

    start = time.perf_counter()
    try:
        process_urls_dynamically(db, batch_size, max_concurrency)
    except _PROCESS_ERRORS as error:
        return _fail(f"Failed to process URLs: {error}")
    elapsed = time.perf_counter() - start
    print(colored(f"Time to process URLs: {elapsed:.3f}s", "green"))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the importer; return the process exit status."""
    parser = argparse.ArgumentParser(
        prog="addons-importer",
        description="Import marketplace products into a WooCommerce shop.",
    )
    parser.add_argument(
        "-d",
        "--directory",
        type=Path,
        default=None,
        help="directory holding Settings.toml and urls.sqlite (default: current directory)",
    )
    args = parser.parse_args(argv)
    directory = args.directory if args.directory is not None else Path.cwd()

    try:
        db = init_database(directory)
    except (sqlite3.Error, OSError) as error:
        return _fail(f"Failed to initialize database: {error}")
    print(colored("Database initialized successfully", "green"))

    try:
        return _run(db, directory)
    finally:
        db.connection.close()


if __name__ == "__main__":
    sys.exit(main())