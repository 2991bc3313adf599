"""Small helpers shared by the importer."""

from __future__ import annotations

import random
import re
import time

_ID_PATTERN = re.compile(r"/(\d+)-[^/]*\Z", re.ASCII)
_U32_MAX = 2**32 - 1


def extract_id_from_url(url: str) -> int:
    """Return the numeric id in the last ``/<id>-<slug>`` path segment, or 0."""
    match = _ID_PATTERN.search(url)
    if match is None:
        return 0
    value = int(match.group(1))
    return value if value <= _U32_MAX else 0


def generate_random_delay(min_delay: int, max_delay: int) -> int:
    """Sleep for a random number of milliseconds in ``[min_delay, max_delay)``.

    Returns the delay that was slept, in milliseconds.
    """
    delay = random.randrange(min_delay, max_delay)
    print(f"Delay: {delay} milliseconds")
    time.sleep(delay / 1000)
    return delay