from __future__ import annotations

import random
import re
import time
from datetime import date, datetime
from typing import Callable, Optional

# Item dates are display strings in en-GB order, as the UI shows them.
DATE_FORMAT = "%d/%m/%Y"

IdSource = Callable[[str], str]
Clock = Callable[[], datetime]

_SLUG_RE = re.compile(r"[^a-z0-9]")


def generate_id(name: str) -> str:
    """Name-seeded id: ``<slug>_<epoch ms>_<random 0-999>``.

    Not unique on its own; the store redraws on collision.
    """
    slug = _SLUG_RE.sub("_", (name or "").lower())
    return f"{slug}_{int(time.time() * 1000)}_{random.randrange(1000)}"


def system_clock() -> datetime:
    return datetime.now()


def format_date(dt: datetime) -> str:
    return dt.strftime(DATE_FORMAT)


def parse_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime((value or "").strip(), DATE_FORMAT).date()
    except ValueError:
        return None
