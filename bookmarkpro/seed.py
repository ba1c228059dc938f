from __future__ import annotations

from datetime import timedelta
from typing import List, Optional

from .config import Settings
from .ids import Clock, IdSource, format_date, system_clock
from .model import ROOT_ID, ROOT_NAME, Bookmark, Folder, Item
from .store import ItemStore

# (kind, id, name, parent, days ago, icon overlay or url), in display insertion order
DEMO_TREE = [
    ("folder", "dcim", "DCIM", ROOT_ID, 5, "Camera"),
    ("folder", "docs", "Documents", ROOT_ID, 3, "Briefcase"),
    ("folder", "work_docs", "Work Projects", "docs", 2, "Building2"),
    ("bookmark", "google_bm", "Google Search", ROOT_ID, 1, "https://google.com"),
    ("bookmark", "github_bm", "GitHub", ROOT_ID, 0, "https://github.com"),
    ("folder", "music", "Music", ROOT_ID, 7, "Headphones"),
]


def demo_items(clock: Clock = system_clock, root_name: str = ROOT_NAME) -> List[Item]:
    now = clock()

    def _ago(days: int) -> str:
        return format_date(now - timedelta(days=days))

    items: List[Item] = [Folder(id=ROOT_ID, name=root_name, parent_id=None, date=_ago(0))]
    for kind, item_id, name, parent, days, extra in DEMO_TREE:
        if kind == "folder":
            items.append(Folder(id=item_id, name=name, parent_id=parent, date=_ago(days), icon_overlay=extra))
        else:
            items.append(Bookmark(id=item_id, name=name, url=extra, parent_id=parent, date=_ago(days)))
    return items


def build_store(
    settings: Optional[Settings] = None,
    *,
    id_source: Optional[IdSource] = None,
    clock: Optional[Clock] = None,
) -> ItemStore:
    """Create a fresh store seeded according to ``settings.seed`` (``demo`` or ``empty``)."""
    settings = settings or Settings()
    clock = clock or system_clock
    seed = (settings.seed or "demo").strip().lower()
    if seed == "demo":
        items = demo_items(clock, root_name=settings.root_name)
    elif seed == "empty":
        items = [Folder(id=ROOT_ID, name=settings.root_name, parent_id=None, date=format_date(clock()))]
    else:
        raise ValueError(f"Unknown seed {settings.seed!r} (expected 'demo' or 'empty')")
    return ItemStore(items, id_source=id_source, clock=clock)
