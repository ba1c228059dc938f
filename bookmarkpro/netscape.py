"""Netscape bookmark HTML (the browser import/export format) for an ItemStore.

This is a one-shot seed/export path, not storage: importing always builds a
fresh store.
"""

from __future__ import annotations

import html
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup  # type: ignore

from .errors import InvalidUrl
from .ids import Clock, IdSource, format_date, generate_id, parse_date, system_clock
from .log import get_logger
from .model import ROOT_ID, ROOT_NAME, Bookmark, Folder, Item
from .store import ItemStore
from .url_norm import normalize_bookmark_url

log = get_logger(__name__)
_WS_RE = re.compile(r"\s+")
_ICON_ATTR = "data-bmpro-icon"


def export_html(store: ItemStore, out_path: Path, *, title: Optional[str] = None) -> int:
    """Write the whole tree as a Firefox-importable bookmarks file; returns the item count written."""
    title = title or store.root.name
    lines: List[str] = []
    lines.append("<!DOCTYPE NETSCAPE-Bookmark-file-1>")
    lines.append("<!-- This is an automatically generated file. DO NOT EDIT! -->")
    lines.append('<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">')
    lines.append(f"<TITLE>{html.escape(title)}</TITLE>")
    lines.append(f"<H1>{html.escape(title)}</H1>")
    lines.append("<DL><p>")
    count = _write_folder(lines, store, ROOT_ID, indent="    ")
    lines.append("</DL><p>")

    out_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    log.info("Wrote %d items to bookmarks HTML: %s", count, out_path)
    return count


def _write_folder(lines: List[str], store: ItemStore, folder_id: str, indent: str) -> int:
    count = 0
    for item in store.get_children(folder_id):
        count += 1
        attrs = _date_attrs(item)
        if isinstance(item, Folder):
            if item.icon_overlay:
                attrs.append(f'{_ICON_ATTR}="{html.escape(item.icon_overlay, quote=True)}"')
            lines.append(f"{indent}<DT><H3{_join_attrs(attrs)}>{html.escape(item.name)}</H3>")
            lines.append(f"{indent}<DL><p>")
            count += _write_folder(lines, store, item.id, indent + "    ")
            lines.append(f"{indent}</DL><p>")
        else:
            attrs.insert(0, f'HREF="{html.escape(item.url, quote=True)}"')
            lines.append(f"{indent}<DT><A{_join_attrs(attrs)}>{html.escape(item.name)}</A>")
    return count


def _date_attrs(item: Item) -> List[str]:
    d = parse_date(item.date)
    if d is None:
        return []
    ts = int(datetime(d.year, d.month, d.day).timestamp())
    return [f'ADD_DATE="{ts}"']


def _join_attrs(attrs: List[str]) -> str:
    return "".join(f" {a}" for a in attrs)


def import_html(
    path: Path,
    *,
    id_source: Optional[IdSource] = None,
    clock: Optional[Clock] = None,
    root_name: Optional[str] = None,
) -> ItemStore:
    """Parse a bookmarks HTML export into a fresh store.

    Folders keep their nesting; links that are not http(s) (``place:``,
    ``javascript:``, ...) or that have no host are skipped with a warning.
    """
    text = path.read_text(encoding="utf-8", errors="replace")
    soup = BeautifulSoup(text, "lxml")
    clock = clock or system_clock
    new_id = id_source or generate_id

    top = soup.find("dl")
    if top is None:
        raise ValueError(f"Could not find <DL> root in bookmarks file: {path}")

    h1 = soup.find("h1")
    name = root_name or (h1.get_text(strip=True) if h1 else "") or ROOT_NAME
    today = format_date(clock())
    items: List[Item] = [Folder(id=ROOT_ID, name=name, parent_id=None, date=today)]
    taken = {ROOT_ID}
    # Each DL maps to the folder that owns it; the outermost DL is the root.
    owners: Dict[int, str] = {id(top): ROOT_ID}
    skipped = 0

    def _fresh_id(label: str) -> str:
        candidate = new_id(label)
        while candidate in taken:
            candidate = new_id(label)
        taken.add(candidate)
        return candidate

    for el in soup.find_all(["h3", "a"]):
        dl = el.find_parent("dl")
        parent_id = owners.get(id(dl)) if dl is not None else None
        if parent_id is None:
            continue
        label = _WS_RE.sub(" ", el.get_text(strip=True))
        date = _date_from_attr(el.get("add_date")) or today

        if el.name == "h3":
            folder = Folder(
                id=_fresh_id(label),
                name=label or "Untitled",
                parent_id=parent_id,
                date=date,
                icon_overlay=el.get(_ICON_ATTR) or "Folder",
            )
            items.append(folder)
            sub_dl = el.find_next(["dl", "h3", "a"])
            if sub_dl is not None and sub_dl.name == "dl":
                owners[id(sub_dl)] = folder.id
            else:
                log.warning("Folder without DL: %s", label)
            continue

        href = (el.get("href") or "").strip()
        url = _importable_url(href)
        if url is None:
            skipped += 1
            log.warning("Skipping bookmark %r with unsupported URL %r", label, href)
            continue
        items.append(Bookmark(id=_fresh_id(label), name=label or url, url=url, parent_id=parent_id, date=date))

    store = ItemStore(items, id_source=id_source, clock=clock)
    log.info("Imported %d items from %s (%d skipped)", len(store) - 1, path, skipped)
    return store


def _importable_url(href: str) -> Optional[str]:
    if not href:
        return None
    scheme = urlparse(href).scheme.lower()
    if scheme and scheme not in ("http", "https"):
        return None
    try:
        return normalize_bookmark_url(href)
    except InvalidUrl:
        return None


def _date_from_attr(v) -> Optional[str]:
    if v is None:
        return None
    try:
        return format_date(datetime.fromtimestamp(int(v)))
    except (ValueError, OverflowError, OSError):
        return None
