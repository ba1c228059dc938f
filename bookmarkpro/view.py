from __future__ import annotations

import unicodedata
from datetime import date
from typing import List, Tuple

from .ids import parse_date
from .model import ROOT_ID, Item, SearchFilter, SortDirection, SortMode
from .store import ItemStore


def listing(
    store: ItemStore,
    folder_id: str,
    sort_mode: SortMode = SortMode.BY_NAME,
    direction: SortDirection = SortDirection.ASC,
) -> List[Item]:
    """Direct children of ``folder_id`` in display order.

    - by-name: folders always first; direction flips only the name order.
    - by-date: newest first when ascending.
    - by-type: folders first when ascending.
    - by-size: most children first when ascending; bookmarks count as 0.

    Python's sort is stable (also with ``reverse=True``), so ties keep insertion order.
    """
    items = store.get_children(folder_id)
    desc = direction is SortDirection.DESC

    if sort_mode is SortMode.BY_NAME:
        items.sort(key=lambda i: _name_key(i.name), reverse=desc)
        items.sort(key=lambda i: not i.is_folder)
    elif sort_mode is SortMode.BY_DATE:
        items.sort(key=_date_key, reverse=not desc)
    elif sort_mode is SortMode.BY_TYPE:
        items.sort(key=lambda i: not i.is_folder, reverse=desc)
    elif sort_mode is SortMode.BY_SIZE:
        items.sort(key=lambda i: store.child_count(i.id) if i.is_folder else 0, reverse=not desc)
    else:
        raise ValueError(f"Unsupported sort mode: {sort_mode!r}")
    return items


def search(store: ItemStore, query: str, search_filter: SearchFilter = SearchFilter.ALL) -> List[Item]:
    """Case-insensitive substring match on names across the whole tree (root excluded).

    A blank query means search is inactive and yields nothing.
    """
    if not is_search_active(query):
        return []
    needle = query.casefold()
    out: List[Item] = []
    for _depth, item in store.walk(ROOT_ID):
        if search_filter is not SearchFilter.ALL and item.kind.value != search_filter.value:
            continue
        if needle in item.name.casefold():
            out.append(item)
    return out


def is_search_active(query: str) -> bool:
    return bool((query or "").strip())


def _name_key(name: str) -> Tuple[str, str]:
    # Accents fold onto their base letter ("Éclair" sorts among the e names); the raw casefold breaks ties.
    folded = name.casefold()
    base = "".join(c for c in unicodedata.normalize("NFKD", folded) if not unicodedata.combining(c))
    return base, folded


def _date_key(item: Item) -> date:
    # Unparseable dates sort as the oldest.
    return parse_date(item.date) or date.min
