"""Per-user UI state layered on an ItemStore.

A session tracks the folder being viewed, the multi-selection, the clipboard,
and the search/sort settings. The presentation layer drives it and re-renders
from ``current_items()`` after each call (or from ``ItemStore.subscribe``).
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from .config import Settings
from .errors import NotFound
from .log import get_logger
from .model import (
    ROOT_ID,
    Bookmark,
    ClipboardAction,
    ClipboardEntry,
    ClipboardState,
    Folder,
    Item,
    SearchFilter,
    SortDirection,
    SortMode,
    StoreEvent,
    clone_item,
)
from .store import ItemStore
from .url_norm import favicon_url
from .view import is_search_active, listing, search

log = get_logger(__name__)


class Session:
    def __init__(self, store: ItemStore, *, settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.store = store
        self.current_folder_id: str = ROOT_ID
        self.selected: Set[str] = set()
        self.clipboard = ClipboardState()
        self.search_query: str = ""
        self.search_filter = SearchFilter(settings.search_filter)
        self.sort_mode = SortMode.parse(settings.sort_mode)
        self.sort_direction = SortDirection(settings.sort_direction)
        self.favicon_size = settings.favicon_size
        self._unsubscribe = store.subscribe(self._on_store_change)

    def close(self) -> None:
        self._unsubscribe()

    # Navigation

    @property
    def current_folder(self) -> Optional[Folder]:
        item = self.store.get_by_id(self.current_folder_id)
        return item if isinstance(item, Folder) else None

    def navigate_to(self, folder_id: str) -> None:
        item = self.store.get_by_id(folder_id)
        if item is None or not item.is_folder:
            raise NotFound(folder_id, f"Not a folder: {folder_id!r}")
        self.current_folder_id = folder_id
        self.selected.clear()

    def navigate_up(self) -> None:
        folder = self.current_folder
        if folder is not None and folder.parent_id is not None:
            self.navigate_to(folder.parent_id)

    def can_navigate_up(self) -> bool:
        return self.current_folder_id != ROOT_ID and not is_search_active(self.search_query)

    def path(self) -> List[str]:
        return self.store.get_path(self.current_folder_id)

    # Items in the current folder

    def create_folder(self, name: str) -> Folder:
        return self.store.create_folder(name, self.current_folder_id)

    def create_bookmark(self, name: str, url: str) -> Bookmark:
        return self.store.create_bookmark(name, url, self.current_folder_id)

    def rename(self, item_id: str, new_name: str) -> Item:
        return self.store.rename(item_id, new_name)

    def delete(self, ids: Iterable[str]) -> int:
        removed = self.store.delete(ids)
        self.selected.clear()
        return removed

    # Selection

    def toggle(self, item_id: str) -> bool:
        """Flip membership of ``item_id``; returns True when it is now selected.

        Only items in the current view (folder listing or search results) can be selected.
        """
        if item_id not in self.store:
            raise NotFound(item_id)
        if item_id not in self.selected and item_id not in {i.id for i in self.current_items()}:
            raise NotFound(item_id, f"Not in the current view: {item_id!r}")
        if item_id in self.selected:
            self.selected.discard(item_id)
            return False
        self.selected.add(item_id)
        return True

    def clear_selection(self) -> None:
        self.selected.clear()

    def select_all(self) -> None:
        self.selected = {i.id for i in self.current_items()}

    # Clipboard

    def copy_items(self, ids: Iterable[str]) -> int:
        entries = [self.store.snapshot(i) for i in self._top_level(x for x in ids if x != ROOT_ID)]
        return self._fill_clipboard(entries, ClipboardAction.COPY)

    def cut_items(self, ids: Iterable[str]) -> int:
        entries = [ClipboardEntry(item=clone_item(self.store.get_by_id(i))) for i in self._top_level(ids)]
        return self._fill_clipboard(entries, ClipboardAction.CUT)

    def paste(self) -> List[str]:
        """Paste the clipboard into the current folder; returns the pasted top-level ids.

        Cut items are moved (items deleted since the cut are skipped); copied
        items are recreated from their copy-time snapshot. A rejected paste
        leaves both the tree and the clipboard untouched.
        """
        if self.clipboard.is_empty:
            return []
        target = self.current_folder_id
        if self.clipboard.action is ClipboardAction.CUT:
            live = [i for i in self.clipboard.ids() if i in self.store]
            self.store.move_many(live, target)
            pasted = live
        else:
            pasted = [self.store.paste_snapshot(entry, target) for entry in self.clipboard.items]
        log.debug("Pasted %d items (%s) into %s", len(pasted), self.clipboard.action.value, target)
        self.clear_clipboard()
        return pasted

    def clear_clipboard(self) -> None:
        self.clipboard = ClipboardState()

    # Search and sort

    def set_search(self, query: str, search_filter: Optional[SearchFilter] = None) -> None:
        self.search_query = query
        if search_filter is not None:
            self.search_filter = SearchFilter(search_filter)

    def set_sort_mode(self, mode: SortMode) -> None:
        self.sort_mode = SortMode(mode)

    def toggle_sort_direction(self) -> SortDirection:
        self.sort_direction = self.sort_direction.flipped()
        return self.sort_direction

    def current_items(self) -> List[Item]:
        if is_search_active(self.search_query):
            return search(self.store, self.search_query, self.search_filter)
        return listing(self.store, self.current_folder_id, self.sort_mode, self.sort_direction)

    def favicon(self, item: Item) -> str:
        if isinstance(item, Bookmark):
            return favicon_url(item.url, self.favicon_size)
        return ""

    # Internals

    def _top_level(self, ids: Iterable[str]) -> List[str]:
        # Unknown ids are skipped, and an id whose ancestor is also listed rides along with it.
        wanted: List[str] = []
        for i in ids:
            if i in self.store and i not in wanted:
                wanted.append(i)
        return [i for i in wanted if not any(self.store.is_ancestor(a, i) for a in wanted)]

    def _fill_clipboard(self, entries: List[ClipboardEntry], action: ClipboardAction) -> int:
        self.clipboard = ClipboardState(items=entries, action=action)
        self.selected.clear()
        return len(entries)

    def _on_store_change(self, event: StoreEvent) -> None:
        if event.kind != "deleted":
            return
        gone = set(event.ids)
        self.selected -= gone
        if self.current_folder_id in gone:
            log.debug("Current folder %s was deleted; returning to root", self.current_folder_id)
            self.current_folder_id = ROOT_ID
