"""In-memory item store: folders and bookmarks in a single rooted tree.

The store keeps two maps: ``id -> item`` and ``parent id -> child ids`` (in
insertion order). Every mutation validates its preconditions before touching
either map, so a rejected call leaves the tree exactly as it was.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import CycleRejected, InvalidName, NotFound
from .ids import Clock, IdSource, format_date, generate_id, system_clock
from .log import get_logger
from .model import (
    ROOT_ID,
    ROOT_NAME,
    Bookmark,
    ClipboardEntry,
    Folder,
    Item,
    StoreEvent,
    clone_item,
)
from .url_norm import normalize_bookmark_url

log = get_logger(__name__)

Listener = Callable[[StoreEvent], None]

_ID_ATTEMPTS = 64


class ItemStore:
    def __init__(
        self,
        items: Optional[Iterable[Item]] = None,
        *,
        id_source: Optional[IdSource] = None,
        clock: Optional[Clock] = None,
        root_name: str = ROOT_NAME,
    ):
        self._lock = threading.RLock()
        self._items: Dict[str, Item] = {}
        self._children: Dict[str, List[str]] = {}
        self._listeners: List[Listener] = []
        self._id_source: IdSource = id_source or generate_id
        self._clock: Clock = clock or system_clock
        if items is None:
            items = [Folder(id=ROOT_ID, name=root_name, parent_id=None, date=self._today())]
        self._load(items)

    # Construction

    def _load(self, items: Iterable[Item]) -> None:
        for item in items:
            if item.id in self._items:
                raise ValueError(f"Duplicate item id: {item.id!r}")
            self._items[item.id] = item
            if item.is_folder:
                self._children.setdefault(item.id, [])
        for item in self._items.values():
            if item.parent_id is not None:
                self._children.setdefault(item.parent_id, []).append(item.id)
        self.check_invariants()

    def check_invariants(self) -> None:
        """Raise ValueError if the tree is not a single, consistent, rooted tree."""
        with self._lock:
            roots = [i for i in self._items.values() if i.parent_id is None]
            if len(roots) != 1 or roots[0].id != ROOT_ID or not roots[0].is_folder:
                raise ValueError(f"Expected exactly one root folder {ROOT_ID!r}, found {[r.id for r in roots]}")
            for item in self._items.values():
                if item.parent_id is None:
                    continue
                parent = self._items.get(item.parent_id)
                if parent is None:
                    raise ValueError(f"Item {item.id!r} references missing parent {item.parent_id!r}")
                if not parent.is_folder:
                    raise ValueError(f"Item {item.id!r} has non-folder parent {item.parent_id!r}")
                if item.id not in self._children.get(item.parent_id, []):
                    raise ValueError(f"Item {item.id!r} missing from children of {item.parent_id!r}")
            reachable = 1 + len(self.descendant_ids(ROOT_ID))
            if reachable != len(self._items):
                raise ValueError(
                    f"{len(self._items) - reachable} items are not reachable from the root (cycle or detached subtree)"
                )

    # Observers

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for change events; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, kind: str, ids: Iterable[str]) -> None:
        event = StoreEvent(kind=kind, ids=tuple(ids))
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                log.exception("Store listener failed on %s event", kind)

    # Queries

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def get_by_id(self, item_id: str) -> Optional[Item]:
        return self._items.get(item_id)

    @property
    def root(self) -> Folder:
        return self._items[ROOT_ID]  # type: ignore[return-value]

    def items(self) -> List[Item]:
        with self._lock:
            return list(self._items.values())

    def get_children(self, parent_id: str) -> List[Item]:
        with self._lock:
            return [self._items[c] for c in self._children.get(parent_id, [])]

    def child_count(self, folder_id: str) -> int:
        with self._lock:
            return len(self._children.get(folder_id, []))

    def descendant_ids(self, item_id: str) -> List[str]:
        """All transitive descendants of ``item_id`` in pre-order, excluding itself."""
        with self._lock:
            out: List[str] = []
            stack = list(reversed(self._children.get(item_id, [])))
            while stack:
                cid = stack.pop()
                out.append(cid)
                stack.extend(reversed(self._children.get(cid, [])))
            return out

    def walk(self, folder_id: str = ROOT_ID) -> Iterator[Tuple[int, Item]]:
        """Yield ``(depth, item)`` for every item below ``folder_id`` in pre-order.

        The traversal is taken under the lock; later mutations do not affect the iteration.
        """
        out: List[Tuple[int, Item]] = []
        with self._lock:
            stack = [(1, cid) for cid in reversed(self._children.get(folder_id, []))]
            while stack:
                depth, cid = stack.pop()
                out.append((depth, self._items[cid]))
                stack.extend((depth + 1, g) for g in reversed(self._children.get(cid, [])))
        yield from out

    def is_ancestor(self, ancestor_id: str, item_id: str) -> bool:
        with self._lock:
            current = self._items.get(item_id)
            while current is not None and current.parent_id is not None:
                if current.parent_id == ancestor_id:
                    return True
                current = self._items.get(current.parent_id)
            return False

    def get_path(self, item_id: str) -> List[str]:
        """Names from just below the root down to ``item_id``; root itself is excluded."""
        with self._lock:
            path: List[str] = []
            current = self._items.get(item_id)
            while current is not None and current.parent_id is not None:
                path.append(current.name)
                current = self._items.get(current.parent_id)
            path.reverse()
            return path

    # Mutations

    def create_folder(self, name: str, parent_id: str = ROOT_ID, *, icon_overlay: Optional[str] = "Folder") -> Folder:
        _require_name(name)
        with self._lock:
            self._require_folder(parent_id)
            folder = Folder(
                id=self._new_id(name),
                name=name,
                parent_id=parent_id,
                date=self._today(),
                icon_overlay=icon_overlay,
            )
            self._insert(folder)
        log.debug("Created folder %s (%r) in %s", folder.id, name, parent_id)
        self._emit("created", [folder.id])
        return folder

    def create_bookmark(self, name: str, url: str, parent_id: str = ROOT_ID) -> Bookmark:
        _require_name(name)
        final_url = normalize_bookmark_url(url)
        with self._lock:
            self._require_folder(parent_id)
            bookmark = Bookmark(
                id=self._new_id(name),
                name=name,
                url=final_url,
                parent_id=parent_id,
                date=self._today(),
            )
            self._insert(bookmark)
        log.debug("Created bookmark %s (%r -> %s) in %s", bookmark.id, name, final_url, parent_id)
        self._emit("created", [bookmark.id])
        return bookmark

    def rename(self, item_id: str, new_name: str) -> Item:
        _require_name(new_name)
        with self._lock:
            item = self._require(item_id)
            item.name = new_name
        self._emit("renamed", [item_id])
        return item

    def delete(self, ids: Iterable[str]) -> int:
        """Delete each id with its whole subtree. Unknown ids and the root are ignored.

        Returns the number of items removed.
        """
        removed: List[str] = []
        with self._lock:
            for item_id in list(ids):
                if item_id == ROOT_ID:
                    log.debug("Ignoring delete of the root folder")
                    continue
                item = self._items.get(item_id)
                if item is None:
                    continue
                doomed = [item_id] + self.descendant_ids(item_id)
                self._children[item.parent_id].remove(item_id)
                for d in doomed:
                    self._items.pop(d, None)
                    self._children.pop(d, None)
                removed.extend(doomed)
        if removed:
            log.debug("Deleted %d items", len(removed))
            self._emit("deleted", removed)
        return len(removed)

    def move(self, item_id: str, new_parent_id: str) -> Item:
        return self.move_many([item_id], new_parent_id)[0]

    def move_many(self, ids: Iterable[str], new_parent_id: str) -> List[Item]:
        """Reparent every id under ``new_parent_id``, or none of them.

        Moving an item into its current parent is a legal no-op.
        """
        moved: List[str] = []
        with self._lock:
            self._require_folder(new_parent_id)
            items = [self._require(i) for i in ids]
            for item in items:
                self._check_placement(item.id, new_parent_id)
            for item in items:
                if item.parent_id == new_parent_id:
                    continue
                self._children[item.parent_id].remove(item.id)
                self._children[new_parent_id].append(item.id)
                item.parent_id = new_parent_id
                moved.append(item.id)
        if moved:
            log.debug("Moved %s into %s", moved, new_parent_id)
            self._emit("moved", moved)
        return items

    def copy(self, item_id: str, new_parent_id: str) -> str:
        """Deep-copy ``item_id`` (and its subtree, read from the live tree) under ``new_parent_id``.

        Copying a folder into its own subtree is allowed: the subtree is captured
        before anything is inserted. The root cannot be copied.
        """
        with self._lock:
            self._require(item_id)
            self._require_folder(new_parent_id)
            if item_id == ROOT_ID:
                raise CycleRejected(item_id, new_parent_id)
            new_id = self._insert_snapshot(self.snapshot(item_id), new_parent_id)
        self._emit("copied", [new_id])
        return new_id

    def snapshot(self, item_id: str) -> ClipboardEntry:
        """Independent deep copy of an item and its descendants."""
        with self._lock:
            item = self._require(item_id)
            return ClipboardEntry(
                item=clone_item(item),
                descendants=[clone_item(self._items[d]) for d in self.descendant_ids(item_id)],
            )

    def paste_snapshot(self, entry: ClipboardEntry, new_parent_id: str) -> str:
        """Insert fresh clones of a snapshot under ``new_parent_id``; returns the new top-level id."""
        with self._lock:
            self._require_folder(new_parent_id)
            if entry.id == ROOT_ID:
                raise CycleRejected(entry.id, new_parent_id)
            new_id = self._insert_snapshot(entry, new_parent_id)
        self._emit("copied", [new_id])
        return new_id

    # Internals

    def _today(self) -> str:
        return format_date(self._clock())

    def _require(self, item_id: str) -> Item:
        item = self._items.get(item_id)
        if item is None:
            raise NotFound(item_id)
        return item

    def _require_folder(self, folder_id: str) -> Folder:
        item = self._require(folder_id)
        if not item.is_folder:
            raise NotFound(folder_id, f"Not a folder: {folder_id!r}")
        return item  # type: ignore[return-value]

    def _check_placement(self, item_id: str, target_id: str) -> None:
        if item_id == ROOT_ID or target_id == item_id or self.is_ancestor(item_id, target_id):
            log.debug("Rejected placing %s inside %s", item_id, target_id)
            raise CycleRejected(item_id, target_id)

    def _new_id(self, name: str, pending: Iterable[str] = ()) -> str:
        taken = set(pending)
        for _ in range(_ID_ATTEMPTS):
            candidate = self._id_source(name)
            if candidate not in self._items and candidate not in taken:
                return candidate
        raise RuntimeError(f"Id source returned only taken ids after {_ID_ATTEMPTS} attempts")

    def _insert(self, item: Item) -> None:
        self._items[item.id] = item
        self._children[item.parent_id].append(item.id)
        if item.is_folder:
            self._children[item.id] = []

    def _insert_snapshot(self, entry: ClipboardEntry, parent_id: str) -> str:
        today = self._today()
        id_map: Dict[str, str] = {}
        clones: List[Item] = []
        for src in [entry.item] + list(entry.descendants):
            if src is entry.item:
                new_parent = parent_id
            else:
                new_parent = id_map.get(src.parent_id)
                if new_parent is None:
                    raise ValueError(f"Snapshot of {entry.id!r} lists {src.id!r} before its parent")
            new_id = self._new_id(src.name, pending=id_map.values())
            id_map[src.id] = new_id
            clones.append(clone_item(src, id=new_id, parent_id=new_parent, date=today))
        for clone in clones:
            self._insert(clone)
        log.debug("Inserted %d cloned items under %s", len(clones), parent_id)
        return clones[0].id


def _require_name(name: str) -> None:
    if not (name or "").strip():
        raise InvalidName("Name must not be empty")
