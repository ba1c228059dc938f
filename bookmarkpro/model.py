from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Union

ROOT_ID = "root"
ROOT_NAME = "Bookmark Pro"


class ItemKind(str, Enum):
    FOLDER = "folder"
    BOOKMARK = "bookmark"


class SortMode(str, Enum):
    BY_NAME = "sort-by-name"
    BY_DATE = "sort-by-date"
    BY_TYPE = "sort-by-type"
    BY_SIZE = "sort-by-size"

    @classmethod
    def parse(cls, value: str) -> "SortMode":
        v = (value or "").strip().lower()
        if not v.startswith("sort-by-"):
            v = f"sort-by-{v}"
        return cls(v)


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


class SearchFilter(str, Enum):
    ALL = "all"
    FOLDER = "folder"
    BOOKMARK = "bookmark"


class ClipboardAction(str, Enum):
    CUT = "cut"
    COPY = "copy"


@dataclass
class Folder:
    id: str
    name: str
    parent_id: Optional[str]
    date: str
    icon_overlay: Optional[str] = None

    @property
    def kind(self) -> ItemKind:
        return ItemKind.FOLDER

    @property
    def is_folder(self) -> bool:
        return True


@dataclass
class Bookmark:
    id: str
    name: str
    url: str
    parent_id: Optional[str]
    date: str

    @property
    def kind(self) -> ItemKind:
        return ItemKind.BOOKMARK

    @property
    def is_folder(self) -> bool:
        return False


Item = Union[Folder, Bookmark]


def clone_item(item: Item, **changes) -> Item:
    return replace(item, **changes)


@dataclass
class ClipboardEntry:
    """One clipboard item: the top-level snapshot and, for folders, its subtree.

    ``descendants`` is in pre-order and keeps the original ids and parent ids,
    so the subtree shape can be rebuilt without consulting the store.
    """

    item: Item
    descendants: List[Item] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.item.id


@dataclass
class ClipboardState:
    items: List[ClipboardEntry] = field(default_factory=list)
    action: Optional[ClipboardAction] = None

    @property
    def is_empty(self) -> bool:
        return not self.items or self.action is None

    def ids(self) -> List[str]:
        return [e.id for e in self.items]


@dataclass(frozen=True)
class StoreEvent:
    kind: str  # created | renamed | deleted | moved | copied
    ids: tuple = ()
