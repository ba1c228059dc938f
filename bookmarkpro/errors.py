from __future__ import annotations


class StoreError(Exception):
    """Base error for item store operations."""


class NotFound(StoreError):
    """Raised when an operation references an unknown id (or a non-folder parent)."""

    def __init__(self, item_id: str, message: str = ""):
        self.item_id = item_id
        super().__init__(message or f"No such item: {item_id!r}")


class InvalidName(StoreError):
    """Raised when a name is empty after trimming whitespace."""


class InvalidUrl(StoreError):
    """Raised when a bookmark URL is empty or cannot be parsed."""


class CycleRejected(StoreError):
    """Raised when a move or paste would make an item its own descendant."""

    def __init__(self, item_id: str, target_id: str):
        self.item_id = item_id
        self.target_id = target_id
        super().__init__(f"Cannot place {item_id!r} inside {target_id!r}: it would become its own descendant")
