from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .log import get_logger
from .model import Bookmark, Item
from .session import Session

log = get_logger(__name__)


class ContextAction(str, Enum):
    OPEN = "open"
    OPEN_NEW_TAB = "open-new-tab"
    RENAME = "rename"
    DELETE = "delete"
    COPY = "copy"
    CUT = "cut"

    @classmethod
    def parse(cls, value: str) -> "ContextAction":
        return cls((value or "").strip().lower())


class Outcome(str, Enum):
    NAVIGATED = "navigated"
    CONFIRM_OPEN_URL = "confirm-open-url"
    OPEN_URL_NEW_TAB = "open-url-new-tab"
    PROMPT_RENAME = "prompt-rename"
    CONFIRM_DELETE = "confirm-delete"
    COPIED = "copied"
    CUT = "cut"
    NOOP = "noop"


@dataclass(frozen=True)
class MenuOption:
    action: ContextAction
    icon: str
    text: str
    shortcut: Optional[str] = None


@dataclass(frozen=True)
class ActionResult:
    """What the presentation layer should do next.

    The engine never opens external URLs itself; it hands them back here.
    """

    outcome: Outcome
    ids: Tuple[str, ...] = ()
    url: Optional[str] = None


def menu_options(item: Item, selection_size: int = 0) -> List[MenuOption]:
    options: List[MenuOption] = []
    if selection_size <= 1:
        if item.is_folder:
            options.append(MenuOption(ContextAction.OPEN, "FolderOpen", "Open", "Enter"))
        else:
            options.append(MenuOption(ContextAction.OPEN, "ExternalLink", "Open Link", "Enter"))
            options.append(MenuOption(ContextAction.OPEN_NEW_TAB, "ExternalLink", "Open in New Tab", "Ctrl+Enter"))
        options.append(MenuOption(ContextAction.RENAME, "Pencil", "Rename", "F2"))
    options.extend(
        [
            MenuOption(ContextAction.COPY, "Copy", "Copy", "Ctrl+C"),
            MenuOption(ContextAction.CUT, "Scissors", "Cut", "Ctrl+X"),
            MenuOption(ContextAction.DELETE, "Trash2", "Delete", "Delete"),
        ]
    )
    return options


def dispatch(session: Session, action: ContextAction, target: Optional[Item] = None) -> ActionResult:
    """Run a context-menu action on ``target`` (or on the selection, when one exists)."""
    if target is None and not session.selected:
        return ActionResult(Outcome.NOOP)
    action = ContextAction(action)
    result = _HANDLERS[action](session, target)
    log.debug("Context action %s -> %s", action.value, result.outcome.value)
    return result


def confirm_delete(session: Session, ids: Iterable[str]) -> int:
    return session.delete(ids)


def _open(session: Session, target: Optional[Item]) -> ActionResult:
    if target is None:
        return ActionResult(Outcome.NOOP)
    if target.is_folder:
        session.navigate_to(target.id)
        return ActionResult(Outcome.NAVIGATED, ids=(target.id,))
    return ActionResult(Outcome.CONFIRM_OPEN_URL, ids=(target.id,), url=target.url)


def _open_new_tab(session: Session, target: Optional[Item]) -> ActionResult:
    if not isinstance(target, Bookmark):
        return ActionResult(Outcome.NOOP)
    return ActionResult(Outcome.OPEN_URL_NEW_TAB, ids=(target.id,), url=target.url)


def _rename(session: Session, target: Optional[Item]) -> ActionResult:
    if target is None:
        return ActionResult(Outcome.NOOP)
    return ActionResult(Outcome.PROMPT_RENAME, ids=(target.id,))


def _delete(session: Session, target: Optional[Item]) -> ActionResult:
    return ActionResult(Outcome.CONFIRM_DELETE, ids=_targets(session, target))


def _copy(session: Session, target: Optional[Item]) -> ActionResult:
    ids = _targets(session, target)
    session.copy_items(ids)
    return ActionResult(Outcome.COPIED, ids=ids)


def _cut(session: Session, target: Optional[Item]) -> ActionResult:
    ids = _targets(session, target)
    session.cut_items(ids)
    return ActionResult(Outcome.CUT, ids=ids)


def _targets(session: Session, target: Optional[Item]) -> Tuple[str, ...]:
    if session.selected:
        # Keep on-screen order; anything selected but no longer visible goes last.
        visible = [i.id for i in session.current_items() if i.id in session.selected]
        rest = sorted(session.selected.difference(visible))
        return tuple(visible + rest)
    return (target.id,) if target is not None else ()


_HANDLERS: Dict[ContextAction, Callable[[Session, Optional[Item]], ActionResult]] = {
    ContextAction.OPEN: _open,
    ContextAction.OPEN_NEW_TAB: _open_new_tab,
    ContextAction.RENAME: _rename,
    ContextAction.DELETE: _delete,
    ContextAction.COPY: _copy,
    ContextAction.CUT: _cut,
}
