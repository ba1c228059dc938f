from __future__ import annotations

import argparse
from pathlib import Path
from typing import List

import yaml
from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from . import __version__
from .config import Settings, load_settings
from .errors import NotFound, StoreError
from .log import LogConfig, get_logger, setup_logging
from .model import ROOT_ID, Folder, Item, SearchFilter, SortDirection, SortMode
from .netscape import export_html, import_html
from .seed import build_store
from .session import Session
from .store import ItemStore

log = get_logger(__name__)

SORT_CHOICES = [m.value.replace("sort-by-", "") for m in SortMode]
FILTER_CHOICES = [f.value for f in SearchFilter]


def main(argv: List[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="bookmarkpro",
        description="Browse, search and export an in-memory bookmark tree.",
    )
    p.add_argument("-V", "--version", action="version", version=f"bookmarkpro {__version__}")
    p.add_argument("--config", default=None, help="YAML config file (optional). Env vars override defaults.")
    p.add_argument("--import-html", default=None, help="Seed the session from a Netscape bookmarks HTML file.")
    p.add_argument("--log-level", default=None, help="DEBUG/INFO/WARN/ERROR (overrides env/config).")
    p.add_argument("--no-color", action="store_true", help="Disable colored logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("tree", help="Print the whole folder tree.")

    ls = sub.add_parser("ls", help="List one folder, sorted.")
    ls.add_argument("path", nargs="?", default="", help="Folder path below the root, e.g. 'Documents/Work Projects'.")
    ls.add_argument("--sort", choices=SORT_CHOICES, default=None, help="Sort mode (default from config).")
    ls.add_argument("--desc", action="store_true", help="Sort descending.")

    se = sub.add_parser("search", help="Search names across the whole tree.")
    se.add_argument("query")
    se.add_argument("--filter", choices=FILTER_CHOICES, default=None, help="Restrict to folders or bookmarks.")

    ex = sub.add_parser("export", help="Write the tree as Netscape bookmarks HTML.")
    ex.add_argument("--out", required=True, help="Output HTML path.")
    ex.add_argument("--title", default=None, help="Document title (default: root folder name).")

    args = p.parse_args(argv)
    try:
        cfg = load_settings(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        p.error(f"bad config: {e}")
    if args.log_level:
        cfg.log_level = args.log_level
    if args.no_color:
        cfg.no_color = True
    setup_logging(LogConfig(level=cfg.log_level, no_color=cfg.no_color))

    try:
        session = Session(_load_store(args, cfg), settings=cfg)
    except (OSError, ValueError) as e:
        log.error("Failed to load bookmarks: %s", e)
        return 2

    try:
        if args.cmd == "tree":
            return _cmd_tree(session)
        if args.cmd == "ls":
            return _cmd_ls(args, session)
        if args.cmd == "search":
            return _cmd_search(args, session)
        if args.cmd == "export":
            return _cmd_export(args, session)
    except StoreError as e:
        log.error("%s", e)
        return 2
    return 2


def _load_store(args, cfg: Settings) -> ItemStore:
    if args.import_html:
        src = Path(args.import_html)
        if not src.exists():
            raise FileNotFoundError(f"Input file not found: {src}")
        return import_html(src)
    return build_store(cfg)


def _cmd_tree(session: Session) -> int:
    store = session.store
    root = Tree(Text(f"{store.root.name}/"))
    nodes = {ROOT_ID: root}
    for _depth, item in store.walk(ROOT_ID):
        parent = nodes[item.parent_id]
        nodes[item.id] = parent.add(Text(_label(item)))
    Console(highlight=False, soft_wrap=True).print(root)
    return 0


def _cmd_ls(args, session: Session) -> int:
    session.navigate_to(_resolve_folder(session.store, args.path))
    if args.sort:
        session.set_sort_mode(SortMode.parse(args.sort))
    if args.desc:
        session.sort_direction = SortDirection.DESC
    for item in session.current_items():
        print(_row(session, item))
    return 0


def _cmd_search(args, session: Session) -> int:
    session.set_search(args.query, SearchFilter(args.filter) if args.filter else None)
    results = session.current_items()
    for item in results:
        print(f"{_row(session, item)}\t/{'/'.join(session.store.get_path(item.id))}")
    log.info("%d match(es) for %r", len(results), args.query)
    return 0


def _cmd_export(args, session: Session) -> int:
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    try:
        export_html(session.store, out, title=args.title)
    except OSError as e:
        log.error("Failed to write output HTML: %s", e)
        return 2
    return 0


def _resolve_folder(store: ItemStore, path: str) -> str:
    folder_id = ROOT_ID
    for part in [p for p in (path or "").split("/") if p.strip()]:
        match = next((c for c in store.get_children(folder_id) if c.is_folder and c.name == part), None)
        if match is None:
            raise NotFound(path, f"No such folder: {path!r}")
        folder_id = match.id
    return folder_id


def _label(item: Item) -> str:
    if isinstance(item, Folder):
        return f"{item.name}/"
    return f"{item.name} <{item.url}>"


def _row(session: Session, item: Item) -> str:
    if isinstance(item, Folder):
        return f"{item.kind.value}\t{item.date}\t{item.name}/\t{session.store.child_count(item.id)} items"
    return f"{item.kind.value}\t{item.date}\t{item.name}\t{item.url}"
