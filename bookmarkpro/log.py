from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Tuple

from rich.logging import RichHandler

PACKAGE_LOGGER = "bookmarkpro"
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    no_color: bool = False


def setup_logging(cfg: LogConfig) -> logging.Handler:
    """Replace the root logger's handlers with one stderr handler and return it.

    Rich output is used on a TTY unless colors are off (``no_color`` or ``NO_COLOR``).
    """
    level = _parse_level(cfg.level)
    root = logging.getLogger()
    root.setLevel(level)
    for old in list(root.handlers):
        root.removeHandler(old)

    handler, fmt = _build_handler(colored=_wants_color(cfg))
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)
    return handler


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``bookmarkpro`` namespace (module ``__name__`` passes through)."""
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def _parse_level(value: str) -> int:
    level = logging.getLevelName((value or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _wants_color(cfg: LogConfig) -> bool:
    if cfg.no_color or os.getenv("NO_COLOR") is not None:
        return False
    return sys.stderr.isatty()


def _build_handler(*, colored: bool) -> Tuple[logging.Handler, str]:
    if colored:
        return RichHandler(rich_tracebacks=True, show_time=False, show_level=True, show_path=False), "%(message)s"
    return logging.StreamHandler(), PLAIN_FORMAT
