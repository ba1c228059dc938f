import itertools
import logging
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Allow `import bookmarkpro` without installing the package.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from bookmarkpro.seed import demo_items  # noqa: E402
from bookmarkpro.session import Session  # noqa: E402
from bookmarkpro.store import ItemStore  # noqa: E402

FIXED_NOW = datetime(2026, 2, 9, 10, 0, 0)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Drop handlers installed by setup_logging() during a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
    root.setLevel(level)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def id_source():
    counter = itertools.count(1)
    return lambda name: f"{name.lower().replace(' ', '_')}-{next(counter)}"


@pytest.fixture
def empty_store(id_source, clock):
    return ItemStore(id_source=id_source, clock=clock)


@pytest.fixture
def store(id_source, clock):
    """The demo tree: root > DCIM, Documents > Work Projects, Google Search, GitHub, Music."""
    return ItemStore(demo_items(clock), id_source=id_source, clock=clock)


@pytest.fixture
def session(store):
    return Session(store)


def snapshot_shape(store: ItemStore):
    """Structural fingerprint of the tree: (path, kind, url) per item, ids and dates ignored."""
    out = []
    for _depth, item in store.walk():
        out.append((tuple(store.get_path(item.id)), item.kind.value, getattr(item, "url", None)))
    return sorted(out)


@pytest.fixture
def shape():
    return snapshot_shape
