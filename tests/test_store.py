import random
import threading

import pytest

from bookmarkpro.errors import CycleRejected, InvalidName, InvalidUrl, NotFound
from bookmarkpro.model import ROOT_ID, Bookmark, Folder
from bookmarkpro.store import ItemStore


def _assert_consistent(store: ItemStore):
    store.check_invariants()
    for item in store.items():
        if item.id == ROOT_ID:
            assert item.parent_id is None
        else:
            parent = store.get_by_id(item.parent_id)
            assert parent is not None and parent.is_folder
            assert not store.is_ancestor(item.id, item.id)


def test_new_store_holds_only_the_root(empty_store):
    assert len(empty_store) == 1
    root = empty_store.get_by_id(ROOT_ID)
    assert isinstance(root, Folder)
    assert root.parent_id is None
    assert root.name == "Bookmark Pro"
    assert root.date == "09/02/2026"


def test_create_folder_and_bookmark_append_under_parent(empty_store):
    f = empty_store.create_folder("Reading")
    b = empty_store.create_bookmark("Docs", "docs.python.org", parent_id=f.id)

    assert f.parent_id == ROOT_ID
    assert f.icon_overlay == "Folder"
    assert b.parent_id == f.id
    assert b.url == "https://docs.python.org"
    assert [i.id for i in empty_store.get_children(f.id)] == [b.id]
    assert empty_store.get_path(b.id) == ["Reading", "Docs"]
    _assert_consistent(empty_store)


def test_create_bookmark_keeps_explicit_http_scheme(empty_store):
    b = empty_store.create_bookmark("Old", "http://example.org/a")
    assert b.url == "http://example.org/a"


@pytest.mark.parametrize("name", ["", "   ", "\t\n"])
def test_blank_names_are_rejected(empty_store, name):
    with pytest.raises(InvalidName):
        empty_store.create_folder(name)
    with pytest.raises(InvalidName):
        empty_store.create_bookmark(name, "https://example.com")
    assert len(empty_store) == 1


@pytest.mark.parametrize("url", ["", "  ", "https://", "exa mple.com"])
def test_bad_urls_are_rejected(empty_store, url):
    with pytest.raises(InvalidUrl):
        empty_store.create_bookmark("X", url)
    assert len(empty_store) == 1


def test_create_under_unknown_or_bookmark_parent_fails(store):
    with pytest.raises(NotFound):
        store.create_folder("X", parent_id="nope")
    with pytest.raises(NotFound):
        store.create_folder("X", parent_id="github_bm")
    assert len(store) == 7


def test_rename_updates_in_place(store):
    item = store.rename("docs", "Papers")
    assert item is store.get_by_id("docs")
    assert store.get_path("work_docs") == ["Papers", "Work Projects"]


def test_rename_unknown_or_blank(store):
    with pytest.raises(NotFound) as exc:
        store.rename("missing", "X")
    assert exc.value.item_id == "missing"
    with pytest.raises(InvalidName):
        store.rename("docs", " ")
    assert store.get_by_id("docs").name == "Documents"


def test_recursive_delete_removes_folder_and_all_descendants(store):
    inner = store.create_folder("Inner", parent_id="work_docs")
    deep = store.create_bookmark("Deep", "https://deep.example", parent_id=inner.id)
    before = len(store)
    descendants = store.descendant_ids("docs")
    assert len(descendants) == 3

    removed = store.delete(["docs"])

    assert removed == len(descendants) + 1
    assert len(store) == before - removed
    for item_id in ["docs", "work_docs", inner.id, deep.id]:
        assert store.get_by_id(item_id) is None
    _assert_consistent(store)


def test_delete_is_idempotent_and_ignores_unknown_ids(store, shape):
    assert store.delete(["music"]) == 1
    after_first = shape(store)
    assert store.delete(["music"]) == 0
    assert store.delete(["never-existed"]) == 0
    assert shape(store) == after_first


def test_delete_ignores_the_root(store):
    assert store.delete([ROOT_ID]) == 0
    assert store.get_by_id(ROOT_ID) is not None
    assert len(store) == 7


def test_delete_parent_and_child_in_one_call(store):
    assert store.delete(["docs", "work_docs"]) == 2


def test_move_reparents(store):
    moved = store.move("github_bm", "docs")
    assert moved.parent_id == "docs"
    assert "github_bm" in [i.id for i in store.get_children("docs")]
    assert "github_bm" not in [i.id for i in store.get_children(ROOT_ID)]
    _assert_consistent(store)


def test_move_into_current_parent_is_a_noop(store):
    events = []
    store.subscribe(events.append)
    before = [i.id for i in store.get_children(ROOT_ID)]
    store.move("github_bm", ROOT_ID)
    assert [i.id for i in store.get_children(ROOT_ID)] == before
    assert events == []


@pytest.mark.parametrize("target", ["docs", "work_docs"])
def test_move_into_self_or_descendant_is_rejected(store, shape, target):
    before = shape(store)
    with pytest.raises(CycleRejected):
        store.move("docs", target)
    assert shape(store) == before
    assert store.get_by_id("docs").parent_id == ROOT_ID
    _assert_consistent(store)


def test_root_cannot_be_moved(store):
    with pytest.raises(CycleRejected):
        store.move(ROOT_ID, "docs")


def test_move_to_bookmark_or_unknown_target_fails(store):
    with pytest.raises(NotFound):
        store.move("docs", "github_bm")
    with pytest.raises(NotFound):
        store.move("docs", "missing")
    with pytest.raises(NotFound):
        store.move("missing", "docs")


def test_move_many_is_all_or_nothing(store):
    with pytest.raises(CycleRejected):
        store.move_many(["github_bm", "docs"], "work_docs")
    assert store.get_by_id("github_bm").parent_id == ROOT_ID


def test_deep_copy_assigns_fresh_ids_and_leaves_original(store):
    bm = store.create_bookmark("Manual", "https://manual.example", parent_id="work_docs")
    original_children = [i.id for i in store.get_children("work_docs")]

    new_id = store.copy("docs", "music")

    clone = store.get_by_id(new_id)
    assert new_id != "docs"
    assert clone.name == "Documents"
    assert clone.parent_id == "music"
    assert clone.icon_overlay == "Briefcase"
    assert clone.date == "09/02/2026"
    [clone_work] = store.get_children(new_id)
    assert clone_work.id != "work_docs"
    assert clone_work.name == "Work Projects"
    [clone_bm] = store.get_children(clone_work.id)
    assert isinstance(clone_bm, Bookmark)
    assert clone_bm.id != bm.id
    assert (clone_bm.name, clone_bm.url) == ("Manual", "https://manual.example")

    assert [i.id for i in store.get_children("work_docs")] == original_children
    assert store.get_by_id(bm.id).parent_id == "work_docs"
    _assert_consistent(store)


def test_copy_then_delete_restores_structure(store, shape):
    before = shape(store)
    new_id = store.copy("docs", ROOT_ID)
    assert shape(store) != before
    store.delete([new_id])
    assert shape(store) == before


def test_copy_into_own_subtree_copies_the_captured_subtree_once(store):
    new_id = store.copy("docs", "work_docs")
    assert store.get_by_id(new_id).parent_id == "work_docs"
    assert [i.name for i in store.get_children(new_id)] == ["Work Projects"]
    assert store.get_children(store.get_children(new_id)[0].id) == []
    _assert_consistent(store)


def test_copy_root_is_rejected(store):
    with pytest.raises(CycleRejected):
        store.copy(ROOT_ID, "docs")


def test_snapshot_is_independent_of_later_changes(store):
    snap = store.snapshot("docs")
    store.rename("work_docs", "Renamed")
    assert [d.name for d in snap.descendants] == ["Work Projects"]
    assert snap.item is not store.get_by_id("docs")


def test_get_path_excludes_root(store):
    assert store.get_path(ROOT_ID) == []
    assert store.get_path("docs") == ["Documents"]
    assert store.get_path("work_docs") == ["Documents", "Work Projects"]
    assert store.get_path("missing") == []


def test_get_children_of_unknown_parent_is_empty(store):
    assert store.get_children("missing") == []


def test_events_follow_successful_mutations_only(store):
    events = []
    unsubscribe = store.subscribe(events.append)

    f = store.create_folder("New")
    store.rename(f.id, "Newer")
    store.move(f.id, "docs")
    new_id = store.copy(f.id, ROOT_ID)
    store.delete([f.id])
    with pytest.raises(CycleRejected):
        store.move("docs", "work_docs")

    assert [e.kind for e in events] == ["created", "renamed", "moved", "copied", "deleted"]
    assert events[3].ids == (new_id,)

    unsubscribe()
    store.create_folder("Quiet")
    assert len(events) == 5


def test_failing_listener_does_not_break_mutation(store):
    def _boom(_event):
        raise RuntimeError("listener failure")

    store.subscribe(_boom)
    f = store.create_folder("Still here")
    assert store.get_by_id(f.id) is f


def test_id_collisions_are_redrawn(clock):
    ids = iter(["dup", "dup", "fresh"])
    s = ItemStore(id_source=lambda _name: next(ids), clock=clock)
    a = s.create_folder("A")
    b = s.create_folder("B")
    assert (a.id, b.id) == ("dup", "fresh")


def test_construction_rejects_inconsistent_trees():
    root = Folder(id=ROOT_ID, name="r", parent_id=None, date="01/01/2026")
    with pytest.raises(ValueError):
        ItemStore([root, Folder(id="a", name="a", parent_id="missing", date="01/01/2026")])
    with pytest.raises(ValueError):
        ItemStore([root, root])
    with pytest.raises(ValueError):
        ItemStore([Folder(id="x", name="x", parent_id=None, date="01/01/2026")])
    with pytest.raises(ValueError):
        ItemStore(
            [
                root,
                Folder(id="a", name="a", parent_id="b", date="01/01/2026"),
                Folder(id="b", name="b", parent_id="a", date="01/01/2026"),
            ]
        )
    with pytest.raises(ValueError):
        ItemStore(
            [
                root,
                Bookmark(id="bm", name="bm", url="https://x.example", parent_id=ROOT_ID, date="01/01/2026"),
                Folder(id="a", name="a", parent_id="bm", date="01/01/2026"),
            ]
        )


def test_tree_stays_acyclic_under_random_moves_and_copies(store):
    rng = random.Random(7)
    for _ in range(200):
        folders = [i.id for i in store.items() if i.is_folder]
        movable = [i.id for i in store.items() if i.id != ROOT_ID]
        op = rng.choice(["move", "copy", "folder"])
        try:
            if op == "move":
                store.move(rng.choice(movable), rng.choice(folders))
            elif op == "copy" and len(store) < 300:
                store.copy(rng.choice(movable), rng.choice(folders))
            else:
                store.create_folder("F", parent_id=rng.choice(folders))
        except CycleRejected:
            pass
    _assert_consistent(store)


def test_concurrent_writers_and_walkers_keep_the_tree_consistent(store):
    errors = []

    def _writer(seed):
        rng = random.Random(seed)
        try:
            for n in range(150):
                folders = [i.id for i in store.items() if i.is_folder]
                op = rng.choice(["folder", "bookmark", "move", "delete"])
                try:
                    if op == "folder":
                        store.create_folder(f"F{seed}-{n}", parent_id=rng.choice(folders))
                    elif op == "bookmark":
                        store.create_bookmark(f"B{seed}-{n}", "https://t.example", parent_id=rng.choice(folders))
                    elif op == "move":
                        movable = [i.id for i in store.items() if i.id != ROOT_ID]
                        if movable:
                            store.move(rng.choice(movable), rng.choice(folders))
                    else:
                        movable = [i.id for i in store.items() if i.id != ROOT_ID]
                        if len(movable) > 20:
                            store.delete([rng.choice(movable)])
                except (CycleRejected, NotFound):
                    pass
        except Exception as e:  # collected and asserted below
            errors.append(e)

    def _walker():
        try:
            for _ in range(150):
                for depth, item in store.walk():
                    assert depth >= 1 and item.id != ROOT_ID
                store.child_count(ROOT_ID)
        except Exception as e:  # collected and asserted below
            errors.append(e)

    threads = [threading.Thread(target=_writer, args=(s,)) for s in range(4)]
    threads += [threading.Thread(target=_walker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    _assert_consistent(store)
