import unittest

from planet_patrol.errors import RemoteStoreError
from planet_patrol.filestore import FilePage, InMemoryFileStore, RemoteFile, FOLDER_MIME_TYPE
from planet_patrol.folders import FolderIndexBuilder
from planet_patrol.models import FolderIndex
from planet_patrol.state import SharedReference

ROOT = "root"


def _build_tree(store: InMemoryFileStore, parent_id: str, depth: int, branching: int) -> None:
    if depth == 0:
        return
    for i in range(branching):
        folder_id = f"{parent_id}/{i}"
        store.add_folder(folder_id, parent_id)
        store.add_file(f"{folder_id}/lc.pdf", folder_id, "TIC1-lc.pdf")
        _build_tree(store, folder_id, depth - 1, branching)


def _expected_folders(depth: int, branching: int) -> int:
    # Full tree size minus the root, which the index leaves out.
    return (branching ** (depth + 1) - 1) // (branching - 1) - 1


class CyclicFileStore:
    """Folder graph with a back edge b -> a."""

    children = {"root": ["a"], "a": ["b"], "b": ["a", "c"], "c": []}

    def list_children(self, parent_id, *, child_filter, page_size=1000, page_token=None):
        items = [
            RemoteFile(id=child, name=child, mime_type=FOLDER_MIME_TYPE, parent_id=parent_id)
            for child in self.children[parent_id]
        ]
        return FilePage(items=items)


class FailingFileStore:
    def __init__(self, inner, failing_parent):
        self.inner = inner
        self.failing_parent = failing_parent

    def list_children(self, parent_id, **kwargs):
        if parent_id == self.failing_parent:
            raise RemoteStoreError("Drive listing timed out")
        return self.inner.list_children(parent_id, **kwargs)


class FolderIndexBuilderTests(unittest.TestCase):
    def test_index_size_matches_tree_shape(self):
        for depth, branching in [(1, 3), (2, 3), (3, 2), (4, 2)]:
            with self.subTest(depth=depth, branching=branching):
                store = InMemoryFileStore()
                _build_tree(store, ROOT, depth, branching)
                index = FolderIndexBuilder(
                    store, SharedReference(FolderIndex()), ROOT
                ).refresh()
                self.assertEqual(len(index), _expected_folders(depth, branching))
                self.assertNotIn(ROOT, {folder.id for folder in index})

    def test_follows_every_page(self):
        store = InMemoryFileStore()
        _build_tree(store, ROOT, 2, 3)
        index = FolderIndexBuilder(
            store, SharedReference(FolderIndex()), ROOT, page_size=1
        ).refresh()
        self.assertEqual(len(index), 12)

    def test_records_parent_ids(self):
        store = InMemoryFileStore()
        _build_tree(store, ROOT, 2, 2)
        index = FolderIndexBuilder(store, SharedReference(FolderIndex()), ROOT).refresh()
        parents = {folder.id: folder.parent_id for folder in index}
        self.assertEqual(parents["root/0"], ROOT)
        self.assertEqual(parents["root/0/1"], "root/0")

    def test_cycle_does_not_loop_forever(self):
        with self.assertLogs("planet_patrol.folders", level="WARNING"):
            index = FolderIndexBuilder(
                CyclicFileStore(), SharedReference(FolderIndex()), ROOT
            ).refresh()
        self.assertEqual(sorted(folder.id for folder in index), ["a", "b", "c"])

    def test_failure_aborts_and_keeps_previous_index(self):
        inner = InMemoryFileStore()
        _build_tree(inner, ROOT, 2, 2)
        target = SharedReference(FolderIndex())
        FolderIndexBuilder(inner, target, ROOT).sync()
        previous = target.get()
        self.assertEqual(len(previous), 6)

        inner.add_folder("root/0/0/new", "root/0/0")
        builder = FolderIndexBuilder(FailingFileStore(inner, "root/1/1"), target, ROOT)
        with self.assertRaises(RemoteStoreError):
            builder.sync()
        self.assertIs(target.get(), previous)

        FolderIndexBuilder(inner, target, ROOT).sync()
        self.assertEqual(len(target.get()), 7)

    def test_root_is_required(self):
        with self.assertRaises(ValueError):
            FolderIndexBuilder(InMemoryFileStore(), SharedReference(FolderIndex()), "")


if __name__ == "__main__":
    unittest.main()
