import unittest

from planet_patrol.errors import InvalidInput, RemoteStoreError
from planet_patrol.filestore import InMemoryFileStore
from planet_patrol.locator import FileLocator
from planet_patrol.models import FileReference, FolderIndex, FolderNode
from planet_patrol.state import SharedReference


class FailingFileStore:
    def __init__(self, inner, failing_parent):
        self.inner = inner
        self.failing_parent = failing_parent

    def list_children(self, parent_id, **kwargs):
        if parent_id == self.failing_parent:
            raise RemoteStoreError("Drive returned 500")
        return self.inner.list_children(parent_id, **kwargs)


class FileLocatorTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryFileStore()
        self.store.add_folder("A", "root")
        self.store.add_folder("B", "root")
        self.index = SharedReference(
            FolderIndex.build([FolderNode("A", "root"), FolderNode("B", "root")])
        )

    def test_finds_matching_file_in_one_folder(self):
        self.store.add_file("f1", "B", "matches-TIC100.pdf")
        self.store.add_file("f2", "A", "unrelated.pdf")
        # Sub-folders named after the candidate are not files.
        self.store.add_folder("sub", "B", "TIC100")
        locator = FileLocator(self.store, self.index)

        files = locator.locate("100")
        self.assertEqual(
            files,
            [
                FileReference(
                    id="f1",
                    name="matches-TIC100.pdf",
                    content_link="https://example.test/files/f1?export=download",
                    mime_type="application/pdf",
                )
            ],
        )
        self.assertEqual(locator.locate("999"), [])

    def test_concatenates_pages_and_folders(self):
        for i in range(5):
            self.store.add_file(f"b{i}", "B", f"TIC42-sector{i}.png", "image/png")
        self.store.add_file("a0", "A", "TIC42-report.pdf")
        files = FileLocator(self.store, self.index, page_size=2).locate("42")
        self.assertEqual([f.id for f in files], ["a0", "b0", "b1", "b2", "b3", "b4"])

    def test_failing_folder_contributes_nothing(self):
        self.store.add_file("a0", "A", "TIC7.pdf")
        self.store.add_file("b0", "B", "TIC7.pdf")
        locator = FileLocator(FailingFileStore(self.store, "A"), self.index)
        with self.assertLogs("planet_patrol.locator", level="WARNING"):
            files = locator.locate("7")
        self.assertEqual([f.id for f in files], ["b0"])

    def test_blank_candidate_id_is_rejected(self):
        with self.assertRaises(InvalidInput):
            FileLocator(self.store, self.index).locate("  ")

    def test_empty_index_finds_nothing(self):
        self.store.add_file("f1", "A", "TIC100.pdf")
        locator = FileLocator(self.store, SharedReference(FolderIndex()))
        self.assertEqual(locator.locate("100"), [])


if __name__ == "__main__":
    unittest.main()
