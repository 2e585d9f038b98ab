"""
Folder index builder.

Walks the evidence file store from a fixed root folder and collects every
folder below it into a flat index.
"""

from __future__ import annotations

import logging
from typing import Iterator, List

from planet_patrol.filestore import DEFAULT_PAGE_SIZE, ChildFilter, FileStore, RemoteFile
from planet_patrol.models import FolderIndex, FolderNode
from planet_patrol.state import SharedReference

logger = logging.getLogger(__name__)


def iter_children(
    store: FileStore,
    parent_id: str,
    child_filter: ChildFilter,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Iterator[RemoteFile]:
    """Yield every child matching ``child_filter``, following page tokens."""
    page_token = None
    while True:
        page = store.list_children(
            parent_id,
            child_filter=child_filter,
            page_size=page_size,
            page_token=page_token,
        )
        yield from page.items
        page_token = page.next_page_token
        if not page_token:
            return


class FolderIndexBuilder:
    def __init__(
        self,
        store: FileStore,
        target: SharedReference[FolderIndex],
        root_id: str,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        if not root_id:
            raise ValueError("root_id is required")
        self.store = store
        self.target = target
        self.root_id = root_id
        self.page_size = page_size

    def refresh(self) -> FolderIndex:
        """
        Return an index of every folder reachable from the root (the root
        itself excluded). Any failing listing aborts the whole walk.
        """
        folders: List[FolderNode] = []
        visited = {self.root_id}
        stack = [self.root_id]
        while stack:
            parent_id = stack.pop()
            for child in iter_children(
                self.store, parent_id, ChildFilter.folders(), self.page_size
            ):
                if child.id in visited:
                    logger.warning(
                        "Folder %s reached twice (via %s); skipping", child.id, parent_id
                    )
                    continue
                visited.add(child.id)
                folders.append(
                    FolderNode(id=child.id, parent_id=parent_id, name=child.name)
                )
                stack.append(child.id)
        return FolderIndex.build(folders)

    def sync(self) -> FolderIndex:
        index = self.refresh()
        self.target.set(index)
        logger.info("Got folder list (%d folders)", len(index))
        return index
