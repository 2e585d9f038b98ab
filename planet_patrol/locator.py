"""
Locate evidence files for a candidate across the indexed folders.
"""

from __future__ import annotations

import logging
from typing import List

from planet_patrol.errors import InvalidInput
from planet_patrol.filestore import DEFAULT_PAGE_SIZE, ChildFilter, FileStore
from planet_patrol.folders import iter_children
from planet_patrol.models import FileReference, FolderIndex
from planet_patrol.state import SharedReference

logger = logging.getLogger(__name__)


class FileLocator:
    def __init__(
        self,
        store: FileStore,
        index: SharedReference[FolderIndex],
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.store = store
        self.index = index
        self.page_size = page_size

    def locate(self, candidate_id: str) -> List[FileReference]:
        """
        Return every non-folder file whose name contains ``candidate_id``.

        Folders whose listing fails are logged and skipped; an empty list
        means nothing matched.
        """
        candidate_id = (candidate_id or "").strip()
        if not candidate_id:
            raise InvalidInput("candidate_id must not be empty")

        child_filter = ChildFilter.files_named(candidate_id)
        files: List[FileReference] = []
        # Hold one index for the whole search even if a refresh swaps it.
        index = self.index.get()
        for folder in index:
            try:
                found = [
                    FileReference(
                        id=item.id,
                        name=item.name,
                        content_link=item.content_link,
                        mime_type=item.mime_type,
                    )
                    for item in iter_children(
                        self.store, folder.id, child_filter, self.page_size
                    )
                ]
            except Exception:
                logger.warning(
                    "File lookup for %s in folder %s failed",
                    candidate_id,
                    folder.id,
                    exc_info=True,
                )
                continue
            files.extend(found)
        return files
