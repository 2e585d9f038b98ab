"""
Candidate snapshot builder.

Pages through the candidate partition of the document store and assembles
a complete, immutable snapshot of every candidate record.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from planet_patrol.docstore import DocumentStore
from planet_patrol.errors import RemoteStoreError
from planet_patrol.models import CANDIDATE_PARTITION, CandidateRecord, CandidateSnapshot
from planet_patrol.state import SharedReference

logger = logging.getLogger(__name__)

# Appended to the last seen id so the next page starts strictly after it.
CURSOR_SENTINEL = "\0"


class CandidateSnapshotBuilder:
    def __init__(
        self,
        store: DocumentStore,
        target: SharedReference[CandidateSnapshot],
        *,
        partition: str = CANDIDATE_PARTITION,
        page_delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.target = target
        self.partition = partition
        self.page_delay_seconds = page_delay_seconds
        self._sleep = sleep

    def refresh(self) -> CandidateSnapshot:
        """
        Fetch every candidate document and return a new snapshot.

        Raises RemoteStoreError (or whatever the store raises) if any page
        fails; nothing is returned for a partial listing.
        """
        rows: list[dict] = []
        total_rows = None
        pages = 0
        while total_rows is None or len(rows) < total_rows:
            # Throttle to stay under the store's request quota.
            if self.page_delay_seconds > 0:
                self._sleep(self.page_delay_seconds)
            start_key = f"{rows[-1]['id']}{CURSOR_SENTINEL}" if rows else None
            page = self.store.partitioned_list(
                self.partition, include_docs=True, start_key=start_key
            )
            pages += 1
            total_rows = page.total_rows
            if not page.rows and len(rows) < total_rows:
                raise RemoteStoreError(
                    f"Pagination stalled at {len(rows)}/{total_rows} rows"
                )
            rows.extend(page.rows)

        records = [CandidateRecord.from_row(row) for row in rows]
        logger.debug("Fetched %d candidate rows in %d pages", len(records), pages)
        return CandidateSnapshot.build(records)

    def sync(self) -> CandidateSnapshot:
        """Refresh and, on success, install the new snapshot."""
        snapshot = self.refresh()
        self.target.set(snapshot)
        logger.info("Successfully fetched %d candidates", len(snapshot))
        return snapshot
