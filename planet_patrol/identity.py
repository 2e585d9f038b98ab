"""
Reviewer identities stored as ``user:<email>`` documents.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from planet_patrol.docstore import DocumentStore
from planet_patrol.errors import NotFound, RemoteStoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reviewer:
    key: str
    name: str = ""
    group: bool = False

    @classmethod
    def from_document(cls, doc: dict) -> "Reviewer":
        return cls(
            key=doc.get("_id") or "",
            name=doc.get("name") or "",
            group=bool(doc.get("group")),
        )


# Decides whether a reviewer may submit on behalf of the group.
GroupPolicy = Callable[[Reviewer], bool]


def has_group_privilege(reviewer: Reviewer) -> bool:
    return reviewer.group


class IdentityDirectory:
    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, key: str) -> Reviewer:
        """Raises NotFound when no identity document exists for ``key``."""
        return Reviewer.from_document(self.store.get(key))

    def display_name(self, key: str) -> Optional[str]:
        try:
            return self.get(key).name
        except NotFound:
            return None
        except RemoteStoreError:
            logger.warning("Could not resolve reviewer %s", key, exc_info=True)
            return None
