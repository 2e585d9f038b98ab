"""
Domain types for candidates, dispositions and the evidence folder tree.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterator, Optional, Tuple, Union

Scalar = Union[str, int, float, bool, None]

CANDIDATE_PARTITION = "tic"
GROUP_REVIEWER_KEY = "user:group"
PAPER_REVIEWER_KEY = "user:paper"

# Store bookkeeping keys that never belong to the attribute bag.
RESERVED_KEYS = frozenset({"_id", "_rev", "dispositions"})


def strip_partition(doc_id: str) -> str:
    """Return the candidate id for a partitioned key ("tic:100" -> "100")."""
    _, sep, rest = doc_id.partition(":")
    return rest if sep else doc_id


def candidate_doc_id(candidate_id: str, partition: str = CANDIDATE_PARTITION) -> str:
    return f"{partition}:{candidate_id}"


@dataclass(frozen=True)
class Disposition:
    disposition: str
    comments: str = ""

    @classmethod
    def from_dict(cls, payload: dict) -> "Disposition":
        return cls(
            disposition=str(payload.get("disposition") or ""),
            comments=str(payload.get("comments") or ""),
        )

    def to_dict(self) -> dict:
        return {"disposition": self.disposition, "comments": self.comments}


@dataclass(frozen=True)
class CandidateDocument:
    """
    Known catalogue attributes of a candidate.

    Values are kept exactly as stored so exports can pass them through;
    anything the schema does not name lands in ``extra``. ``present`` holds the
    stored keys that were read, so an explicit null survives a write back.
    """

    sectors: Scalar = None
    epoch: Scalar = None
    period: Scalar = None
    duration: Scalar = None
    depth: Scalar = None
    depth_percent: Scalar = None
    r_tranister: Scalar = None
    r_star: Scalar = None
    tmag: Scalar = None
    delta_tmag: Scalar = None
    extra: Dict[str, Any] = field(default_factory=dict)
    present: FrozenSet[str] = frozenset()

    # attribute name -> stored key
    FIELD_KEYS = {
        "sectors": "sectors",
        "epoch": "epoch",
        "period": "period",
        "duration": "duration",
        "depth": "depth",
        "depth_percent": "depthPercent",
        "r_tranister": "rTranister",
        "r_star": "rStar",
        "tmag": "tmag",
        "delta_tmag": "deltaTmag",
    }

    @classmethod
    def from_dict(cls, payload: dict) -> "CandidateDocument":
        known_keys = set(cls.FIELD_KEYS.values())
        values = {
            attr: payload.get(key)
            for attr, key in cls.FIELD_KEYS.items()
            if key in payload
        }
        extra = {
            key: value
            for key, value in payload.items()
            if key not in known_keys and key not in RESERVED_KEYS
        }
        present = frozenset(key for key in cls.FIELD_KEYS.values() if key in payload)
        return cls(extra=extra, present=present, **values)

    def to_dict(self) -> dict:
        payload = dict(self.extra)
        for attr, key in self.FIELD_KEYS.items():
            value = getattr(self, attr)
            if value is not None or key in self.present:
                payload[key] = value
        return payload


@dataclass
class CandidateRecord:
    id: str
    document: CandidateDocument = field(default_factory=CandidateDocument)
    dispositions: Dict[str, Disposition] = field(default_factory=dict)
    rev: Optional[str] = None
    partition: str = CANDIDATE_PARTITION

    @property
    def doc_id(self) -> str:
        return candidate_doc_id(self.id, self.partition)

    @classmethod
    def from_document(cls, doc: dict) -> "CandidateRecord":
        doc_id = doc.get("_id") or ""
        partition, sep, _ = doc_id.partition(":")
        dispositions = {
            key: Disposition.from_dict(value or {})
            for key, value in (doc.get("dispositions") or {}).items()
        }
        return cls(
            id=strip_partition(doc_id),
            document=CandidateDocument.from_dict(doc),
            dispositions=dispositions,
            rev=doc.get("_rev"),
            partition=partition if sep else CANDIDATE_PARTITION,
        )

    @classmethod
    def from_row(cls, row: dict) -> "CandidateRecord":
        """Build a record from an ``_all_docs`` row fetched with include_docs."""
        doc = dict(row.get("doc") or {})
        doc.setdefault("_id", row.get("id") or "")
        return cls.from_document(doc)

    def to_document(self) -> dict:
        doc = self.document.to_dict()
        doc["_id"] = self.doc_id
        if self.rev:
            doc["_rev"] = self.rev
        doc["dispositions"] = {
            key: value.to_dict() for key, value in self.dispositions.items()
        }
        return doc

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "doc": self.to_document(),
        }


@dataclass(frozen=True)
class CandidateSnapshot:
    records: Tuple[CandidateRecord, ...] = ()
    built_at: Optional[float] = None

    @classmethod
    def build(cls, records) -> "CandidateSnapshot":
        return cls(records=tuple(records), built_at=time.time())

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[CandidateRecord]:
        return iter(self.records)

    def get(self, candidate_id: str) -> Optional[CandidateRecord]:
        for record in self.records:
            if record.id == candidate_id:
                return record
        return None


@dataclass(frozen=True)
class FolderNode:
    id: str
    parent_id: str
    name: str = ""


@dataclass(frozen=True)
class FolderIndex:
    folders: Tuple[FolderNode, ...] = ()
    built_at: Optional[float] = None

    @classmethod
    def build(cls, folders) -> "FolderIndex":
        return cls(folders=tuple(folders), built_at=time.time())

    def __len__(self) -> int:
        return len(self.folders)

    def __iter__(self) -> Iterator[FolderNode]:
        return iter(self.folders)


@dataclass(frozen=True)
class FileReference:
    id: str
    name: str
    content_link: Optional[str] = None
    mime_type: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "webContentLink": self.content_link,
            "mimeType": self.mime_type,
        }
