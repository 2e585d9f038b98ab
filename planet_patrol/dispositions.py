"""
Disposition aggregation: merging submissions, answered/unanswered views,
reviewer name resolution and the CSV export.

Everything here except ``submit_disposition`` is a pure function over
candidate records and snapshots.
"""

from __future__ import annotations

import csv
import dataclasses
import io
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from planet_patrol.docstore import DocumentStore
from planet_patrol.errors import InvalidInput, PermissionDenied
from planet_patrol.identity import GroupPolicy, Reviewer, has_group_privilege
from planet_patrol.models import (
    CANDIDATE_PARTITION,
    GROUP_REVIEWER_KEY,
    PAPER_REVIEWER_KEY,
    CandidateRecord,
    Disposition,
    candidate_doc_id,
)

CSV_HEADER = [
    "TIC ID",
    "ExoFOP-TESS",
    "Sectors",
    "Epoch [BJD]",
    "Period [Days]",
    "Duration [Hours]",
    "Depth [ppm]",
    "Depth [%]",
    "Rtranister [RJup]",
    "Rstar [RSun]",
    "Tmag",
    "Delta Tmag",
    "Paper disp (LC)",
    "Paper comm",
]
CSV_ATTRIBUTES = [
    "sectors",
    "epoch",
    "period",
    "duration",
    "depth",
    "depth_percent",
    "r_tranister",
    "r_star",
    "tmag",
    "delta_tmag",
]
EXOFOP_URL = "https://exofop.ipac.caltech.edu/tess/target.php?id={}"

_PARENTHESISED = re.compile(r"\([\s\S]*?\)")


def merge_disposition(
    record: CandidateRecord,
    reviewer_key: str,
    disposition: str,
    comments: Optional[str] = "",
) -> CandidateRecord:
    """
    Return a copy of ``record`` with ``reviewer_key``'s disposition set.

    The last submission per reviewer wins; earlier ones are not kept.
    Group submissions must already have passed the privilege check.
    """
    if not disposition:
        raise InvalidInput("disposition is required")
    if not reviewer_key:
        raise InvalidInput("reviewer_key is required")
    dispositions = dict(record.dispositions)
    dispositions[reviewer_key] = Disposition(disposition=disposition, comments=comments or "")
    return dataclasses.replace(record, dispositions=dispositions)


@dataclass(frozen=True)
class CandidateTally:
    id: str
    length: int

    def as_dict(self) -> dict:
        return {"id": self.id, "length": self.length}


@dataclass
class AnsweredSplit:
    answered: List[CandidateTally] = field(default_factory=list)
    unanswered: List[CandidateTally] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "answered": [tally.as_dict() for tally in self.answered],
            "unanswered": [tally.as_dict() for tally in self.unanswered],
        }


def split_answered_unanswered(
    snapshot: Iterable[CandidateRecord], reviewer_key: str
) -> AnsweredSplit:
    split = AnsweredSplit()
    for record in snapshot:
        tally = CandidateTally(id=record.id, length=len(record.dispositions))
        if reviewer_key in record.dispositions:
            split.answered.append(tally)
        else:
            split.unanswered.append(tally)
    return split


@dataclass(frozen=True)
class ResolvedDisposition:
    reviewer_key: str
    name: str
    disposition: str
    comments: str

    def as_dict(self) -> dict:
        return {
            "_id": self.reviewer_key,
            "name": self.name,
            "disposition": self.disposition,
            "comments": self.comments,
        }


def resolve_reviewer_names(
    record: CandidateRecord, lookup: Callable[[str], Optional[str]]
) -> List[ResolvedDisposition]:
    """Attach display names; reviewers ``lookup`` cannot resolve are dropped."""
    resolved = []
    for key, entry in record.dispositions.items():
        name = lookup(key)
        if name is None:
            continue
        resolved.append(
            ResolvedDisposition(
                reviewer_key=key,
                name=name,
                disposition=entry.disposition,
                comments=entry.comments,
            )
        )
    return resolved


def exofop_link(candidate_id: str) -> str:
    return EXOFOP_URL.format(_PARENTHESISED.sub("", candidate_id))


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(_cell(item) for item in value)
    return str(value)


def to_csv_row(record: CandidateRecord, reviewer_key: str = PAPER_REVIEWER_KEY) -> List[str]:
    entry = record.dispositions.get(reviewer_key)
    row = [record.id, exofop_link(record.id)]
    row.extend(_cell(getattr(record.document, attr)) for attr in CSV_ATTRIBUTES)
    row.append(entry.disposition if entry else "")
    row.append(entry.comments if entry else "")
    return row


def to_csv(
    snapshot: Iterable[CandidateRecord],
    include_all: bool = False,
    reviewer_key: str = PAPER_REVIEWER_KEY,
) -> str:
    """
    Render the export. Every data value is quoted and embedded quotes are
    doubled (RFC 4180). Without ``include_all`` only candidates the
    designated reviewer has answered are written.
    """
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(CSV_HEADER)
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for record in snapshot:
        if not include_all and reviewer_key not in record.dispositions:
            continue
        writer.writerow(to_csv_row(record, reviewer_key))
    return buffer.getvalue()


def submit_disposition(
    store: DocumentStore,
    candidate_id: str,
    reviewer: Reviewer,
    disposition: str,
    comments: Optional[str] = "",
    *,
    as_group: bool = False,
    group_policy: GroupPolicy = has_group_privilege,
    partition: str = CANDIDATE_PARTITION,
) -> CandidateRecord:
    """
    Record ``reviewer``'s disposition on the stored candidate document.

    Raises InvalidInput, PermissionDenied, or NotFound when the candidate
    does not exist.
    """
    if not disposition:
        raise InvalidInput("disposition is required")
    key = reviewer.key
    if as_group:
        if not group_policy(reviewer):
            raise PermissionDenied("You do not have permission to submit as group.")
        key = GROUP_REVIEWER_KEY

    record = CandidateRecord.from_document(
        store.get(candidate_doc_id(candidate_id, partition))
    )
    merged = merge_disposition(record, key, disposition, comments)
    store.insert(merged.to_document())
    return merged
