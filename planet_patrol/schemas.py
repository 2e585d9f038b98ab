"""
Pydantic schemas for the review backend HTTP surface.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ReviewerResponse(BaseModel):
    id: str
    name: str
    group: bool = False


class CandidateSummary(BaseModel):
    id: str
    doc: dict


class CandidateTallyResponse(BaseModel):
    id: str
    length: int


class AnsweredCandidatesResponse(BaseModel):
    answered: list[CandidateTallyResponse]
    unanswered: list[CandidateTallyResponse]


class NamedDisposition(BaseModel):
    id: str
    name: str
    disposition: str
    comments: str = ""


class CandidateDetailResponse(BaseModel):
    id: str
    doc: dict
    dispositions: list[NamedDisposition]


class FileReferenceResponse(BaseModel):
    id: str
    name: str
    webContentLink: Optional[str] = None
    mimeType: Optional[str] = None


class SubmitDispositionRequest(BaseModel):
    disposition: Optional[str] = Field(default=None, max_length=64)
    comments: Optional[str] = Field(default="", max_length=4096)
    group: bool = False


class MessageResponse(BaseModel):
    message: str


class RefreshLoopStatus(BaseModel):
    running: bool
    interval_seconds: float
    last_started_at: Optional[float] = None
    last_success_at: Optional[float] = None
    last_failure_at: Optional[float] = None
    last_error: Optional[str] = None
    consecutive_failures: int = 0
    skipped_ticks: int = 0


class StatusResponse(BaseModel):
    candidates: int
    candidates_built_at: Optional[float] = None
    folders: int
    folders_built_at: Optional[float] = None
    candidate_refresh: RefreshLoopStatus
    folder_refresh: RefreshLoopStatus


class RefreshTriggerResponse(BaseModel):
    loop: str
    started: bool
