"""
HTTP routes for the review backend.

Handlers are thin: list views read the in-memory snapshot and folder index,
never the remote stores.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Response

from planet_patrol import dispositions
from planet_patrol.config import get_settings
from planet_patrol.dependencies import (
    get_candidate_loop,
    get_candidate_state,
    get_document_store,
    get_file_locator,
    get_folder_loop,
    get_folder_state,
    get_group_policy,
    get_identity_directory,
)
from planet_patrol.docstore import DocumentStore
from planet_patrol.errors import InvalidInput, NotFound, PermissionDenied, RemoteStoreError
from planet_patrol.identity import GroupPolicy, IdentityDirectory, Reviewer
from planet_patrol.locator import FileLocator
from planet_patrol.models import CandidateRecord, CandidateSnapshot, FolderIndex, candidate_doc_id
from planet_patrol.scheduler import RefreshLoop
from planet_patrol.schemas import (
    AnsweredCandidatesResponse,
    CandidateDetailResponse,
    CandidateSummary,
    FileReferenceResponse,
    MessageResponse,
    NamedDisposition,
    RefreshLoopStatus,
    RefreshTriggerResponse,
    ReviewerResponse,
    StatusResponse,
    SubmitDispositionRequest,
)
from planet_patrol.state import SharedReference

logger = logging.getLogger(__name__)

router = APIRouter()


def get_current_reviewer(
    x_reviewer_id: str | None = Header(default=None),
    identities: IdentityDirectory = Depends(get_identity_directory),
) -> Reviewer:
    """
    Resolve the signed-in reviewer. The auth layer in front of this service
    sets ``X-Reviewer-Id`` to the reviewer's ``user:<email>`` key.
    """
    if not x_reviewer_id:
        raise HTTPException(status_code=401, detail="You are not signed in.")
    try:
        return identities.get(x_reviewer_id)
    except NotFound:
        raise HTTPException(status_code=401, detail="You are not signed in.")
    except RemoteStoreError:
        logger.exception("Looking up reviewer %s failed", x_reviewer_id)
        raise HTTPException(status_code=502, detail="The document store is unavailable.")


def _loop_status(loop: RefreshLoop) -> RefreshLoopStatus:
    return RefreshLoopStatus(
        running=loop.running,
        interval_seconds=loop.interval_seconds,
        **loop.status.as_dict(),
    )


@router.get("/me", response_model=ReviewerResponse)
def me(reviewer: Reviewer = Depends(get_current_reviewer)):
    return ReviewerResponse(id=reviewer.key, name=reviewer.name, group=reviewer.group)


@router.get("/all-tics", response_model=list[CandidateSummary])
def all_tics(
    state: SharedReference[CandidateSnapshot] = Depends(get_candidate_state),
):
    return [CandidateSummary(**record.as_dict()) for record in state.get()]


@router.get("/answered-tics", response_model=AnsweredCandidatesResponse)
def answered_tics(
    reviewer: Reviewer = Depends(get_current_reviewer),
    state: SharedReference[CandidateSnapshot] = Depends(get_candidate_state),
):
    split = dispositions.split_answered_unanswered(state.get(), reviewer.key)
    return AnsweredCandidatesResponse(**split.as_dict())


@router.get("/tic/{tic_id}", response_model=CandidateDetailResponse)
def get_tic(
    tic_id: str,
    store: DocumentStore = Depends(get_document_store),
    identities: IdentityDirectory = Depends(get_identity_directory),
):
    try:
        record = CandidateRecord.from_document(
            store.get(candidate_doc_id(tic_id, get_settings().candidate_partition))
        )
    except NotFound:
        raise HTTPException(status_code=404, detail="The request TIC could not be found.")
    except RemoteStoreError:
        logger.exception("Fetching TIC %s failed", tic_id)
        raise HTTPException(status_code=502, detail="The document store is unavailable.")

    named = dispositions.resolve_reviewer_names(record, identities.display_name)
    return CandidateDetailResponse(
        id=record.id,
        doc=record.to_document(),
        dispositions=[
            NamedDisposition(
                id=entry.reviewer_key,
                name=entry.name,
                disposition=entry.disposition,
                comments=entry.comments,
            )
            for entry in named
        ],
    )


@router.get("/files/{tic_id}", response_model=list[FileReferenceResponse])
def get_files(tic_id: str, locator: FileLocator = Depends(get_file_locator)):
    try:
        files = locator.locate(tic_id)
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if not files:
        raise HTTPException(status_code=404, detail="No files found.")
    return [FileReferenceResponse(**reference.to_dict()) for reference in files]


@router.post("/submit/{tic_id}", response_model=MessageResponse)
def submit(
    tic_id: str,
    payload: SubmitDispositionRequest,
    reviewer: Reviewer = Depends(get_current_reviewer),
    store: DocumentStore = Depends(get_document_store),
    group_policy: GroupPolicy = Depends(get_group_policy),
):
    try:
        dispositions.submit_disposition(
            store,
            tic_id,
            reviewer,
            payload.disposition or "",
            payload.comments,
            as_group=payload.group,
            group_policy=group_policy,
            partition=get_settings().candidate_partition,
        )
    except InvalidInput:
        raise HTTPException(status_code=400, detail="Malformed request.")
    except PermissionDenied as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    except NotFound:
        raise HTTPException(status_code=404, detail="The request TIC could not be found.")
    except RemoteStoreError:
        logger.exception("Saving disposition for TIC %s failed", tic_id)
        raise HTTPException(status_code=502, detail="The document store is unavailable.")
    return MessageResponse(message="Success")


def _csv_response(snapshot: CandidateSnapshot, include_all: bool) -> Response:
    content = dispositions.to_csv(
        snapshot,
        include_all=include_all,
        reviewer_key=get_settings().csv_reviewer_key,
    )
    filename = f"planet-patrol-dispositions{'-all' if include_all else ''}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/csv")
def export_csv(
    state: SharedReference[CandidateSnapshot] = Depends(get_candidate_state),
):
    return _csv_response(state.get(), include_all=False)


@router.get("/csv/all")
def export_csv_all(
    state: SharedReference[CandidateSnapshot] = Depends(get_candidate_state),
):
    return _csv_response(state.get(), include_all=True)


@router.get("/status", response_model=StatusResponse)
def status(
    candidates: SharedReference[CandidateSnapshot] = Depends(get_candidate_state),
    folders: SharedReference[FolderIndex] = Depends(get_folder_state),
    candidate_loop: RefreshLoop = Depends(get_candidate_loop),
    folder_loop: RefreshLoop = Depends(get_folder_loop),
):
    snapshot = candidates.get()
    index = folders.get()
    return StatusResponse(
        candidates=len(snapshot),
        candidates_built_at=snapshot.built_at,
        folders=len(index),
        folders_built_at=index.built_at,
        candidate_refresh=_loop_status(candidate_loop),
        folder_refresh=_loop_status(folder_loop),
    )


@router.post("/refresh/{loop_name}", response_model=RefreshTriggerResponse, status_code=202)
def refresh(loop_name: str):
    loops = {"candidates": get_candidate_loop, "folders": get_folder_loop}
    if loop_name not in loops:
        raise HTTPException(status_code=404, detail="Unknown refresh loop")
    started = loops[loop_name]().trigger_in_background()
    return RefreshTriggerResponse(loop=loop_name, started=started)
