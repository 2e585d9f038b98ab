"""
Dependency wiring for the FastAPI app and the refresh loops.
"""

from __future__ import annotations

from planet_patrol.candidates import CandidateSnapshotBuilder
from planet_patrol.config import get_settings
from planet_patrol.docstore import CloudantDocumentStore, DocumentStore, InMemoryDocumentStore
from planet_patrol.filestore import DriveFileStore, FileStore, InMemoryFileStore
from planet_patrol.folders import FolderIndexBuilder
from planet_patrol.identity import GroupPolicy, IdentityDirectory, has_group_privilege
from planet_patrol.locator import FileLocator
from planet_patrol.models import CandidateSnapshot, FolderIndex
from planet_patrol.retry import RetryPolicy
from planet_patrol.scheduler import RefreshLoop
from planet_patrol.state import SharedReference

_document_store: DocumentStore | None = None
_file_store: FileStore | None = None
_candidate_state: SharedReference[CandidateSnapshot] | None = None
_folder_state: SharedReference[FolderIndex] | None = None
_candidate_loop: RefreshLoop | None = None
_folder_loop: RefreshLoop | None = None


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so every request and the refresh
    loop share one client.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.cloudant_url:
        _document_store = InMemoryDocumentStore()
    else:
        _document_store = CloudantDocumentStore(
            settings.cloudant_url,
            settings.cloudant_database,
            settings.cloudant_api_key or "",
            iam_url=settings.cloudant_iam_url,
            timeout=settings.remote_timeout_seconds,
        )
    return _document_store


def get_file_store() -> FileStore:
    global _file_store
    if _file_store:
        return _file_store

    settings = get_settings()
    if (
        settings.use_in_memory_backends
        or not settings.google_client_email
        or not settings.google_private_key
    ):
        _file_store = InMemoryFileStore()
    else:
        _file_store = DriveFileStore(
            settings.google_client_email,
            settings.google_private_key,
            timeout=settings.remote_timeout_seconds,
        )
    return _file_store


def get_candidate_state() -> SharedReference[CandidateSnapshot]:
    global _candidate_state
    if _candidate_state is None:
        _candidate_state = SharedReference(CandidateSnapshot())
    return _candidate_state


def get_folder_state() -> SharedReference[FolderIndex]:
    global _folder_state
    if _folder_state is None:
        _folder_state = SharedReference(FolderIndex())
    return _folder_state


def get_candidate_loop() -> RefreshLoop:
    global _candidate_loop
    if _candidate_loop:
        return _candidate_loop

    settings = get_settings()
    builder = CandidateSnapshotBuilder(
        get_document_store(),
        get_candidate_state(),
        partition=settings.candidate_partition,
        page_delay_seconds=settings.candidate_page_delay_seconds,
    )
    _candidate_loop = RefreshLoop(
        "candidates",
        builder.sync,
        settings.candidate_refresh_interval_seconds,
        RetryPolicy(
            backoff_seconds=settings.candidate_retry_backoff_seconds,
            max_attempts=settings.candidate_retry_max_attempts,
        ),
    )
    return _candidate_loop


def get_folder_loop() -> RefreshLoop:
    global _folder_loop
    if _folder_loop:
        return _folder_loop

    settings = get_settings()
    builder = FolderIndexBuilder(
        get_file_store(),
        get_folder_state(),
        settings.drive_root_folder_id,
        page_size=settings.drive_page_size,
    )
    _folder_loop = RefreshLoop(
        "folders",
        builder.sync,
        settings.folder_refresh_interval_seconds,
        RetryPolicy.no_retry(),
    )
    return _folder_loop


def get_file_locator() -> FileLocator:
    settings = get_settings()
    return FileLocator(
        get_file_store(), get_folder_state(), page_size=settings.drive_page_size
    )


def get_identity_directory() -> IdentityDirectory:
    return IdentityDirectory(get_document_store())


def get_group_policy() -> GroupPolicy:
    return has_group_privilege


def reset_dependencies() -> None:
    """Drop all singletons (useful in tests)."""
    global _document_store, _file_store, _candidate_state, _folder_state
    global _candidate_loop, _folder_loop
    for loop in (_candidate_loop, _folder_loop):
        if loop is not None:
            loop.stop(timeout=1.0)
    _document_store = None
    _file_store = None
    _candidate_state = None
    _folder_state = None
    _candidate_loop = None
    _folder_loop = None
