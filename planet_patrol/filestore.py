"""
File store abstraction for the Google Drive evidence hierarchy and an
in-memory test implementation.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

import httplib2
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from planet_patrol.errors import RemoteStoreError

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_PAGE_SIZE = 1000
LIST_FIELDS = "nextPageToken, files(id, name, mimeType, webContentLink, parents)"


@dataclass(frozen=True)
class RemoteFile:
    id: str
    name: str
    mime_type: str
    parent_id: Optional[str] = None
    content_link: Optional[str] = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


@dataclass(frozen=True)
class ChildFilter:
    """Which children of a folder a listing should return."""

    folders_only: bool
    name_contains: Optional[str] = None

    @classmethod
    def folders(cls) -> "ChildFilter":
        return cls(folders_only=True)

    @classmethod
    def files_named(cls, text: str) -> "ChildFilter":
        return cls(folders_only=False, name_contains=text)

    def matches(self, item: RemoteFile) -> bool:
        if item.is_folder != self.folders_only:
            return False
        if self.name_contains is not None and self.name_contains not in item.name:
            return False
        return True

    def to_drive_query(self, parent_id: str) -> str:
        clauses = [f"'{_escape(parent_id)}' in parents"]
        if self.name_contains is not None:
            clauses.append(f"name contains '{_escape(self.name_contains)}'")
        operator = "=" if self.folders_only else "!="
        clauses.append(f"mimeType {operator} '{FOLDER_MIME_TYPE}'")
        return " and ".join(clauses)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


@dataclass
class FilePage:
    items: List[RemoteFile]
    next_page_token: Optional[str] = None


class FileStore(Protocol):
    """Defines the listing operation the service needs from the file store."""

    def list_children(
        self,
        parent_id: str,
        *,
        child_filter: ChildFilter,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_token: Optional[str] = None,
    ) -> FilePage:
        ...


@dataclass
class InMemoryFileStore:
    """Test double for the file store; page tokens are stringified offsets."""

    nodes: Dict[str, RemoteFile] = field(default_factory=dict)

    def add_folder(self, folder_id: str, parent_id: str, name: str = "") -> RemoteFile:
        node = RemoteFile(
            id=folder_id,
            name=name or folder_id,
            mime_type=FOLDER_MIME_TYPE,
            parent_id=parent_id,
        )
        self.nodes[folder_id] = node
        return node

    def add_file(
        self,
        file_id: str,
        parent_id: str,
        name: str,
        mime_type: str = "application/pdf",
    ) -> RemoteFile:
        node = RemoteFile(
            id=file_id,
            name=name,
            mime_type=mime_type,
            parent_id=parent_id,
            content_link=f"https://example.test/files/{file_id}?export=download",
        )
        self.nodes[file_id] = node
        return node

    def list_children(
        self,
        parent_id: str,
        *,
        child_filter: ChildFilter,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_token: Optional[str] = None,
    ) -> FilePage:
        matching = [
            node
            for node in self.nodes.values()
            if node.parent_id == parent_id and child_filter.matches(node)
        ]
        offset = int(page_token) if page_token else 0
        end = offset + page_size
        next_token = str(end) if end < len(matching) else None
        return FilePage(items=matching[offset:end], next_page_token=next_token)


class DriveFileStore:
    """
    Google Drive v3 client authenticated as a service account.
    """

    def __init__(
        self,
        client_email: str,
        private_key: str,
        *,
        timeout: float = 30,
    ):
        if not client_email or not private_key:
            raise ValueError("Google service account credentials are required")
        self.credentials = service_account.Credentials.from_service_account_info(
            {
                "client_email": client_email,
                # Keys stored in env vars carry literal "\n" sequences.
                "private_key": private_key.replace("\\n", "\n"),
                "token_uri": GOOGLE_TOKEN_URI,
            },
            scopes=DRIVE_SCOPES,
        )
        self.timeout = timeout
        # httplib2.Http is not thread-safe; one client per thread.
        self._local = threading.local()

    def _service(self):
        service = getattr(self._local, "service", None)
        if service is None:
            http = AuthorizedHttp(
                self.credentials, http=httplib2.Http(timeout=self.timeout)
            )
            service = build("drive", "v3", http=http, cache_discovery=False)
            self._local.service = service
        return service

    def list_children(
        self,
        parent_id: str,
        *,
        child_filter: ChildFilter,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_token: Optional[str] = None,
    ) -> FilePage:
        try:
            response = (
                self._service()
                .files()
                .list(
                    q=child_filter.to_drive_query(parent_id),
                    pageSize=page_size,
                    pageToken=page_token,
                    fields=LIST_FIELDS,
                )
                .execute()
            )
        except (HttpError, httplib2.HttpLib2Error, OSError) as exc:
            raise RemoteStoreError(f"Drive listing of {parent_id} failed: {exc}") from exc

        items = [
            RemoteFile(
                id=item["id"],
                name=item.get("name", ""),
                mime_type=item.get("mimeType", ""),
                parent_id=parent_id,
                content_link=item.get("webContentLink"),
            )
            for item in response.get("files", [])
        ]
        return FilePage(items=items, next_page_token=response.get("nextPageToken"))
