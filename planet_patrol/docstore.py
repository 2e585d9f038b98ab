"""
Document store abstraction for Cloudant and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import json
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol
from urllib.parse import quote

import requests

from planet_patrol.errors import NotFound, RemoteStoreError

REQUEST_TIMEOUT = 30  # seconds
IAM_TOKEN_URL = "https://iam.cloud.ibm.com/identity/token"
IAM_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"


@dataclass
class DocumentPage:
    rows: List[dict]
    total_rows: int


class DocumentStore(Protocol):
    """Operations the service needs from the document store."""

    def partitioned_list(
        self,
        partition: str,
        *,
        include_docs: bool = True,
        start_key: Optional[str] = None,
    ) -> DocumentPage:
        ...

    def get(self, doc_id: str) -> dict:
        ...

    def insert(self, document: dict) -> None:
        ...


@dataclass
class InMemoryDocumentStore:
    """
    Test double for the document store.

    ``page_size`` caps how many rows one ``partitioned_list`` call returns so
    callers have to paginate the way they do against the real service.
    """

    page_size: Optional[int] = None
    documents: Dict[str, dict] = field(default_factory=dict)

    def __post_init__(self):
        self._lock = threading.Lock()

    def partitioned_list(
        self,
        partition: str,
        *,
        include_docs: bool = True,
        start_key: Optional[str] = None,
    ) -> DocumentPage:
        prefix = f"{partition}:"
        with self._lock:
            ids = sorted(doc_id for doc_id in self.documents if doc_id.startswith(prefix))
            selected = [doc_id for doc_id in ids if start_key is None or doc_id >= start_key]
            if self.page_size is not None:
                selected = selected[: self.page_size]
            rows = []
            for doc_id in selected:
                doc = self.documents[doc_id]
                row = {"id": doc_id, "key": doc_id, "value": {"rev": doc.get("_rev")}}
                if include_docs:
                    row["doc"] = copy.deepcopy(doc)
                rows.append(row)
            return DocumentPage(rows=rows, total_rows=len(ids))

    def get(self, doc_id: str) -> dict:
        with self._lock:
            doc = self.documents.get(doc_id)
            if doc is None:
                raise NotFound(doc_id)
            return copy.deepcopy(doc)

    def insert(self, document: dict) -> None:
        doc = copy.deepcopy(document)
        doc_id = doc.setdefault("_id", uuid.uuid4().hex)
        with self._lock:
            existing = self.documents.get(doc_id)
            if existing is not None and existing.get("_rev") != doc.get("_rev"):
                raise RemoteStoreError(f"Document update conflict: {doc_id}")
            generation = int(existing["_rev"].split("-", 1)[0]) + 1 if existing else 1
            doc["_rev"] = f"{generation}-{uuid.uuid4().hex}"
            self.documents[doc_id] = doc


class CloudantDocumentStore:
    """
    Cloudant client speaking the CouchDB HTTP API, authenticated with an
    IBM Cloud IAM API key.
    """

    def __init__(
        self,
        url: str,
        database: str,
        api_key: str,
        *,
        iam_url: str = IAM_TOKEN_URL,
        timeout: float = REQUEST_TIMEOUT,
    ):
        if not url:
            raise ValueError("CLOUDANT_URL is required for CloudantDocumentStore")
        self.base_url = f"{url.rstrip('/')}/{quote(database, safe='')}"
        self.api_key = api_key
        self.iam_url = iam_url
        self.timeout = timeout
        self._session = requests.Session()
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    def _bearer_token(self) -> str:
        with self._token_lock:
            # Refresh a minute before expiry.
            if self._token and time.time() < self._token_expires_at - 60:
                return self._token
            response = self._session.post(
                self.iam_url,
                data={"grant_type": IAM_GRANT_TYPE, "apikey": self.api_key},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
            self._token = payload["access_token"]
            self._token_expires_at = float(
                payload.get("expiration") or time.time() + payload.get("expires_in", 3600)
            )
            return self._token

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            headers = {"Authorization": f"Bearer {self._bearer_token()}"}
            response = self._session.request(
                method,
                f"{self.base_url}/{path}" if path else self.base_url,
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise RemoteStoreError(f"{method} {path} failed: {exc}") from exc
        if response.status_code == 404:
            raise NotFound(path)
        if response.status_code >= 400:
            raise RemoteStoreError(
                f"{method} {path} returned {response.status_code}: {response.text[:200]}"
            )
        return response

    def partitioned_list(
        self,
        partition: str,
        *,
        include_docs: bool = True,
        start_key: Optional[str] = None,
    ) -> DocumentPage:
        params = {"include_docs": json.dumps(include_docs)}
        if start_key is not None:
            params["startkey"] = json.dumps(start_key)
        response = self._request(
            "GET", f"_partition/{quote(partition, safe='')}/_all_docs", params=params
        )
        payload = response.json()
        return DocumentPage(
            rows=payload.get("rows") or [],
            total_rows=int(payload.get("total_rows") or 0),
        )

    def get(self, doc_id: str) -> dict:
        return self._request("GET", quote(doc_id, safe="")).json()

    def insert(self, document: dict) -> None:
        self._request("POST", "", json=document)
