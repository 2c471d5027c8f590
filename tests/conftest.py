from __future__ import annotations

import io
import json
from typing import Any, Dict, List, Optional
from urllib import error as url_error
from urllib import request as url_request

import pytest
from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

NOW_MS = 1_700_000_000_000


class FakeSnapshot:
    def __init__(self, doc_id: str, data: Optional[Dict[str, Any]], update_time: Any = None) -> None:
        self.id = doc_id
        self._data = data
        self.update_time = update_time

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return dict(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, db: "FakeFirestore", path: str) -> None:
        self._db = db
        self.path = path
        self.id = path.rsplit("/", 1)[-1]

    def get(self) -> FakeSnapshot:
        self._db.reads.append(self.path)
        return FakeSnapshot(self.id, self._db.docs.get(self.path), self._db.update_times.get(self.path))

    def update(self, fields: Dict[str, Any], option: Any = None) -> None:
        if self._db.fail_updates_with is not None:
            raise self._db.fail_updates_with
        if self.path not in self._db.docs:
            raise gcp_exceptions.NotFound(f"No document to update: {self.path}")
        if option is not None and option["last_update_time"] != self._db.update_times.get(self.path):
            raise gcp_exceptions.FailedPrecondition("update_time mismatch")
        doc = self._db.docs[self.path]
        for key, value in fields.items():
            if value is firestore.DELETE_FIELD:
                doc.pop(key, None)
            else:
                doc[key] = value
        self._db.bump(self.path)
        self._db.updates.append((self.path, dict(fields)))

    def delete(self) -> None:
        self._db.docs.pop(self.path, None)
        self._db.deletes.append(self.path)

    def collection(self, name: str) -> "FakeCollection":
        return FakeCollection(self._db, f"{self.path}/{name}")


class FakeCollection:
    def __init__(self, db: "FakeFirestore", path: str) -> None:
        self._db = db
        self.path = path

    def document(self, doc_id: str) -> FakeDocumentRef:
        return FakeDocumentRef(self._db, f"{self.path}/{doc_id}")

    def stream(self):
        prefix = f"{self.path}/"
        snapshots = []
        for path in sorted(self._db.docs):
            rest = path[len(prefix):] if path.startswith(prefix) else None
            if rest and "/" not in rest:
                snapshots.append(FakeSnapshot(rest, self._db.docs[path]))
        return iter(snapshots)


class FakeFirestore:
    """In-memory stand-in for ``firestore.Client`` covering what the app uses."""

    def __init__(self) -> None:
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.update_times: Dict[str, int] = {}
        self.updates: List[Any] = []
        self.deletes: List[str] = []
        self.reads: List[str] = []
        self.fail_updates_with: Optional[Exception] = None
        self._clock = 0

    def bump(self, path: str) -> None:
        self._clock += 1
        self.update_times[path] = self._clock

    def seed(self, path: str, data: Dict[str, Any]) -> None:
        self.docs[path] = dict(data)
        self.bump(path)

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def document(self, path: str) -> FakeDocumentRef:
        return FakeDocumentRef(self, path)

    def write_option(self, **kwargs) -> Dict[str, Any]:
        return kwargs


class FakeCredentials:
    """Mimics google-auth credentials: ``valid``/``token``/``refresh``."""

    def __init__(self, *, fail_with: Optional[Exception] = None) -> None:
        self.token: Optional[str] = None
        self.refresh_count = 0
        self.fail_with = fail_with
        self.expired = False

    @property
    def valid(self) -> bool:
        return self.token is not None and not self.expired

    def refresh(self, request) -> None:
        self.refresh_count += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.token = f"access-token-{self.refresh_count}"
        self.expired = False


class FakeHTTPResponse:
    def __init__(self, body: Any) -> None:
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        self._body = body.encode("utf-8") if isinstance(body, str) else body

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> bool:
        return False


def http_error(url: str, code: int, body: Any = b"") -> url_error.HTTPError:
    if isinstance(body, dict):
        body = json.dumps(body).encode("utf-8")
    return url_error.HTTPError(url, code, "error", {}, io.BytesIO(body))


class ScriptedTransport:
    """Replaces ``urlopen``: returns queued replies and records each request."""

    def __init__(self) -> None:
        self.replies: List[Any] = []
        self.requests: List[Dict[str, Any]] = []

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    def __call__(self, req, timeout=None):
        data = req.data.decode("utf-8") if req.data else None
        self.requests.append(
            {
                "url": req.full_url,
                "method": req.get_method(),
                "headers": dict(req.header_items()),
                "body": json.loads(data) if data else None,
                "timeout": timeout,
            }
        )
        if not self.replies:
            raise AssertionError(f"Unexpected request to {req.full_url}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return FakeHTTPResponse(reply)


@pytest.fixture
def fake_db() -> FakeFirestore:
    db = FakeFirestore()
    db.seed("users/user-1", {"displayName": "Ada", "subscriptionPackage": "FREE"})
    return db


@pytest.fixture
def transport(monkeypatch) -> ScriptedTransport:
    scripted = ScriptedTransport()
    monkeypatch.setattr(url_request, "urlopen", scripted)
    return scripted
