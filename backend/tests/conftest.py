"""Shared test fixtures and configuration for backend tests."""
import asyncio
import re
from typing import Callable, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from filechat.config import AppSettings, set_config
from filechat.conversation.store import ConversationStore
from filechat.files.schemas import UploadedFile
from filechat.main import app


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    """Settings pointing every path at the test's temp directory."""
    config = AppSettings(**{
        "files": {"upload_dir": str(tmp_path / "uploads")},
        "conversation": {"storage_dir": str(tmp_path / "attachments"), "db_path": ":memory:"},
        "secrets": {"anthropic": {"api_key": "test-key"}},
    })
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def store(tmp_path):
    """An in-memory ConversationStore registered as the singleton."""
    ConversationStore.reset_instance()
    instance = ConversationStore.get_instance(
        storage_dir=str(tmp_path / "attachments"),
        db_path=":memory:",
    )
    yield instance
    ConversationStore.reset_instance()


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app.

    The lifespan is not entered, so tests install the pipeline and store
    singletons themselves.
    """
    return TestClient(app)


@pytest.fixture
def make_upload(tmp_path) -> Callable[..., UploadedFile]:
    """Write bytes to a temp file and describe it as an upload."""
    def _make(filename: str, content: bytes, mime_type: str) -> UploadedFile:
        path = tmp_path / "incoming" / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return UploadedFile(
            local_path=path,
            original_filename=filename,
            mime_type=mime_type,
            size_bytes=len(content),
        )
    return _make


_FILENAME_RE = re.compile(rb'filename="([^"]+)"')


class FakeProvider:
    """Scriptable stand-in for the provider's Messages and Files endpoints.

    Use ``transport`` with the clients; every request is recorded in
    ``requests``.  ``completion_delay`` and ``upload_delays`` make the
    handler sleep, and ``cancelled`` records the paths of requests that
    were cancelled while sleeping.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.completion_body: Dict = {"content": [{"type": "text", "text": "Hello"}]}
        self.completion_status = 200
        self.completion_error: Exception = None
        self.completion_delay = 0.0
        self.files: Dict[str, Dict] = {}
        self.missing_files: set = set()
        self.uploaded: List[str] = []
        self.upload_delays: Dict[str, float] = {}
        self.failing_uploads: set = set()
        self.deleted: List[str] = []
        self.cancelled: List[str] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def add_file(self, file_id: str, filename: str, content: bytes, mime_type: str = "image/png") -> None:
        self.files[file_id] = {"filename": filename, "content": content, "mime_type": mime_type}

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    async def _sleep(self, seconds: float, path: str) -> None:
        try:
            await asyncio.sleep(seconds)
        except asyncio.CancelledError:
            self.cancelled.append(path)
            raise

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/v1/messages":
            if self.completion_delay:
                await self._sleep(self.completion_delay, path)
            if self.completion_error is not None:
                raise self.completion_error
            return httpx.Response(self.completion_status, json=self.completion_body)

        if path == "/v1/files" and request.method == "POST":
            match = _FILENAME_RE.search(request.content)
            filename = match.group(1).decode() if match else "unnamed"
            if filename in self.upload_delays:
                await self._sleep(self.upload_delays[filename], path)
            if filename in self.failing_uploads:
                return httpx.Response(500, json={"error": {"type": "api_error"}})
            file_id = f"file_{filename}"
            self.uploaded.append(filename)
            self.add_file(file_id, filename, b"", mime_type="application/octet-stream")
            return httpx.Response(200, json={"id": file_id, "type": "file", "filename": filename})

        if path == "/v1/files" and request.method == "GET":
            return httpx.Response(200, json={
                "data": [{"id": file_id, "filename": f["filename"]} for file_id, f in self.files.items()],
            })

        if path.startswith("/v1/files/"):
            parts = path.split("/")
            file_id = parts[3]
            if file_id in self.missing_files or file_id not in self.files:
                return httpx.Response(404, json={"error": {"type": "not_found_error"}})
            stored = self.files[file_id]
            if path.endswith("/content"):
                return httpx.Response(200, content=stored["content"])
            if request.method == "DELETE":
                del self.files[file_id]
                self.deleted.append(file_id)
                return httpx.Response(200, json={"id": file_id, "type": "file_deleted"})
            return httpx.Response(200, json={
                "id": file_id,
                "filename": stored["filename"],
                "mime_type": stored["mime_type"],
                "size_bytes": len(stored["content"]),
            })

        return httpx.Response(404, json={"error": "unknown path"})


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


