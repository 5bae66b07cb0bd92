"""Client for the provider's Files API.

Uploaded files are referenced from messages by id; files the code-execution
sandbox produces are fetched back through the same API.

Usage:
    files = ProviderFilesClient(api_key="sk-ant-...")
    uploaded = await files.upload(Path("report.pdf"), "application/pdf")
    content = await files.download(uploaded.id)
"""
import logging
from pathlib import Path
from typing import List, Optional, Union

import httpx

from filechat.errors import FileTooLargeError, UnsupportedMediaTypeError
from filechat.files.schemas import MAX_FILE_SIZE_BYTES, get_mime_rule

from .http import ProviderHTTPClient
from .schemas import ProviderFile

logger = logging.getLogger(__name__)

FILES_PATH = "/v1/files"
FILES_BETA = "files-api-2025-04-14"


class ProviderFilesClient(ProviderHTTPClient):
    """Upload, inspect, download and delete files stored by the provider."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        beta_features: Optional[List[str]] = None,
        timeout: Optional[httpx.Timeout] = None,
        max_bytes: int = MAX_FILE_SIZE_BYTES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            beta_features=beta_features or [FILES_BETA],
            base_url=base_url,
            api_version=api_version,
            timeout=timeout,
            transport=transport,
        )
        self.max_bytes = max_bytes

    async def upload(
        self,
        path: Union[str, Path],
        mime_type: str,
        filename: Optional[str] = None,
    ) -> ProviderFile:
        """Upload a local file.

        Args:
            path: Local file to send.
            mime_type: MIME type; must be in the supported table.
            filename: Name to register the file under; defaults to the
                basename of ``path``.

        Returns:
            ProviderFile with the new file id.

        Raises:
            UnsupportedMediaTypeError: MIME type not supported (no request sent).
            FileTooLargeError: File over the size limit (no request sent).
        """
        path = Path(path)
        name = filename or path.name
        if get_mime_rule(mime_type) is None:
            raise UnsupportedMediaTypeError(mime_type, name)
        size_bytes = path.stat().st_size
        if size_bytes > self.max_bytes:
            raise FileTooLargeError(size_bytes, self.max_bytes, name)

        response = await self._request(
            "POST",
            FILES_PATH,
            files={"file": (name, path.read_bytes(), mime_type)},
        )
        uploaded = ProviderFile(**self._json(response))
        logger.info(f"Uploaded {name} ({size_bytes} bytes) as {uploaded.id}")
        return uploaded

    async def list_files(self) -> List[ProviderFile]:
        response = await self._request("GET", FILES_PATH)
        return [ProviderFile(**item) for item in self._json(response).get("data", [])]

    async def get_metadata(self, file_id: str) -> ProviderFile:
        response = await self._request("GET", f"{FILES_PATH}/{file_id}")
        return ProviderFile(**self._json(response))

    async def download(self, file_id: str) -> bytes:
        """Return the raw content of a file."""
        response = await self._request("GET", f"{FILES_PATH}/{file_id}/content")
        return response.content

    async def delete(self, file_id: str) -> dict:
        response = await self._request("DELETE", f"{FILES_PATH}/{file_id}")
        logger.info(f"Deleted provider file {file_id}")
        return self._json(response)
