"""Apply routing decisions to the files sent with one message.

Every file is classified before anything touches the network, so a single
bad file rejects the whole message with no uploads made.  Converted files
are inlined into the message text; the rest are uploaded concurrently.
If one upload fails, the uploads that succeeded are deleted again.
Temporary files are always removed.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List

from filechat.ai_provider.files_client import ProviderFilesClient

from .conversion import attach_text, convert_to_text
from .routing import classify, ensure_routable
from .schemas import MAX_FILE_SIZE_BYTES, RoutingAction, RoutingDecision, StoredFile, UploadedFile

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """What a message looks like after its files are routed.

    Attributes:
        content: Message text with converted file text appended.
        file_ids: Provider ids of uploaded files, in submission order.
        stored_files: Bytes of every routed file, for durable storage.
    """
    content: str
    file_ids: List[str] = field(default_factory=list)
    stored_files: List[StoredFile] = field(default_factory=list)


def _discard(files: List[UploadedFile]) -> None:
    for uploaded in files:
        try:
            uploaded.local_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove temporary file {uploaded.local_path}: {e}")


class FileIngestionService:
    """Routes, converts and uploads the files of a message."""

    def __init__(self, files_client: ProviderFilesClient, max_bytes: int = MAX_FILE_SIZE_BYTES) -> None:
        self._files = files_client
        self.max_bytes = max_bytes

    def validate(self, files: List[UploadedFile], code_execution_enabled: bool) -> List[RoutingDecision]:
        """Classify every file, raising on the first rejected one."""
        decisions = []
        for uploaded in files:
            decision = classify(
                uploaded.mime_type,
                uploaded.size_bytes,
                code_execution_enabled,
                max_bytes=self.max_bytes,
            )
            ensure_routable(
                decision,
                uploaded.mime_type,
                uploaded.size_bytes,
                filename=uploaded.original_filename,
                max_bytes=self.max_bytes,
            )
            decisions.append(decision)
        return decisions

    async def _remove_uploads(self, file_ids: List[str]) -> None:
        """Delete provider files left behind by a partially failed upload."""
        results = await asyncio.gather(
            *(self._files.delete(file_id) for file_id in file_ids), return_exceptions=True,
        )
        for file_id, result in zip(file_ids, results):
            if isinstance(result, Exception):
                logger.warning(f"Could not delete provider file {file_id}: {result}")

    async def ingest(
        self,
        pending_text: str,
        files: List[UploadedFile],
        code_execution_enabled: bool,
    ) -> IngestionResult:
        """Route the files of a message.

        Args:
            pending_text: Text the user typed.
            files: Uploaded files, written to temporary paths.
            code_execution_enabled: Whether the turn runs with the sandbox.

        Returns:
            IngestionResult with augmented content and uploaded file ids.

        Raises:
            FileTooLargeError: A file is over the size limit.
            UnsupportedMediaTypeError: A file type is not supported.
            ConversionError: A conversion-routed type has no converter.
            ServiceError: An upload failed. Sibling uploads are deleted first.
        """
        try:
            decisions = self.validate(files, code_execution_enabled)

            content = pending_text
            for uploaded, decision in zip(files, decisions):
                if decision.action == RoutingAction.CONVERT_TO_TEXT:
                    text = convert_to_text(uploaded.local_path, uploaded.mime_type)
                    content = attach_text(content, uploaded.original_filename, text)
                    logger.info(f"Converted {uploaded.original_filename} to text ({len(text)} chars)")

            upload_indexes = [
                i for i, decision in enumerate(decisions)
                if decision.action == RoutingAction.UPLOAD_TO_PROVIDER
            ]
            results = await asyncio.gather(*(
                self._files.upload(
                    files[i].local_path,
                    files[i].mime_type,
                    filename=files[i].original_filename,
                )
                for i in upload_indexes
            ), return_exceptions=True)
            failures = [r for r in results if isinstance(r, BaseException)]
            if failures:
                await self._remove_uploads([r.id for r in results if not isinstance(r, BaseException)])
                raise failures[0]
            provider_ids = dict(zip(upload_indexes, (f.id for f in results)))

            stored = [
                StoredFile(
                    filename=uploaded.original_filename,
                    mime_type=uploaded.mime_type,
                    content=uploaded.local_path.read_bytes(),
                    provider_file_id=provider_ids.get(i),
                )
                for i, uploaded in enumerate(files)
            ]
            file_ids = [provider_file.id for provider_file in results]

            return IngestionResult(content=content, file_ids=file_ids, stored_files=stored)
        finally:
            _discard(files)
