"""Fetch files generated in the sandbox and store them on the assistant turn.

By the time this runs the assistant's text is final, so nothing here may
fail the request: each artifact is fetched independently and a failure is
logged and skipped.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from filechat.conversation.schemas import Attachment, ConversationTurn
from filechat.conversation.store import ConversationStore
from filechat.errors import ArtifactDownloadError

from .files_client import ProviderFilesClient
from .schemas import GeneratedArtifact, ProviderFile

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class DownloadReport:
    """Outcome of downloading a turn's artifacts.

    Attributes:
        stored: Attachments created, in artifact order.
        failed: One error per artifact that could not be stored.
    """
    stored: List[Attachment] = field(default_factory=list)
    failed: List[ArtifactDownloadError] = field(default_factory=list)


@dataclass
class _Fetched:
    artifact: GeneratedArtifact
    metadata: Optional[ProviderFile] = None
    content: Optional[bytes] = None
    error: Optional[ArtifactDownloadError] = None


class ArtifactDownloader:
    """Downloads generated artifacts concurrently and persists them in order."""

    def __init__(self, files_client: ProviderFilesClient, store: ConversationStore) -> None:
        self._files = files_client
        self._store = store

    async def _fetch(self, artifact: GeneratedArtifact) -> _Fetched:
        try:
            content, metadata = await asyncio.gather(
                self._files.download(artifact.file_id),
                self._files.get_metadata(artifact.file_id),
            )
        except Exception as e:
            return _Fetched(artifact, error=ArtifactDownloadError(artifact.file_id, str(e)))
        return _Fetched(artifact, metadata=metadata, content=content)

    async def download_artifacts(
        self,
        artifacts: List[GeneratedArtifact],
        turn: ConversationTurn,
    ) -> DownloadReport:
        """Download every artifact and attach it to ``turn``.

        Downloads run concurrently; attachments are written afterwards in
        artifact order.
        """
        report = DownloadReport()
        if not artifacts:
            return report

        fetched = await asyncio.gather(*(self._fetch(a) for a in artifacts))

        for item in fetched:
            if item.error is None:
                try:
                    attachment = self._store.add_attachment(
                        turn,
                        filename=item.metadata.filename or item.artifact.filename,
                        content=item.content,
                        mime_type=item.metadata.mime_type or DEFAULT_MIME_TYPE,
                        provider_file_id=item.artifact.file_id,
                    )
                    report.stored.append(attachment)
                    continue
                except Exception as e:
                    item.error = ArtifactDownloadError(item.artifact.file_id, str(e))

            logger.error(item.error.message)
            report.failed.append(item.error)

        logger.info(
            f"Stored {len(report.stored)}/{len(artifacts)} generated files on turn {turn.id}"
        )
        return report
