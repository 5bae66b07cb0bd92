"""Per-message orchestration of the file-aware conversation flow.

For one incoming user message:

1. route the attached files (reject, convert to text, or upload)
2. record the user turn and keep copies of its files
3. build the alternating history, excluding the turn just recorded
4. make exactly one completion call
5. record the assistant turn with the ids of generated files
6. download the generated files onto the assistant turn

Validation errors in step 1 leave no trace.  A failed completion call
leaves the user turn in place; the caller may resubmit with the same
container id.  Download failures never fail the message.

A module-level singleton is initialised in ``filechat/main.py`` from config.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional

import httpx

from filechat.ai_provider.client import ClaudeCompletionClient
from filechat.ai_provider.downloader import ArtifactDownloader, DownloadReport
from filechat.ai_provider.files_client import ProviderFilesClient
from filechat.ai_provider.http import build_timeout
from filechat.ai_provider.schemas import ServiceSession
from filechat.config import AppSettings
from filechat.conversation.history import build_history
from filechat.conversation.schemas import Attachment, ConversationTurn
from filechat.conversation.store import ConversationStore
from filechat.errors import InvalidModelError
from filechat.files.ingestion import FileIngestionService
from filechat.files.schemas import UploadedFile

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything produced while handling one message."""
    user_turn: ConversationTurn
    assistant_turn: ConversationTurn
    session_id: Optional[str]
    model_used: str
    model_requested: str
    user_attachments: List[Attachment] = field(default_factory=list)
    downloads: DownloadReport = field(default_factory=DownloadReport)


class ConversationPipeline:
    """Runs the ingest -> history -> complete -> download flow."""

    def __init__(
        self,
        store: ConversationStore,
        ingestion: FileIngestionService,
        client: ClaudeCompletionClient,
        downloader: ArtifactDownloader,
        model_aliases: Dict[str, str],
        default_model: str,
        freshness: timedelta = timedelta(days=7),
    ) -> None:
        self.store = store
        self.ingestion = ingestion
        self.client = client
        self.downloader = downloader
        self.model_aliases = dict(model_aliases)
        self.default_model = default_model
        self.freshness = freshness

    def resolve_model(self, model: Optional[str]) -> str:
        """Map a model alias to a provider model id.

        Full model ids already present in the alias table are accepted too.

        Raises:
            InvalidModelError: The model is not configured.
        """
        model = model or self.default_model
        if model in self.model_aliases:
            return self.model_aliases[model]
        if model in self.model_aliases.values():
            return model
        raise InvalidModelError(model, sorted(self.model_aliases))

    async def handle_message(
        self,
        conversation_id: str,
        pending_text: str,
        pending_files: List[UploadedFile],
        session: ServiceSession,
        model: Optional[str] = None,
    ) -> PipelineResult:
        """Handle one user message end to end.

        Raises:
            InvalidModelError, FileTooLargeError, UnsupportedMediaTypeError,
            ConversionError: before anything is recorded.
            ProviderConnectTimeoutError, ProviderStillProcessingError,
            ServiceError, ProviderCallError: after the user turn is recorded.
        """
        model_id = self.resolve_model(model)

        ingested = await self.ingestion.ingest(
            pending_text or "",
            pending_files,
            session.enable_code_execution,
        )

        user_turn = self.store.add_turn(
            conversation_id,
            "user",
            ingested.content,
            ingested.file_ids,
        )
        user_attachments = [
            self.store.add_attachment(
                user_turn,
                filename=stored.filename,
                content=stored.content,
                mime_type=stored.mime_type,
                provider_file_id=stored.provider_file_id,
            )
            for stored in ingested.stored_files
        ]

        history = build_history(
            self.store.list_turns(conversation_id),
            ingested.content,
            ingested.file_ids,
            freshness=self.freshness,
            exclude_turn_id=user_turn.id,
        )

        result = await self.client.complete(history, model_id, session)

        assistant_turn = self.store.add_turn(
            conversation_id,
            "assistant",
            result.text,
            [artifact.file_id for artifact in result.generated_artifacts],
        )
        downloads = await self.downloader.download_artifacts(
            result.generated_artifacts,
            assistant_turn,
        )

        return PipelineResult(
            user_turn=user_turn,
            assistant_turn=assistant_turn,
            session_id=result.session_id,
            model_used=model_id,
            model_requested=model or self.default_model,
            user_attachments=user_attachments,
            downloads=downloads,
        )


def build_pipeline(
    settings: AppSettings,
    store: Optional[ConversationStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ConversationPipeline:
    """Wire a pipeline from settings.

    Raises:
        ValueError: No API key is configured.
    """
    provider = settings.provider
    api_key = settings.secrets.anthropic.api_key
    if not api_key:
        raise ValueError("anthropic.api_key is not set in filechat.secrets.yaml")

    timeout = build_timeout(
        connect=provider.connect_timeout_seconds,
        read=provider.read_timeout_seconds,
        write=provider.write_timeout_seconds,
    )
    files_client = ProviderFilesClient(
        api_key=api_key,
        base_url=provider.base_url,
        api_version=provider.api_version,
        beta_features=provider.files_beta_features,
        timeout=timeout,
        max_bytes=settings.files.max_upload_bytes,
        transport=transport,
    )
    client = ClaudeCompletionClient(
        api_key=api_key,
        base_url=provider.base_url,
        api_version=provider.api_version,
        beta_features=provider.beta_features,
        max_tokens=provider.max_tokens,
        timeout=timeout,
        transport=transport,
    )
    store = store or ConversationStore.get_instance(
        storage_dir=settings.conversation.storage_dir,
        db_path=settings.conversation.db_path,
    )
    return ConversationPipeline(
        store=store,
        ingestion=FileIngestionService(files_client, max_bytes=settings.files.max_upload_bytes),
        client=client,
        downloader=ArtifactDownloader(files_client, store),
        model_aliases=provider.model_aliases,
        default_model=provider.default_model,
        freshness=timedelta(days=settings.conversation.file_freshness_days),
    )


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_pipeline: Optional[ConversationPipeline] = None


def get_pipeline() -> Optional[ConversationPipeline]:
    """Return the global pipeline, or None if not yet initialised."""
    return _pipeline


def set_pipeline(pipeline: Optional[ConversationPipeline]) -> None:
    """Set (or replace) the global pipeline instance."""
    global _pipeline
    _pipeline = pipeline
