"""Filechat Backend Application.

This is the main entry point for the Filechat backend service.  Filechat
lets a user talk to Claude while exchanging documents, spreadsheets, images
and CSVs that Claude can read or work on in its code-execution sandbox.

Modules:
    - files: routing and text conversion of uploaded files
    - conversation: turn storage and history building
    - ai_provider: Messages/Files API clients and response parsing
    - chat: per-message pipeline and HTTP endpoints
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from filechat.chat.pipeline import build_pipeline, set_pipeline
from filechat.chat.router import router as conversations_router
from filechat.config import get_config
from filechat.conversation.store import ConversationStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
# httpx/httpcore log every TCP connection and TLS handshake, and at DEBUG
# they would echo request headers including the API key.
for _noisy in (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
    "multipart",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in filechat.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    store = ConversationStore.get_instance(
        storage_dir=config.conversation.storage_dir,
        db_path=config.conversation.db_path,
    )

    try:
        set_pipeline(build_pipeline(config, store=store))
        logger.info(
            "Conversation pipeline ready: model=%s, code_execution=%s",
            config.provider.default_model,
            config.provider.enable_code_execution,
        )
    except ValueError as exc:
        logger.warning("Conversation pipeline disabled: %s", exc)

    yield  # Application runs here

    # Shutdown
    set_pipeline(None)
    ConversationStore.reset_instance()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Filechat API",
    description="Conversations with Claude over uploaded and generated files",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(conversations_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}
