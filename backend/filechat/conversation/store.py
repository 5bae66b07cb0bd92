"""Conversation storage service.

Keeps turns and attachment metadata in DuckDB and attachment bytes on disk.
Files are stored in: {storage_dir}/{conversation_id}/{uuid}.{ext}
"""
import logging
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import duckdb

from .schemas import Attachment, ConversationTurn, Role

logger = logging.getLogger(__name__)


def _to_db_time(value: datetime) -> datetime:
    """DuckDB TIMESTAMP columns hold naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db_time(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    return value.replace(tzinfo=timezone.utc)


class ConversationStore:
    """Service for persisting turns and their attachments."""

    _instance: Optional["ConversationStore"] = None
    _storage_dir: str = "attachments"
    _db_path: str = "conversations.duckdb"

    def __init__(self, storage_dir: Optional[str] = None, db_path: Optional[str] = None):
        if storage_dir:
            self._storage_dir = storage_dir
        if db_path:
            self._db_path = db_path

        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._ensure_storage_dir()
        self._initialize_db()

    @classmethod
    def get_instance(cls, storage_dir: Optional[str] = None, db_path: Optional[str] = None) -> "ConversationStore":
        """Get or create the singleton instance."""
        if cls._instance is None:
            cls._instance = cls(storage_dir, db_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        if cls._instance and cls._instance._connection:
            cls._instance._connection.close()
        cls._instance = None

    def _ensure_storage_dir(self) -> None:
        Path(self._storage_dir).mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        conn = self._get_connection()
        conn.execute("CREATE SEQUENCE IF NOT EXISTS turn_seq START 1")
        conn.execute("CREATE SEQUENCE IF NOT EXISTS attachment_seq START 1")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS turns (
                id VARCHAR PRIMARY KEY,
                seq BIGINT DEFAULT nextval('turn_seq'),
                conversation_id VARCHAR NOT NULL,
                role VARCHAR NOT NULL,
                content VARCHAR NOT NULL,
                file_ids VARCHAR[] NOT NULL,
                created_at TIMESTAMP NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS attachments (
                id VARCHAR PRIMARY KEY,
                seq BIGINT DEFAULT nextval('attachment_seq'),
                turn_id VARCHAR NOT NULL,
                conversation_id VARCHAR NOT NULL,
                provider_file_id VARCHAR,
                filename VARCHAR NOT NULL,
                mime_type VARCHAR NOT NULL,
                size_bytes BIGINT NOT NULL,
                stored_filename VARCHAR NOT NULL,
                created_at TIMESTAMP NOT NULL
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_turns_conversation ON turns(conversation_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_attachments_turn ON attachments(turn_id)")

    def _get_conversation_dir(self, conversation_id: str) -> Path:
        return Path(self._storage_dir) / conversation_id

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def add_turn(
        self,
        conversation_id: str,
        role: Role,
        content: str,
        file_ids: Optional[List[str]] = None,
        created_at: Optional[datetime] = None,
    ) -> ConversationTurn:
        """Persist a new turn and return it."""
        turn = ConversationTurn(
            conversation_id=conversation_id,
            role=role,
            content=content,
            file_ids=list(file_ids or []),
        )
        if created_at is not None:
            turn.created_at = created_at

        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO turns (id, conversation_id, role, content, file_ids, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                turn.id,
                turn.conversation_id,
                turn.role,
                turn.content,
                turn.file_ids,
                _to_db_time(turn.created_at),
            ],
        )
        logger.info(
            f"Saved {role} turn {turn.id} in conversation {conversation_id} "
            f"({len(turn.file_ids)} file ids)"
        )
        return turn

    @staticmethod
    def _row_to_turn(row: tuple) -> ConversationTurn:
        return ConversationTurn(
            id=row[0],
            conversation_id=row[1],
            role=row[2],
            content=row[3],
            file_ids=list(row[4] or []),
            created_at=_from_db_time(row[5]),
        )

    def get_turn(self, turn_id: str) -> Optional[ConversationTurn]:
        conn = self._get_connection()
        row = conn.execute(
            """
            SELECT id, conversation_id, role, content, file_ids, created_at
            FROM turns WHERE id = ?
            """,
            [turn_id],
        ).fetchone()
        return self._row_to_turn(row) if row else None

    def list_turns(self, conversation_id: str) -> List[ConversationTurn]:
        """All turns of a conversation in creation order."""
        conn = self._get_connection()
        rows = conn.execute(
            """
            SELECT id, conversation_id, role, content, file_ids, created_at
            FROM turns
            WHERE conversation_id = ?
            ORDER BY created_at ASC, seq ASC
            """,
            [conversation_id],
        ).fetchall()
        return [self._row_to_turn(r) for r in rows]

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def add_attachment(
        self,
        turn: ConversationTurn,
        filename: str,
        content: bytes,
        mime_type: str,
        provider_file_id: Optional[str] = None,
    ) -> Attachment:
        """Write attachment bytes to disk and record metadata for ``turn``."""
        ext = Path(filename).suffix.lower() or ""
        stored_filename = f"{uuid.uuid4()}{ext}"

        conversation_dir = self._get_conversation_dir(turn.conversation_id)
        conversation_dir.mkdir(parents=True, exist_ok=True)
        file_path = conversation_dir / stored_filename
        file_path.write_bytes(content)

        attachment = Attachment(
            turn_id=turn.id,
            conversation_id=turn.conversation_id,
            provider_file_id=provider_file_id,
            filename=filename,
            mime_type=mime_type,
            size_bytes=len(content),
            stored_filename=stored_filename,
        )

        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO attachments
            (id, turn_id, conversation_id, provider_file_id, filename, mime_type,
             size_bytes, stored_filename, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                attachment.id,
                attachment.turn_id,
                attachment.conversation_id,
                attachment.provider_file_id,
                attachment.filename,
                attachment.mime_type,
                attachment.size_bytes,
                attachment.stored_filename,
                _to_db_time(attachment.created_at),
            ],
        )
        logger.info(f"Saved attachment: {file_path} ({attachment.size_bytes} bytes)")
        return attachment

    @staticmethod
    def _row_to_attachment(row: tuple) -> Attachment:
        return Attachment(
            id=row[0],
            turn_id=row[1],
            conversation_id=row[2],
            provider_file_id=row[3],
            filename=row[4],
            mime_type=row[5],
            size_bytes=row[6],
            stored_filename=row[7],
            created_at=_from_db_time(row[8]),
        )

    _ATTACHMENT_COLUMNS = """
        a.id, a.turn_id, a.conversation_id, a.provider_file_id, a.filename,
        a.mime_type, a.size_bytes, a.stored_filename, a.created_at
    """

    def get_attachment(self, attachment_id: str) -> Optional[Attachment]:
        conn = self._get_connection()
        row = conn.execute(
            f"SELECT {self._ATTACHMENT_COLUMNS} FROM attachments a WHERE a.id = ?",
            [attachment_id],
        ).fetchone()
        return self._row_to_attachment(row) if row else None

    def get_attachment_path(self, attachment_id: str) -> Optional[Path]:
        """Path of the stored bytes, or None if unknown or missing on disk."""
        attachment = self.get_attachment(attachment_id)
        if not attachment:
            return None
        file_path = self._get_conversation_dir(attachment.conversation_id) / attachment.stored_filename
        if not file_path.exists():
            return None
        return file_path

    def get_attachments(self, turn_id: str) -> List[Attachment]:
        conn = self._get_connection()
        rows = conn.execute(
            f"""
            SELECT {self._ATTACHMENT_COLUMNS} FROM attachments a
            WHERE a.turn_id = ?
            ORDER BY a.created_at ASC, a.seq ASC
            """,
            [turn_id],
        ).fetchall()
        return [self._row_to_attachment(r) for r in rows]

    def list_attachments(self, conversation_id: str, role: Optional[Role] = None) -> List[Attachment]:
        """Attachments of a conversation, optionally only those on ``role`` turns."""
        query = f"""
            SELECT {self._ATTACHMENT_COLUMNS}
            FROM attachments a JOIN turns t ON a.turn_id = t.id
            WHERE a.conversation_id = ?
        """
        params: list = [conversation_id]
        if role is not None:
            query += " AND t.role = ?"
            params.append(role)
        query += " ORDER BY t.created_at ASC, t.seq ASC, a.created_at ASC, a.seq ASC"

        rows = self._get_connection().execute(query, params).fetchall()
        return [self._row_to_attachment(r) for r in rows]

    def delete_conversation(self, conversation_id: str) -> int:
        """Delete every turn and attachment of a conversation.

        Returns:
            Number of turns deleted.
        """
        turns = self.list_turns(conversation_id)
        if not turns:
            return 0

        conversation_dir = self._get_conversation_dir(conversation_id)
        if conversation_dir.exists():
            shutil.rmtree(conversation_dir)
            logger.info(f"Deleted directory: {conversation_dir}")

        conn = self._get_connection()
        conn.execute("DELETE FROM attachments WHERE conversation_id = ?", [conversation_id])
        conn.execute("DELETE FROM turns WHERE conversation_id = ?", [conversation_id])

        logger.info(f"Deleted {len(turns)} turns for conversation {conversation_id}")
        return len(turns)
