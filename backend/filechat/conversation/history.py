"""Build the turn sequence sent to the completion service.

The provider requires strictly alternating user/assistant messages, so
consecutive same-role turns are merged.  File references are carried only
for user turns younger than the freshness window: the provider expires
uploaded files, and assistant file ids are outputs, not inputs.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .schemas import ConversationTurn, HistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS = timedelta(days=7)
MERGE_SEPARATOR = "\n\n"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_context_entry(
    turn: ConversationTurn,
    now: datetime,
    freshness: timedelta = DEFAULT_FRESHNESS,
) -> HistoryEntry:
    """Strip a persisted turn down to what the provider may see."""
    file_ids: List[str] = []
    if turn.role == "user" and turn.file_ids and now - _as_utc(turn.created_at) < freshness:
        file_ids = list(turn.file_ids)
    return HistoryEntry(role=turn.role, content=turn.content, file_ids=file_ids)


def merge_entries(last: HistoryEntry, new: HistoryEntry) -> HistoryEntry:
    """Merge two same-role entries; contents joined, file ids concatenated."""
    return HistoryEntry(
        role=last.role,
        content=f"{last.content}{MERGE_SEPARATOR}{new.content}",
        file_ids=last.file_ids + new.file_ids,
    )


def append_alternating(entries: List[HistoryEntry], entry: HistoryEntry) -> List[HistoryEntry]:
    """Return ``entries`` with ``entry`` appended, merging into a same-role tail."""
    if entries and entries[-1].role == entry.role:
        return entries[:-1] + [merge_entries(entries[-1], entry)]
    return entries + [entry]


def build_history(
    turns: Iterable[ConversationTurn],
    pending_content: str,
    pending_file_ids: Optional[List[str]] = None,
    now: Optional[datetime] = None,
    freshness: timedelta = DEFAULT_FRESHNESS,
    exclude_turn_id: Optional[str] = None,
) -> List[HistoryEntry]:
    """Assemble the alternating sequence for one outbound request.

    Args:
        turns: Persisted turns of the conversation in creation order.
        pending_content: Text of the message being sent, including any
            inlined file text.
        pending_file_ids: Provider ids of files uploaded with the message.
        now: Reference time for the freshness window; defaults to UTC now.
        freshness: How long a user turn's file ids stay valid.
        exclude_turn_id: Id of the just-persisted pending turn, skipped so it
            is not sent twice.

    Returns:
        Entries with no two adjacent entries of the same role, ending with
        a user entry that contains the pending message.
    """
    now = _as_utc(now or datetime.now(timezone.utc))

    entries: List[HistoryEntry] = []
    for turn in turns:
        if exclude_turn_id is not None and turn.id == exclude_turn_id:
            continue
        entries = append_alternating(entries, to_context_entry(turn, now, freshness))

    pending = HistoryEntry(
        role="user",
        content=pending_content,
        file_ids=list(pending_file_ids or []),
    )
    entries = append_alternating(entries, pending)

    logger.debug(
        "Built history: %d entries, %d file references",
        len(entries),
        sum(len(e.file_ids) for e in entries),
    )
    return entries
