"""Merged, de-duplicated view of one booking's chat."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value)
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ChatMessage:
    id: int
    booking_id: int
    sender_id: int
    content: str
    created_at: datetime
    sender: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any], sender: Optional[Mapping[str, Any]] = None) -> "ChatMessage":
        return cls(
            id=row["id"],
            booking_id=row["booking_id"],
            sender_id=row["sender_id"],
            content=row["content"],
            created_at=_parse_timestamp(row["created_at"]),
            sender=dict(sender) if sender is not None else None,
        )

    @property
    def sort_key(self) -> Tuple[datetime, int]:
        return (self.created_at, self.id)


class MessageLog:
    """The one merge point for both delivery paths.

    Entries are keyed by message id and kept sorted by ``(created_at, id)``, so
    the same row arriving from the poll and from the push channel lands once.
    A repeat delivery only replaces the stored entry when its sender profile
    changed.
    """

    def __init__(self) -> None:
        self._by_id: Dict[int, ChatMessage] = {}
        self._ordered: List[ChatMessage] = []

    def merge(self, messages: Iterable[ChatMessage]) -> bool:
        changed = False
        for message in messages:
            existing = self._by_id.get(message.id)
            if existing is not None and existing.sender == message.sender:
                continue
            self._by_id[message.id] = message
            changed = True
        if changed:
            self._ordered = sorted(self._by_id.values(), key=lambda item: item.sort_key)
        return changed

    def snapshot(self) -> List[ChatMessage]:
        return list(self._ordered)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._by_id

    def __len__(self) -> int:
        return len(self._ordered)
