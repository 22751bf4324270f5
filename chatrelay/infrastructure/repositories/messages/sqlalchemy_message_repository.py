# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from chatrelay.domain.chat.entities import Message as DomainMessage
from chatrelay.domain.chat.repositories import MessageRepository
from chatrelay.infrastructure.db.models import Message
from chatrelay.infrastructure.unit_of_work import unit_of_work_scope
from chatrelay.shared.logging import logger


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _to_domain(row: Message) -> DomainMessage:
    return DomainMessage(
        id=row.id,
        sender=row.sender,
        content=row.content,
        timestamp=_aware(row.timestamp),
    )


class SqlAlchemyMessageRepository(MessageRepository):
    """Append-only message log.

    Appends are serialised inside the process: each one receives
    ``max(clock(), last assigned timestamp)`` so timestamps never go backwards
    in insertion order even if the wall clock does. Ties keep arrival order
    through the autoincrement id, which read-back uses as the second key.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._lock = threading.Lock()
        self._last_timestamp: datetime | None = None

    def append(self, sender: str, content: str) -> DomainMessage:
        with self._lock:
            with unit_of_work_scope(self._session_factory, store="messages") as session:
                if self._last_timestamp is None:
                    latest = session.scalar(select(func.max(Message.timestamp)))
                    self._last_timestamp = _aware(latest) if latest else None

                timestamp = self._clock()
                if self._last_timestamp is not None and timestamp < self._last_timestamp:
                    logger.warning(
                        f"messages.append: clock went backwards by "
                        f"{(self._last_timestamp - timestamp).total_seconds():.6f}s, clamping"
                    )
                    timestamp = self._last_timestamp

                row = Message(sender=sender, content=content, timestamp=timestamp)
                session.add(row)
                session.flush()
                stored = DomainMessage(
                    id=row.id, sender=row.sender, content=row.content, timestamp=timestamp
                )
            self._last_timestamp = timestamp

        logger.debug(f"messages.append: id={stored.id} sender={sender}")
        return stored

    def recent(self, limit: int) -> Sequence[DomainMessage]:
        if limit <= 0:
            return []
        with unit_of_work_scope(self._session_factory, store="messages") as session:
            rows = session.scalars(
                select(Message)
                .order_by(Message.timestamp.desc(), Message.id.desc())
                .limit(limit)
            ).all()
            return [_to_domain(row) for row in rows]

    def count(self) -> int:
        with unit_of_work_scope(self._session_factory, store="messages") as session:
            return int(session.scalar(select(func.count(Message.id))) or 0)
