# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True, frozen=True)
class Message:
    """Chat message as persisted by the message store.

    ``timestamp`` is always assigned by the store; clients never supply it.
    ``id`` follows insertion order and breaks timestamp ties.
    """

    id: int
    sender: str
    content: str
    timestamp: datetime


@dataclass(slots=True, frozen=True)
class PresenceUpdate:
    """Sorted names of users holding at least one open stream."""

    users: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class TypingUpdate:
    users: tuple[str, ...]


ChatEvent = Message | PresenceUpdate | TypingUpdate


@dataclass(slots=True, frozen=True)
class PublishReport:
    """Outcome of fanning one event out to the subscriber snapshot."""

    delivered: int = 0
    dropped: int = 0
    skipped: int = 0
