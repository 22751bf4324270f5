# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .entities import Message, PublishReport


class MessageRepository(Protocol):
    def append(self, sender: str, content: str) -> Message: ...
    def recent(self, limit: int) -> Sequence[Message]: ...
    def count(self) -> int: ...


class MessagePublisher(Protocol):
    def publish(self, message: Message) -> PublishReport: ...


class TypingNotifier(Protocol):
    def set_typing(self, username: str, typing: bool) -> PublishReport: ...
