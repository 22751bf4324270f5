# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Sequence

from chatrelay.domain.chat.entities import Message
from chatrelay.domain.chat.repositories import MessageRepository


class ListRecentMessagesUseCase:
    def __init__(self, *, messages: MessageRepository, default_limit: int = 50) -> None:
        self._messages = messages
        self._default_limit = default_limit

    def execute(self, limit: int | None = None) -> Sequence[Message]:
        if limit is None:
            limit = self._default_limit
        limit = max(0, min(limit, self._default_limit))
        if limit == 0:
            return []
        return self._messages.recent(limit)
