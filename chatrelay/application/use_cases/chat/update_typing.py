# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from chatrelay.domain.chat.entities import PublishReport
from chatrelay.domain.chat.repositories import TypingNotifier
from chatrelay.shared.errors.base import InvalidInputError


class UpdateTypingUseCase:
    """Mark a user as typing or idle; connected streams get the new list."""

    def __init__(self, *, notifier: TypingNotifier) -> None:
        self._notifier = notifier

    def execute(self, username: str, typing: bool) -> PublishReport:
        if not username or not username.strip():
            raise InvalidInputError("username")
        return self._notifier.set_typing(username, typing)
