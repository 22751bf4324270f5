# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import threading

from chatrelay.domain.chat.entities import Message
from chatrelay.domain.chat.repositories import MessagePublisher, MessageRepository
from chatrelay.shared.errors.base import InvalidInputError
from chatrelay.shared.logging import logger


class SendMessageUseCase:
    """Persist a chat message, then fan it out to live subscribers.

    Append finishes before publish starts, so anyone notified of a message
    can already read it back from history. Both steps share one sequencing
    lock: publish never blocks, and holding it keeps the order seen by
    every subscriber identical to the store order.
    """

    def __init__(
        self,
        *,
        messages: MessageRepository,
        publisher: MessagePublisher,
        max_content_length: int = 4000,
    ) -> None:
        self._messages = messages
        self._publisher = publisher
        self._max_content_length = max_content_length
        self._sequencer = threading.Lock()

    def execute(self, sender: str, content: str) -> Message:
        if not sender or not sender.strip():
            raise InvalidInputError("sender")
        if not content or not content.strip():
            raise InvalidInputError("content")
        if len(content) > self._max_content_length:
            raise InvalidInputError("content", reason="too_long")

        with self._sequencer:
            stored = self._messages.append(sender, content)
            report = self._publisher.publish(stored)

        logger.debug(
            f"chat.send: message_id={stored.id} sender={sender} "
            f"delivered={report.delivered} dropped={report.dropped} skipped={report.skipped}"
        )
        return stored
