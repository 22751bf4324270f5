# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import uuid
from collections.abc import Iterator

from flask import Blueprint, Response, jsonify, request
from pydantic import ValidationError

from chatrelay.application.use_cases.chat.list_recent_messages import ListRecentMessagesUseCase
from chatrelay.application.use_cases.chat.send_message import SendMessageUseCase
from chatrelay.application.use_cases.chat.update_typing import UpdateTypingUseCase
from chatrelay.domain.chat.entities import ChatEvent, Message, PresenceUpdate
from chatrelay.domain.users.repositories import TokenService
from chatrelay.infrastructure.broadcast.hub import BroadcastHub, Subscriber
from chatrelay.interfaces.http.auth import auth_required, current_username
from chatrelay.interfaces.http.dto.chat import (
    MessageDTO,
    RecentMessagesQueryDTO,
    SendMessageRequestDTO,
    TypingRequestDTO,
    UserListDTO,
)
from chatrelay.shared.errors.base import InvalidInputError
from chatrelay.shared.errors.validation import raise_validation_error
from chatrelay.shared.logging import logger


def render_event(event: ChatEvent) -> str:
    if isinstance(event, Message):
        payload = MessageDTO.model_validate(event).model_dump_json()
        return f"id: {event.id}\nevent: message\ndata: {payload}\n\n"
    name = "presence" if isinstance(event, PresenceUpdate) else "typing"
    payload = UserListDTO(users=list(event.users)).model_dump_json()
    return f"event: {name}\ndata: {payload}\n\n"


def sse_frames(hub: BroadcastHub, subscriber: Subscriber, *, keepalive: float) -> Iterator[str]:
    """Render a subscriber's queue as Server-Sent Events.

    Closing the generator (client went away) unsubscribes the connection.
    """

    try:
        yield ": connected\n\n"
        while True:
            event = subscriber.get(timeout=keepalive)
            if event is None:
                if not subscriber.is_active():
                    break
                yield ": keepalive\n\n"
                continue
            yield render_event(event)
    finally:
        hub.unsubscribe(subscriber.connection_id)


class ChatController:
    def __init__(
        self,
        *,
        send_use_case: SendMessageUseCase,
        recent_use_case: ListRecentMessagesUseCase,
        typing_use_case: UpdateTypingUseCase,
        hub: BroadcastHub,
        tokens: TokenService,
        keepalive_seconds: float = 15.0,
    ) -> None:
        self._send_use_case = send_use_case
        self._recent_use_case = recent_use_case
        self._typing_use_case = typing_use_case
        self._hub = hub
        self._tokens = tokens
        self._keepalive_seconds = keepalive_seconds

    def recent(self) -> tuple[Response, int]:
        try:
            query = RecentMessagesQueryDTO.model_validate(request.args.to_dict())
        except ValidationError as exc:
            raise_validation_error(exc)

        messages = self._recent_use_case.execute(query.limit)
        payload = [MessageDTO.model_validate(m).model_dump(mode="json") for m in messages]
        return jsonify(payload), 200

    def send(self) -> tuple[Response, int]:
        try:
            dto = SendMessageRequestDTO.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise_validation_error(exc)

        sender = current_username()
        if dto.sender is not None and dto.sender != sender:
            raise InvalidInputError("sender", reason="mismatch")

        message = self._send_use_case.execute(sender, dto.content)
        return jsonify(MessageDTO.model_validate(message).model_dump(mode="json")), 201

    def stream(self) -> Response:
        connection_id = uuid.uuid4().hex
        subscriber = self._hub.subscribe(connection_id, username=current_username())
        response = Response(
            sse_frames(self._hub, subscriber, keepalive=self._keepalive_seconds),
            mimetype="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
                "X-Connection-Id": connection_id,
            },
        )
        # Covers streams closed before the generator ever ran.
        response.call_on_close(lambda: self._hub.unsubscribe(connection_id))
        logger.info(f"chat.stream: opened connection_id={connection_id}")
        return response

    def typing(self) -> tuple[str, int]:
        try:
            dto = TypingRequestDTO.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise_validation_error(exc)

        self._typing_use_case.execute(current_username(), dto.typing)
        return "", 204

    def online(self) -> tuple[Response, int]:
        return jsonify(UserListDTO(users=self._hub.online_users()).model_dump()), 200

    def as_blueprint(self) -> Blueprint:
        guard = auth_required(self._tokens)
        bp = Blueprint("chat", __name__, url_prefix="/api")
        bp.add_url_rule("/messages", view_func=guard(self.recent), methods=["GET"])
        bp.add_url_rule("/messages", view_func=guard(self.send), methods=["POST"])
        bp.add_url_rule("/chat/stream", view_func=guard(self.stream), methods=["GET"])
        bp.add_url_rule("/chat/online", view_func=guard(self.online), methods=["GET"])
        bp.add_url_rule("/chat/typing", view_func=guard(self.typing), methods=["POST"])
        return bp
