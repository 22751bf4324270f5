# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Blueprint, jsonify

from chatrelay.domain.chat.repositories import MessageRepository
from chatrelay.infrastructure.broadcast.hub import BroadcastHub
from chatrelay.infrastructure.health import check_database
from chatrelay.shared.logging import logger


class MiscController:
    def __init__(self, *, hub: BroadcastHub, messages: MessageRepository) -> None:
        self._hub = hub
        self._messages = messages

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("misc", __name__)
        bp.add_url_rule("/api/health", view_func=self.health, methods=["GET"])
        return bp

    def health(self):
        status: dict[str, object] = {
            "ok": True,
            "connections": self._hub.connection_count(),
            "online_users": len(self._hub.online_users()),
        }
        try:
            check_database()
            status["database"] = "ok"
            status["total_messages"] = self._messages.count()
        except Exception as exc:
            logger.warning(f"health: database check failed: {type(exc).__name__}")
            status["ok"] = False
            status["database"] = f"error: {type(exc).__name__}"
        return jsonify(status), 200 if status["ok"] else 503
