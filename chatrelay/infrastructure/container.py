# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import timedelta
from functools import cached_property

from chatrelay.application.services.password_hashing import WerkzeugPasswordHasher
from chatrelay.application.services.session_tokens import JwtTokenService
from chatrelay.application.use_cases.chat.list_recent_messages import ListRecentMessagesUseCase
from chatrelay.application.use_cases.chat.send_message import SendMessageUseCase
from chatrelay.application.use_cases.chat.update_typing import UpdateTypingUseCase
from chatrelay.application.use_cases.users.login_user import LoginUserUseCase
from chatrelay.application.use_cases.users.register_user import RegisterUserUseCase
from chatrelay.infrastructure.broadcast.hub import BroadcastHub
from chatrelay.infrastructure.db import SessionLocal
from chatrelay.infrastructure.repositories.messages.sqlalchemy_message_repository import (
    SqlAlchemyMessageRepository,
)
from chatrelay.infrastructure.repositories.users.sqlalchemy_user_repository import (
    SqlAlchemyUserRepository,
)
from chatrelay.interfaces.http.controllers.auth_controller import AuthController
from chatrelay.interfaces.http.controllers.chat_controller import ChatController
from chatrelay.interfaces.http.controllers.misc_controller import MiscController
from chatrelay.shared.config import AppConfig, load_config


class Container:
    def __init__(self, config: AppConfig | None = None) -> None:
        self._config = config

    @cached_property
    def config(self) -> AppConfig:
        return self._config or load_config()

    @cached_property
    def password_hasher(self) -> WerkzeugPasswordHasher:
        return WerkzeugPasswordHasher()

    @cached_property
    def token_service(self) -> JwtTokenService:
        tokens = self.config.tokens
        return JwtTokenService(
            secret=self.config.secret_key,
            ttl=timedelta(seconds=tokens.ttl_seconds),
            leeway=timedelta(seconds=tokens.leeway_seconds),
            algorithm=tokens.algorithm,
        )

    @cached_property
    def user_repository(self) -> SqlAlchemyUserRepository:
        return SqlAlchemyUserRepository(SessionLocal)

    @cached_property
    def message_repository(self) -> SqlAlchemyMessageRepository:
        return SqlAlchemyMessageRepository(SessionLocal)

    @cached_property
    def broadcast_hub(self) -> BroadcastHub:
        return BroadcastHub(queue_capacity=self.config.chat.queue_capacity)

    @cached_property
    def register_user_use_case(self) -> RegisterUserUseCase:
        return RegisterUserUseCase(
            users=self.user_repository,
            tokens=self.token_service,
            password_hasher=self.password_hasher,
        )

    @cached_property
    def login_user_use_case(self) -> LoginUserUseCase:
        return LoginUserUseCase(
            users=self.user_repository,
            tokens=self.token_service,
            password_hasher=self.password_hasher,
        )

    @cached_property
    def send_message_use_case(self) -> SendMessageUseCase:
        return SendMessageUseCase(
            messages=self.message_repository,
            publisher=self.broadcast_hub,
            max_content_length=self.config.chat.max_content_length,
        )

    @cached_property
    def update_typing_use_case(self) -> UpdateTypingUseCase:
        return UpdateTypingUseCase(notifier=self.broadcast_hub)

    @cached_property
    def list_recent_messages_use_case(self) -> ListRecentMessagesUseCase:
        return ListRecentMessagesUseCase(
            messages=self.message_repository,
            default_limit=self.config.chat.history_limit,
        )

    # Controllers

    @cached_property
    def auth_controller(self) -> AuthController:
        return AuthController(
            register_use_case=self.register_user_use_case,
            login_use_case=self.login_user_use_case,
            token_ttl_seconds=self.config.tokens.ttl_seconds,
        )

    @cached_property
    def chat_controller(self) -> ChatController:
        return ChatController(
            send_use_case=self.send_message_use_case,
            recent_use_case=self.list_recent_messages_use_case,
            typing_use_case=self.update_typing_use_case,
            hub=self.broadcast_hub,
            tokens=self.token_service,
            keepalive_seconds=self.config.chat.keepalive_seconds,
        )

    @cached_property
    def misc_controller(self) -> MiscController:
        return MiscController(hub=self.broadcast_hub, messages=self.message_repository)


container = Container()
