# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import UTC, datetime

from chatrelay.domain.users.entities import AuthResult, User
from chatrelay.domain.users.exceptions import UsernameTakenError
from chatrelay.domain.users.repositories import PasswordHasher, TokenService, UserRepository
from chatrelay.shared.errors.base import InvalidInputError
from chatrelay.shared.logging import logger


class RegisterUserUseCase:
    def __init__(
        self,
        *,
        users: UserRepository,
        tokens: TokenService,
        password_hasher: PasswordHasher,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._password_hasher = password_hasher

    def execute(self, username: str, password: str) -> AuthResult:
        if not username or not username.strip():
            raise InvalidInputError("username")
        if not password:
            raise InvalidInputError("password")

        # Fast path only; the store's unique constraint settles concurrent registrations.
        if self._users.find_by_username(username):
            raise UsernameTakenError()

        hashed = self._password_hasher.hash(password)
        user = User(id=0, username=username, password_hash=hashed, created_at=datetime.now(UTC))
        persisted = self._users.add(user)
        logger.info(f"auth.register: created user_id={persisted.id} username={persisted.username}")
        return AuthResult(token=self._tokens.issue(persisted.username), username=persisted.username)
