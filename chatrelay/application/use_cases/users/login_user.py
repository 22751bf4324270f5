# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from chatrelay.domain.users.entities import AuthResult
from chatrelay.domain.users.exceptions import InvalidCredentialsError
from chatrelay.domain.users.repositories import PasswordHasher, TokenService, UserRepository
from chatrelay.shared.logging import logger


class LoginUserUseCase:
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
        # Built up front so the first unknown-user login costs only a verify.
        self._dummy_hash = password_hasher.hash("chatrelay-timing-equaliser")

    def execute(self, username: str, password: str) -> AuthResult:
        user = self._users.find_by_username(username) if username else None

        if user is None:
            # Burn one verification so a missing user costs the same as a wrong password.
            self._password_hasher.verify(password or "", self._dummy_hash)
            logger.info("auth.login: rejected")
            raise InvalidCredentialsError()

        if not self._password_hasher.verify(password or "", user.password_hash):
            logger.info("auth.login: rejected")
            raise InvalidCredentialsError()

        logger.info(f"auth.login: ok user_id={user.id}")
        return AuthResult(token=self._tokens.issue(user.username), username=user.username)

