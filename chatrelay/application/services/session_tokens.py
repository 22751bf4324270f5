# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Stateless session tokens signed with the process-wide secret."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import jwt

from chatrelay.domain.users.entities import TokenClaims
from chatrelay.domain.users.exceptions import InvalidTokenError
from chatrelay.domain.users.repositories import TokenService
from chatrelay.shared.logging import logger

_REQUIRED_CLAIMS = ["sub", "iat", "exp"]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class JwtTokenService(TokenService):
    """Issues and verifies compact HMAC-signed JWTs.

    Nothing is stored server side: a token is valid while its signature
    matches the current secret and ``now <= exp + leeway``. Expiry is checked
    against the injected clock rather than PyJWT's wall clock so callers can
    simulate time.
    """

    def __init__(
        self,
        *,
        secret: str,
        ttl: timedelta,
        leeway: timedelta = timedelta(seconds=30),
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        self._secret = secret
        self._ttl = ttl
        self._leeway = leeway
        self._algorithm = algorithm
        self._clock = clock

    def issue(self, username: str) -> str:
        issued_at = self._clock()
        expires_at = issued_at + self._ttl
        payload = {
            "sub": username,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token: str = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        logger.debug(f"tokens.issue: user={username} exp={expires_at.isoformat()}")
        return token

    def decode(self, token: str) -> TokenClaims:
        if not token:
            raise InvalidTokenError(context={"reason": "missing"})
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": _REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as exc:
            logger.warning(f"tokens.decode: rejected ({type(exc).__name__})")
            raise InvalidTokenError(context={"reason": "malformed_or_forged"}) from exc

        username = payload.get("sub")
        issued_at_raw = payload.get("iat")
        expires_at_raw = payload.get("exp")
        if (
            not isinstance(username, str)
            or not username
            or not isinstance(issued_at_raw, int)
            or not isinstance(expires_at_raw, int)
        ):
            raise InvalidTokenError(context={"reason": "malformed_or_forged"})

        expires_at = datetime.fromtimestamp(expires_at_raw, UTC)
        if self._clock() > expires_at + self._leeway:
            logger.info(f"tokens.decode: expired token for user={username}")
            raise InvalidTokenError(context={"reason": "expired"})

        return TokenClaims(
            username=username,
            issued_at=datetime.fromtimestamp(issued_at_raw, UTC),
            expires_at=expires_at,
        )

    def validate(self, token: str) -> str:
        return self.decode(token).username
