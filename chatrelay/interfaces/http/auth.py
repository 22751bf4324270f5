# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from functools import wraps

from flask import g, request

from chatrelay.domain.users.exceptions import InvalidTokenError
from chatrelay.domain.users.repositories import TokenService
from chatrelay.shared.logging import logger

AUTH_COOKIE = "auth_token"


def extract_token() -> str:
    """Bearer header first, then the auth cookie, then ``?token=``.

    The query parameter exists for EventSource clients, which cannot set headers.
    """

    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[7:].strip()
    return request.cookies.get(AUTH_COOKIE, "") or request.args.get("token", "")


def current_username() -> str:
    return g.username


def auth_required(tokens: TokenService) -> Callable[[Callable], Callable]:
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def inner(*a, **kw):
            token = extract_token()
            if not token:
                logger.warning(
                    f"No Authorization header/cookie on {request.method} {request.path} "
                    f"from {request.headers.get('X-Forwarded-For', request.remote_addr)}"
                )
                raise InvalidTokenError(context={"reason": "missing"})

            g.username = tokens.validate(token)
            logger.debug(f"Auth OK: user={g.username} {request.method} {request.path}")
            return f(*a, **kw)

        return inner

    return decorator
