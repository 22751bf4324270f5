# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Blueprint, Response, jsonify, request
from pydantic import ValidationError

from chatrelay.application.use_cases.users.login_user import LoginUserUseCase
from chatrelay.application.use_cases.users.register_user import RegisterUserUseCase
from chatrelay.domain.users.entities import AuthResult
from chatrelay.interfaces.http.auth import AUTH_COOKIE
from chatrelay.interfaces.http.dto.auth import AuthResponseDTO, LoginRequestDTO, RegisterRequestDTO
from chatrelay.shared.config import load_config
from chatrelay.shared.errors.validation import raise_validation_error
from chatrelay.shared.logging import logger
from chatrelay.shared.middleware.rate_limit import rate_limit


class AuthController:
    def __init__(
        self,
        *,
        register_use_case: RegisterUserUseCase,
        login_use_case: LoginUserUseCase,
        token_ttl_seconds: int = 24 * 60 * 60,
    ) -> None:
        self._register_use_case = register_use_case
        self._login_use_case = login_use_case
        self._token_ttl_seconds = token_ttl_seconds

    @rate_limit(limit=5, window_seconds=60.0)
    def register(self) -> tuple[Response, int]:
        try:
            dto = RegisterRequestDTO.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise_validation_error(exc)

        result = self._register_use_case.execute(dto.username, dto.password)
        logger.info(f"auth.register: ok username={result.username}")
        return self._auth_response(result), 200

    @rate_limit(limit=10, window_seconds=60.0)
    def login(self) -> tuple[Response, int]:
        try:
            dto = LoginRequestDTO.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise_validation_error(exc)

        result = self._login_use_case.execute(dto.username, dto.password)
        logger.info(f"auth.login: ok username={result.username}")
        return self._auth_response(result), 200

    def _auth_response(self, result: AuthResult) -> Response:
        payload = AuthResponseDTO(token=result.token, username=result.username).model_dump()
        response = jsonify(payload)
        config = load_config()
        response.set_cookie(
            AUTH_COOKIE,
            result.token,
            httponly=True,
            samesite=config.security.cookie_samesite,
            secure=config.security.cookie_secure,
            max_age=self._token_ttl_seconds,
        )
        return response

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("auth", __name__, url_prefix="/api/auth")
        bp.add_url_rule("/register", view_func=self.register, methods=["POST"])
        bp.add_url_rule("/login", view_func=self.login, methods=["POST"])
        return bp
