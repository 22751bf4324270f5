# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import secrets
import time

from flask import Flask, Response, g, request

from chatrelay.shared.config import load_config
from chatrelay.shared.logging import clear_correlation_id, logger, set_correlation_id


def _get_client_ip() -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return request.remote_addr or "unknown"


def _get_username() -> str | None:
    return getattr(g, "username", None)


def configure_request_logging(app: Flask) -> None:
    debug_mode = load_config().debug_logging

    @app.before_request
    def _before_request() -> None:
        correlation_id = request.headers.get("X-Request-ID") or secrets.token_urlsafe(8)
        set_correlation_id(correlation_id)
        g.request_start_time = time.perf_counter()

        if debug_mode:
            logger.info(
                f"Request started: {request.method} {request.path} "
                f"from {_get_client_ip()}, body_size={len(request.get_data(cache=True))}"
            )

    @app.after_request
    def _after_request(response: Response) -> Response:
        duration = (time.perf_counter() - g.get("request_start_time", time.perf_counter())) * 1000.0
        if response.is_streamed:
            logger.info(
                f"Stream opened: {request.method} {request.path} "
                f"status={response.status_code} user={_get_username()}"
            )
        else:
            logger.info(
                f"{request.method} {request.path} -> {response.status_code} "
                f"in {duration:.1f} ms from {_get_client_ip()} user={_get_username()}"
            )
        return response

    @app.teardown_request
    def _teardown_request(exc: BaseException | None) -> None:
        if exc is not None:
            logger.error(
                f"Request error: {request.method} {request.path} "
                f"from {_get_client_ip()}: {type(exc).__name__}"
            )
        clear_correlation_id()
