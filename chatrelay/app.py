# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from chatrelay.infrastructure.container import Container, container
from chatrelay.infrastructure.db import init_db
from chatrelay.shared.config import load_config
from chatrelay.shared.logging import logger, setup_logging
from chatrelay.shared.middleware.error_handler import configure_error_handling
from chatrelay.shared.middleware.request_logger import configure_request_logging


def create_app(app_container: Container | None = None) -> Flask:
    config = load_config()
    setup_logging(debug_mode=config.debug_logging)
    init_db()

    wiring = app_container or container

    app = Flask(__name__)
    configure_error_handling(app)
    configure_request_logging(app)

    app.config.update(SECRET_KEY=config.secret_key)

    origins = config.security.origins()
    cors_kwargs: dict[str, object] = {"resources": {r"/api/*": {"origins": origins}}}
    if any(o != "*" for o in origins):
        cors_kwargs["supports_credentials"] = True
    CORS(app, **cors_kwargs)

    app.register_blueprint(wiring.misc_controller.as_blueprint())
    app.register_blueprint(wiring.auth_controller.as_blueprint())
    app.register_blueprint(wiring.chat_controller.as_blueprint())

    @app.after_request
    def _add_security_headers(resp):
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        return resp

    logger.info(f"Flask app initialized env={config.app_env}")
    return app


if __name__ == "__main__":
    # Threaded so each event stream holds its own worker.
    create_app().run(host="0.0.0.0", port=8080, debug=False, threaded=True)
