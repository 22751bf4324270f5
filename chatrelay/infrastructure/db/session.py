# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from chatrelay.shared.config import load_config
from chatrelay.shared.config.settings import DatabaseConfig
from chatrelay.shared.logging import logger

_config = load_config()


class Base(DeclarativeBase):
    pass


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _engine_kwargs(config: DatabaseConfig) -> dict[str, Any]:
    if _is_sqlite(config.url) and _is_memory(config.url):
        # One shared connection, otherwise every checkout sees an empty database.
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }

    kwargs: dict[str, Any] = {
        "pool_pre_ping": True,
        "pool_size": config.pool_size,
        "max_overflow": config.max_overflow,
        "pool_timeout": config.pool_timeout,
    }
    if _is_sqlite(config.url):
        kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": int(config.pool_timeout),
        }
    return kwargs


def build_engine(config: DatabaseConfig) -> Engine:
    engine = create_engine(config.url, echo=False, future=True, **_engine_kwargs(config))
    if _is_sqlite(config.url):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def _set_sqlite_pragmas(dbapi_conn, _) -> None:
    cur = dbapi_conn.cursor()
    try:
        cur.execute("PRAGMA foreign_keys=ON;")
        cur.execute("PRAGMA busy_timeout=30000;")
    except Exception:
        logger.exception("Failed to apply SQLite PRAGMAs")
    finally:
        cur.close()


ENGINE: Engine = build_engine(_config.database)


SessionLocal = scoped_session(
    sessionmaker(bind=ENGINE, autoflush=False, autocommit=False, expire_on_commit=False)
)


def init_db() -> None:
    # Models must be registered on Base.metadata before create_all.
    from chatrelay.infrastructure.db import models  # noqa: F401

    Base.metadata.create_all(bind=ENGINE)
    logger.info("Database schema ensured")
