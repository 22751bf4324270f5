# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import os
import tempfile

# Must run before any chatrelay import: the config and engine are built at import time.
_TMP_DIR = tempfile.mkdtemp(prefix="chatrelay-tests-")
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'chatrelay-test.db')}"
os.environ["ENABLE_RATE_LIMIT"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-0123456789-abcdefghijklmnop"
os.environ["LOG_FILE"] = os.path.join(_TMP_DIR, "chatrelay-test.log")

from collections.abc import Callable, Iterator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from chatrelay.infrastructure.db import Base  # noqa: E402
from chatrelay.infrastructure.db import models  # noqa: E402,F401

TEST_SECRET = os.environ["SECRET_KEY"]


class FakeClock:
    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def session_factory() -> Iterator[Callable[[], Session]]:
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()
