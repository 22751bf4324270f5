# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chatrelay.domain.users.entities import User as DomainUser
from chatrelay.domain.users.exceptions import UsernameTakenError
from chatrelay.domain.users.repositories import UserRepository
from chatrelay.infrastructure.db.models import User
from chatrelay.infrastructure.unit_of_work import unit_of_work_scope
from chatrelay.shared.logging import logger


def _aware(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(UTC)
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _to_domain(row: User) -> DomainUser:
    return DomainUser(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=_aware(row.created_at),
    )


class SqlAlchemyUserRepository(UserRepository):
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def find_by_username(self, username: str) -> DomainUser | None:
        with unit_of_work_scope(self._session_factory, store="users") as session:
            row = session.scalars(select(User).where(User.username == username)).first()
            return _to_domain(row) if row else None

    def add(self, user: DomainUser) -> DomainUser:
        try:
            with unit_of_work_scope(self._session_factory, store="users") as session:
                row = User(
                    username=user.username,
                    password_hash=user.password_hash,
                    created_at=user.created_at,
                )
                session.add(row)
                session.flush()
                return _to_domain(row)
        except IntegrityError as exc:
            logger.info(f"users.add: unique constraint rejected username={user.username}")
            raise UsernameTakenError() from exc
