# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Database unit of work implementation."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from chatrelay.shared.errors.base import StoreUnavailableError
from chatrelay.shared.logging import logger


@dataclass(slots=True)
class SqlAlchemyUnitOfWork(AbstractContextManager):
    """One session, committed on success and rolled back on any error.

    Driver failures other than constraint violations are reported as
    ``StoreUnavailableError`` for ``store``; constraint violations propagate
    unchanged so repositories can map them to domain errors.
    """

    session_factory: Callable[[], Session]
    store: str = "database"
    _session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self._session = self.session_factory()
        logger.debug(f"uow[{self.store}]: session opened")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        assert self._session is not None
        try:
            if exc is not None:
                logger.warning(f"uow[{self.store}]: rollback due to {exc_type.__name__}")
                self._session.rollback()
            else:
                self._session.commit()
                logger.debug(f"uow[{self.store}]: committed")
        except IntegrityError:
            self._session.rollback()
            raise
        except SQLAlchemyError as commit_exc:
            logger.exception(f"uow[{self.store}]: exception while finalising")
            self._session.rollback()
            raise StoreUnavailableError(self.store) from commit_exc
        finally:
            self._session.close()
            self._session = None

        if isinstance(exc, SQLAlchemyError) and not isinstance(exc, IntegrityError):
            raise StoreUnavailableError(self.store) from exc

    @property
    def session(self) -> Session:
        if self._session is None:
            raise RuntimeError("UnitOfWork session accessed before entering context")
        return self._session


@contextmanager
def unit_of_work_scope(
    factory: Callable[[], Session], *, store: str = "database"
) -> Iterator[Session]:
    with SqlAlchemyUnitOfWork(factory, store) as uow:
        yield uow.session
