from __future__ import annotations

import threading
from datetime import timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from chatrelay.application.services.session_tokens import JwtTokenService
from chatrelay.application.use_cases.users.login_user import LoginUserUseCase
from chatrelay.application.use_cases.users.register_user import RegisterUserUseCase
from chatrelay.domain.users.entities import User
from chatrelay.domain.users.exceptions import InvalidCredentialsError, UsernameTakenError
from chatrelay.domain.users.repositories import PasswordHasher, UserRepository
from chatrelay.infrastructure.db import Base, build_engine
from chatrelay.infrastructure.repositories.users.sqlalchemy_user_repository import (
    SqlAlchemyUserRepository,
)
from chatrelay.shared.config.settings import DatabaseConfig
from chatrelay.shared.errors.base import InvalidInputError

SECRET = "use-case-secret-0123456789-abcdefghijklmnopq"


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._seq = 1

    def find_by_username(self, username: str) -> User | None:
        return self._users.get(username)

    def add(self, user: User) -> User:
        if user.username in self._users:
            raise UsernameTakenError()
        new_user = User(
            id=self._seq,
            username=user.username,
            password_hash=user.password_hash,
            created_at=user.created_at,
        )
        self._seq += 1
        self._users[new_user.username] = new_user
        return new_user


class DeterministicHasher(PasswordHasher):
    def __init__(self) -> None:
        self.verify_calls = 0
        self.hash_calls = 0

    def hash(self, password: str) -> str:
        self.hash_calls += 1
        return f"hashed:{password}"

    def verify(self, password: str, hashed: str) -> bool:
        self.verify_calls += 1
        return hashed == f"hashed:{password}"


@pytest.fixture()
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def tokens() -> JwtTokenService:
    return JwtTokenService(secret=SECRET, ttl=timedelta(hours=24))


@pytest.fixture()
def hasher() -> DeterministicHasher:
    return DeterministicHasher()


@pytest.fixture()
def register(users, tokens, hasher) -> RegisterUserUseCase:
    return RegisterUserUseCase(users=users, tokens=tokens, password_hasher=hasher)


@pytest.fixture()
def login(users, tokens, hasher) -> LoginUserUseCase:
    return LoginUserUseCase(users=users, tokens=tokens, password_hasher=hasher)


def test_register_user_success(register, users, tokens) -> None:
    result = register.execute("alice", "secret123")

    assert result.username == "alice"
    assert tokens.validate(result.token) == "alice"
    stored = users.find_by_username("alice")
    assert stored is not None
    assert stored.password_hash == "hashed:secret123"


@pytest.mark.parametrize(
    ("username", "password", "field"),
    [("", "secret123", "username"), ("   ", "secret123", "username"), ("alice", "", "password")],
)
def test_register_rejects_empty_fields(register, users, username, password, field) -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        register.execute(username, password)

    assert excinfo.value.context == {"field": field, "reason": "empty"}
    assert users.find_by_username("alice") is None


def test_register_user_duplicate_keeps_original_credential(register, login, users) -> None:
    register.execute("alice", "secret123")

    with pytest.raises(UsernameTakenError):
        register.execute("alice", "other-password")

    assert users.find_by_username("alice").password_hash == "hashed:secret123"
    assert login.execute("alice", "secret123").username == "alice"
    with pytest.raises(InvalidCredentialsError):
        login.execute("alice", "other-password")


def test_usernames_are_case_sensitive(register) -> None:
    register.execute("alice", "secret123")

    assert register.execute("Alice", "secret123").username == "Alice"


def test_register_then_login_round_trip(register, login, tokens) -> None:
    register.execute("alice", "secret123")

    result = login.execute("alice", "secret123")

    assert result.username == "alice"
    assert tokens.validate(result.token) == "alice"


def test_login_wrong_password_and_unknown_user_look_the_same(register, login, hasher) -> None:
    register.execute("alice", "secret123")

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        login.execute("alice", "wrong")
    calls_after_wrong_password = hasher.verify_calls
    with pytest.raises(InvalidCredentialsError) as unknown_user:
        login.execute("bob", "secret123")

    assert wrong_password.value.to_dict() == unknown_user.value.to_dict()
    assert wrong_password.value.status == unknown_user.value.status
    # The unknown user still paid for one verification.
    assert hasher.verify_calls == calls_after_wrong_password + 1


def test_login_with_empty_username_is_invalid_credentials(login) -> None:
    with pytest.raises(InvalidCredentialsError):
        login.execute("", "secret123")


def test_dummy_digest_is_prepared_before_first_login(users, tokens) -> None:
    hasher = DeterministicHasher()
    login = LoginUserUseCase(users=users, tokens=tokens, password_hasher=hasher)
    assert hasher.hash_calls == 1

    with pytest.raises(InvalidCredentialsError):
        login.execute("ghost", "secret123")

    # No hashing on the request path, only the one verification.
    assert hasher.hash_calls == 1
    assert hasher.verify_calls == 1


def test_concurrent_registrations_of_one_name_have_a_single_winner(tmp_path, tokens) -> None:
    engine = build_engine(DatabaseConfig(DATABASE_URL=f"sqlite:///{tmp_path / 'users.db'}"))
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    register = RegisterUserUseCase(
        users=SqlAlchemyUserRepository(factory),
        tokens=tokens,
        password_hasher=DeterministicHasher(),
    )

    workers = 8
    barrier = threading.Barrier(workers)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def attempt(n: int) -> None:
        barrier.wait()
        try:
            register.execute("alice", f"password-{n}")
            outcome = "ok"
        except UsernameTakenError:
            outcome = "taken"
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=attempt, args=(n,)) for n in range(workers)]
    try:
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(outcomes) == ["ok"] + ["taken"] * (workers - 1)
        assert SqlAlchemyUserRepository(factory).find_by_username("alice") is not None
    finally:
        engine.dispose()
