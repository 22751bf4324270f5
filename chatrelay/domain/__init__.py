# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .chat.entities import ChatEvent, Message, PresenceUpdate, PublishReport, TypingUpdate
from .chat.repositories import MessagePublisher, MessageRepository, TypingNotifier
from .users.entities import AuthResult, TokenClaims, User
from .users.exceptions import InvalidCredentialsError, InvalidTokenError, UsernameTakenError
from .users.repositories import PasswordHasher, TokenService, UserRepository

__all__ = [
    "AuthResult",
    "ChatEvent",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "Message",
    "MessagePublisher",
    "MessageRepository",
    "PasswordHasher",
    "PresenceUpdate",
    "PublishReport",
    "TokenClaims",
    "TokenService",
    "TypingNotifier",
    "TypingUpdate",
    "User",
    "UserRepository",
    "UsernameTakenError",
]
