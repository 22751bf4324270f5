# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .use_cases.chat.list_recent_messages import ListRecentMessagesUseCase
from .use_cases.chat.send_message import SendMessageUseCase
from .use_cases.chat.update_typing import UpdateTypingUseCase
from .use_cases.users.login_user import LoginUserUseCase
from .use_cases.users.register_user import RegisterUserUseCase

__all__ = [
    "ListRecentMessagesUseCase",
    "LoginUserUseCase",
    "RegisterUserUseCase",
    "SendMessageUseCase",
    "UpdateTypingUseCase",
]
