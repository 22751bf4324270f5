# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .settings import AppConfig, ChatConfig, TokenConfig, load_config

__all__ = ["AppConfig", "ChatConfig", "TokenConfig", "load_config"]
