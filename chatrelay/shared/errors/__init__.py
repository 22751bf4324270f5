from .base import (
    AppError,
    DomainError,
    InfrastructureError,
    InvalidInputError,
    StoreUnavailableError,
    ValidationError,
)
from .http import handle_app_error, register_error_handler

__all__ = [
    "AppError",
    "DomainError",
    "InfrastructureError",
    "InvalidInputError",
    "StoreUnavailableError",
    "ValidationError",
    "handle_app_error",
    "register_error_handler",
]
