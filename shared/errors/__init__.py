from .exceptions import (
    CoordinatorError,
    NotFound,
    InvalidTransition,
    InvalidHandshakeState,
    ValidationError,
    TransientIO,
    ERRORS_BY_CODE,
)
from .handlers import register_exception_handlers

__all__ = [
    "CoordinatorError",
    "NotFound",
    "InvalidTransition",
    "InvalidHandshakeState",
    "ValidationError",
    "TransientIO",
    "ERRORS_BY_CODE",
    "register_exception_handlers",
]
