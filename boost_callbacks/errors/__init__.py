"""Error hierarchy for the callback layer."""

from .base import BoostCallbackError, ErrorContext
from .types import ConfigurationError, ConsistencyError, PreconditionError

__all__ = [
    "BoostCallbackError",
    "ErrorContext",
    "ConfigurationError",
    "PreconditionError",
    "ConsistencyError",
]
