"""
Domain exceptions package.
"""

from .dispatch_error import DispatchError, InterventionNotFoundError
from .validation_error import (
    InvalidIdentifierError,
    MissingLocationError,
    RequiredFieldError,
    ValidationError,
)

__all__ = [
    "DispatchError",
    "InterventionNotFoundError",
    "InvalidIdentifierError",
    "MissingLocationError",
    "RequiredFieldError",
    "ValidationError",
]
