"""Container validation utilities."""

from src.validation.lib import ValidationError, is_valid, validate_container

__all__ = [
    "ValidationError",
    "validate_container",
    "is_valid",
]
