# adega_delivery/src/domain/errors.py
from __future__ import annotations


class NotFoundError(LookupError):
    """Order, product or settings record absent."""


class ValidationError(ValueError):
    pass


class InvalidTransitionError(ValueError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Invalid status transition: {current} -> {target}")
        self.current = current
        self.target = target


class ConcurrentUpdateError(RuntimeError):
    """The record changed between read and write (stale version token)."""


class DataAccessError(RuntimeError):
    """Remote store unreachable or returned an error."""


class AuthenticationError(PermissionError):
    pass
