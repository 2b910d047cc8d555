"""
Exceptions raised by the purchasing core.

Parse problems in source rows are never raised: the normalizer degrades them
to safe defaults.  Everything here is a request-level failure reported to the
immediate caller, which decides whether to show it or retry.
"""
from typing import Optional


class PurchasingError(Exception):
    """Base class for all purchasing errors."""


class FetchFailure(PurchasingError):
    """The row source could not be read.  No partial state has been applied."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source
        self.retryable = True


class InvalidTransition(PurchasingError):
    """A status change that is not in the lifecycle transition table."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move order from '{_value(current)}' to '{_value(target)}'"
        )


class ValidationFailure(PurchasingError):
    """Input rejected before any mutation (blank reason, bad amount, ...)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def _value(status) -> str:
    return getattr(status, "value", status)
