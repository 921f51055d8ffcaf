"""Typed exceptions for the remote-access management API client."""
from __future__ import annotations
from typing import Optional, Sequence


class TechAccessError(Exception):
    """Base exception for all client operations."""
    pass


class AuthResolutionError(TechAccessError):
    """No credential (or no host) could be resolved for the call."""
    pass


class ApiError(TechAccessError):
    """HTTP or transport error from the service.

    Attributes:
        status_code: HTTP status code, or None when the request never got a response
        message: Error message from response
        endpoint: API endpoint that failed (never includes the API key)
    """

    def __init__(self, status_code: Optional[int], message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        label = status_code if status_code is not None else "transport"
        super().__init__(f"[{label}] {endpoint}: {message}")


class NotFoundError(TechAccessError):
    """A lookup by name or id matched no record."""

    def __init__(self, kind: str, label: str):
        self.kind = kind
        self.label = label
        super().__init__(f"{kind} '{label}' not found")


class AmbiguousMatchError(TechAccessError):
    """A lookup that needs exactly one record matched several."""

    def __init__(self, kind: str, label: str, count: int):
        self.kind = kind
        self.label = label
        self.count = count
        super().__init__(f"{kind} '{label}' is ambiguous: {count} records match")


class ValidationError(TechAccessError, ValueError):
    """Caller-supplied input is outside the accepted domain."""
    pass


class PartialCompletionError(TechAccessError):
    """A multi-step operation stopped after applying some of its steps.

    Attributes:
        step: Description of the step that failed
        completed: Labels of the steps that were applied before the failure
        total: Number of steps the operation planned
        cause: The underlying error
    """

    def __init__(self, step: str, completed: Sequence[str], total: int, cause: Exception, outcome: str = ""):
        self.step = step
        self.completed = list(completed)
        self.total = total
        self.cause = cause
        message = f"{step} failed after {len(self.completed)} of {total} completed"
        if outcome:
            message = f"{message}; {outcome}"
        super().__init__(f"{message}: {cause}")
