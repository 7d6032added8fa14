"""Exceptions raised by the client-side booking engine."""

from typing import Any, Optional, Sequence


class BookingEngineError(Exception):
    """Base class for booking engine failures."""


class AvailabilityUnavailableError(BookingEngineError):
    """The availability service could not answer for a resource and month."""

    def __init__(self, resource_id: str, month: str, reason: str = "Availability service unavailable"):
        self.resource_id = resource_id
        self.month = month
        self.reason = reason
        super().__init__(f"{reason} (resource={resource_id}, month={month})")


class ReservationSubmissionError(BookingEngineError):
    """Line item emission stopped part-way; ``emitted`` holds what made it into the cart."""

    def __init__(self, emitted: Sequence[Any], cause: BaseException):
        self.emitted = list(emitted)
        self.cause = cause
        super().__init__(
            f"Reservation hand-off failed after {len(self.emitted)} line item(s): {cause}"
        )


class OperatorValidationError(BookingEngineError):
    """Operator draft is incomplete; nothing was sent to the server."""

    def __init__(self, issues: Sequence[Any], step: Optional[Any] = None):
        self.issues = list(issues)
        self.step = step
        super().__init__("; ".join(issue.message for issue in self.issues))


class BookingPersistError(BookingEngineError):
    """The booking store rejected the operator booking; ``reason`` is the server's message."""

    def __init__(self, reason: str, status_code: Optional[int] = None, code: Optional[str] = None):
        self.reason = reason
        self.status_code = status_code
        self.code = code
        super().__init__(reason)
