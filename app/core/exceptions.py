from typing import Any, Optional


class BookingError(Exception):
    """Base class for errors surfaced to API callers with a stable code."""

    code = "BOOKING_ERROR"
    status_code = 400

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = {"error": self.message, "code": self.code}
        payload.update(self.extra)
        return payload


class ValidationError(BookingError):
    """Malformed or out-of-policy input. Fixed by correcting the request."""

    code = "VALIDATION_ERROR"
    status_code = 400


class PolicyViolation(BookingError):
    """Operation refused by business policy (e.g. cancellation cutoff)."""

    code = "POLICY_VIOLATION"
    status_code = 422


class SlotConflictError(BookingError):
    """The requested slot was taken or closed between read and write.

    Callers should refetch availability and retry once with a different slot.
    """

    code = "SLOT_CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str = "Time slot no longer available",
        available_slots: Optional[list[dict[str, Any]]] = None,
        **extra: Any,
    ):
        if available_slots is not None:
            extra["available_slots"] = available_slots
        super().__init__(message, **extra)


class NotFoundError(BookingError):
    code = "NOT_FOUND"
    status_code = 404


class SettingsConflictError(BookingError):
    """Settings change rejected because it would strand existing appointments."""

    code = "BLOCKED_DATE_CONFLICT"
    status_code = 409
