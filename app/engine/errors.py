"""Booking engine error taxonomy"""


class BookingEngineError(Exception):
    """Base class for errors raised by the booking engine"""

    code = "booking_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "detail": self.message,
            "retryable": self.retryable,
        }


class SlotUnavailable(BookingEngineError):
    """Requested window overlaps a reservation, a block or closed hours"""

    code = "slot_unavailable"
    status_code = 409
    retryable = True


class BelowMinimumDuration(BookingEngineError):
    code = "below_minimum_duration"
    status_code = 422


class NotEligible(BookingEngineError):
    code = "not_eligible"
    status_code = 403


class RefundExceedsBalance(BookingEngineError):
    code = "refund_exceeds_balance"
    status_code = 422


class ExtensionAlreadyPending(BookingEngineError):
    code = "extension_already_pending"
    status_code = 409


class InvalidDateRange(BookingEngineError):
    code = "invalid_date_range"
    status_code = 422


class ResourceNotFound(BookingEngineError):
    code = "resource_not_found"
    status_code = 404


class PaymentSessionFailed(BookingEngineError):
    """Payment collaborator could not open a session; nothing was persisted"""

    code = "payment_session_failed"
    status_code = 502
    retryable = True


class PaymentMismatch(BookingEngineError):
    """Reported payment does not match the session or amount that was requested"""

    code = "payment_mismatch"
    status_code = 422


class InvalidStateTransition(BookingEngineError):
    code = "invalid_state_transition"
    status_code = 409
