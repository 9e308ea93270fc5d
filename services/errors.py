"""
Typed failures returned by the scheduling services.

Every error carries a stable ``code`` for the request layer and the HTTP
status it maps to. The five families decide retry behaviour:

- ValidationError: the request breaks a policy, never retried.
- ConflictError: a uniqueness rule was hit; the ledger retries these itself
  only when they came from a commit-time race.
- StateError: the current state of a record forbids the operation.
- AuthorizationError: the actor lacks the role the operation needs.
- TransientError: storage timeout or contention, safe to retry with backoff.
"""


class SchedulingError(Exception):
    code = "scheduling_error"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        out = {"error": self.message, "code": self.code}
        if self.details:
            out["details"] = self.details
        return out


# ---------- Validation ----------
class ValidationError(SchedulingError):
    code = "validation_error"
    status_code = 400


class InvalidBookingInput(ValidationError):
    code = "invalid_booking_input"
    default_message = "Invalid booking details"


class InvalidDogDetails(ValidationError):
    code = "invalid_dog_details"
    default_message = "Invalid dog details"


class ExperienceLevelInsufficient(ValidationError):
    code = "experience_level_insufficient"
    default_message = "Your experience level is too low for this dog"


class DateOutOfWindow(ValidationError):
    code = "date_out_of_window"
    default_message = "Date is outside the booking window"


class DateBlocked(ValidationError):
    code = "date_blocked"
    default_message = "The shelter is closed for walks on this date"


class InvalidRequestedLevel(ValidationError):
    code = "invalid_requested_level"
    default_message = "Requested level must be above your current level"


class UnknownSetting(ValidationError):
    code = "unknown_setting"
    default_message = "Unknown setting"


class InvalidSettingValue(ValidationError):
    code = "invalid_setting_value"
    default_message = "Setting value must be a non-negative whole number"


# ---------- Conflict ----------
class ConflictError(SchedulingError):
    code = "conflict"
    status_code = 409


class SlotAlreadyBooked(ConflictError):
    code = "slot_already_booked"
    default_message = "This dog is already booked for that slot"


class UserAlreadyBookedThatDay(ConflictError):
    code = "user_already_booked_that_day"
    default_message = "You already have a walk booked on that date"


class DuplicatePendingRequest(ConflictError):
    code = "duplicate_pending_request"
    default_message = "You already have a pending request"


class DateAlreadyBlocked(ConflictError):
    code = "date_already_blocked"
    default_message = "Date is already blocked"


# ---------- State ----------
class StateError(SchedulingError):
    code = "state_error"
    status_code = 409


class UserInactive(StateError):
    code = "user_inactive"
    default_message = "Account is inactive"


class UserUnverified(StateError):
    code = "user_unverified"
    default_message = "Account is not verified"


class DogUnavailable(StateError):
    code = "dog_unavailable"
    default_message = "Dog is not available for walks"


class CancellationTooLate(StateError):
    code = "cancellation_too_late"
    default_message = "Cancellation notice period has passed"


class BookingNotFound(StateError):
    code = "booking_not_found"
    status_code = 404
    default_message = "Booking not found"


class BookingNotCancellable(StateError):
    code = "booking_not_cancellable"
    default_message = "Booking not cancellable"


class RequestNotFound(StateError):
    code = "request_not_found"
    status_code = 404
    default_message = "Request not found"


class RequestAlreadyResolved(StateError):
    code = "request_already_resolved"
    default_message = "Request has already been resolved"


class AccountAlreadyActive(StateError):
    code = "account_already_active"
    default_message = "Account is already active"


class DogNotFound(StateError):
    code = "dog_not_found"
    status_code = 404
    default_message = "Dog not found"


class UserNotFound(StateError):
    code = "user_not_found"
    status_code = 404
    default_message = "User not found"


class BlockedDateNotFound(StateError):
    code = "blocked_date_not_found"
    status_code = 404
    default_message = "Date is not blocked"


# ---------- Authorization ----------
class AuthorizationError(SchedulingError):
    code = "forbidden"
    status_code = 403
    default_message = "Forbidden"


class BookingNotEditable(AuthorizationError):
    code = "booking_not_editable"
    default_message = "Notes can only be added to scheduled or completed bookings"


# ---------- Transient ----------
class TransientError(SchedulingError):
    code = "transient_error"
    status_code = 503
    default_message = "Service busy, please retry"
