"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ServiceUnavailableException(AppException):
    """Service temporarily unavailable exception."""

    def __init__(self, message: str = "Service unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


class BookingValidationException(BadRequestException):
    """A proposed booking failed validation."""


class MalformedBookingException(BookingValidationException):
    """Booking fields are invalid (start in the past, start not before end)."""


class ReferenceNotFoundException(BookingValidationException):
    """Booking references an unknown doctor or patient."""


class DoctorBusyException(BookingValidationException):
    """Booking overlaps an existing booking of the same doctor."""

    def __init__(self, message: str = "The doctor is busy"):
        super().__init__(message)


class BookingNotFoundException(BadRequestException):
    """Booking is missing or already cancelled."""

    def __init__(self, message: str = "Booking does not exist"):
        super().__init__(message)


class StoreFailureException(AppException):
    """The record store failed to persist a change."""

    def __init__(self, message: str = "Failed to persist changes"):
        """Initialize with 500 status code."""
        super().__init__(message, status_code=500)
