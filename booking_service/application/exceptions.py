class BookingServiceError(RuntimeError):
    """Base class for errors the booking core reports to its callers."""
    pass


class InvalidInputError(BookingServiceError):
    """Raised when request data is malformed (bad date, missing field). Nothing was written."""
    pass


class NotFoundUpstreamError(BookingServiceError):
    """Raised when the user directory does not know the identity."""
    pass


class UpstreamUnavailableError(BookingServiceError):
    """Raised when a remote service could not be reached (timeouts, network errors, 5xx)."""
    pass


class UnauthorizedError(BookingServiceError):
    """Raised when the caller does not own the booking. Also covers bookings that do not exist."""
    pass


class TransactionFailedError(BookingServiceError):
    """Raised when a store transaction fails. All of its writes were rolled back."""
    pass
