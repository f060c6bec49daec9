class AppException(Exception):
    """Base application exception."""

    pass


class AuthenticationError(AppException):
    """Inbound payload could not be authenticated (bad or missing signature)."""

    pass


class StoreUnavailableError(AppException):
    """Durable store could not be reached; the caller should retry."""

    pass
