"""Custom exceptions for the workflow marketplace."""


class MarketplaceError(Exception):
    """Base exception for the workflow marketplace."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code.

        Args:
            message: Exception message
            status_code: HTTP status code
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class AuthenticationRequired(MarketplaceError):
    """No valid caller identity."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, 401)


class AuthorizationDenied(MarketplaceError):
    """Caller is known but lacks the role or ownership."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, 403)


class NotFound(MarketplaceError):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, 404)


class ConflictAlreadyExists(MarketplaceError):
    """Duplicate review, purchase or account."""

    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message, 409)


class ValidationFailed(MarketplaceError):
    """Malformed or out-of-range input."""

    def __init__(self, message: str = "Validation failed"):
        super().__init__(message, 422)


class UpstreamFailure(MarketplaceError):
    """The payment processor, file storage or database failed.

    ``transient`` marks failures worth retrying (503) as opposed to a
    bad gateway response (502).
    """

    def __init__(self, message: str = "Upstream service failed", transient: bool = False):
        self.transient = transient
        super().__init__(message, 503 if transient else 502)
