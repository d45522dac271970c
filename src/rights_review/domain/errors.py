"""Domain errors mapped to HTTP responses at the API boundary."""


class RightsReviewError(Exception):
    """Base class for errors raised by the rights review services."""

    status_code = 500

    def __init__(self, error: str, message: str | None = None) -> None:
        super().__init__(message or error)
        self.error = error
        self.message = message


class UnauthenticatedError(RightsReviewError):
    """Raised when the caller has no valid session."""

    status_code = 401


class ForbiddenError(RightsReviewError):
    """Raised when the caller lacks a required permission."""

    status_code = 403

    def __init__(
        self,
        error: str,
        message: str | None = None,
        debug: dict[str, object] | None = None,
    ) -> None:
        super().__init__(error, message)
        self.debug = debug


class NotFoundError(RightsReviewError):
    """Raised when a request, review pointer or message does not exist."""

    status_code = 404


class InvalidInputError(RightsReviewError):
    """Raised for malformed bodies and disallowed status values."""

    status_code = 400


class StorageError(RightsReviewError):
    """Raised when the key-value store fails."""

    status_code = 500


class ServiceUnavailableError(RightsReviewError):
    """Raised when required authentication settings are missing."""

    status_code = 503


class LoginRequiredError(UnauthenticatedError):
    """Raised for browser requests without a session; answered with a redirect."""

    def __init__(self, original_url: str) -> None:
        super().__init__("User not authenticated")
        self.original_url = original_url
