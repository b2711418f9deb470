"""Error taxonomy shared by the API layer and the scan pipeline."""

from fastapi import status


class ScanError(Exception):
    """Base class for expected application errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ScanError):
    """Bad input, e.g. a missing or malformed URL."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthError(ScanError):
    """Missing or invalid session."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class AuthorizationError(ScanError):
    """The caller is authenticated but may not touch the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(ScanError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class UpstreamToolError(ScanError):
    """
    An audit tool (browser, Lighthouse, header request) failed.

    Never surfaced as an HTTP error: the orchestrator records it on the
    scan as status=failed.
    """

    default_message = "Audit tool failed"


class InvalidStatusTransition(ScanError):
    """A scan status change that would break monotonic progress."""

    default_message = "Invalid scan status transition"
