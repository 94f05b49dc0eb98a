from typing import Optional


class PortalError(Exception):
    """
    Base for every failure talking to the portal API.
    ``message`` is safe to show to the user as-is.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class NetworkError(PortalError):
    """The request never got an HTTP answer (DNS, refused, timeout...)."""


class ApiError(PortalError):
    """The server answered with a non-2xx status."""


class UnauthorizedError(ApiError):
    """HTTP 401: the bearer token is missing, expired or revoked."""
