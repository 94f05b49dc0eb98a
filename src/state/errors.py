class SessionError(Exception):
    """Base for session lifecycle failures."""


class InvalidTokenError(SessionError):
    """The token cannot be decoded, lacks ``sub``/``role``, or is already expired."""


class NotAuthenticatedError(SessionError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class SessionExpiredError(SessionError):
    def __init__(self, message: str = "Session expired"):
        super().__init__(message)
