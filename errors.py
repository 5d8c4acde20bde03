"""Errors raised by the API client.

ApiError              - base for everything the client raises.
TransportError        - network unreachable, DNS, TLS, aborted connection.
RequestTimeout        - request exceeded its timeout.
ApplicationError      - non-2xx response other than a recoverable 401.
SessionExpiredError   - 401 and the token refresh failed.
RefreshLoopGuardError - 401 from the refresh or sign-in endpoint itself.

`replayed` is True when the error came from a request replayed after a
successful token refresh.
"""

from typing import Any

DEFAULT_ERROR_MESSAGE = "Request failed"


class ApiError(Exception):
    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        payload: Any = None,
        replayed: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload
        self.replayed = replayed

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status={self.status})"


class TransportError(ApiError):
    pass


class RequestTimeout(TransportError):
    def __init__(self, message: str = "Request timed out", **kwargs):
        super().__init__(message, **kwargs)


class ApplicationError(ApiError):
    @classmethod
    def from_response(cls, status: int, body: Any, *, replayed: bool = False) -> "ApplicationError":
        """Build from an error response, preferring the server's `message`."""
        message = None
        if isinstance(body, dict):
            message = body.get("message")
        return cls(
            message or DEFAULT_ERROR_MESSAGE,
            status=status,
            payload=body,
            replayed=replayed,
        )


class RefreshLoopGuardError(ApiError):
    pass


class SessionExpiredError(ApiError):
    """Token refresh failed; the session cannot be salvaged.

    `cause` is the error of the refresh attempt, or None when no refresh
    token was stored.
    """

    def __init__(self, message: str = "Session expired", *, cause: Exception | None = None):
        super().__init__(message, status=401)
        self.cause = cause
