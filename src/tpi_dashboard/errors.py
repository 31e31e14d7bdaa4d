from __future__ import annotations

from typing import Optional


class ClientError(Exception):
    """Base error raised by the dashboard client."""


class LoginError(ClientError):
    """The login endpoint rejected the credentials."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthExpiredError(ClientError):
    """A protected endpoint answered 401/403 for the current token."""

    def __init__(self, status_code: int):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class NetworkError(ClientError):
    """No response was received from the backend."""


class GenericLoadError(ClientError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
