from __future__ import annotations


class SyncServiceError(Exception):
    """Base error for the sync service; ``status_code`` is the HTTP status reported to callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SyncServiceError):
    status_code = 400


class AccessDeniedError(SyncServiceError):
    status_code = 401


class StorageError(SyncServiceError):
    status_code = 500
