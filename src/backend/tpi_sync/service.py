from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from .errors import StorageError, ValidationError
from .models import HealthStatus
from .repository import TpiRecordRepository

logger = logging.getLogger(__name__)

HEALTH_MESSAGE = "TPI Backend is running"
SYNCED_MESSAGE = "TPI data synced to cloud"


class TpiSyncService:
    """
    Operations behind the sync HTTP surface.

    The service only checks that a date and a payload are present; the payload
    itself is handed to the repository untouched. ``repository`` may be
    ``None`` when no database is configured, in which case storage operations
    fail with ``StorageError`` while ``health_check`` keeps working.
    """

    def __init__(
        self,
        repository: Optional[TpiRecordRepository],
        environment: str = "development",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self.environment = environment
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def health_check(self) -> HealthStatus:
        return HealthStatus(message=HEALTH_MESSAGE, time=self._clock(), env=self.environment)

    def upsert(self, record_date: Optional[date], payload: Any) -> str:
        if record_date is None or payload is None:
            raise ValidationError("Missing date or data field")
        repository = self._require_repository()
        try:
            repository.upsert(record_date, payload)
        except SQLAlchemyError as exc:
            logger.error("Failed to save TPI record for %s", record_date, exc_info=True)
            raise StorageError("Database write failed") from exc
        logger.info("Synced TPI record for %s", record_date.isoformat())
        return SYNCED_MESSAGE

    def get_history(self) -> Dict[str, Any]:
        repository = self._require_repository()
        try:
            history = repository.history()
        except SQLAlchemyError as exc:
            logger.error("Failed to read TPI history", exc_info=True)
            raise StorageError("Database read failed") from exc
        logger.info("Returning %d days of TPI history", len(history))
        return history

    def check_storage(self) -> bool:
        if self.repository is None:
            logger.warning("TPI_DATABASE_URL is not configured; storage endpoints are disabled")
            return False
        try:
            self.repository.ping()
        except SQLAlchemyError as exc:
            logger.warning("Cannot connect to the TPI database: %s", exc)
            return False
        logger.info("Connected to the TPI database")
        return True

    def _require_repository(self) -> TpiRecordRepository:
        if self.repository is None:
            raise StorageError("TPI_DATABASE_URL is not configured; storage is unavailable.")
        return self.repository
