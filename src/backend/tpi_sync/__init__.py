"""
Backend TPI sync service.

Stores one opaque JSON snapshot per calendar date and serves the full
history to the dashboard. The HTTP layer lives in ``server``; storage goes
through ``repository`` so the service can run against PostgreSQL in
production and SQLite in tests.
"""

from .config import AccessConfig, ServiceConfig, load_service_config  # noqa: F401
from .errors import AccessDeniedError, StorageError, SyncServiceError, ValidationError  # noqa: F401
from .models import HealthStatus, TpiRecord  # noqa: F401
from .repository import (  # noqa: F401
    RepositoryConfig,
    SQLTpiRepository,
    TpiRecordRepository,
    build_repository_from_env,
)
from .service import TpiSyncService  # noqa: F401
