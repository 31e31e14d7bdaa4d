from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict


@dataclass(frozen=True)
class TpiRecord:
    """
    One persisted TPI snapshot.

    ``payload`` is the opaque JSON document pushed by the dashboard and is
    returned verbatim; the service never looks inside it. ``updated_at`` is
    the time of the most recent successful write for ``date``.
    """

    date: date
    payload: Any
    updated_at: datetime

    def as_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "data": self.payload,
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class HealthStatus:
    message: str
    time: datetime
    env: str

    def as_dict(self) -> Dict[str, str]:
        return {
            "message": self.message,
            "time": self.time.isoformat(),
            "env": self.env,
        }
