from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

RING_RADIUS = 45
RING_CIRCUMFERENCE = 2 * math.pi * RING_RADIUS
UPDATE_TIME_FORMAT = "%Y/%m/%d %H:%M"


@dataclass(frozen=True)
class RingView:
    """
    Render description of one department ring gauge.

    ``dash_length`` is the filled share of the circumference, so a score of
    80 fills 80% of the ring. ``dasharray`` is ready for an SVG
    ``stroke-dasharray`` attribute.
    """

    name: str
    score: float
    radius: float = RING_RADIUS
    circumference: float = RING_CIRCUMFERENCE

    @property
    def dash_length(self) -> float:
        return self.score / 100 * self.circumference

    @property
    def dasharray(self) -> str:
        return f"{self.dash_length}, {self.circumference}"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "radius": self.radius,
            "circumference": self.circumference,
            "dashLength": self.dash_length,
            "dasharray": self.dasharray,
        }


@dataclass(frozen=True)
class DashboardView:
    score_text: str
    update_time_text: str
    # None means the payload carried no departments and existing rings stay as they are.
    rings: Optional[Tuple[RingView, ...]] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "scoreText": self.score_text,
            "updateTimeText": self.update_time_text,
            "rings": None if self.rings is None else [ring.as_dict() for ring in self.rings],
        }


def _coerce_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def parse_update_time(raw: str) -> datetime:
    if not isinstance(raw, str):
        raise TypeError(f"updateTime must be an ISO-8601 string, got {type(raw).__name__}")
    value = raw.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_score(score: float) -> str:
    return f"{float(score):.1f}"


def format_update_time(raw: str, tz_name: str = "Asia/Shanghai") -> str:
    """Format an ISO timestamp the way zh-CN locales show it (``2024/01/02 11:04``)."""
    return parse_update_time(raw).astimezone(_coerce_timezone(tz_name)).strftime(UPDATE_TIME_FORMAT)


def build_rings(departments: Iterable[Mapping[str, Any]]) -> Tuple[RingView, ...]:
    return tuple(RingView(name=str(dept["name"]), score=float(dept["score"])) for dept in departments)


def build_dashboard_view(payload: Mapping[str, Any], tz_name: str = "Asia/Shanghai") -> DashboardView:
    """
    Map a ``/api/data`` response to what the dashboard shows.

    Pure function: no I/O and no session access. Raises ``KeyError``,
    ``TypeError`` or ``ValueError`` when the payload is malformed; the
    controller treats those as a failed load.
    """

    departments = payload.get("departments")
    return DashboardView(
        score_text=format_score(payload["tpi"]),
        update_time_text=format_update_time(payload["updateTime"], tz_name),
        rings=None if departments is None else build_rings(departments),
    )
