"""Activity and route models.

Activities are read from the Strava API as plain JSON dictionaries; these
dataclasses keep only the fields the route pipeline needs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def _parse_start_date(value: Any) -> datetime | None:
    """Parse an ISO 8601 start date, or None when absent or unreadable.

    Only ``id`` is required of a listing entry.
    """
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class ActivitySummary:
    """An entry from the athlete activity listing."""

    id: int
    name: str | None = None
    type: str | None = None
    start_date: datetime | None = None

    @classmethod
    def from_strava(cls, data: dict[str, Any]) -> ActivitySummary:
        """Create from a Strava SummaryActivity payload.

        Args:
            data: JSON dictionary from ``GET /athlete/activities``.

        Returns:
            ActivitySummary instance.

        Raises:
            KeyError: If the payload has no ``id``.
        """
        return cls(
            id=int(data["id"]),
            name=data.get("name"),
            type=data.get("sport_type") or data.get("type"),
            start_date=_parse_start_date(data.get("start_date")),
        )


@dataclass(frozen=True)
class ActivityDetail:
    """The part of a DetailedActivity that carries the route."""

    id: int
    polyline: str = ""

    @property
    def has_route(self) -> bool:
        """True if the activity has a recorded route."""
        return bool(self.polyline)

    @classmethod
    def from_strava(cls, data: dict[str, Any]) -> ActivityDetail:
        """Create from a Strava DetailedActivity payload.

        The full-resolution ``map.polyline`` is preferred; manual or privacy
        zoned activities sometimes only carry ``map.summary_polyline``.
        """
        route_map = data.get("map") or {}
        polyline = route_map.get("polyline") or route_map.get("summary_polyline") or ""
        return cls(id=int(data["id"]), polyline=polyline)


@dataclass
class DecodedRoute:
    """Decoded coordinates of one activity, in recording order."""

    activity_id: int
    coords: list[tuple[float, float]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "activity_id": self.activity_id,
            "coords": [list(c) for c in self.coords],
        }


@dataclass
class SkippedActivity:
    """Record of an activity (or listing page) left out of the aggregate."""

    kind: str
    error: str
    activity_id: int | None = None
    page: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "error": self.error,
            "activity_id": self.activity_id,
            "page": self.page,
        }


@dataclass
class AggregationResult:
    """Routes for a date range plus what happened along the way."""

    routes: list[DecodedRoute] = field(default_factory=list)
    skipped: list[SkippedActivity] = field(default_factory=list)
    listed: int = 0
    cache_hits: int = 0
    fetched: int = 0
    no_route: int = 0

    @property
    def coordinates(self) -> list[list[tuple[float, float]]]:
        """Route coordinate lists in listing order."""
        return [route.coords for route in self.routes]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output.

        Returns:
            Dictionary representation.
        """
        return {
            "routes": [route.to_dict() for route in self.routes],
            "skipped": [item.to_dict() for item in self.skipped],
            "activities_listed": self.listed,
            "cache_hits": self.cache_hits,
            "details_fetched": self.fetched,
            "without_route": self.no_route,
        }
