"""Route aggregation service for plotted.

Lists the activities in a date range, resolves each one's encoded polyline
from the cache or the Strava API, and decodes the result into routes for the
map.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import TYPE_CHECKING

from plotted.errors import ActivityError, CacheWriteError, ListPageError
from plotted.lib.dates import format_date
from plotted.lib.logging import get_logger
from plotted.models.activity import AggregationResult, DecodedRoute, SkippedActivity
from plotted.services import polyline

if TYPE_CHECKING:
    from collections.abc import Callable

    from plotted.models.activity import ActivitySummary
    from plotted.services.cache import PolylineCache
    from plotted.services.strava import ActivityClient

logger = get_logger("plotted.routes")

# Strava buckets activities by its own notion of the day boundary
RANGE_TOLERANCE = timedelta(days=1)


def widen_range(after: date, before: date) -> tuple[date, date]:
    """Widen a date range by one day on each side.

    Args:
        after: First day of the range.
        before: Last day of the range.

    Returns:
        ``(after - 1 day, before + 1 day)``.
    """
    return after - RANGE_TOLERANCE, before + RANGE_TOLERANCE


class RouteAggregator:
    """Builds the set of decoded routes for a date range."""

    def __init__(self, client: ActivityClient, cache: PolylineCache) -> None:
        """Initialize the aggregator.

        Args:
            client: Authenticated Strava activity client.
            cache: Polyline cache.
        """
        self.client = client
        self.cache = cache

    def aggregate(
        self,
        after: date,
        before: date,
        log_callback: Callable[[str, int], None] | None = None,
    ) -> AggregationResult:
        """Collect decoded routes for activities between two dates.

        Activities are handled one at a time in listing order. A failure on
        one activity is logged and recorded in ``result.skipped``; it never
        stops the others. A failed listing page ends pagination, keeping the
        activities listed so far.

        Args:
            after: First day of the range (inclusive).
            before: Last day of the range (inclusive).
            log_callback: Optional callback for progress messages.

        Returns:
            AggregationResult with routes in listing order.
        """

        def log(msg: str, level: int = 0) -> None:
            if log_callback:
                log_callback(msg, level)

        result = AggregationResult()
        query_after, query_before = widen_range(after, before)
        logger.info(
            "Aggregating routes from %s to %s", format_date(query_after), format_date(query_before)
        )

        activities: list[ActivitySummary] = []
        try:
            for batch in self.client.list_activities(query_after, query_before):
                activities.extend(batch)
        except ListPageError as e:
            logger.error("Stopping pagination at page %d: %s", e.page, e)
            result.skipped.append(SkippedActivity(kind=e.kind, error=str(e), page=e.page))
            log(f"Warning: activity listing stopped at page {e.page}: {e}", 1)

        result.listed = len(activities)
        log(f"Found {result.listed} activities")

        for i, activity in enumerate(activities, 1):
            try:
                route = self._resolve_route(activity.id, result)
            except ActivityError as e:
                logger.warning("Skipping activity %d: %s", activity.id, e)
                result.skipped.append(
                    SkippedActivity(kind=e.kind, error=str(e), activity_id=activity.id)
                )
                log(f"  [{i}/{result.listed}] {activity.id}: skipped ({e.kind})", 1)
                continue

            if route is None:
                log(f"  [{i}/{result.listed}] {activity.id}: no route", 2)
                continue

            result.routes.append(route)
            log(f"  [{i}/{result.listed}] {activity.id}: {len(route.coords)} points", 2)

        logger.info(
            "Aggregated %d routes from %d activities (%d cached, %d fetched, %d skipped)",
            len(result.routes),
            result.listed,
            result.cache_hits,
            result.fetched,
            len(result.skipped),
        )
        return result

    def _resolve_route(self, activity_id: int, result: AggregationResult) -> DecodedRoute | None:
        """Get the decoded route of one activity.

        Args:
            activity_id: Activity ID.
            result: Aggregation result whose counters are updated.

        Returns:
            DecodedRoute, or None if the activity has no recorded route.

        Raises:
            CacheReadError: If a cached record cannot be read.
            DetailFetchError: If the detail cannot be fetched.
            DecodeError: If the polyline is malformed.
        """
        if self.cache.exists(activity_id):
            data = self.cache.read(activity_id)
            result.cache_hits += 1
            logger.debug("Cache hit for activity %d", activity_id)
        else:
            detail = self.client.get_activity_detail(activity_id)
            result.fetched += 1
            if not detail.has_route:
                result.no_route += 1
                logger.debug("Activity %d has no route", activity_id)
                return None

            data = detail.polyline.encode("utf-8")
            try:
                self.cache.write(activity_id, data)
            except CacheWriteError as e:
                # The fetched polyline is still good for this request
                logger.warning("Not caching activity %d: %s", activity_id, e)

        return DecodedRoute(activity_id=activity_id, coords=polyline.decode(data, activity_id))

