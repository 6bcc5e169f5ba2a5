"""Exception hierarchy for plotted.

Request-level errors abort the HTTP request that raised them. Item-level
errors are raised for a single activity; the route aggregator logs them and
moves on to the next activity.
"""

from __future__ import annotations


class PlottedError(Exception):
    """Base class for all plotted errors."""


# Request-level errors


class StateMismatch(PlottedError):
    """OAuth callback state does not match the pending authorization nonce."""


class TokenExchangeError(PlottedError):
    """Authorization code could not be exchanged for an access token."""


class NotAuthenticatedError(PlottedError):
    """An authenticated call was attempted without an access token."""


class InvalidDateError(PlottedError, ValueError):
    """A date query parameter does not match the DD/MM/YYYY layout."""


# Item-level errors


class ActivityError(PlottedError):
    """Error tied to a single activity (or listing page)."""

    kind = "activity"

    def __init__(self, message: str, activity_id: int | None = None) -> None:
        super().__init__(message)
        self.activity_id = activity_id


class ListPageError(ActivityError):
    """A page of the activity listing could not be fetched."""

    kind = "list_page"

    def __init__(self, message: str, page: int) -> None:
        super().__init__(message)
        self.page = page


class DetailFetchError(ActivityError):
    """Activity detail could not be fetched or parsed."""

    kind = "detail_fetch"


class CacheReadError(ActivityError):
    """A cached polyline record exists but could not be read."""

    kind = "cache_read"


class CacheWriteError(ActivityError):
    """A polyline record could not be written to the cache."""

    kind = "cache_write"


class DecodeError(ActivityError):
    """An encoded polyline is malformed."""

    kind = "decode"
