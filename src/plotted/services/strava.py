"""Strava API access for plotted.

``OAuthCoordinator`` runs the three-legged authorization flow through
stravalib. ``ActivityClient`` talks to the two REST endpoints the route
pipeline needs, page by page, with the session's bearer token.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date
from typing import Any

import requests
from stravalib import Client

from plotted.errors import (
    DetailFetchError,
    ListPageError,
    NotAuthenticatedError,
    StateMismatch,
    TokenExchangeError,
)
from plotted.lib.dates import to_epoch
from plotted.lib.logging import get_logger
from plotted.models.activity import ActivityDetail, ActivitySummary
from plotted.models.session import Session

logger = get_logger("plotted.strava")

API_BASE_URL = "https://www.strava.com/api/v3"
PAGE_SIZE = 200
DEFAULT_TIMEOUT = 30.0
SCOPES = ["activity:read_all", "profile:read_all"]


class OAuthCoordinator:
    """Obtains a bearer token for the operator's session."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        client_factory: Callable[[], Any] = Client,
    ) -> None:
        """Initialize the coordinator.

        Args:
            client_id: Strava API client ID.
            client_secret: Strava API client secret.
            redirect_uri: Callback URL registered with the Strava app.
            client_factory: Builds the stravalib client used for the flow.
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._client_factory = client_factory

    def authorization_url(self, session: Session) -> str:
        """Build an authorization URL bound to a fresh nonce.

        Each call replaces the session's pending nonce, so only the most
        recently issued URL can complete.

        Args:
            session: Session that will receive the token.

        Returns:
            Strava authorization URL.
        """
        state = session.new_state()
        client = self._client_factory()
        return client.authorization_url(
            client_id=self.client_id,
            redirect_uri=self.redirect_uri,
            approval_prompt="auto",
            scope=SCOPES,
            state=state,
        )

    def handle_callback(self, session: Session, code: str | None, state: str | None) -> str:
        """Complete authorization and store the token in the session.

        Args:
            session: Session holding the pending nonce.
            code: Authorization code from the callback.
            state: Nonce echoed back by Strava.

        Returns:
            The new access token.

        Raises:
            StateMismatch: If ``state`` is not the pending nonce.
            TokenExchangeError: If the code cannot be exchanged.
        """
        if not session.consume_state(state):
            logger.warning("OAuth callback rejected: state verification failed")
            raise StateMismatch("state verification failed")

        if not code:
            raise TokenExchangeError("could not exchange oauth2 token: missing code")

        client = self._client_factory()
        try:
            token_info = client.exchange_code_for_token(
                client_id=self.client_id,
                client_secret=self.client_secret,
                code=code,
            )
            access_token = token_info["access_token"]
        except Exception as e:
            logger.error("Token exchange failed: %s", e)
            raise TokenExchangeError(f"could not exchange oauth2 token: {e}") from e

        session.access_token = access_token
        logger.info("Authenticated with Strava")
        return access_token


class ActivityClient:
    """Authenticated access to the athlete activity endpoints."""

    def __init__(
        self,
        access_token: str | None,
        base_url: str = API_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            access_token: Bearer token from the OAuth flow.
            base_url: Strava API base URL.
            timeout: Per-request timeout in seconds.
            http: requests session to reuse.

        Raises:
            NotAuthenticatedError: If no token is given.
        """
        if not access_token:
            raise NotAuthenticatedError("No Strava access token; authorize first")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers["Authorization"] = f"Bearer {access_token}"

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = self.http.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def list_activities(self, after: date, before: date) -> Iterator[list[ActivitySummary]]:
        """Page through activities started between two dates.

        Pages are requested lazily, starting at page 1, until a page comes
        back empty. Iterating again starts a new pagination cycle.

        Args:
            after: Only activities after midnight UTC of this date.
            before: Only activities before midnight UTC of this date.

        Yields:
            One batch of summaries per non-empty page.

        Raises:
            ListPageError: If a page cannot be fetched or parsed.
        """
        params: dict[str, Any] = {
            "after": to_epoch(after),
            "before": to_epoch(before),
            "per_page": PAGE_SIZE,
        }

        page = 1
        while True:
            logger.debug("Fetching activity page %d (after=%s, before=%s)", page, after, before)
            try:
                payload = self._get("/athlete/activities", {**params, "page": page})
                if not isinstance(payload, list):
                    raise ValueError(f"expected a list, got {type(payload).__name__}")
                batch = [ActivitySummary.from_strava(item) for item in payload]
            except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
                raise ListPageError(f"Error fetching activity page {page}: {e}", page) from e

            if not batch:
                return

            logger.debug("Page %d: %d activities", page, len(batch))
            yield batch
            page += 1

    def get_activity_detail(self, activity_id: int) -> ActivityDetail:
        """Fetch one activity's detail, including its encoded route.

        Args:
            activity_id: Activity ID.

        Returns:
            ActivityDetail; ``polyline`` is empty for activities without GPS.

        Raises:
            DetailFetchError: If the detail cannot be fetched or parsed.
        """
        try:
            payload = self._get(f"/activities/{activity_id}")
            return ActivityDetail.from_strava(payload)
        except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
            raise DetailFetchError(f"Error fetching activity {activity_id}: {e}", activity_id) from e
