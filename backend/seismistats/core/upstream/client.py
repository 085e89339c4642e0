"""HTTP client for the USGS FDSN event service."""

from datetime import datetime
from typing import Any

import httpx

from seismistats.core.dates import isoformat_z
from seismistats.core.logging import get_logger
from seismistats.core.upstream.regions import GeoBounds

logger = get_logger(__name__)

# Upstream refuses or truncates windows with more events than this
MAX_EVENTS_PER_QUERY = 20000


class UpstreamError(Exception):
    """Raised when an upstream request fails or returns an unusable body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_retryable(self) -> bool:
        """Rate limiting, server errors and transport failures may succeed later."""
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class UpstreamClient:
    """
    One HTTP round trip per call; no retries.

    The httpx client may be injected (tests pass one built on
    httpx.MockTransport). When the client is created here it is closed
    by close() or the async context manager.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def __aenter__(self) -> "UpstreamClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def build_params(
        start: datetime,
        end: datetime,
        min_magnitude: float,
        max_magnitude: float | None = None,
        bounds: GeoBounds | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "format": "geojson",
            "starttime": isoformat_z(start),
            "endtime": isoformat_z(end),
            "minmagnitude": min_magnitude,
            "orderby": "time",
        }
        if max_magnitude is not None:
            params["maxmagnitude"] = max_magnitude
        if bounds is not None:
            params.update(bounds.as_params())
        return params

    async def _get_json(self, endpoint: str, params: dict[str, Any]) -> Any:
        url = f"{self.base_url}/{endpoint}"
        try:
            response = await self._client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"USGS API request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"USGS API request failed: {e}") from e

        if response.status_code != 200:
            raise UpstreamError(
                f"USGS API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                "USGS API returned a malformed body", status_code=response.status_code
            ) from e

    async def fetch_window(
        self,
        start: datetime,
        end: datetime,
        min_magnitude: float,
        max_magnitude: float | None = None,
        bounds: GeoBounds | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch raw GeoJSON features for a time window, newest first."""
        params = self.build_params(start, end, min_magnitude, max_magnitude, bounds)
        logger.debug("upstream_fetch_window", **params)

        data = await self._get_json("query", params)
        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list):
            raise UpstreamError("USGS API response has no feature list")

        if len(features) >= MAX_EVENTS_PER_QUERY:
            logger.warning(
                "upstream_window_possibly_truncated",
                starttime=params["starttime"],
                endtime=params["endtime"],
                events=len(features),
            )
        return features

    async def fetch_count(
        self,
        start: datetime,
        end: datetime,
        min_magnitude: float,
    ) -> int:
        """Number of events upstream holds for the window."""
        params = self.build_params(start, end, min_magnitude)

        data = await self._get_json("count", params)
        count = data.get("count") if isinstance(data, dict) else None
        if not isinstance(count, int):
            raise UpstreamError("USGS count response has no integer count")
        return count
