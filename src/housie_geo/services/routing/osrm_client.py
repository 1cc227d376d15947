"""HTTP client for requesting street routes from an OSRM server.

Only the route geometry is requested and passed through; no routing logic
lives in this service.
"""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from ...models.domain import Coordinate
from .models import RouteGeometry

logger = logging.getLogger(__name__)


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
            transport=self._transport,
        )

    def route(self, coordinates: Sequence[Coordinate]) -> RouteGeometry:
        """Get the street route through ``coordinates`` in the given order.

        Raises:
            ValueError: fewer than two waypoints, or OSRM answered with a non-"Ok" code.
            ConnectionError: the server could not be reached after all retries.
            httpx.HTTPError: the server kept failing after all retries.
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for OSRM route.")

        # OSRM expects "lon,lat;lon,lat;..."
        coordinate_str = ";".join(f"{point.longitude},{point.latitude}" for point in coordinates)
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"
        params = {"overview": "full", "geometries": "geojson", "steps": "false"}

        data = self._get_with_retries(url, params)
        if data.get("code") != "Ok" or not data.get("routes"):
            raise ValueError(f"OSRM route request failed: {data.get('message', data.get('code', 'no routes'))}")

        best = data["routes"][0]
        return RouteGeometry(
            geometry=best["geometry"],
            distance_m=float(best.get("distance", 0.0)),
            duration_s=float(best.get("duration", 0.0)),
            waypoint_count=len(coordinates),
        )

    def _get_with_retries(self, url: str, params: dict) -> dict:
        """GET ``url`` with exponential backoff; ``max_retries`` extra attempts after the first."""
        with self._get_client() as client:
            attempt = 0
            while True:
                last_attempt = attempt >= self.max_retries
                try:
                    response = client.get(url, params=params)
                    if response.status_code == 400:
                        # NoRoute and friends come back as 400 with a JSON body
                        return response.json()
                    response.raise_for_status()
                    return response.json()
                except httpx.TimeoutException as e:
                    if last_attempt:
                        logger.warning(f"OSRM route request timed out after {attempt + 1} attempts: {e}")
                        raise
                    reason = "timeout"
                except httpx.NetworkError as e:
                    if last_attempt:
                        raise ConnectionError(f"Failed to connect to OSRM service at {self.base_url}: {e}") from e
                    reason = f"network error: {e}"
                except httpx.HTTPStatusError as e:
                    if last_attempt:
                        raise
                    reason = f"HTTP {e.response.status_code}"

                delay = self.backoff_seconds * (2**attempt)
                logger.debug(f"OSRM {reason}, retry {attempt + 1}/{self.max_retries} in {delay:.1f}s")
                time.sleep(delay)
                attempt += 1


def check_health(base_url: str | None = None, transport: httpx.BaseTransport | None = None) -> bool:
    """Check OSRM service health with a minimal two-point route request."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        client = OSRMClient(base_url=base, max_retries=0, timeout=5.0, transport=transport)
        client.route(
            [
                Coordinate(latitude=45.5017, longitude=-73.5673),
                Coordinate(latitude=45.5088, longitude=-73.5540),
            ]
        )
        return True
    except (httpx.HTTPError, ConnectionError, ValueError):
        return False
