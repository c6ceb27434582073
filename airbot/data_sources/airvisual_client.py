"""Client for the IQAir AirVisual `nearest_city` endpoint."""
from __future__ import annotations

from datetime import datetime, timezone

import requests
from pydantic import BaseModel, ValidationError

from airbot.domain import AirReading, Coordinate
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="airvisual_client")

session = requests.Session()

DEFAULT_TIMEOUT_SECONDS = 10.0


class FetchError(Exception):
    """Base class for failures to obtain a reading from the provider."""


class NetworkFailure(FetchError):
    """The request never produced an HTTP response (DNS, connect, timeout)."""


class UpstreamError(FetchError):
    """The provider answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"AirVisual returned HTTP {status_code}: {body[:200]}")
        self.status_code = status_code
        self.body = body


class MalformedResponse(FetchError):
    """The provider answered 2xx but the body is not the expected JSON shape."""


class _Pollution(BaseModel):
    aqius: int


class _Current(BaseModel):
    pollution: _Pollution


class _NearestCityData(BaseModel):
    city: str
    current: _Current


class NearestCityResponse(BaseModel):
    """Subset of the `nearest_city` payload the bot relies on."""
    data: _NearestCityData


class AirQualityClient:
    """Stateless adapter: one GET per `fetch`, no retries, no caching.

    Safe to share between threads; the only state is the pooled HTTP session
    and the immutable API key.
    """

    def __init__(
        self,
        api_key: str,
        *,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http: requests.Session | None = None,
    ) -> None:
        """Initialize with the provider credential and endpoint."""
        self._api_key = api_key
        self.url = url
        self.timeout = timeout
        self._http = http

    @property
    def http(self) -> requests.Session:
        """HTTP session in use; defaults to the module-level pooled session."""
        return self._http or session

    def fetch(self, coordinate: Coordinate) -> AirReading:
        """Fetch the current AQI for the city nearest to `coordinate`.

        Raises NetworkFailure, UpstreamError or MalformedResponse.
        """
        params = {"lat": coordinate.latitude, "lon": coordinate.longitude, "key": self._api_key}
        try:
            resp = self.http.get(self.url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.warning("AirVisual request failed: %s", mask_secret_url(str(exc)))
            raise NetworkFailure(mask_secret_url(str(exc))) from exc

        logger.debug("AirVisual GET %s -> %s", mask_secret_url(resp.url or self.url), resp.status_code)
        if not 200 <= resp.status_code < 300:
            raise UpstreamError(resp.status_code, resp.text or "")

        try:
            payload = NearestCityResponse.model_validate(resp.json())
        except ValueError as exc:
            # ValidationError is a ValueError subclass, as is JSONDecodeError
            kind = "schema" if isinstance(exc, ValidationError) else "json"
            raise MalformedResponse(f"Unexpected AirVisual body ({kind}): {(resp.text or '')[:200]}") from exc

        return AirReading(
            city=payload.data.city,
            aqi=payload.data.current.pollution.aqius,
            fetched_at=datetime.now(timezone.utc),
        )
