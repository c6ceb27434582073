"""Air-quality provider adapters."""

from .airvisual_client import (
    AirQualityClient,
    FetchError,
    MalformedResponse,
    NearestCityResponse,
    NetworkFailure,
    UpstreamError,
)

__all__ = [
    "AirQualityClient",
    "FetchError",
    "MalformedResponse",
    "NearestCityResponse",
    "NetworkFailure",
    "UpstreamError",
]
