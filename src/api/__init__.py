"""API client module for the problem tracker."""

from src.api.client import (
    TrackerAPIClient,
    TrackerAPIError,
    TrackerAuthError,
    TrackerNotFoundError,
    TrackerRateLimitError,
    TrackerTransportError,
)

__all__ = [
    "TrackerAPIClient",
    "TrackerAPIError",
    "TrackerAuthError",
    "TrackerNotFoundError",
    "TrackerRateLimitError",
    "TrackerTransportError",
]
