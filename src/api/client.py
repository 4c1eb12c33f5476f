"""HTTP client for the problem tracker API."""

import logging
from typing import Any

import requests
from requests.exceptions import RequestException

from src.utils.config import TrackerConfig, get_tracker_settings

logger = logging.getLogger(__name__)

# HTTP status code threshold for errors
HTTP_ERROR_THRESHOLD = 400

HTTP_UNAUTHORISED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429
HTTP_NO_CONTENT = 204


class TrackerAPIError(Exception):
    """Raised when a tracker API request fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Initialise the error.

        :param message: Error message.
        :param status_code: HTTP status code if available.
        :param payload: Decoded error body if available.
        """
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


class TrackerTransportError(TrackerAPIError):
    """Raised when the request never produced an HTTP response."""


class TrackerAuthError(TrackerAPIError):
    """Raised on 401/403 responses."""


class TrackerNotFoundError(TrackerAPIError):
    """Raised on 404 responses."""


class TrackerRateLimitError(TrackerAPIError):
    """Raised on 429 responses.

    Carries the server-reported cooldown so callers can tell the user how
    long to wait.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = HTTP_TOO_MANY_REQUESTS,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Initialise the error.

        :param message: Error message.
        :param status_code: HTTP status code.
        :param payload: Decoded error body.
        """
        super().__init__(message, status_code=status_code, payload=payload)
        cooldown = self.payload.get("cooldownSeconds")
        self.cooldown_seconds: int | None = int(cooldown) if cooldown is not None else None
        self.next_sync_allowed: str | None = self.payload.get("nextSyncAllowed")


def _error_class_for_status(status_code: int) -> type[TrackerAPIError]:
    if status_code in (HTTP_UNAUTHORISED, HTTP_FORBIDDEN):
        return TrackerAuthError
    if status_code == HTTP_NOT_FOUND:
        return TrackerNotFoundError
    if status_code == HTTP_TOO_MANY_REQUESTS:
        return TrackerRateLimitError
    return TrackerAPIError


class TrackerAPIClient:
    """HTTP client for calling the problem tracker API.

    No retries are performed here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_token: str | None = None,
        timeout: int | None = None,
        settings: TrackerConfig | None = None,
    ) -> None:
        """Initialise the API client.

        :param base_url: Base URL for the API. Defaults to TRACKER_API_BASE_URL.
        :param api_token: Bearer credential. Defaults to TRACKER_API_TOKEN.
        :param timeout: Request timeout in seconds. Defaults to TRACKER_REQUEST_TIMEOUT.
        :param settings: Settings to read defaults from.
        """
        settings = settings or get_tracker_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.api_token = api_token or settings.api_token
        self.timeout = timeout or settings.request_timeout

        self._session = requests.Session()
        if self.api_token:
            self._session.headers.update({"Authorization": f"Bearer {self.api_token}"})

        logger.debug(f"TrackerAPIClient initialised: base_url={self.base_url}")

    @property
    def has_credential(self) -> bool:
        """Check whether a bearer credential is attached."""
        return bool(self.api_token)

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Make a GET request to the API.

        :param path: API endpoint path.
        :param params: Query parameters.
        :returns: JSON response data.
        :raises TrackerAPIError: If the request fails.
        """
        return self._request("GET", path, params=params)

    def post(self, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        """Make a POST request to the API.

        :param path: API endpoint path.
        :param json: JSON request body.
        :returns: JSON response data.
        :raises TrackerAPIError: If the request fails.
        """
        return self._request("POST", path, json=json)

    def put(self, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        """Make a PUT request to the API.

        :param path: API endpoint path.
        :param json: JSON request body.
        :returns: JSON response data.
        :raises TrackerAPIError: If the request fails.
        """
        return self._request("PUT", path, json=json)

    def delete(self, path: str) -> dict[str, Any]:
        """Make a DELETE request to the API.

        :param path: API endpoint path.
        :returns: JSON response data.
        :raises TrackerAPIError: If the request fails.
        """
        return self._request("DELETE", path)

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an HTTP request to the API.

        :param method: HTTP method.
        :param path: API endpoint path.
        :param params: Query parameters.
        :param json: JSON request body.
        :returns: JSON response data.
        :raises TrackerAPIError: If the request fails.
        """
        url = f"{self.base_url}{path}"

        try:
            logger.debug(f"API request: {method} {path} params={params} json={json}")
            response = self._session.request(
                method, url, params=params, json=json, timeout=self.timeout
            )
        except RequestException as e:
            logger.warning(f"API request error: {method} {path}: {e}")
            raise TrackerTransportError(f"Request failed: {e}") from e

        if response.status_code >= HTTP_ERROR_THRESHOLD:
            payload = self._extract_payload(response)
            message = str(payload.get("message") or payload.get("detail") or "")
            message = message or response.text or f"HTTP {response.status_code}"
            logger.warning(
                f"API request failed: {method} {path} -> {response.status_code}: {message}"
            )
            error_class = _error_class_for_status(response.status_code)
            raise error_class(message, status_code=response.status_code, payload=payload)

        if response.status_code == HTTP_NO_CONTENT or not response.content:
            return {}

        try:
            data = response.json()
        except ValueError as e:
            raise TrackerAPIError(
                f"Invalid JSON in response: {method} {path}",
                status_code=response.status_code,
            ) from e

        if isinstance(data, list):
            return {"results": data}
        return dict(data)

    @staticmethod
    def _extract_payload(response: requests.Response) -> dict[str, Any]:
        """Extract the decoded error body from a response.

        :param response: HTTP response.
        :returns: Error body as a dict, empty if it is not a JSON object.
        """
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {"detail": data}

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self) -> "TrackerAPIClient":
        """Enter context manager."""
        return self

    def __exit__(self, *args: object) -> None:
        """Exit context manager."""
        self.close()
