"""Base client for HTTP services."""

import logging
from time import sleep

import httpx

from .exceptions import APIError, ConnectionError, NotFoundError

logger = logging.getLogger(__name__)


class Client:
    """Base class for HTTP service clients.

    Provides a lazy-initialized httpx.Client with context manager support,
    basic authentication, configurable timeout and retries via dict config.

    Config keys:
        base_url (required): Base URL for all requests
        timeout: Request timeout in seconds (default: 30)
        retry_attempts: Number of attempts for transient failures (default: 3)
        retry_delay: Delay between retries in seconds (default: 1)
        username: Basic auth user name (optional)
        password: Basic auth password (optional)
        headers: Additional headers to include in requests
    """

    def __init__(self, config: dict):
        if "base_url" not in config:
            raise ValueError("config must include 'base_url'")

        self._config = config
        self._client: httpx.Client | None = None

    @property
    def base_url(self) -> str:
        return str(self._config["base_url"]).rstrip("/")

    @property
    def timeout(self) -> float:
        return float(self._config.get("timeout", 30))

    @property
    def retry_attempts(self) -> int:
        return max(1, int(self._config.get("retry_attempts", 3)))

    @property
    def retry_delay(self) -> float:
        return float(self._config.get("retry_delay", 1))

    @property
    def auth(self) -> tuple[str, str] | None:
        username = self._config.get("username")
        if not username:
            return None
        return (str(username), str(self._config.get("password", "")))

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._config.get("headers", {}))

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialized httpx client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
                auth=self.auth,
            )
        return self._client

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Map HTTP errors to exceptions.

        Raises:
            NotFoundError: For 404 responses
            APIError: For other non-2xx responses, with the body excerpt
        """
        if response.is_success:
            return response

        status_code = response.status_code
        if status_code == 404:
            raise NotFoundError(f"Resource not found: {response.url}")

        detail = response.text.strip()[:200]
        message = f"API error {status_code}: {response.url}"
        if detail:
            message = f"{message} ({detail})"
        raise APIError(message, status_code=status_code)

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Make a request, retrying network-level failures.

        Raises:
            ConnectionError: If every attempt failed at the network level
            APIError: If the service returned a non-2xx response
        """
        last_exception: Exception | None = None

        for attempt in range(self.retry_attempts):
            try:
                response = self.client.request(method, path, **kwargs)
                return self._handle_response(response)
            except httpx.TransportError as e:
                last_exception = e
                logger.warning(
                    f"{method} {path} failed (attempt {attempt + 1}/{self.retry_attempts}): {e}"
                )
                if attempt < self.retry_attempts - 1:
                    sleep(self.retry_delay)

        msg = f"Connection failed after {self.retry_attempts} attempts"
        raise ConnectionError(msg) from last_exception

    def get(self, path: str, **kwargs) -> httpx.Response:
        return self._request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> httpx.Response:
        return self._request("POST", path, **kwargs)

    def delete(self, path: str, **kwargs) -> httpx.Response:
        return self._request("DELETE", path, **kwargs)
