"""Shared plumbing for the httpx based API clients."""

from typing import Any

import httpx

from stud.core.exceptions import ApiError
from stud.core.logging import StructuredLogger

logger = StructuredLogger("clients")


class ApiClient:
    """Lazily connected JSON API client.

    Subclasses supply the base URL and headers through ``_connection`` and
    pick the message out of an error payload in ``_error_message``. Every
    HTTP or transport failure surfaces as ``error_class``.
    """

    service = "API"
    error_class: type[ApiError] = ApiError

    def __init__(self, config: Any):
        self._config = config
        self._client: httpx.Client | None = None

    def _connection(self) -> tuple[str, dict[str, str]]:
        raise NotImplementedError

    def _error_message(self, payload: Any) -> str | None:
        if isinstance(payload, dict):
            return payload.get("message")
        return None

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            base_url, headers = self._connection()
            self._client = httpx.Client(
                base_url=base_url,
                headers=headers,
                timeout=self._config.timeout,
                follow_redirects=True,
            )
            logger.debug("Created client", service=self.service, base_url=base_url)
        return self._client

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request and return the successful response."""
        logger.debug("Request", service=self.service, method=method, path=path)
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                message = self._error_message(e.response.json())
            except ValueError:
                message = None
            message = message or e.response.text or str(e)
            raise self.error_class(f"{self.service} error: {message}", status_code=e.response.status_code) from e
        except httpx.RequestError as e:
            raise self.error_class(f"{self.service} request failed: {e}") from e
        return response

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body, or None when empty."""
        response = self._send(method, path, **kwargs)
        return response.json() if response.content else None

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
