"""HTTP effect for the remote authority.

This module provides:
- HTTPEffect: Effect capability performing EffectRequests over HTTP
- APIError and subclasses: Rejections by the server
- NetworkUnreachableError: Transport failures (classified as transient by
  ``FailurePolicy.network_aware()``)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from offlinestore.client.store.types import EffectError, EffectRequest
from offlinestore.core.config import ServerConfig

logger = logging.getLogger(__name__)


class APIError(EffectError):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


class ConflictError(APIError):
    """The server rejected the mutation as conflicting."""


class NotFoundError(APIError):
    """Resource not found."""


class NetworkUnreachableError(APIError, ConnectionError):
    """The server could not be reached."""


class HTTPEffect:
    """Performs queued effects against an HTTP server.

    Usage:
        with HTTPEffect(ServerConfig(server_url="http://localhost:8000")) as effect:
            store = OfflineStore(effect=effect)
    """

    def __init__(
        self,
        config: ServerConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP effect.

        Args:
            config: Server configuration with URL, token, and settings.
            transport: Optional httpx transport (e.g. for testing).
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            headers=config.headers,
            verify=config.verify_ssl,
            transport=transport,
        )

    @property
    def config(self) -> ServerConfig:
        """Get server configuration."""
        return self._config

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPEffect:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Invalid or expired token", 401)
        if response.status_code == 404:
            raise NotFoundError("Resource not found", 404)
        if response.status_code == 409:
            raise ConflictError(_detail(response, "Conflict"), 409)
        if response.status_code >= 400:
            raise APIError(_detail(response, "Unknown error"), response.status_code)
        return response

    def perform_effect(self, request: EffectRequest) -> Any:
        """Send the effect to the server.

        Args:
            request: The effect to realize.

        Returns:
            Decoded JSON response body, or None for an empty body.

        Raises:
            NetworkUnreachableError: If the server cannot be reached.
            APIError: If the server rejects the request.
        """
        logger.debug("%s %s %s", request.method, request.url, dict(request.json))
        try:
            response = self._client.request(
                request.method,
                request.url,
                json=dict(request.json),
            )
        except httpx.TransportError as e:
            raise NetworkUnreachableError(f"{request.method} {request.url}: {e}") from e

        response = self._handle_response(response)
        if not response.content:
            return None
        return response.json()

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the server is healthy.

        Returns:
            True if server is healthy.
        """
        try:
            response = self._client.get("/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False


def _detail(response: httpx.Response, default: str) -> str:
    try:
        return str(response.json().get("detail", default))
    except (ValueError, AttributeError):
        return default
