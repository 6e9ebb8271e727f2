"""Shared configuration classes for offlinestore.

This module defines configuration classes for reaching the remote authority.
Store behaviour is configured with ``StoreConfig`` next to the store itself.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ServerConfig:
    """Configuration for connecting to the remote authority.

    Used by the HTTP effect to build its client and by the CLI to persist
    the connection settings.

    Attributes:
        server_url: Base URL of the server (e.g., "https://api.example.com").
        token: Optional bearer token sent with every effect.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    token: str | None = None
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def headers(self) -> dict[str, str]:
        """Get default request headers.

        Returns:
            Headers including the Authorization header when a token is set.
        """
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")
