"""Core module - Shared configuration and types."""

from offlinestore.core.config import ServerConfig
from offlinestore.core.types import QueueState

__all__ = [
    # Config
    "ServerConfig",
    # Types
    "QueueState",
]
