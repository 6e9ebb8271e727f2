"""offlinestore - Optimistic local state with an offline action outbox."""

__version__ = "0.1.0"
