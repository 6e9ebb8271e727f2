"""Client module - Store, outbox, effects and CLI."""
