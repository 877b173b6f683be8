"""Core configuration, storage lifecycle and dependency wiring for the API."""
