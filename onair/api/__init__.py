"""HTTP API for live presence and engagement."""
