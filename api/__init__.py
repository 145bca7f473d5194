"""JAKE HTTP API."""
