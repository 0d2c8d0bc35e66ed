"""HTTP API for the knowledge service."""
