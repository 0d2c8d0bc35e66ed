"""Application core for the knowledge service."""
