"""Reverse proxy from browsers to a Turso / libSQL HTTP pipeline endpoint."""

__version__ = "1.0.0"
