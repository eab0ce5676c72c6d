"""Deployment diagnostics for a hosted web API."""

__version__ = "1.0.0"
