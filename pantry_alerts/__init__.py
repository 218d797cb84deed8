"""Pantry expiration alert notifications."""

__version__ = "0.1.0"
