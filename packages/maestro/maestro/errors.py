"""Exceptions raised by maestro."""
from __future__ import annotations


class InvalidArgument(ValueError):
    """Raised when a timer is built from an invalid callback or configuration."""
