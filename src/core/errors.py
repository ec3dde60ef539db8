"""Error types raised inside notishield."""

from __future__ import annotations


class ShieldError(Exception):
    """Base class for notishield errors."""


class ClassifierError(ShieldError):
    """Remote classification backend failed or answered with an unusable shape."""


class ConfigurationError(ShieldError):
    """Invalid or incomplete settings detected at startup."""
