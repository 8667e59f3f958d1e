# -*- coding: utf-8 -*-
"""Error types shared across the Slingo backend."""

from __future__ import annotations


class SlingoError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(SlingoError):
    """A credential required by an external service is missing."""


class MalformedResponseError(SlingoError):
    """The vision model answered with something that is not the expected structure."""


class StorageCorruptionError(SlingoError):
    """Persisted goal state could not be parsed."""


class ValidationError(SlingoError):
    """A request is missing required input; raised before any external call."""
