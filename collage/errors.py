"""Exception types raised while building a merged image."""

from __future__ import annotations


class CompositorError(Exception):
    """Base class for every error that fails a merge request."""


class ValidationError(CompositorError, ValueError):
    """The request payload or layout parameters are unusable."""


class SourceError(CompositorError, RuntimeError):
    """An image source could not be fetched or decoded."""
