"""Failures raised while deciding on or writing one observation.

Classification gaps are not errors and never appear here.
"""

from __future__ import annotations

from petrolscan.models import IdentityKey


class PipelineError(Exception):
    """Base class for per-observation pipeline failures."""

    retryable: bool = False

    def __init__(self, message: str, key: IdentityKey | None = None):
        super().__init__(message)
        self.key = key


class LookupFailure(PipelineError):
    """The existence check against the store could not be completed."""

    retryable = True


class WriteConflict(PipelineError):
    """Insert hit the identity uniqueness constraint (concurrent insert)."""


class WriteFailure(PipelineError):
    """Insert or update failed for a reason other than a uniqueness race."""
