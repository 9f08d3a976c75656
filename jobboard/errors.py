"""
Errors raised by the job store and its backends.

Only VersionConflict is retried (inside the store); everything else is
terminal for the request that hit it.
"""
from __future__ import annotations


class StoreError(Exception):
    """Base class for job store failures."""


class DecodeError(StoreError):
    """Blob content is not a JSON array of job records."""


class BackendUnavailable(StoreError):
    """Remote backend timed out, refused, or answered with a server error."""


class VersionConflict(StoreError):
    """Conditional write rejected: the blob changed since it was read."""

    def __init__(self, path: str, expected_version: str | None):
        super().__init__(f"stale version for {path}: {expected_version!r}")
        self.path = path
        self.expected_version = expected_version


class ConcurrentModificationError(StoreError):
    """Retry budget exhausted while other writers kept winning."""

    def __init__(self, path: str, attempts: int):
        super().__init__(f"{path} kept changing; gave up after {attempts} attempts")
        self.path = path
        self.attempts = attempts


class Unauthenticated(Exception):
    """Session token missing, malformed, expired or signed with another key."""


class GitHubAuthError(Exception):
    """GitHub OAuth code exchange or user lookup failed."""
