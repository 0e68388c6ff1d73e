"""
Error taxonomy for the scheduling core.
"""

from __future__ import annotations

from typing import Optional


class MurajaahError(Exception):
    """Base class for all scheduler errors."""


class NotFoundError(MurajaahError):
    """A referenced item, group or session id has no backing record."""

    def __init__(self, kind: str, key: object):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class EmptySessionError(MurajaahError):
    """A session was started with nothing due."""


class InvalidSessionStateError(MurajaahError):
    """A session operation was called in a state that does not allow it."""


class PersistenceError(MurajaahError):
    """A store write failed. The operation can be retried with the same inputs."""


class RecordDecodeError(MurajaahError):
    """A stored row does not match the record schema."""

    def __init__(self, kind: str, detail: str, raw: Optional[object] = None):
        super().__init__(f"Cannot decode {kind}: {detail}")
        self.kind = kind
        self.detail = detail
        self.raw = raw


class InvalidGroupingError(MurajaahError):
    """Group ranges do not partition their container."""


class DegradedGroupingError(MurajaahError):
    """
    Structural boundary data was unavailable.

    Soft error: the grouping engine records and logs it, then falls back to
    fixed-size groups. It is never raised out of group creation.
    """

    def __init__(self, container_number: int, strategy: str, reason: str):
        super().__init__(
            f"No {strategy} boundaries for container {container_number} ({reason}); "
            f"using fixed groups"
        )
        self.container_number = container_number
        self.strategy = strategy
        self.reason = reason
