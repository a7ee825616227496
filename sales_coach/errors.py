"""Typed errors raised by the coaching engine.

The engine returns typed errors and leaves user-facing copy to the caller.
"""


class CoachingError(Exception):
    """Base class for engine errors."""


class ValidationError(CoachingError):
    """Missing or malformed input (no call id, empty token, empty reply)."""


class NotFoundError(CoachingError):
    """Unknown call id, reply token or coaching message id."""


class UpstreamError(CoachingError):
    """Scoring model, embedding service or email transport failure."""


class DuplicateReplyError(CoachingError):
    """A reply was already recorded for this coaching message."""


class InvalidTransitionError(CoachingError):
    """Lifecycle guard violation, e.g. editing a message that was already sent."""


class ConcurrencyError(CoachingError):
    """The record changed since it was read (version mismatch)."""


class ComposeDegradedWarning(UserWarning):
    """Retrieval failed and the coaching draft was composed without augmentation."""
