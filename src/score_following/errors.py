"""Exceptions raised by the score following core."""


class ScoreFollowingError(Exception):
    """Base class for score following failures."""

    pass


class ReferenceLoadError(ScoreFollowingError):
    """Raised when the reference recording cannot be fetched or decoded.

    Fatal to the session being built: no follower is returned.
    """

    pass


class FeatureMismatch(ScoreFollowingError):
    """Raised when a live frame or feature vector is malformed.

    Covers NaN/inf values and dimension mismatches. The failing step leaves
    the follower's state untouched, so the caller may skip the frame.
    """

    pass


class InsufficientData(ScoreFollowingError):
    """Raised when too few frames are available to produce an estimate.

    Most estimators report this condition by returning ``None`` instead.
    """

    pass
