"""Error taxonomy of the direction engine."""


class CompassError(Exception):
    """Base class for all direction-engine errors."""


class PositionUnavailable(CompassError):
    """The position source denied access or timed out.

    Fatal to session start; the caller may start the session again.
    """


class OrientationUnsupported(CompassError):
    """The platform delivers no recognised orientation sample shape."""


class DeclinationUnavailable(CompassError):
    """No declination model produced a finite value.

    Never fatal: callers continue with a zero offset and flag the heading
    as degraded.
    """


class MalformedSample(CompassError):
    """A single orientation sample failed validation and is dropped."""
