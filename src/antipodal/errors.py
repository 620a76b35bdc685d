"""Error taxonomy. Nothing here is fatal: callers degrade to defaults."""


class AntipodalError(Exception):
    """Base class for all errors raised by antipodal."""


class LocationError(AntipodalError):
    """The device position could not be obtained."""


class PermissionDenied(LocationError):
    """Location Services access was denied or restricted."""


class PositionUnavailable(LocationError):
    """No usable fix arrived (timeout, no signal, provider error)."""


class ResolutionFailure(AntipodalError):
    """The place lookup provider failed."""


class ResolutionEmpty(AntipodalError):
    """The place lookup provider answered but had nothing to say."""
