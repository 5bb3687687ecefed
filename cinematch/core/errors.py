"""Domain exceptions.

Routers translate these into HTTP responses; the WebSocket gateway turns them
into ``error`` frames. ``ConflictError`` never leaves the service layer.
"""


class CineMatchError(Exception):
    """Base class for all domain errors."""


class ValidationError(CineMatchError, ValueError):
    """Input rejected before any storage access."""


class NotFoundError(CineMatchError, ValueError):
    """Referenced entity does not exist."""


class MembershipError(CineMatchError, PermissionError):
    """Operation on a room the user does not belong to."""


class ConflictError(CineMatchError):
    """A concurrent writer committed the same unique row first."""


class StorageUnavailable(CineMatchError):
    """The database could not be reached."""
