"""HitFinder error types."""


class HitFinderError(Exception):
    """Base error for all HitFinder failures."""


class BackendError(HitFinderError):
    """The search backend could not answer a request."""


class BackendUnavailable(BackendError):
    """Transient backend failure (storage unreachable, closed connection)."""


class InvalidQuery(BackendError):
    """Query, filter or pattern text the backend cannot interpret."""


class NoSuchTransition(HitFinderError):
    """A cursor was moved past its first or last position."""
