from __future__ import annotations


class TasteTrailError(Exception):
    pass


class TransitionError(TasteTrailError, ValueError):
    """Raised when an event is not allowed from the current screen."""


class CollaboratorError(TasteTrailError, RuntimeError):
    """An external call failed or returned something unusable."""


class GeoapifyError(CollaboratorError):
    pass


class GeolocationError(CollaboratorError):
    pass
