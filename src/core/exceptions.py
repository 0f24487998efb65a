"""Exceptions shared across layers."""


class GameError(Exception):
    """Base class for everything this package raises on purpose."""


class GameStateError(GameError):
    """Operation not allowed in the current state of the game."""


class InvalidBoardError(GameError):
    """A board (usually received over the wire) violates the placement rules."""


class InvalidEventError(GameError):
    """A known relay event arrived with a payload of the wrong shape."""


class RelayError(GameError):
    """Connectivity failure: subscribing to or sending on a channel failed."""


class RPCError(GameError):
    """A call into the external backend failed."""


class InviteRejectedError(GameError):
    """An invite could not be sent or accepted (self-invite, bad stake, low balance)."""


class RepositoryError(GameError):
    """Reading from or writing to the marker store failed."""


class NotAuthorizedError(GameError):
    """The signed in user lacks the role needed for the operation."""
