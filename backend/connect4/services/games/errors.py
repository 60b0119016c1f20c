"""Domain errors raised by the game services.

Handlers in the protocol layer translate these into outbound notifications;
none of them is fatal to the process.
"""

from typing import Optional


class Connect4Error(Exception):
    """Base class for every error raised by the game services."""

    message = 'Unexpected error'

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(Connect4Error):
    message = 'Username required'


class IdentityConflict(Connect4Error):
    code = 'USERNAME_IN_USE'
    message = 'Username already in use in another session'


class RuleViolation(Connect4Error):
    pass


class NotYourTurn(RuleViolation):
    message = 'Not your turn'


class InvalidMove(RuleViolation):
    message = 'Invalid move'


class NoResumableSession(Connect4Error):
    message = 'No session to resume'


class PersistenceFailure(Connect4Error):
    message = 'Failed to persist game result'
