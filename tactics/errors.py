"""
Error types raised by the rules engine.

Every ActionError rejects a single action and leaves game state untouched.
RulesError / ScenarioError signal bad input files.
"""


class ActionError(Exception):
    """An attempted action was rejected."""


class InitiativeExceededError(ActionError):
    """The player already moved the maximum number of units this turn."""


class InsufficientMovementError(ActionError):
    """Path cost exceeds the unit's movement allowance."""


class AlreadyActedError(ActionError):
    """The unit already used the requested action this turn."""


class MovedThisTurnError(AlreadyActedError):
    """Ranged attack attempted by a unit that moved this turn."""


class OutOfRangeError(ActionError):
    """Target is outside the attacker's range band."""


class LineOfSightBlockedError(ActionError):
    """Something stands between attacker and target."""


class OutOfBoundsError(ActionError):
    """Coordinate lies outside the grid."""


class NotUnitsTurnError(ActionError):
    """Action submitted for a unit or by a player not in turn."""


class InvalidPathError(ActionError):
    """Path is not contiguous, crosses impassable terrain or enemies, or ends on an occupied tile."""


class InvalidTargetError(ActionError):
    """Target cannot be attacked (friendly, self, or already destroyed)."""


class GameOverError(ActionError):
    """The game has ended; no further actions are accepted."""


class UnknownUnitError(ActionError):
    """No unit with the given id exists."""


class RulesError(ValueError):
    """Rules file is malformed or inconsistent."""


class ScenarioError(ValueError):
    """Scenario file is malformed or inconsistent."""
