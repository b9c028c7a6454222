"""
Melee combat - attacks against an orthogonally adjacent unit.

Any unit type may strike in melee, including after moving.
"""

from ..errors import OutOfRangeError
from ..map import Grid
from ..units import Unit
from .base import CombatResolver


class MeleeCombat(CombatResolver):
    """Resolves melee attacks."""

    KIND = "melee"

    def validate(self, grid: Grid, attacker: Unit, target: Unit):
        distance = grid.distance(attacker.position, target.position)
        if distance != 1:
            raise OutOfRangeError(
                f"{target.id} at distance {distance} is not adjacent to {attacker.id}"
            )
