"""
Ranged combat - attacks across the range band of archers and spearmen.

Handles:
- Move-exclusion (no ranged attack in the turn a unit moved)
- Range bands and straight-line spear reach
- Line-of-sight for unit types that need it
"""

from ..errors import (
    LineOfSightBlockedError, MovedThisTurnError, OutOfRangeError,
)
from ..los import LineOfSight, check_line_of_sight
from ..map import Coord, Grid
from ..units import AttackKind, Unit
from .base import CombatResolver


class RangedCombat(CombatResolver):
    """Resolves ranged and spear attacks."""

    KIND = "ranged"

    def in_reach(self, grid: Grid, attacker: Unit, coord: Coord) -> bool:
        """Range band and alignment check, ignoring line-of-sight."""
        profile = attacker.attack
        if not profile.is_ranged:
            return False
        if not profile.in_band(grid.distance(attacker.position, coord)):
            return False
        if profile.kind is AttackKind.SPEAR:
            ax, ay = attacker.position
            return ax == coord[0] or ay == coord[1]
        return True

    def validate(self, grid: Grid, attacker: Unit, target: Unit):
        if attacker.has_moved:
            raise MovedThisTurnError(f"{attacker.id} moved this turn and cannot make a ranged attack")

        profile = attacker.attack
        if not profile.is_ranged:
            raise OutOfRangeError(f"{attacker.id} ({attacker.unit_type.name}) has no ranged attack")

        if not self.in_reach(grid, attacker, target.position):
            distance = grid.distance(attacker.position, target.position)
            raise OutOfRangeError(
                f"{target.id} at distance {distance} is outside {attacker.id}'s "
                f"{profile.kind.value} range {profile.min_range}-{profile.max_range}"
            )

        if profile.requires_los:
            if check_line_of_sight(grid, attacker.position, target.position) is LineOfSight.BLOCKED:
                raise LineOfSightBlockedError(
                    f"No line of sight from {attacker.position} to {target.position}"
                )
