"""
Base combat resolution with the shared damage model.
"""

import math
import random
from dataclasses import dataclass, field
from typing import Optional

from ..map import Coord, Grid, TerrainInfo
from ..units import Unit, UnitDestroyedEvent, UnitManager


@dataclass
class CombatReport:
    """Report of a resolved attack."""
    attacker_id: str
    target_id: str
    kind: str  # "ranged" or "melee"
    turn: int
    damage: int
    target_hp: int
    destroyed: bool = False
    attacker_location: Optional[Coord] = None
    target_location: Optional[Coord] = None
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "attacker_id": self.attacker_id,
            "target_id": self.target_id,
            "kind": self.kind,
            "turn": self.turn,
            "damage": self.damage,
            "target_hp": self.target_hp,
            "destroyed": self.destroyed,
            "attacker_location": list(self.attacker_location) if self.attacker_location else None,
            "target_location": list(self.target_location) if self.target_location else None,
            "notes": list(self.notes),
        }


class CombatResolver:
    """
    Base class for attack resolution.

    Damage = AP x class modifier x (1 - unit defense) x (1 - terrain defense)
    x (1 - guard), rounded half up, never below MIN_DAMAGE. With the default
    variance of 0 the result is fully deterministic.
    """

    KIND = "attack"
    MIN_DAMAGE = 1

    def __init__(self, rng_seed: Optional[int] = None, variance: float = 0.0):
        self.rng = random.Random(rng_seed)
        self.variance = variance

    def roll(self, base: float) -> float:
        """Roll with variance around base value."""
        if not self.variance:
            return base
        return base * (1.0 + self.rng.uniform(-self.variance, self.variance))

    def validate(self, grid: Grid, attacker: Unit, target: Unit):
        """Raise an ActionError if attacker cannot hit target. Subclasses add their rules."""

    def guard_for(self, grid: Grid, units: UnitManager, target: Unit) -> float:
        """Best guard value among living friendly units adjacent to target."""
        best = 0.0
        for coord in grid.neighbors(target.position):
            occupant_id = grid.occupant_at(coord)
            if occupant_id is None:
                continue
            ally = units.get_unit(occupant_id)
            if ally and ally.is_alive() and ally.owner == target.owner:
                best = max(best, ally.unit_type.guard)
        return best

    def calculate_damage(
        self,
        attacker: Unit,
        target: Unit,
        terrain: TerrainInfo,
        guard: float = 0.0,
    ) -> int:
        """Calculate damage dealt by one attack."""
        raw = attacker.attack_power * attacker.unit_type.modifier_against(target.defense_class)
        mitigated = raw * (1.0 - target.defense) * (1.0 - terrain.defense) * (1.0 - guard)
        return max(self.MIN_DAMAGE, math.floor(self.roll(mitigated) + 0.5))

    def resolve(
        self,
        grid: Grid,
        units: UnitManager,
        attacker: Unit,
        target: Unit,
        turn: int,
    ) -> tuple[CombatReport, Optional[UnitDestroyedEvent]]:
        """Validate, compute and apply an attack."""
        self.validate(grid, attacker, target)

        terrain = grid.terrain_at(target.position)
        guard = self.guard_for(grid, units, target)
        damage = self.calculate_damage(attacker, target, terrain, guard)
        target_location = target.position
        event = target.apply_damage(damage)

        report = CombatReport(
            attacker_id=attacker.id,
            target_id=target.id,
            kind=self.KIND,
            turn=turn,
            damage=damage,
            target_hp=target.hp,
            destroyed=event is not None,
            attacker_location=attacker.position,
            target_location=target_location,
        )
        if guard:
            report.notes.append(f"guarded ({guard:.0%})")
        if terrain.defense:
            report.notes.append(f"{terrain.name} cover ({terrain.defense:.0%})")
        return report, event
