"""
Unit definitions and runtime state for the skirmish rules engine.

UnitType is the immutable stat block loaded from the rules file;
Unit is a piece on the board owned by a player.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from .map import Coord

logger = logging.getLogger(__name__)


class AttackKind(Enum):
    MELEE = "melee"    # adjacent tiles only
    RANGED = "ranged"  # any tile in the range band
    SPEAR = "spear"    # range band along a row or column


class UnitStatus(Enum):
    READY = "ready"
    DESTROYED = "destroyed"


@dataclass(frozen=True)
class AttackProfile:
    """How a unit type attacks."""
    kind: AttackKind
    min_range: int = 1
    max_range: int = 1
    requires_los: bool = False

    @property
    def is_ranged(self) -> bool:
        return self.kind is not AttackKind.MELEE

    def in_band(self, distance: int) -> bool:
        return self.min_range <= distance <= self.max_range


@dataclass(frozen=True)
class UnitType:
    """Static stat block shared by every unit of a type."""
    id: str
    name: str
    attack_power: int
    movement: int
    hit_points: int
    attack: AttackProfile
    movement_class: str
    defense: float = 0.0  # 0-1, damage reduction
    defense_class: str = "infantry"
    guard: float = 0.0  # 0-1, damage reduction granted to adjacent allies
    modifiers: Mapping[str, float] = field(default_factory=dict)  # by target defense class
    movement_by_terrain: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "modifiers", MappingProxyType(dict(self.modifiers)))
        object.__setattr__(self, "movement_by_terrain", MappingProxyType(dict(self.movement_by_terrain)))

    def movement_allowance(self, terrain: str) -> int:
        """MV when starting a move on the given terrain."""
        return self.movement_by_terrain.get(terrain, self.movement)

    def modifier_against(self, defense_class: str) -> float:
        return self.modifiers.get(defense_class, 1.0)


@dataclass
class UnitState:
    """Runtime state of a unit."""
    hp: int
    has_moved: bool = False
    has_acted: bool = False
    movement_spent: int = 0


@dataclass(frozen=True)
class UnitDestroyedEvent:
    """Emitted once, when a unit's HP reaches zero."""
    unit_id: str
    owner: str
    position: Coord


@dataclass
class Unit:
    """A unit on the board."""
    id: str
    owner: str
    unit_type: UnitType
    position: Coord
    state: Optional[UnitState] = None
    status: UnitStatus = UnitStatus.READY

    def __post_init__(self):
        self.position = tuple(self.position)
        if self.state is None:
            self.state = UnitState(hp=self.unit_type.hit_points)

    # Stat queries
    @property
    def attack_power(self) -> int:
        return self.unit_type.attack_power

    @property
    def max_hp(self) -> int:
        return self.unit_type.hit_points

    @property
    def hp(self) -> int:
        return self.state.hp

    @property
    def attack(self) -> AttackProfile:
        return self.unit_type.attack

    @property
    def defense(self) -> float:
        return self.unit_type.defense

    @property
    def defense_class(self) -> str:
        return self.unit_type.defense_class

    @property
    def has_moved(self) -> bool:
        return self.state.has_moved

    @property
    def has_acted(self) -> bool:
        return self.state.has_acted

    def movement_allowance(self, terrain: str) -> int:
        return self.unit_type.movement_allowance(terrain)

    def is_alive(self) -> bool:
        return self.status is not UnitStatus.DESTROYED

    # Mutations
    def apply_damage(self, amount: int) -> Optional[UnitDestroyedEvent]:
        """
        Reduce HP, clamping at zero.

        Returns a UnitDestroyedEvent on the hit that brings HP to zero and
        None otherwise, so a destroyed unit is reported exactly once.
        """
        if amount < 0:
            raise ValueError(f"Damage must be non-negative, got {amount}")
        if not self.is_alive():
            return None

        self.state.hp = max(0, self.state.hp - amount)
        if self.state.hp > 0:
            return None

        self.status = UnitStatus.DESTROYED
        logger.info(f"Unit {self.id} ({self.unit_type.name}, {self.owner}) destroyed at {self.position}")
        return UnitDestroyedEvent(unit_id=self.id, owner=self.owner, position=self.position)

    def move(self, to: Coord, cost: int):
        """Record a completed move."""
        self.position = tuple(to)
        self.state.has_moved = True
        self.state.movement_spent += cost

    def mark_acted(self):
        self.state.has_acted = True

    def reset_for_turn(self):
        """Clear per-turn flags (call at the start of the owner's turn)."""
        self.state.has_moved = False
        self.state.has_acted = False
        self.state.movement_spent = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner": self.owner,
            "type": self.unit_type.id,
            "position": list(self.position),
            "hp": self.state.hp,
            "max_hp": self.max_hp,
            "has_moved": self.state.has_moved,
            "has_acted": self.state.has_acted,
            "status": self.status.value,
        }


class UnitManager:
    """Roster of every unit in a game."""

    def __init__(self):
        self.units: dict[str, Unit] = {}

    def add_unit(self, unit: Unit):
        if unit.id in self.units:
            raise ValueError(f"Duplicate unit id: {unit.id}")
        self.units[unit.id] = unit

    # Query methods
    def get_unit(self, unit_id: str) -> Optional[Unit]:
        return self.units.get(unit_id)

    def get_units_by_owner(self, owner: str) -> list[Unit]:
        return [u for u in self.units.values() if u.owner == owner]

    def get_living_units(self, owner: Optional[str] = None) -> list[Unit]:
        return [u for u in self.units.values()
                if u.is_alive() and (owner is None or u.owner == owner)]

    def owners(self) -> list[str]:
        seen: list[str] = []
        for unit in self.units.values():
            if unit.owner not in seen:
                seen.append(unit.owner)
        return seen

    def get_stats(self) -> dict:
        """Get unit statistics."""
        stats = {
            "total_units": len(self.units),
            "living_units": len(self.get_living_units()),
            "by_owner": {},
            "by_type": {},
        }

        for owner in self.owners():
            living = self.get_living_units(owner)
            stats["by_owner"][owner] = {
                "living": len(living),
                "total_hp": sum(u.hp for u in living),
            }

        for unit in self.units.values():
            type_id = unit.unit_type.id
            stats["by_type"][type_id] = stats["by_type"].get(type_id, 0) + 1

        return stats
