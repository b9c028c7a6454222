"""
Rules file loading.

The rules file holds every stat table the engine uses: terrain, movement
classes (entry cost per terrain), defense classes and unit types. Tables
are cross-checked on load so the engine never meets an unknown id.
"""

import logging
from pathlib import Path
from typing import Optional

import yaml

from .errors import RulesError
from .map import MovementClass, TerrainInfo
from .units import AttackKind, AttackProfile, UnitType

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent / "data" / "rules.yaml"

TOP_LEVEL_KEYS = {"terrain", "movement_classes", "defense_classes", "unit_types"}
TERRAIN_KEYS = {"name", "defense", "blocks_los"}
UNIT_TYPE_KEYS = {
    "name", "attack_power", "movement", "movement_by_terrain", "movement_class",
    "hit_points", "attack", "defense", "guard", "modifiers",
}
ATTACK_KEYS = {"kind", "min", "max", "requires_los"}
DEFENSE_KEYS = {"value", "class"}


class Rules:
    """Validated stat tables for one game."""

    def __init__(
        self,
        terrain_info: dict[str, TerrainInfo],
        movement_classes: dict[str, MovementClass],
        defense_classes: set[str],
        unit_types: dict[str, UnitType],
    ):
        self.terrain_info = terrain_info
        self.movement_classes = movement_classes
        self.defense_classes = defense_classes
        self.unit_types = unit_types

    @classmethod
    def load(cls, path: Optional[Path | str] = None) -> "Rules":
        """Load rules from a YAML file (the packaged defaults when path is None)."""
        rules_path = Path(path) if path is not None else DEFAULT_RULES_PATH
        if not rules_path.exists():
            raise RulesError(f"Rules file not found: {rules_path}")

        try:
            with open(rules_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RulesError(f"Cannot parse rules file {rules_path}: {e}")

        rules = cls.from_dict(data or {})
        logger.info(
            f"Loaded rules from {rules_path}: {len(rules.terrain_info)} terrain types, "
            f"{len(rules.unit_types)} unit types"
        )
        return rules

    @classmethod
    def from_dict(cls, data: dict) -> "Rules":
        data = _require_mapping(data, "rules file")
        _warn_unused(data, TOP_LEVEL_KEYS, "rules file")

        terrain_info = cls._parse_terrain(_require_mapping(data.get("terrain"), "'terrain'"))
        movement_classes = cls._parse_movement_classes(
            _require_mapping(data.get("movement_classes"), "'movement_classes'"), terrain_info
        )

        defense_list = data.get("defense_classes") or []
        if not isinstance(defense_list, list) or not all(isinstance(c, str) for c in defense_list):
            raise RulesError(f"'defense_classes' must be a list of names, got {defense_list!r}")
        defense_classes = set(defense_list)

        unit_types = {
            type_id: cls._parse_unit_type(type_id, entry, movement_classes, defense_classes)
            for type_id, entry in _require_mapping(data.get("unit_types"), "'unit_types'").items()
        }
        if not unit_types:
            raise RulesError("Rules define no unit types")
        return cls(terrain_info, movement_classes, defense_classes, unit_types)

    @staticmethod
    def _parse_terrain(section: dict) -> dict[str, TerrainInfo]:
        if not section:
            raise RulesError("Rules define no terrain types")

        terrain = {}
        for terrain_id, info in section.items():
            info = _require_mapping(info, f"terrain {terrain_id!r}")
            _warn_unused(info, TERRAIN_KEYS, f"terrain {terrain_id!r}")
            defense = _fraction(info.get("defense", 0.0), f"Terrain {terrain_id!r} defense")
            terrain[terrain_id] = TerrainInfo(
                id=terrain_id,
                name=info.get("name", terrain_id.title()),
                defense=defense,
                blocks_los=bool(info.get("blocks_los", False)),
            )
        return terrain

    @staticmethod
    def _parse_movement_classes(
        section: dict, terrain: dict[str, TerrainInfo]
    ) -> dict[str, MovementClass]:
        classes = {}
        for name, costs in section.items():
            costs = _require_mapping(costs, f"movement class {name!r}")
            for terrain_id in costs:
                if terrain_id not in terrain:
                    raise RulesError(f"Unrecognized terrain {terrain_id!r} for movement class {name!r}")
            for terrain_id in terrain:
                if terrain_id not in costs:
                    raise RulesError(f"Movement class {name!r} is missing terrain {terrain_id!r}")
            for terrain_id, cost in costs.items():
                if cost is not None and (not _is_int(cost) or cost < 1):
                    raise RulesError(
                        f"Movement class {name!r} has invalid cost {cost!r} for {terrain_id!r}"
                    )
            classes[name] = MovementClass(name=name, costs=dict(costs))
        return classes

    @staticmethod
    def _parse_attack(type_id: str, entry: dict) -> AttackProfile:
        entry = _require_mapping(entry, f"attack of unit type {type_id!r}")
        _warn_unused(entry, ATTACK_KEYS, f"attack of unit type {type_id!r}")

        kind_name = entry.get("kind", "melee")
        try:
            kind = AttackKind(kind_name)
        except ValueError:
            raise RulesError(f"Unrecognized range kind {kind_name!r} for unit type {type_id!r}")

        if kind is AttackKind.MELEE:
            return AttackProfile(kind=kind, min_range=1, max_range=1, requires_los=False)

        if entry.get("min") is None or entry.get("max") is None:
            raise RulesError(f"Missing 'min'/'max' for {kind_name} attack of unit type {type_id!r}")
        min_range, max_range = entry["min"], entry["max"]
        if not (_is_int(min_range) and _is_int(max_range)) or min_range < 1 or min_range > max_range:
            raise RulesError(f"Invalid range band {min_range}-{max_range} for unit type {type_id!r}")

        return AttackProfile(
            kind=kind,
            min_range=min_range,
            max_range=max_range,
            requires_los=bool(entry.get("requires_los", False)),
        )

    @classmethod
    def _parse_unit_type(
        cls,
        type_id: str,
        entry: dict,
        movement_classes: dict[str, MovementClass],
        defense_classes: set[str],
    ) -> UnitType:
        entry = _require_mapping(entry, f"unit type {type_id!r}")
        _warn_unused(entry, UNIT_TYPE_KEYS, f"unit type {type_id!r}")
        for key in ("attack_power", "movement", "hit_points", "movement_class"):
            if key not in entry:
                raise RulesError(f"Unit type {type_id!r} is missing {key!r}")
        for key in ("attack_power", "movement", "hit_points"):
            if not _is_int(entry[key]) or entry[key] < 0:
                raise RulesError(f"Unit type {type_id!r} {key} must be a non-negative integer, got {entry[key]!r}")

        movement_class = entry["movement_class"]
        if movement_class not in movement_classes:
            raise RulesError(f"Unrecognized movement class {movement_class!r} for unit type {type_id!r}")

        defense = _require_mapping(entry.get("defense"), f"defense of unit type {type_id!r}")
        _warn_unused(defense, DEFENSE_KEYS, f"defense of unit type {type_id!r}")
        defense_class = defense.get("class", "infantry")
        if defense_classes and defense_class not in defense_classes:
            raise RulesError(f"Unrecognized defense class {defense_class!r} for unit type {type_id!r}")

        modifiers = {}
        for target_class, value in _require_mapping(entry.get("modifiers"), f"modifiers of {type_id!r}").items():
            if defense_classes and target_class not in defense_classes:
                raise RulesError(
                    f"Unrecognized defense class {target_class!r} in modifiers of {type_id!r}"
                )
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                raise RulesError(f"Modifier {target_class!r} of {type_id!r} must be a non-negative number")
            modifiers[target_class] = float(value)

        movement_by_terrain = {}
        for terrain_id, value in _require_mapping(
            entry.get("movement_by_terrain"), f"movement_by_terrain of {type_id!r}"
        ).items():
            if not _is_int(value) or value < 0:
                raise RulesError(f"movement_by_terrain {terrain_id!r} of {type_id!r} must be a non-negative integer")
            movement_by_terrain[terrain_id] = value

        hit_points = entry["hit_points"]
        if hit_points < 1:
            raise RulesError(f"Unit type {type_id!r} must have at least 1 hit point")

        return UnitType(
            id=type_id,
            name=entry.get("name", type_id.title()),
            attack_power=entry["attack_power"],
            movement=entry["movement"],
            hit_points=hit_points,
            attack=cls._parse_attack(type_id, entry.get("attack")),
            movement_class=movement_class,
            defense=_fraction(defense.get("value", 0.0), f"Unit type {type_id!r} defense"),
            defense_class=defense_class,
            guard=_fraction(entry.get("guard", 0.0), f"Unit type {type_id!r} guard"),
            modifiers=modifiers,
            movement_by_terrain=movement_by_terrain,
        )

    # Lookups
    def terrain(self, terrain_id: str) -> TerrainInfo:
        try:
            return self.terrain_info[terrain_id]
        except KeyError:
            raise RulesError(f"Unknown terrain: {terrain_id!r}")

    def unit_type(self, type_id: str) -> UnitType:
        try:
            return self.unit_types[type_id]
        except KeyError:
            raise RulesError(f"Unknown unit type: {type_id!r}")

    def movement_cost(self, terrain: str, unit_type: UnitType) -> Optional[int]:
        """Cost for a unit type to enter the given terrain (None if impassable)."""
        return self.movement_classes[unit_type.movement_class].cost(terrain)


def _require_mapping(value, where: str) -> dict:
    """A missing or empty section reads as {}; any other non-mapping is an error."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RulesError(f"{where} must be a mapping, got {type(value).__name__}")
    return value


def _warn_unused(section: dict, known: set[str], where: str):
    for key in section:
        if key not in known:
            logger.warning(f"Unused key {key!r} in {where}")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _fraction(value, what: str) -> float:
    """Damage reductions live in [0, 1)."""
    if not isinstance(value, (int, float)) or isinstance(value, bool) or not 0.0 <= value < 1.0:
        raise RulesError(f"{what} must be in [0, 1), got {value!r}")
    return float(value)
