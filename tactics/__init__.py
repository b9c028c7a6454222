"""
Rules engine for a turn-based tactical skirmish game.

Core modules:
- rules: Stat tables loaded from YAML
- map: Square grid, terrain and movement costs
- units: Unit types and runtime unit state
- los: Line-of-sight resolution
- combat/: Ranged and melee attack resolution
- turn: Turn sequencing, action validation and victory
- scenario: Board and roster setup from YAML
"""

from .errors import (
    ActionError, InitiativeExceededError, InsufficientMovementError,
    AlreadyActedError, MovedThisTurnError, OutOfRangeError,
    LineOfSightBlockedError, OutOfBoundsError, NotUnitsTurnError,
    InvalidPathError, InvalidTargetError, GameOverError, UnknownUnitError,
    RulesError, ScenarioError,
)
from .map import Grid, Tile, TerrainInfo, MovementClass
from .units import (
    UnitManager, Unit, UnitType, UnitState, UnitStatus,
    AttackKind, AttackProfile, UnitDestroyedEvent,
)
from .los import LineOfSight, line_between, check_line_of_sight, has_line_of_sight
from .rules import Rules
from .combat import CombatResolver, CombatReport, RangedCombat, MeleeCombat
from .turn import TurnManager, TurnState, TurnPhase, GameState, Action, ActionType, MoveReport
from .scenario import Scenario, load_scenario, build_scenario
from .config import EngineConfig

__all__ = [
    # Errors
    "ActionError", "InitiativeExceededError", "InsufficientMovementError",
    "AlreadyActedError", "MovedThisTurnError", "OutOfRangeError",
    "LineOfSightBlockedError", "OutOfBoundsError", "NotUnitsTurnError",
    "InvalidPathError", "InvalidTargetError", "GameOverError", "UnknownUnitError",
    "RulesError", "ScenarioError",
    # Map
    "Grid", "Tile", "TerrainInfo", "MovementClass",
    # Units
    "UnitManager", "Unit", "UnitType", "UnitState", "UnitStatus",
    "AttackKind", "AttackProfile", "UnitDestroyedEvent",
    # Line of sight
    "LineOfSight", "line_between", "check_line_of_sight", "has_line_of_sight",
    # Rules
    "Rules",
    # Combat
    "CombatResolver", "CombatReport", "RangedCombat", "MeleeCombat",
    # Turn Management
    "TurnManager", "TurnState", "TurnPhase", "GameState", "Action", "ActionType", "MoveReport",
    # Setup
    "Scenario", "load_scenario", "build_scenario", "EngineConfig",
]
