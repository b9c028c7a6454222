"""
Turn sequencing and action resolution.

One player acts at a time. Within a turn the player may move up to
MAX_MOVES_PER_TURN units and attack (or wait) with each unit once; a unit that moved
cannot make a ranged attack in the same turn. Every rejected action raises
an ActionError and leaves the game untouched.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from .combat import CombatReport, CombatResolver, MeleeCombat, RangedCombat
from .errors import (
    ActionError, AlreadyActedError, GameOverError, InitiativeExceededError,
    InsufficientMovementError, InvalidPathError, InvalidTargetError,
    NotUnitsTurnError, UnknownUnitError,
)
from .map import Coord, Grid
from .units import Unit, UnitDestroyedEvent, UnitManager

logger = logging.getLogger(__name__)


class TurnPhase(Enum):
    AWAITING_MOVE = "awaiting_move"
    RESOLVING_ACTION = "resolving_action"
    TURN_COMPLETE = "turn_complete"


class ActionType(Enum):
    MOVE = "move"
    RANGED = "ranged"
    MELEE = "melee"
    WAIT = "wait"  # unit is done for the turn without attacking
    END_TURN = "end_turn"


@dataclass
class Action:
    """An action submitted by a player."""
    player: str
    type: ActionType
    unit_id: Optional[str] = None
    path: list[Coord] = field(default_factory=list)
    target_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Action":
        """Build an action from an orders-file entry."""
        if not isinstance(data, dict):
            raise ValueError(f"Order must be a mapping, got {data!r}")
        try:
            action_type = ActionType(data["action"])
        except KeyError:
            raise ValueError(f"Order is missing 'action': {data}")
        except ValueError:
            raise ValueError(f"Unknown action {data['action']!r}")
        if "player" not in data:
            raise ValueError(f"Order is missing 'player': {data}")

        for key in ("player", "unit", "target"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Order {key!r} must be a string, got {value!r}")

        return cls(
            player=data["player"],
            type=action_type,
            unit_id=data.get("unit"),
            path=cls._parse_path(data.get("path", [])),
            target_id=data.get("target"),
        )

    @staticmethod
    def _parse_path(raw) -> list[Coord]:
        if not isinstance(raw, list):
            raise ValueError(f"Order 'path' must be a list of [x, y] pairs, got {raw!r}")
        path = []
        for step in raw:
            if (not isinstance(step, (list, tuple)) or len(step) != 2
                    or not all(isinstance(v, int) and not isinstance(v, bool) for v in step)):
                raise ValueError(f"Path step must be an [x, y] pair of integers, got {step!r}")
            path.append(tuple(step))
        return path


@dataclass
class MoveReport:
    """Report of a completed move."""
    unit_id: str
    turn: int
    origin: Coord
    destination: Coord
    cost: int

    def to_dict(self) -> dict:
        return {
            "unit_id": self.unit_id,
            "turn": self.turn,
            "from": list(self.origin),
            "to": list(self.destination),
            "cost": self.cost,
        }


@dataclass
class TurnState:
    """State of the current turn."""
    turn_number: int
    player: str
    phase: TurnPhase = TurnPhase.AWAITING_MOVE
    moved_units: list[str] = field(default_factory=list)
    acted_units: set[str] = field(default_factory=set)
    move_reports: list[MoveReport] = field(default_factory=list)
    combat_reports: list[CombatReport] = field(default_factory=list)
    destroyed_units: list[str] = field(default_factory=list)
    ended_by: Optional[str] = None  # "player", "all_acted", "victory"

    @property
    def moves_made(self) -> int:
        return len(self.moved_units)


@dataclass
class GameState:
    """Complete game state."""
    players: list[str] = field(default_factory=list)  # turn order
    turn: int = 0
    max_turns: Optional[int] = None  # player turns
    defeated: list[str] = field(default_factory=list)
    game_over: bool = False
    winner: Optional[str] = None  # player id or "draw"
    turn_history: list[TurnState] = field(default_factory=list)

    @property
    def active_players(self) -> list[str]:
        return [p for p in self.players if p not in self.defeated]


class TurnManager:
    """Manages turn order, action validation and victory detection."""

    MAX_MOVES_PER_TURN = 4

    def __init__(
        self,
        grid: Grid,
        unit_manager: UnitManager,
        players: list[str],
        max_moves_per_turn: int = MAX_MOVES_PER_TURN,
        max_turns: Optional[int] = None,
        ranged_combat: Optional[CombatResolver] = None,
        melee_combat: Optional[CombatResolver] = None,
    ):
        if not players:
            raise ValueError("At least one player is required")
        if max_moves_per_turn < 0:
            raise ValueError(f"max_moves_per_turn must be non-negative, got {max_moves_per_turn}")

        self.grid = grid
        self.units = unit_manager
        self.max_moves_per_turn = max_moves_per_turn

        self.ranged_combat = ranged_combat or RangedCombat()
        self.melee_combat = melee_combat or MeleeCombat()

        self.game_state = GameState(players=list(players), max_turns=max_turns)
        self.current_turn: Optional[TurnState] = None

        # Destroyed units already taken off the grid
        self._removed_units: set[str] = set()

        # Callbacks for integration
        self.on_turn_start: Optional[Callable[[TurnState], None]] = None
        self.on_turn_end: Optional[Callable[[TurnState], None]] = None
        self.on_unit_destroyed: Optional[Callable[[UnitDestroyedEvent], None]] = None

    # Turn flow
    def start_game(self) -> TurnState:
        """Check starting rosters and open the first player's turn."""
        if self.current_turn is not None:
            raise RuntimeError("Game already started")

        self._check_victory()
        if self.game_state.game_over:
            raise RuntimeError(f"Game is decided before the first turn (winner: {self.game_state.winner})")

        logger.info(f"Game started: players={self.game_state.players}, "
                    f"moves per turn={self.max_moves_per_turn}")
        return self._start_turn(self.game_state.active_players[0])

    def _start_turn(self, player: str) -> TurnState:
        self.game_state.turn += 1

        for unit in self.units.get_units_by_owner(player):
            unit.reset_for_turn()

        self.current_turn = TurnState(turn_number=self.game_state.turn, player=player)
        logger.info(f"Turn {self.game_state.turn}: {player} to act")

        if self.on_turn_start:
            self.on_turn_start(self.current_turn)

        return self.current_turn

    def _next_player(self, player: str) -> str:
        order = self.game_state.players
        i = order.index(player)
        for step in range(1, len(order) + 1):
            candidate = order[(i + step) % len(order)]
            if candidate not in self.game_state.defeated:
                return candidate
        raise RuntimeError("No active players left")

    def end_turn(self) -> TurnState:
        """End the current player's turn voluntarily."""
        turn = self._require_turn()
        self._complete_turn(turn, "player")
        return turn

    def _complete_turn(self, turn: TurnState, reason: str):
        turn.phase = TurnPhase.TURN_COMPLETE
        turn.ended_by = reason
        self.game_state.turn_history.append(turn)

        self._check_victory()
        if not self.game_state.game_over and self.game_state.max_turns is not None:
            if self.game_state.turn >= self.game_state.max_turns:
                self._decide_on_hit_points()

        logger.info(
            f"Turn {turn.turn_number} ({turn.player}) complete: {reason}, "
            f"{turn.moves_made} moves, {len(turn.combat_reports)} attacks"
        )

        if self.on_turn_end:
            self.on_turn_end(turn)

        if not self.game_state.game_over:
            self._start_turn(self._next_player(turn.player))

    # Actions
    def submit(self, action: Action):
        """Apply an action submitted by a player, rejecting it if that player is not in turn."""
        if self.game_state.game_over:
            raise GameOverError("The game is over")
        turn = self._require_turn()
        if action.player != turn.player:
            raise NotUnitsTurnError(f"It is {turn.player}'s turn, not {action.player}'s")

        if action.type is ActionType.MOVE:
            return self.move_unit(action.unit_id, action.path)
        if action.type is ActionType.RANGED:
            return self.ranged_attack(action.unit_id, action.target_id)
        if action.type is ActionType.MELEE:
            return self.melee_attack(action.unit_id, action.target_id)
        if action.type is ActionType.WAIT:
            return self.wait_unit(action.unit_id)
        return self.end_turn()

    def move_unit(self, unit_id: str, path: list[Coord]) -> MoveReport:
        """
        Move a unit along path (start tile excluded, destination last).

        The path must step between orthogonal neighbours over passable
        terrain, may cross friendly but not enemy units, must end on an
        empty tile, and cost no more than the unit's movement allowance on
        its starting terrain.
        """
        turn = self._require_turn()
        unit = self._get_own_unit(unit_id)

        if unit.has_moved:
            raise AlreadyActedError(f"{unit.id} already moved this turn")
        if unit.has_acted:
            raise AlreadyActedError(f"{unit.id} already acted this turn")
        if turn.moves_made >= self.max_moves_per_turn:
            raise InitiativeExceededError(
                f"{turn.player} already moved {turn.moves_made} units this turn "
                f"(limit {self.max_moves_per_turn})"
            )

        path = [tuple(step) for step in path]
        cost = self.path_cost(unit, path)
        allowance = unit.movement_allowance(self.grid.tile_at(unit.position).terrain)
        if cost > allowance:
            raise InsufficientMovementError(f"Path costs {cost} but {unit.id} has {allowance} movement")

        turn.phase = TurnPhase.RESOLVING_ACTION
        origin = unit.position
        destination = path[-1]
        self.grid.move_occupant(origin, destination)
        unit.move(destination, cost)
        turn.moved_units.append(unit.id)

        report = MoveReport(unit_id=unit.id, turn=turn.turn_number,
                            origin=origin, destination=destination, cost=cost)
        turn.move_reports.append(report)
        turn.phase = TurnPhase.AWAITING_MOVE

        logger.debug(f"{unit.id} moved {origin} -> {destination} (cost {cost}/{allowance})")
        return report

    def ranged_attack(self, attacker_id: str, target_id: str) -> CombatReport:
        """Ranged or spear attack; forbidden for a unit that moved this turn."""
        return self._attack(self.ranged_combat, attacker_id, target_id)

    def melee_attack(self, attacker_id: str, target_id: str) -> CombatReport:
        """Attack an adjacent enemy; allowed after moving."""
        return self._attack(self.melee_combat, attacker_id, target_id)

    def _attack(self, resolver: CombatResolver, attacker_id: str, target_id: str) -> CombatReport:
        turn = self._require_turn()
        attacker = self._get_own_unit(attacker_id)
        if attacker.has_acted:
            raise AlreadyActedError(f"{attacker.id} already acted this turn")
        target = self._get_target(attacker, target_id)

        turn.phase = TurnPhase.RESOLVING_ACTION
        try:
            report, event = resolver.resolve(self.grid, self.units, attacker, target, turn.turn_number)
        finally:
            turn.phase = TurnPhase.AWAITING_MOVE

        attacker.mark_acted()
        turn.acted_units.add(attacker.id)
        turn.combat_reports.append(report)
        logger.debug(
            f"{attacker.id} {report.kind} attack on {target.id}: "
            f"{report.damage} damage, {report.target_hp} HP left"
        )

        if event is not None:
            self._handle_destroyed(event)

        self._check_victory()
        if self.game_state.game_over:
            self._complete_turn(turn, "victory")
        else:
            self._end_if_all_acted(turn)

        return report

    def wait_unit(self, unit_id: str) -> Unit:
        """Mark a unit done for the turn without attacking (allowed after moving)."""
        turn = self._require_turn()
        unit = self._get_own_unit(unit_id)
        if unit.has_acted:
            raise AlreadyActedError(f"{unit.id} already acted this turn")

        unit.mark_acted()
        turn.acted_units.add(unit.id)
        logger.debug(f"{unit.id} waits")

        self._end_if_all_acted(turn)
        return unit

    def _end_if_all_acted(self, turn: TurnState):
        if all(u.has_acted for u in self.units.get_living_units(turn.player)):
            self._complete_turn(turn, "all_acted")

    def path_cost(self, unit: Unit, path: list[Coord]) -> int:
        """Total entry cost of path for unit, raising if the path is not walkable."""
        if not path:
            raise InvalidPathError("Path is empty")

        total = 0
        previous = unit.position
        for step in path:
            tile = self.grid.tile_at(step)
            if self.grid.distance(previous, step) != 1:
                raise InvalidPathError(f"{previous} -> {step} is not a single orthogonal step")

            cost = self.grid.movement_cost(tile.terrain, unit.unit_type)
            if cost is None:
                raise InvalidPathError(f"{step} ({tile.terrain}) is impassable for {unit.unit_type.name}")

            if tile.occupant is not None and tile.occupant != unit.id:
                other = self.units.get_unit(tile.occupant)
                if other is not None and other.owner != unit.owner:
                    raise InvalidPathError(f"{step} is blocked by enemy unit {other.id}")

            total += cost
            previous = step

        final = self.grid.occupant_at(path[-1])
        if final is not None and final != unit.id:
            raise InvalidPathError(f"Destination {path[-1]} is occupied by {final}")

        return total

    def _handle_destroyed(self, event: UnitDestroyedEvent):
        if event.unit_id in self._removed_units:
            return
        self._removed_units.add(event.unit_id)

        if self.grid.occupant_at(event.position) == event.unit_id:
            self.grid.remove_unit(event.position)
        if self.current_turn is not None:
            self.current_turn.destroyed_units.append(event.unit_id)

        if self.on_unit_destroyed:
            self.on_unit_destroyed(event)

    # Victory
    def _check_victory(self):
        """Retire players without living units; a lone survivor wins."""
        for player in self.game_state.active_players:
            if not self.units.get_living_units(player):
                self.game_state.defeated.append(player)
                logger.info(f"Player defeated: {player}")

        active = self.game_state.active_players
        if len(active) <= 1 and not self.game_state.game_over:
            self.game_state.game_over = True
            self.game_state.winner = active[0] if active else "draw"
            logger.info(f"Game over, winner: {self.game_state.winner}")

    def _decide_on_hit_points(self):
        """Turn limit reached: most remaining HP wins."""
        totals = {
            player: sum(u.hp for u in self.units.get_living_units(player))
            for player in self.game_state.active_players
        }
        best = max(totals.values())
        leaders = [p for p, hp in totals.items() if hp == best]

        self.game_state.game_over = True
        self.game_state.winner = leaders[0] if len(leaders) == 1 else "draw"
        logger.info(f"Turn limit reached ({totals}), winner: {self.game_state.winner}")

    # Lookups
    def _require_turn(self) -> TurnState:
        if self.game_state.game_over:
            raise GameOverError("The game is over")
        if not self.current_turn:
            raise RuntimeError("Game not started")
        return self.current_turn

    def _get_unit(self, unit_id: str) -> Unit:
        unit = self.units.get_unit(unit_id)
        if unit is None:
            raise UnknownUnitError(f"No unit with id {unit_id!r}")
        if not unit.is_alive():
            raise UnknownUnitError(f"{unit_id} has been destroyed")
        return unit

    def _get_own_unit(self, unit_id: str) -> Unit:
        unit = self._get_unit(unit_id)
        if unit.owner != self.current_turn.player:
            raise NotUnitsTurnError(f"{unit.id} belongs to {unit.owner}; it is {self.current_turn.player}'s turn")
        return unit

    def _get_target(self, attacker: Unit, target_id: str) -> Unit:
        target = self.units.get_unit(target_id)
        if target is None:
            raise UnknownUnitError(f"No unit with id {target_id!r}")
        if not target.is_alive():
            raise InvalidTargetError(f"{target.id} has already been destroyed")
        if target.owner == attacker.owner:
            raise InvalidTargetError(f"{attacker.id} cannot attack friendly unit {target.id}")
        return target

    # Queries
    def reachable_tiles(self, unit_id: str) -> dict[Coord, int]:
        """Empty tiles the unit could move to now, with their cost."""
        unit = self._get_unit(unit_id)
        if unit.has_moved or unit.has_acted:
            return {}

        def passable(coord: Coord) -> bool:
            occupant = self.grid.occupant_at(coord)
            if occupant is None:
                return True
            other = self.units.get_unit(occupant)
            return other is None or other.owner == unit.owner

        budget = unit.movement_allowance(self.grid.tile_at(unit.position).terrain)
        reachable = self.grid.reachable(unit.position, unit.unit_type, budget, can_enter=passable)
        return {c: cost for c, cost in reachable.items() if not self.grid.is_occupied(c)}

    def attackable_targets(self, unit_id: str) -> dict[str, list[str]]:
        """Enemy unit ids the unit could hit right now, by attack kind."""
        unit = self._get_unit(unit_id)
        targets: dict[str, list[str]] = {"ranged": [], "melee": []}
        if unit.has_acted:
            return targets

        candidates = {"melee": self.grid.neighbors(unit.position)}
        if unit.attack.is_ranged:
            candidates["ranged"] = self.grid.coords_in_band(
                unit.position, unit.attack.min_range, unit.attack.max_range
            )
        resolvers = {"ranged": self.ranged_combat, "melee": self.melee_combat}

        for kind, coords in candidates.items():
            for coord in coords:
                occupant = self.grid.occupant_at(coord)
                if occupant is None:
                    continue
                enemy = self.units.get_unit(occupant)
                if enemy is None or not enemy.is_alive() or enemy.owner == unit.owner:
                    continue
                try:
                    resolvers[kind].validate(self.grid, unit, enemy)
                except ActionError:
                    continue
                targets[kind].append(enemy.id)
            targets[kind].sort()
        return targets

    def get_game_state(self) -> dict:
        """Summary of the game for logging and clients."""
        turn = self.current_turn
        return {
            "turn": self.game_state.turn,
            "player": turn.player if turn else None,
            "phase": turn.phase.value if turn else None,
            "moves_made": turn.moves_made if turn else 0,
            "moves_allowed": self.max_moves_per_turn,
            "players": list(self.game_state.players),
            "defeated": list(self.game_state.defeated),
            "game_over": self.game_state.game_over,
            "winner": self.game_state.winner,
            "units": [u.to_dict() for u in self.units.units.values()],
        }
