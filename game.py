"""
Scripted battle runner for the skirmish rules engine.

Plays a scenario against an orders file, one action at a time in file
order, and writes a JSON game log.
"""

import json
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional

import yaml

from tactics import (
    Action, ActionError, EngineConfig, MeleeCombat, RangedCombat, Rules,
    TurnState, UnitDestroyedEvent, load_scenario,
)

logger = logging.getLogger(__name__)


def load_orders(path: Path | str) -> list[dict]:
    """Read the list of orders from a YAML orders file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Cannot parse orders file {path}: {e}")
    orders = data.get("orders", []) if isinstance(data, dict) else data
    if not isinstance(orders, list):
        raise ValueError(f"Orders file {path} must contain a list of orders")
    return orders


class SkirmishSimulation:
    """Runs one scripted game."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        scenario: str = "ford",
        log_dir: str = "logs",
    ):
        self.config = config or EngineConfig()
        self.scenario_name = scenario
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Loading rules...")
        self.rules = Rules.load(self.config.rules_path)

        logger.info(f"Loading scenario: {scenario}")
        scenario_path = self.config.scenario_path(scenario)
        self.scenario = load_scenario(scenario_path if scenario_path.exists() else scenario, self.rules)

        seed = self.config.rng_seed
        variance = self.config.damage_variance
        self.turn_manager = self.scenario.create_turn_manager(
            max_moves_per_turn=self.config.max_moves_per_turn,
            ranged_combat=RangedCombat(rng_seed=seed, variance=variance),
            melee_combat=MeleeCombat(rng_seed=seed, variance=variance),
        )
        self.turn_manager.on_turn_end = self._on_turn_end
        self.turn_manager.on_unit_destroyed = self._on_unit_destroyed

        # Game log
        self.game_log: list[dict] = []
        self.accepted = 0
        self.rejected = 0
        self.start_time: Optional[datetime] = None
        self.log_path: Optional[Path] = None

    def initialize(self):
        """Start the game."""
        self.turn_manager.start_game()
        self.start_time = datetime.now()

        self._log_event("game_start", {
            "scenario": self.scenario.name,
            "players": self.scenario.players,
            "map": self.scenario.grid.get_stats(),
            "units": self.scenario.units.get_stats(),
        })
        logger.info(f"Game initialized: {self.scenario.name}, players {self.scenario.players}")

    def apply_order(self, order: dict) -> bool:
        """Submit one order; rejected orders are logged and skipped."""
        try:
            action = Action.from_dict(order)
            result = self.turn_manager.submit(action)
        except (ActionError, ValueError) as e:
            self.rejected += 1
            logger.warning(f"Order rejected ({type(e).__name__}): {e}")
            self._log_event("order_rejected", {
                "order": order,
                "error": type(e).__name__,
                "message": str(e),
            })
            return False

        self.accepted += 1
        self._log_event("order_applied", {
            "order": order,
            "result": result.to_dict() if hasattr(result, "to_dict") else None,
        })
        return True

    def run_game(self, orders: list[dict]) -> dict:
        """Run the full game from a list of orders."""
        self.initialize()

        for order in orders:
            if self.turn_manager.game_state.game_over:
                logger.info("Game over, remaining orders ignored")
                break
            self.apply_order(order)

        results = self._compile_results()
        self._log_event("game_end", results)
        self._save_game_log()
        return results

    def _on_turn_end(self, turn: TurnState):
        self._log_event("turn_complete", {
            "turn": turn.turn_number,
            "player": turn.player,
            "ended_by": turn.ended_by,
            "moves": [m.to_dict() for m in turn.move_reports],
            "attacks": [r.to_dict() for r in turn.combat_reports],
            "destroyed": list(turn.destroyed_units),
        })

    def _on_unit_destroyed(self, event: UnitDestroyedEvent):
        self._log_event("unit_destroyed", {
            "unit_id": event.unit_id,
            "owner": event.owner,
            "position": list(event.position),
        })

    def _compile_results(self) -> dict:
        """Compile final game results."""
        game = self.turn_manager.game_state
        units = self.scenario.units

        return {
            "scenario": self.scenario.name,
            "turns_played": game.turn,
            "game_over": game.game_over,
            "winner": game.winner,
            "orders_accepted": self.accepted,
            "orders_rejected": self.rejected,
            "surviving_forces": {
                player: len(units.get_living_units(player)) for player in game.players
            },
            "remaining_hp": {
                player: sum(u.hp for u in units.get_living_units(player)) for player in game.players
            },
            "duration": str(datetime.now() - self.start_time) if self.start_time else None,
        }

    def _log_event(self, event_type: str, data: dict):
        """Log a game event."""
        self.game_log.append({
            "timestamp": datetime.now().isoformat(),
            "event": event_type,
            "data": data,
        })

    def _save_game_log(self) -> Path:
        """Save game log to file."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = self.log_dir / f"game_{timestamp}.json"

        with open(log_path, "w") as f:
            json.dump(self.game_log, f, indent=2, default=str)

        logger.info(f"Game log saved to: {log_path}")
        self.log_path = log_path
        return log_path


def main():
    """Run a scripted skirmish."""
    import argparse

    parser = argparse.ArgumentParser(description="Tactical skirmish rules engine - scripted battle")
    parser.add_argument("--scenario", default="ford", help="Scenario name or path")
    parser.add_argument("--orders", required=True, help="YAML orders file")
    parser.add_argument("--rules", default=None, help="Rules file (overrides TACTICS_RULES)")
    parser.add_argument("--logs", default="logs", help="Log directory path")
    parser.add_argument("--env", default=None, help=".env file to load")

    args = parser.parse_args()

    config = EngineConfig.from_env(args.env)
    if args.rules:
        config.rules_path = Path(args.rules)

    logging.basicConfig(level=config.log_level)

    sim = SkirmishSimulation(config=config, scenario=args.scenario, log_dir=args.logs)
    results = sim.run_game(load_orders(args.orders))

    print("\n" + "="*60)
    print("FINAL RESULTS")
    print("="*60)
    print(f"Scenario: {results['scenario']}")
    print(f"Turns played: {results['turns_played']}")
    print(f"Winner: {results['winner'] or 'undecided'}")
    print(f"Orders: {results['orders_accepted']} applied, {results['orders_rejected']} rejected")
    for player, count in results["surviving_forces"].items():
        print(f"  {player}: {count} units, {results['remaining_hp'][player]} HP")
    print(f"Duration: {results['duration']}")


if __name__ == "__main__":
    main()
