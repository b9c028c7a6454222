"""
Engine configuration from environment variables and an optional .env file.

    TACTICS_DATA_PATH           directory holding rules and scenarios
    TACTICS_RULES               rules file (default: packaged rules.yaml)
    TACTICS_MAX_MOVES_PER_TURN  initiative limit (default 4)
    TACTICS_LOG_LEVEL           logging level name (default INFO)
    TACTICS_RNG_SEED            seed for combat variance
    TACTICS_DAMAGE_VARIANCE     +/- fraction applied to damage (default 0)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .rules import DEFAULT_RULES_PATH


@dataclass
class EngineConfig:
    """Settings shared by the engine entry points."""
    data_path: Path = DEFAULT_RULES_PATH.parent
    rules_path: Path = DEFAULT_RULES_PATH
    max_moves_per_turn: int = 4
    log_level: str = "INFO"
    rng_seed: Optional[int] = None
    damage_variance: float = 0.0

    @classmethod
    def from_env(cls, env_file: Optional[Path | str] = None) -> "EngineConfig":
        """Build config from the process environment, after loading .env if present."""
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        data_path = Path(os.getenv("TACTICS_DATA_PATH", str(DEFAULT_RULES_PATH.parent)))
        rules_env = os.getenv("TACTICS_RULES")
        if rules_env:
            rules_path = Path(rules_env)
        elif (data_path / "rules.yaml").exists():
            rules_path = data_path / "rules.yaml"
        else:
            rules_path = DEFAULT_RULES_PATH

        seed = os.getenv("TACTICS_RNG_SEED")
        config = cls(
            data_path=data_path,
            rules_path=rules_path,
            max_moves_per_turn=int(os.getenv("TACTICS_MAX_MOVES_PER_TURN", "4")),
            log_level=os.getenv("TACTICS_LOG_LEVEL", "INFO").upper(),
            rng_seed=int(seed) if seed else None,
            damage_variance=float(os.getenv("TACTICS_DAMAGE_VARIANCE", "0")),
        )
        if config.max_moves_per_turn < 0:
            raise ValueError(f"TACTICS_MAX_MOVES_PER_TURN must be non-negative, got {config.max_moves_per_turn}")
        if not 0.0 <= config.damage_variance < 1.0:
            raise ValueError(f"TACTICS_DAMAGE_VARIANCE must be in [0, 1), got {config.damage_variance}")
        return config

    def scenario_path(self, name: str) -> Path:
        return self.data_path / "scenarios" / f"{name}.yaml"
