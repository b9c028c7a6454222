"""Tests for environment configuration."""
import pytest

from tactics import EngineConfig
from tactics.rules import DEFAULT_RULES_PATH

ENV_VARS = [
    "TACTICS_DATA_PATH", "TACTICS_RULES", "TACTICS_MAX_MOVES_PER_TURN",
    "TACTICS_LOG_LEVEL", "TACTICS_RNG_SEED", "TACTICS_DAMAGE_VARIANCE",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Clear TACTICS_* variables; values loaded from .env are removed after the test."""
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestEngineConfig:

    def test_defaults(self, clean_env, tmp_path):
        config = EngineConfig.from_env(tmp_path / "missing.env")
        assert config.rules_path == DEFAULT_RULES_PATH
        assert config.max_moves_per_turn == 4
        assert config.log_level == "INFO"
        assert config.rng_seed is None
        assert config.damage_variance == 0.0
        assert config.scenario_path("ford").exists()

    def test_environment_overrides(self, clean_env, tmp_path):
        clean_env.setenv("TACTICS_MAX_MOVES_PER_TURN", "2")
        clean_env.setenv("TACTICS_LOG_LEVEL", "debug")
        clean_env.setenv("TACTICS_RNG_SEED", "7")
        clean_env.setenv("TACTICS_DAMAGE_VARIANCE", "0.2")
        config = EngineConfig.from_env(tmp_path / "missing.env")
        assert config.max_moves_per_turn == 2
        assert config.log_level == "DEBUG"
        assert config.rng_seed == 7
        assert config.damage_variance == 0.2

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("TACTICS_MAX_MOVES_PER_TURN=3\nTACTICS_RNG_SEED=99\n")
        config = EngineConfig.from_env(env_file)
        assert config.max_moves_per_turn == 3
        assert config.rng_seed == 99

    def test_data_path_supplies_rules(self, clean_env, tmp_path):
        (tmp_path / "rules.yaml").write_text("terrain: {}\n")
        clean_env.setenv("TACTICS_DATA_PATH", str(tmp_path))
        config = EngineConfig.from_env(tmp_path / "missing.env")
        assert config.rules_path == tmp_path / "rules.yaml"
        assert config.scenario_path("ford") == tmp_path / "scenarios" / "ford.yaml"

    def test_negative_move_limit(self, clean_env, tmp_path):
        clean_env.setenv("TACTICS_MAX_MOVES_PER_TURN", "-1")
        with pytest.raises(ValueError):
            EngineConfig.from_env(tmp_path / "missing.env")

    def test_variance_out_of_range(self, clean_env, tmp_path):
        clean_env.setenv("TACTICS_DAMAGE_VARIANCE", "1.5")
        with pytest.raises(ValueError):
            EngineConfig.from_env(tmp_path / "missing.env")
