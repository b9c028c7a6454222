"""
Shared fixtures for the rules engine tests.
"""
import pytest

from tactics import Grid, Rules, TurnManager, Unit, UnitManager


@pytest.fixture(scope="session")
def rules() -> Rules:
    """The packaged default rules."""
    return Rules.load()


@pytest.fixture
def make_game(rules):
    """
    Build a TurnManager on an open plains board.

    units: iterable of (unit_id, owner, unit_type, (x, y))
    terrain: mapping of (x, y) -> terrain id
    Remaining keyword arguments go to TurnManager.
    """
    def _make(units, width=8, height=8, terrain=None, players=("red", "blue"), start=True, **kwargs):
        grid = Grid.from_rules(width, height, rules)
        for coord, terrain_id in (terrain or {}).items():
            grid.set_terrain(coord, terrain_id)

        roster = UnitManager()
        for unit_id, owner, type_id, at in units:
            roster.add_unit(Unit(id=unit_id, owner=owner, unit_type=rules.unit_type(type_id), position=at))
            grid.place_unit(unit_id, at)

        manager = TurnManager(grid, roster, list(players), **kwargs)
        if start:
            manager.start_game()
        return manager

    return _make


@pytest.fixture
def open_grid(rules) -> Grid:
    """Empty 8x8 plains grid."""
    return Grid.from_rules(8, 8, rules)
