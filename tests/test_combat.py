"""Tests for damage resolution."""
import pytest

from tactics import (
    CombatResolver, Grid, LineOfSightBlockedError, MeleeCombat, MovedThisTurnError,
    OutOfRangeError, RangedCombat, TerrainInfo, Unit, UnitManager,
)


def place(grid, roster, rules, unit_id, owner, type_id, at):
    unit = Unit(id=unit_id, owner=owner, unit_type=rules.unit_type(type_id), position=at)
    roster.add_unit(unit)
    grid.place_unit(unit_id, at)
    return unit


@pytest.fixture
def board(rules):
    grid = Grid.from_rules(8, 8, rules)
    return grid, UnitManager()


class TestDamageModel:
    """AP, class modifiers and mitigation."""

    def test_warrior_against_warrior(self, board, rules):
        """4 AP x (1 - 0.1) rounds to 4."""
        grid, roster = board
        attacker = place(grid, roster, rules, "r", "red", "warrior", (0, 0))
        target = place(grid, roster, rules, "b", "blue", "warrior", (0, 1))
        report, event = MeleeCombat().resolve(grid, roster, attacker, target, turn=1)
        assert report.damage == 4
        assert target.hp == 4
        assert event is None

    def test_forest_cover(self, board, rules):
        """Forest takes 20% off: 3.6 x 0.8 rounds to 3."""
        grid, roster = board
        grid.set_terrain((0, 1), "forest")
        attacker = place(grid, roster, rules, "r", "red", "warrior", (0, 0))
        target = place(grid, roster, rules, "b", "blue", "warrior", (0, 1))
        report, _ = MeleeCombat().resolve(grid, roster, attacker, target, turn=1)
        assert report.damage == 3
        assert any("cover" in note for note in report.notes)

    def test_class_modifier(self, board, rules):
        """Warriors hit skirmishers for 125%."""
        grid, roster = board
        attacker = place(grid, roster, rules, "r", "red", "warrior", (0, 0))
        target = place(grid, roster, rules, "b", "blue", "archer", (0, 1))
        report, _ = MeleeCombat().resolve(grid, roster, attacker, target, turn=1)
        assert report.damage == 5

    def test_adjacent_defender_guards(self, board, rules):
        """A defender next to the target takes a quarter off."""
        grid, roster = board
        attacker = place(grid, roster, rules, "r", "red", "warrior", (0, 0))
        target = place(grid, roster, rules, "b", "blue", "archer", (0, 1))
        place(grid, roster, rules, "bd", "blue", "defender", (1, 1))

        resolver = MeleeCombat()
        assert resolver.guard_for(grid, roster, target) == 0.25
        report, _ = resolver.resolve(grid, roster, attacker, target, turn=1)
        assert report.damage == 4
        assert any("guarded" in note for note in report.notes)

    def test_enemy_defender_does_not_guard(self, board, rules):
        grid, roster = board
        place(grid, roster, rules, "r", "red", "defender", (0, 0))
        target = place(grid, roster, rules, "b", "blue", "archer", (0, 1))
        assert MeleeCombat().guard_for(grid, roster, target) == 0.0

    def test_minimum_damage(self, rules):
        """Heavy mitigation still deals one point."""
        resolver = CombatResolver()
        attacker = Unit(id="r", owner="red", unit_type=rules.unit_type("defender"), position=(0, 0))
        target = Unit(id="b", owner="blue", unit_type=rules.unit_type("warrior"), position=(0, 1))
        bunker = TerrainInfo(id="bunker", name="Bunker", defense=0.9)
        assert resolver.calculate_damage(attacker, target, bunker) == CombatResolver.MIN_DAMAGE

    def test_lethal_hit_reports_destruction(self, board, rules):
        grid, roster = board
        attacker = place(grid, roster, rules, "r", "red", "warrior", (0, 0))
        target = place(grid, roster, rules, "b", "blue", "archer", (0, 1))
        target.apply_damage(4)
        report, event = MeleeCombat().resolve(grid, roster, attacker, target, turn=3)
        assert report.destroyed
        assert report.target_hp == 0
        assert report.turn == 3
        assert event.unit_id == "b"

    def test_seeded_variance_is_repeatable(self, rules):
        attacker = Unit(id="r", owner="red", unit_type=rules.unit_type("warrior"), position=(0, 0))
        target = Unit(id="b", owner="blue", unit_type=rules.unit_type("defender"), position=(0, 1))
        plains = rules.terrain("plains")

        first = CombatResolver(rng_seed=42, variance=0.3)
        second = CombatResolver(rng_seed=42, variance=0.3)
        rolls_a = [first.calculate_damage(attacker, target, plains) for _ in range(20)]
        rolls_b = [second.calculate_damage(attacker, target, plains) for _ in range(20)]
        assert rolls_a == rolls_b
        assert all(d >= 1 for d in rolls_a)


class TestRangedValidation:
    """Range bands, move exclusion and line of sight."""

    def test_archer_band(self, board, rules):
        grid, roster = board
        archer = place(grid, roster, rules, "a", "red", "archer", (0, 0))
        resolver = RangedCombat()
        assert not resolver.in_reach(grid, archer, (0, 1))
        assert resolver.in_reach(grid, archer, (1, 1))
        assert resolver.in_reach(grid, archer, (2, 1))
        assert not resolver.in_reach(grid, archer, (2, 2))

    def test_spear_needs_straight_line(self, board, rules):
        grid, roster = board
        spearman = place(grid, roster, rules, "s", "red", "spearman", (2, 2))
        resolver = RangedCombat()
        assert resolver.in_reach(grid, spearman, (2, 4))
        assert resolver.in_reach(grid, spearman, (3, 2))
        assert not resolver.in_reach(grid, spearman, (3, 3))

    def test_moved_unit_cannot_shoot(self, board, rules):
        grid, roster = board
        archer = place(grid, roster, rules, "a", "red", "archer", (0, 0))
        target = place(grid, roster, rules, "b", "blue", "warrior", (0, 2))
        archer.state.has_moved = True
        with pytest.raises(MovedThisTurnError):
            RangedCombat().validate(grid, archer, target)

    def test_melee_unit_has_no_ranged_attack(self, board, rules):
        grid, roster = board
        warrior = place(grid, roster, rules, "w", "red", "warrior", (0, 0))
        target = place(grid, roster, rules, "b", "blue", "warrior", (0, 2))
        with pytest.raises(OutOfRangeError):
            RangedCombat().validate(grid, warrior, target)

    def test_spear_blocked(self, board, rules):
        grid, roster = board
        spearman = place(grid, roster, rules, "s", "red", "spearman", (0, 0))
        target = place(grid, roster, rules, "b", "blue", "warrior", (2, 0))
        grid.set_terrain((1, 0), "rocks")
        with pytest.raises(LineOfSightBlockedError):
            RangedCombat().validate(grid, spearman, target)

    def test_melee_adjacency(self, board, rules):
        grid, roster = board
        warrior = place(grid, roster, rules, "w", "red", "warrior", (0, 0))
        target = place(grid, roster, rules, "b", "blue", "warrior", (1, 1))
        with pytest.raises(OutOfRangeError):
            MeleeCombat().validate(grid, warrior, target)
