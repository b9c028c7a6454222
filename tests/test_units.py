"""Tests for units and the roster."""
import pytest

from tactics import Unit, UnitManager, UnitStatus


@pytest.fixture
def warrior(rules):
    return Unit(id="w1", owner="red", unit_type=rules.unit_type("warrior"), position=(2, 2))


class TestUnitDamage:
    """HP bookkeeping."""

    def test_starts_at_full_hp(self, warrior):
        assert warrior.hp == warrior.max_hp == 8
        assert warrior.is_alive()

    def test_partial_damage(self, warrior):
        assert warrior.apply_damage(3) is None
        assert warrior.hp == 5

    def test_clamps_at_zero(self, warrior):
        """Should never go below zero."""
        event = warrior.apply_damage(20)
        assert warrior.hp == 0
        assert warrior.status is UnitStatus.DESTROYED
        assert event.unit_id == "w1"
        assert event.owner == "red"
        assert event.position == (2, 2)

    def test_destroyed_event_once(self, warrior):
        """Only the hit that reaches zero reports destruction."""
        assert warrior.apply_damage(8) is not None
        assert warrior.apply_damage(1) is None
        assert warrior.hp == 0

    def test_zero_damage(self, warrior):
        assert warrior.apply_damage(0) is None
        assert warrior.hp == 8

    def test_negative_damage_rejected(self, warrior):
        with pytest.raises(ValueError):
            warrior.apply_damage(-1)


class TestUnitTurnFlags:
    """Per-turn movement and action flags."""

    def test_move_sets_flags(self, warrior):
        warrior.move((2, 4), 2)
        assert warrior.position == (2, 4)
        assert warrior.has_moved
        assert warrior.state.movement_spent == 2
        assert not warrior.has_acted

    def test_reset_for_turn(self, warrior):
        warrior.move((2, 3), 1)
        warrior.mark_acted()
        warrior.reset_for_turn()
        assert not warrior.has_moved
        assert not warrior.has_acted
        assert warrior.state.movement_spent == 0

    def test_archer_allowance(self, rules):
        archer = Unit(id="a1", owner="red", unit_type=rules.unit_type("archer"), position=(0, 0))
        assert archer.movement_allowance("plains") == 5
        assert archer.movement_allowance("forest") == 4

    def test_to_dict(self, warrior):
        data = warrior.to_dict()
        assert data["type"] == "warrior"
        assert data["position"] == [2, 2]
        assert data["status"] == "ready"


class TestUnitManager:
    """Roster queries."""

    def test_duplicate_id(self, rules, warrior):
        manager = UnitManager()
        manager.add_unit(warrior)
        with pytest.raises(ValueError):
            manager.add_unit(
                Unit(id="w1", owner="blue", unit_type=rules.unit_type("archer"), position=(0, 0))
            )

    def test_living_units_by_owner(self, rules, warrior):
        manager = UnitManager()
        manager.add_unit(warrior)
        manager.add_unit(Unit(id="b1", owner="blue", unit_type=rules.unit_type("archer"), position=(5, 5)))
        manager.add_unit(Unit(id="b2", owner="blue", unit_type=rules.unit_type("defender"), position=(5, 6)))
        manager.get_unit("b1").apply_damage(99)

        assert [u.id for u in manager.get_living_units("blue")] == ["b2"]
        assert len(manager.get_units_by_owner("blue")) == 2
        assert manager.owners() == ["red", "blue"]
        assert manager.get_unit("missing") is None

    def test_get_stats(self, rules, warrior):
        manager = UnitManager()
        manager.add_unit(warrior)
        manager.add_unit(Unit(id="w2", owner="red", unit_type=rules.unit_type("warrior"), position=(3, 3)))
        warrior.apply_damage(2)

        stats = manager.get_stats()
        assert stats["total_units"] == 2
        assert stats["by_owner"]["red"] == {"living": 2, "total_hp": 14}
        assert stats["by_type"] == {"warrior": 2}
