"""
Tests for the reducer (state transitions).

Tests:
- Action dispatch
- Draw, reveal, discard and trade
- Research actions
- Validation before mutation
"""

import pytest

from ..engine_core.action import Action, ActionPayload, ActionType
from ..engine_core.action_log import Visibility
from ..engine_core.errors import (
    AccessDeniedError,
    ResourceExhaustedError,
    ValidationError,
)
from ..engine_core.invariants import check_invariants
from ..engine_core.reducer import Reducer
from ..engine_core.state import Category, ItemRef, SessionStatus, Tech
from .conftest import NOW


def _ref(category, name):
    return ItemRef(category, name)


class TestDispatch:
    """Tests for handler lookup."""

    def test_every_action_type_has_handler(self, reducer):
        for action_type in ActionType:
            assert reducer._get_handler(action_type) is not None

    def test_clock_is_used(self, active_session):
        reducer = Reducer(clock=lambda: 42.0)
        result = reducer.apply(active_session, Action.draw("p1", Category.INFANTRY))

        assert result.value.created_at == 42.0
        assert all(e.created_at == 42.0 for e in result.log_entries)

    def test_unknown_action_type(self, reducer, active_session):
        action = Action(action_type="teleport", payload=ActionPayload(player_id="p1"))
        with pytest.raises(ValidationError):
            reducer.apply(active_session, action)


class TestDrawAction:
    """Tests for draw action."""

    def test_draw_takes_front_of_pool(self, reducer, active_session):
        """Drawing moves the first pool item to the hand."""
        session = active_session
        expected = session.pools[Category.INFANTRY][0]

        result = reducer.apply(session, Action.draw("p2", Category.INFANTRY))

        bob = session.get_participant("p2")
        assert bob.items == [expected]
        assert expected.owner_id == "p2"
        assert expected.hidden
        assert len(session.pools[Category.INFANTRY]) == 2
        assert result.value.item.name == expected.name

    def test_anyone_may_draw_out_of_turn(self, reducer, active_session):
        reducer.apply(active_session, Action.draw("p3", "Infantry"))
        assert active_session.get_participant("p3").count_in(Category.INFANTRY) == 1

    def test_draw_record(self, reducer, active_session):
        first = reducer.apply(active_session, Action.draw("p1", Category.CIV)).value
        second = reducer.apply(active_session, Action.draw("p1", Category.CIV)).value

        assert first.draw_id == "s1:1"
        assert second.draw_id == "s1:2"
        assert first.player_id == "p1"
        assert first.category == Category.CIV
        assert first.created_at == NOW
        assert first.undo is None
        assert active_session.draws == [first, second]

    def test_record_keeps_snapshot(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.CIV)).value
        item = active_session.get_participant("p1").items[0]

        item.hidden = False
        assert record.item.hidden
        assert record.item is not item

    def test_hidden_draw_logs(self, reducer, active_session):
        result = reducer.apply(active_session, Action.draw("p1", Category.CIV))
        name = result.value.item.name

        public = [e for e in result.log_entries if e.visibility == Visibility.PUBLIC]
        private = [e for e in result.log_entries if e.visibility == Visibility.PRIVATE]
        assert len(public) == 1
        assert len(private) == 1
        assert public[0].text == "alice drew a Civ card"
        assert name not in public[0].text
        assert private[0].username == "alice"
        assert private[0].text == f"alice drew Civ: {name}"
        assert public[0].related_draw_id == "s1:1"

    def test_public_category_is_revealed(self, reducer, active_session):
        result = reducer.apply(active_session, Action.draw("p1", Category.ANCIENT_WONDERS))
        item = active_session.get_participant("p1").items[0]

        assert not item.hidden
        public = [e for e in result.log_entries if e.visibility == Visibility.PUBLIC]
        assert item.name in public[0].text

    def test_exhausted_pool(self, reducer, active_session):
        with pytest.raises(ResourceExhaustedError, match="No more Huts to draw!"):
            reducer.apply(active_session, Action.draw("p1", Category.HUTS))

    def test_exhaustion_after_last_item(self, reducer, active_session):
        for _ in range(3):
            reducer.apply(active_session, Action.draw("p1", Category.INFANTRY))
        with pytest.raises(ResourceExhaustedError):
            reducer.apply(active_session, Action.draw("p2", Category.INFANTRY))
        assert active_session.get_participant("p2").items == []

    def test_unknown_category(self, reducer, active_session):
        with pytest.raises(ValidationError, match="Unknown category"):
            reducer.apply(active_session, Action.draw("p1", "Dragons"))

    def test_non_member_cannot_draw(self, reducer, active_session):
        with pytest.raises(AccessDeniedError):
            reducer.apply(active_session, Action.draw("p9", Category.CIV))
        assert len(active_session.pools[Category.CIV]) == 2

    def test_cannot_draw_while_forming(self, reducer, forming_session):
        reducer.apply(forming_session, Action.join("p1", "alice"))
        with pytest.raises(ValidationError):
            reducer.apply(forming_session, Action.draw("p1", Category.CIV))

    def test_invariants_hold_after_draws(self, reducer, active_session):
        for player in ("p1", "p2", "p3"):
            reducer.apply(active_session, Action.draw(player, Category.INFANTRY))
        assert check_invariants(active_session).valid


class TestRevealAction:
    """Tests for revealing a hidden item."""

    def test_reveal(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p2", Category.CULTURE_1)).value
        result = reducer.apply(
            active_session, Action.reveal_item("p2", record.item.ref)
        )

        item = result.value
        assert not item.hidden
        assert result.log_entries[0].text == f"bob revealed Culture I: {item.name}"

    def test_reveal_already_revealed(self, reducer, active_session):
        reducer.apply(active_session, Action.draw("p1", Category.ANCIENT_WONDERS))
        item = active_session.get_participant("p1").items[0]
        with pytest.raises(ValidationError, match="already revealed"):
            reducer.apply(active_session, Action.reveal_item("p1", item.ref))

    def test_only_owner_may_reveal(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.CIV)).value
        with pytest.raises(AccessDeniedError):
            reducer.apply(active_session, Action.reveal_item("p2", record.item.ref))
        assert active_session.get_participant("p1").items[0].hidden

    def test_reveal_unknown_item(self, reducer, active_session):
        with pytest.raises(ValidationError):
            reducer.apply(
                active_session, Action.reveal_item("p1", _ref(Category.CIV, "Atlantis"))
            )

    def test_revealing_civ_grants_starting_tech(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.CIV)).value
        result = reducer.apply(active_session, Action.reveal_item("p1", record.item.ref))

        expected = {"Rome": "Code of Laws", "China": "Writing"}[record.item.name]
        alice = active_session.get_participant("p1")
        assert [t.name for t in alice.techs_chosen] == [expected]
        assert result.log_entries[-1].text == f"alice starts with {expected}"

    def test_starting_tech_not_granted_twice(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.CIV)).value
        starting = record.item.payload.starting_tech
        reducer.apply(active_session, Action.choose_tech("p1", starting))

        result = reducer.apply(active_session, Action.reveal_item("p1", record.item.ref))

        assert len(active_session.get_participant("p1").techs_chosen) == 1
        assert len(result.log_entries) == 1


class TestDiscardAction:
    """Tests for discarding."""

    def test_discard_moves_to_pile(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.INFANTRY)).value
        result = reducer.apply(active_session, Action.discard("p1", record.item.ref))

        item = result.value
        assert item.owner_id is None
        assert active_session.discard == [item]
        assert active_session.get_participant("p1").items == []
        assert len(active_session.pools[Category.INFANTRY]) == 2
        assert check_invariants(active_session).valid

    def test_hidden_discard_logs(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.INFANTRY)).value
        result = reducer.apply(active_session, Action.discard("p1", record.item.ref))

        public, private = result.log_entries
        assert public.text == "alice discarded Infantry"
        assert private.username == "alice"
        assert record.item.name in private.text

    def test_cannot_discard_others_item(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.INFANTRY)).value
        with pytest.raises(AccessDeniedError):
            reducer.apply(active_session, Action.discard("p2", record.item.ref))


class TestTradeAction:
    """Tests for trading an item."""

    def test_trade(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.CULTURE_1)).value
        result = reducer.apply(
            active_session, Action.trade_item("p1", "p3", record.item.ref)
        )

        carol = active_session.get_participant("p3")
        assert carol.items == [result.value]
        assert result.value.owner_id == "p3"
        assert result.value.hidden
        assert active_session.get_participant("p1").items == []

        public, private = result.log_entries
        assert public.text == "alice gave Culture I to carol"
        assert private.username == "carol"
        assert record.item.name in private.text

    def test_units_are_not_tradable(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.INFANTRY)).value
        with pytest.raises(ValidationError, match="cannot be traded"):
            reducer.apply(active_session, Action.trade_item("p1", "p2", record.item.ref))

    def test_trade_to_self(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.CIV)).value
        with pytest.raises(ValidationError):
            reducer.apply(active_session, Action.trade_item("p1", "p1", record.item.ref))

    def test_trade_to_stranger(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.CIV)).value
        with pytest.raises(ValidationError):
            reducer.apply(active_session, Action.trade_item("p1", "p9", record.item.ref))
        assert active_session.get_participant("p1").items[0].owner_id == "p1"

    def test_trade_to_withdrawn(self, reducer, active_session):
        record = reducer.apply(active_session, Action.draw("p1", Category.CIV)).value
        reducer.apply(active_session, Action.withdraw("p4"))
        with pytest.raises(ValidationError):
            reducer.apply(active_session, Action.trade_item("p1", "p4", record.item.ref))


class TestResearchActions:
    """Tests for techs and social policies."""

    def test_choose_tech(self, reducer, active_session):
        result = reducer.apply(active_session, Action.choose_tech("p1", "monarchy"))

        assert result.value == Tech("Monarchy", 2)
        assert active_session.get_participant("p1").techs_chosen == [Tech("Monarchy", 2)]
        public, private = result.log_entries
        assert public.text == "alice researched a level 2 tech"
        assert "Monarchy" not in public.text
        assert private.text == "alice researched Monarchy"

    def test_choose_unknown_tech(self, reducer, active_session):
        with pytest.raises(ValidationError):
            reducer.apply(active_session, Action.choose_tech("p1", "Time Travel"))

    def test_choose_tech_twice(self, reducer, active_session):
        reducer.apply(active_session, Action.choose_tech("p1", "Pottery"))
        with pytest.raises(ValidationError, match="already researched"):
            reducer.apply(active_session, Action.choose_tech("p1", "Pottery"))

    def test_remove_tech(self, reducer, active_session):
        reducer.apply(active_session, Action.choose_tech("p1", "Pottery"))
        result = reducer.apply(active_session, Action.remove_tech("p1", "Pottery"))

        assert result.value == Tech("Pottery", 1)
        assert active_session.get_participant("p1").techs_chosen == []

    def test_remove_tech_not_researched(self, reducer, active_session):
        with pytest.raises(ValidationError):
            reducer.apply(active_session, Action.remove_tech("p1", "Pottery"))

    def test_social_policy(self, reducer, active_session):
        result = reducer.apply(active_session, Action.choose_social_policy("p2", "rationalism"))

        assert result.value == "Rationalism"
        assert active_session.get_participant("p2").social_policies == ["Rationalism"]
        assert result.log_entries[0].text == "bob adopted Rationalism"

    def test_social_policy_twice(self, reducer, active_session):
        reducer.apply(active_session, Action.choose_social_policy("p2", "Patronage"))
        with pytest.raises(ValidationError):
            reducer.apply(active_session, Action.choose_social_policy("p2", "Patronage"))

    def test_unknown_social_policy(self, reducer, active_session):
        with pytest.raises(ValidationError):
            reducer.apply(active_session, Action.choose_social_policy("p2", "Anarchy"))

    def test_research_works_in_any_status(self, reducer, forming_session):
        reducer.apply(forming_session, Action.join("p1", "alice"))
        reducer.apply(forming_session, Action.choose_tech("p1", "Writing"))
        assert forming_session.status == SessionStatus.FORMING
