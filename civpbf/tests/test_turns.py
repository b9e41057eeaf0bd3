"""
Tests for the turn sequencer.

Tests:
- Joining and the automatic start
- Turn handoff in roster order
- Withdrawal, including the turn holder
- Ending the game
"""

import random

import pytest

from ..engine_core.action import Action
from ..engine_core.errors import AccessDeniedError, ValidationError
from ..engine_core.invariants import check_invariants
from ..engine_core.state import Category, Participant, SessionStatus
from .conftest import PLAYERS


def _fill(reducer, session, players=PLAYERS):
    results = [reducer.apply(session, Action.join(pid, name)) for pid, name in players]
    return results[-1]


class TestJoin:
    """Tests for joining a forming session."""

    def test_join_adds_participant(self, reducer, forming_session):
        result = reducer.apply(forming_session, Action.join("p1", "alice"))

        assert forming_session.participants[0].username == "alice"
        assert forming_session.status == SessionStatus.FORMING
        assert result.log_entries[0].text == "alice joined Test Game"
        assert result.notifications == []

    def test_last_seat_starts_the_game(self, reducer, forming_session):
        result = _fill(reducer, forming_session)

        assert forming_session.status == SessionStatus.ACTIVE
        holders = [p for p in forming_session.participants if p.your_turn]
        assert len(holders) == 1
        assert result.notifications == [holders[0].player_id]
        assert result.log_entries[-1].text == f"Starting player is {holders[0].username}"

    def test_starting_player_follows_session_rng(self, reducer, forming_session):
        expected = random.Random(1).choice([pid for pid, _ in PLAYERS])
        _fill(reducer, forming_session)
        assert forming_session.turn_holder.player_id == expected

    def test_full_session_rejects_join(self, reducer, forming_session):
        forming_session.capacity = 2
        _fill(reducer, forming_session, PLAYERS[:2])
        with pytest.raises(ValidationError):
            reducer.apply(forming_session, Action.join("p3", "carol"))
        assert len(forming_session.participants) == 2

    def test_full_message_while_forming(self, reducer, forming_session):
        forming_session.capacity = 2
        reducer.apply(forming_session, Action.join("p1", "alice"))
        forming_session.participants.append(Participant("px", "xavier"))
        with pytest.raises(ValidationError, match="Its full"):
            reducer.apply(forming_session, Action.join("p3", "carol"))

    def test_join_twice(self, reducer, forming_session):
        reducer.apply(forming_session, Action.join("p1", "alice"))
        with pytest.raises(ValidationError, match="already joined"):
            reducer.apply(forming_session, Action.join("p1", "alice"))

    def test_withdrawn_player_cannot_rejoin(self, reducer, forming_session):
        reducer.apply(forming_session, Action.join("p1", "alice"))
        reducer.apply(forming_session, Action.withdraw("p1"))
        with pytest.raises(ValidationError, match="cannot rejoin"):
            reducer.apply(forming_session, Action.join("p1", "alice"))

    def test_username_taken(self, reducer, forming_session):
        reducer.apply(forming_session, Action.join("p1", "alice"))
        with pytest.raises(ValidationError, match="alice is already taken"):
            reducer.apply(forming_session, Action.join("p2", "alice"))
        assert [p.player_id for p in forming_session.participants] == ["p1"]

    def test_username_of_withdrawn_player_stays_taken(self, reducer, forming_session):
        reducer.apply(forming_session, Action.join("p1", "alice"))
        reducer.apply(forming_session, Action.withdraw("p1"))
        with pytest.raises(ValidationError, match="already taken"):
            reducer.apply(forming_session, Action.join("p2", "alice"))

    def test_username_required(self, reducer, forming_session):
        with pytest.raises(ValidationError):
            reducer.apply(forming_session, Action.join("p1", ""))


class TestEndTurn:
    """Tests for passing the turn."""

    def test_turn_moves_in_roster_order(self, reducer, active_session):
        result = reducer.apply(active_session, Action.end_turn("p1"))

        assert result.value.player_id == "p2"
        assert active_session.turn_holder.player_id == "p2"
        assert not active_session.get_participant("p1").your_turn
        assert result.notifications == ["p2"]
        assert result.log_entries[0].text == "alice ended their turn. It is now bob's turn"

    def test_turn_wraps_around(self, reducer, active_session):
        for pid in ("p1", "p2", "p3", "p4"):
            reducer.apply(active_session, Action.end_turn(pid))
        assert active_session.turn_holder.player_id == "p1"

    def test_not_your_turn(self, reducer, active_session):
        with pytest.raises(ValidationError, match="not bob's turn"):
            reducer.apply(active_session, Action.end_turn("p2"))
        assert active_session.turn_holder.player_id == "p1"

    def test_outsider(self, reducer, active_session):
        with pytest.raises(AccessDeniedError):
            reducer.apply(active_session, Action.end_turn("p9"))

    def test_not_active(self, reducer, forming_session):
        reducer.apply(forming_session, Action.join("p1", "alice"))
        with pytest.raises(ValidationError):
            reducer.apply(forming_session, Action.end_turn("p1"))

    def test_withdrawn_players_are_skipped(self, reducer, active_session):
        reducer.apply(active_session, Action.withdraw("p2"))
        result = reducer.apply(active_session, Action.end_turn("p1"))
        assert result.value.player_id == "p3"

    def test_single_player_keeps_turn(self, reducer, active_session):
        for pid in ("p2", "p3", "p4"):
            reducer.apply(active_session, Action.withdraw(pid))

        result = reducer.apply(active_session, Action.end_turn("p1"))

        assert active_session.turn_holder.player_id == "p1"
        assert result.notifications == ["p1"]


class TestWithdraw:
    """Tests for leaving a game."""

    def test_withdraw_moves_to_withdrawn(self, reducer, active_session):
        result = reducer.apply(active_session, Action.withdraw("p3"))

        assert active_session.get_participant("p3") is None
        carol = active_session.get_withdrawn("p3")
        assert carol.withdrawn
        assert result.log_entries[-1].text == "carol withdrew from the game"
        assert active_session.status == SessionStatus.ACTIVE

    def test_hand_goes_to_discard(self, reducer, active_session):
        reducer.apply(active_session, Action.draw("p3", Category.INFANTRY))
        reducer.apply(active_session, Action.draw("p3", Category.CIV))

        reducer.apply(active_session, Action.withdraw("p3"))

        assert len(active_session.discard) == 2
        assert all(item.owner_id is None for item in active_session.discard)
        assert active_session.get_withdrawn("p3").items == []
        assert len(active_session.pools[Category.INFANTRY]) == 2
        assert check_invariants(active_session).valid

    def test_turn_holder_hands_over_first(self, reducer, active_session):
        result = reducer.apply(active_session, Action.withdraw("p1"))

        assert active_session.turn_holder.player_id == "p2"
        assert not active_session.get_withdrawn("p1").your_turn
        assert result.notifications == ["p2"]
        assert check_invariants(active_session).valid

    def test_last_in_roster_hands_over_to_first(self, reducer, active_session):
        reducer.apply(active_session, Action.end_turn("p1"))
        reducer.apply(active_session, Action.end_turn("p2"))
        reducer.apply(active_session, Action.end_turn("p3"))

        reducer.apply(active_session, Action.withdraw("p4"))

        assert active_session.turn_holder.player_id == "p1"

    def test_everyone_withdraws(self, reducer, active_session):
        for pid in ("p2", "p3", "p4"):
            reducer.apply(active_session, Action.withdraw(pid))
        result = reducer.apply(active_session, Action.withdraw("p1"))

        assert active_session.status == SessionStatus.FINISHED
        assert active_session.participants == []
        assert active_session.winner is None
        assert result.log_entries[-1].text == "Game ended: every player has withdrawn"
        assert check_invariants(active_session).valid

    def test_withdraw_while_forming(self, reducer, forming_session):
        reducer.apply(forming_session, Action.join("p1", "alice"))
        reducer.apply(forming_session, Action.withdraw("p1"))

        assert forming_session.status == SessionStatus.FORMING
        assert forming_session.participants == []

    def test_withdraw_twice(self, reducer, active_session):
        reducer.apply(active_session, Action.withdraw("p2"))
        with pytest.raises(AccessDeniedError):
            reducer.apply(active_session, Action.withdraw("p2"))

    def test_withdrawn_player_cannot_act(self, reducer, active_session):
        reducer.apply(active_session, Action.withdraw("p2"))
        with pytest.raises(AccessDeniedError, match="withdrawn"):
            reducer.apply(active_session, Action.draw("p2", Category.CIV))


class TestEndGame:
    """Tests for finishing a game."""

    def test_end_with_winner(self, reducer, active_session):
        result = reducer.apply(active_session, Action.end_game("p3", player_id="p1"))

        assert active_session.status == SessionStatus.FINISHED
        assert active_session.winner == "p3"
        assert active_session.turn_holder is None
        assert result.log_entries[0].text == "Game ended. carol won"
        assert check_invariants(active_session).valid

    def test_end_without_winner(self, reducer, active_session):
        result = reducer.apply(active_session, Action.end_game(None))

        assert active_session.winner is None
        assert result.log_entries[0].text == "Game ended without a winner"

    def test_withdrawn_member_can_win(self, reducer, active_session):
        reducer.apply(active_session, Action.withdraw("p4"))
        reducer.apply(active_session, Action.end_game("p4"))
        assert active_session.winner == "p4"

    def test_winner_must_be_member(self, reducer, active_session):
        with pytest.raises(ValidationError):
            reducer.apply(active_session, Action.end_game("p9"))
        assert active_session.status == SessionStatus.ACTIVE

    def test_outsider_cannot_end(self, reducer, active_session):
        with pytest.raises(AccessDeniedError):
            reducer.apply(active_session, Action.end_game(None, player_id="p9"))

    def test_end_twice(self, reducer, active_session):
        reducer.apply(active_session, Action.end_game(None))
        with pytest.raises(ValidationError, match="already ended"):
            reducer.apply(active_session, Action.end_game(None))

    def test_end_forming(self, reducer, forming_session):
        with pytest.raises(ValidationError):
            reducer.apply(forming_session, Action.end_game(None))

    def test_finished_session_rejects_draws(self, reducer, active_session):
        reducer.apply(active_session, Action.end_game(None))
        with pytest.raises(ValidationError):
            reducer.apply(active_session, Action.draw("p1", Category.CIV))
