"""
Tests for session invariant checks.
"""

from ..engine_core.invariants import category_counts, check_invariants
from ..engine_core.state import Category, SessionStatus


class TestCheckInvariants:
    def test_fresh_sessions_are_valid(self, forming_session, active_session):
        assert check_invariants(forming_session).valid
        assert check_invariants(active_session).valid

    def test_two_turn_holders(self, active_session):
        active_session.participants[1].your_turn = True
        report = check_invariants(active_session)
        assert not report.valid
        assert "Active session has 2 turn holders" in report.errors

    def test_no_turn_holder(self, active_session):
        active_session.participants[0].your_turn = False
        assert "Active session has 0 turn holders" in check_invariants(active_session).errors

    def test_turn_flag_while_finished(self, active_session):
        active_session.status = SessionStatus.FINISHED
        assert not check_invariants(active_session).valid

    def test_over_capacity(self, active_session):
        active_session.capacity = 3
        assert not check_invariants(active_session).valid

    def test_lost_item(self, active_session):
        active_session.pools[Category.INFANTRY].pop()
        report = check_invariants(active_session)
        assert "Infantry: 2 items accounted for, deck has 3" in report.errors

    def test_duplicated_item(self, active_session):
        item = active_session.pools[Category.CIV][0]
        active_session.discard.append(item)
        active_session.deck_sizes[Category.CIV] = 3
        report = check_invariants(active_session)
        assert f"{item.ref} appears 2 times" in report.errors

    def test_owner_mismatch(self, active_session):
        item = active_session.pools[Category.CIV].pop(0)
        active_session.participants[0].items.append(item)
        report = check_invariants(active_session)
        assert not report.valid
        assert any("owned by None" in e for e in report.errors)

    def test_category_counts(self, active_session):
        item = active_session.pools[Category.CIV].pop(0)
        active_session.discard.append(item)
        counts = category_counts(active_session)
        assert counts[Category.CIV] == 2
        assert counts[Category.INFANTRY] == 3
