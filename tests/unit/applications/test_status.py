"""
Unit tests for the application status state machine.
"""

import itertools

import pytest

from applications.domain.status import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    ensure_valid_transition,
    is_retryable_status,
    is_terminal,
    is_valid_transition,
)
from core.domain.exceptions import InvalidStatusTransitionError
from core.domain.value_objects import ApplicationStatus, HistoryAction

S = ApplicationStatus

EXPECTED_EDGES = {
    (S.PENDING, S.APPROVE),
    (S.PENDING, S.AWAITING_NOTIFICATION),
    (S.PENDING, S.REJECTED),
    (S.PENDING, S.CANCELLED),
    (S.APPROVE, S.AWAITING_NOTIFICATION),
    (S.AWAITING_NOTIFICATION, S.ACTIVE),
    (S.AWAITING_NOTIFICATION, S.FAILED_NOTIFICATION),
    (S.AWAITING_NOTIFICATION, S.CANCELLED),
    (S.FAILED_NOTIFICATION, S.AWAITING_NOTIFICATION),
    (S.FAILED_NOTIFICATION, S.ACTIVE),
    (S.FAILED_NOTIFICATION, S.CANCELLED),
    (S.ACTIVE, S.EXPIRED),
    (S.ACTIVE, S.REVOKED),
}


class TestTransitionTable:
    """Tests for the transition table."""

    def test_every_status_has_an_entry(self):
        """Test that every status appears as a source in the table."""
        assert set(ALLOWED_TRANSITIONS) == set(ApplicationStatus)

    @pytest.mark.parametrize(
        "from_status,to_status", list(itertools.product(ApplicationStatus, repeat=2))
    )
    def test_only_listed_edges_are_valid(self, from_status, to_status):
        """Test that exactly the listed edges are accepted."""
        expected = (from_status, to_status) in EXPECTED_EDGES
        assert is_valid_transition(from_status, to_status) is expected

    def test_self_transitions_are_invalid(self):
        """Test that no status may transition to itself."""
        for status in ApplicationStatus:
            assert is_valid_transition(status, status) is False

    def test_terminal_statuses_have_no_outgoing_edges(self):
        """Test that terminal statuses are dead ends."""
        for status in TERMINAL_STATUSES:
            assert ALLOWED_TRANSITIONS[status] == frozenset()

    def test_ensure_valid_transition_raises(self):
        """Test that an illegal change raises with both statuses attached."""
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            ensure_valid_transition(S.ACTIVE, S.PENDING)

        assert exc_info.value.from_status == S.ACTIVE
        assert exc_info.value.to_status == S.PENDING
        assert exc_info.value.code == "INVALID_TRANSITION"

    def test_ensure_valid_transition_accepts_legal_edge(self):
        """Test that a legal change does not raise."""
        ensure_valid_transition(S.AWAITING_NOTIFICATION, S.FAILED_NOTIFICATION)


class TestStatusPredicates:
    """Tests for status helper predicates."""

    def test_terminal_statuses(self):
        """Test which statuses are terminal."""
        assert {s for s in ApplicationStatus if is_terminal(s)} == {
            S.EXPIRED,
            S.REVOKED,
            S.REJECTED,
            S.CANCELLED,
        }

    def test_only_failed_notification_is_retryable(self):
        """Test retry eligibility by status."""
        assert [s for s in ApplicationStatus if is_retryable_status(s)] == [
            S.FAILED_NOTIFICATION
        ]

    def test_every_status_maps_to_an_action(self):
        """Test that each status has a matching history action."""
        for status in ApplicationStatus:
            assert HistoryAction.for_status(status).value == status.value

    def test_status_str_is_wire_value(self):
        """Test string conversion of statuses."""
        assert str(S.AWAITING_NOTIFICATION) == "AwaitingNotification"
