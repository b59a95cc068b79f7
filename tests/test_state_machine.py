"""
Tests for the event and swap request state machines.
"""

import pytest

from models import (
    EVENT_STATUS_LABELS,
    SWAP_REQUEST_STATUS_LABELS,
    Event,
    EventStatus,
    SwapRequestStatus,
)
from core.state_machine import EventStateMachine, EventTrigger, SwapRequestStateMachine
from core.exceptions import ConflictError, InvalidStateTransition, StateError
from core.swap_manager import SwapManager

from conftest import make_slot


class TestEventTransitionTable:
    """Tests for the pure transition lookup."""

    @pytest.mark.parametrize("current,trigger,expected", [
        (EventStatus.BUSY, EventTrigger.TOGGLE, EventStatus.SWAPPABLE),
        (EventStatus.SWAPPABLE, EventTrigger.TOGGLE, EventStatus.BUSY),
        (EventStatus.SWAPPABLE, EventTrigger.PROPOSE, EventStatus.SWAP_PENDING),
        (EventStatus.SWAP_PENDING, EventTrigger.ACCEPT, EventStatus.BUSY),
        (EventStatus.SWAP_PENDING, EventTrigger.REJECT, EventStatus.SWAPPABLE),
    ])
    def test_allowed_transitions(self, current, trigger, expected):
        assert EventStateMachine.next_status(current, trigger) == expected

    @pytest.mark.parametrize("current,trigger", [
        (EventStatus.SWAP_PENDING, EventTrigger.TOGGLE),
        (EventStatus.BUSY, EventTrigger.PROPOSE),
        (EventStatus.SWAP_PENDING, EventTrigger.PROPOSE),
        (EventStatus.SWAPPABLE, EventTrigger.ACCEPT),
        (EventStatus.BUSY, EventTrigger.REJECT),
    ])
    def test_forbidden_transitions(self, current, trigger):
        with pytest.raises(InvalidStateTransition):
            EventStateMachine.next_status(current, trigger)

    def test_every_trigger_targets_a_known_status(self):
        for table in EventStateMachine.TRANSITIONS.values():
            for source, target in table.items():
                assert source in EventStatus
                assert target in EventStatus


class TestStatusLabels:
    """Every status must have a display label; there is no fallback."""

    def test_event_labels_cover_enum(self):
        assert set(EVENT_STATUS_LABELS) == set(EventStatus)
        assert EventStatus.SWAP_PENDING.label == "Pending Swap"

    def test_request_labels_cover_enum(self):
        assert set(SWAP_REQUEST_STATUS_LABELS) == set(SwapRequestStatus)
        assert SwapRequestStatus.REJECTED.label == "Rejected"

    def test_terminal_states(self):
        assert not SwapRequestStatus.PENDING.is_terminal
        assert SwapRequestStatus.ACCEPTED.is_terminal
        assert SwapRequestStatus.REJECTED.is_terminal


class TestCompareAndSet:
    """The write only lands if the stored status still matches."""

    def test_stale_status_raises_conflict(self, db, alice):
        event = make_slot(db, alice)
        event_id = event.id

        # Another writer moved the row on; the in-memory object still says SWAPPABLE
        db.query(Event).filter(Event.id == event_id).update(
            {Event.status: EventStatus.BUSY}, synchronize_session=False
        )
        db.commit()
        stale = Event(id=event_id, user_id=alice, status=EventStatus.SWAPPABLE)

        with pytest.raises(ConflictError):
            EventStateMachine.fire(db, stale, EventTrigger.PROPOSE)
        db.rollback()

        assert db.get(Event, event_id).status == EventStatus.BUSY

    def test_terminal_request_cannot_transition(self, db, alice, bob):
        mine = make_slot(db, alice, "Mine")
        theirs = make_slot(db, bob, "Theirs", offset_hours=2)
        outcome = SwapManager.propose(db, alice, mine.id, theirs.id)
        SwapManager.reject(db, bob, outcome.request.id)

        with pytest.raises(StateError):
            SwapRequestStateMachine.transition(
                db, outcome.request, SwapRequestStatus.ACCEPTED
            )
