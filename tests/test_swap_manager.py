"""
Tests for the propose / accept / reject swap workflow.
"""

import threading
import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from models import Event, EventStatus, SwapRequest, SwapRequestStatus
from database import Base
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    EventNotFound,
    StateError,
    SwapRequestNotFound,
    ValidationError,
)
from core.swap_manager import SwapManager

from conftest import make_slot


@pytest.fixture
def pair(db, alice, bob):
    """Alice owns E1 and Bob owns E2, both SWAPPABLE."""
    e1 = make_slot(db, alice, "E1", offset_hours=0)
    e2 = make_slot(db, bob, "E2", offset_hours=4)
    return e1.id, e2.id


class TestPropose:

    def test_propose_locks_both_events(self, db, alice, bob, pair):
        e1, e2 = pair

        outcome = SwapManager.propose(db, alice, e1, e2)

        request = outcome.request
        assert request.status == SwapRequestStatus.PENDING
        assert request.requester_id == alice
        assert request.recipient_id == bob
        assert db.get(Event, e1).status == EventStatus.SWAP_PENDING
        assert db.get(Event, e2).status == EventStatus.SWAP_PENDING
        assert db.query(SwapRequest).filter(
            SwapRequest.requester_event_id == e1,
            SwapRequest.recipient_event_id == e2,
            SwapRequest.status == SwapRequestStatus.PENDING,
        ).count() == 1

    def test_requester_must_own_offered_event(self, db, carol, pair):
        e1, e2 = pair

        with pytest.raises(AuthorizationError):
            SwapManager.propose(db, carol, e1, e2)

    def test_cannot_swap_with_self(self, db, alice, pair):
        e1, _ = pair
        other = make_slot(db, alice, "Also mine", offset_hours=8)

        with pytest.raises(ValidationError):
            SwapManager.propose(db, alice, e1, other.id)
        with pytest.raises(ValidationError):
            SwapManager.propose(db, alice, e1, e1)

    def test_busy_target_is_a_conflict(self, db, alice, bob, pair):
        e1, _ = pair
        busy = make_slot(db, bob, "Busy", offset_hours=6, swappable=False)

        with pytest.raises(ConflictError):
            SwapManager.propose(db, alice, e1, busy.id)

        # nothing was written
        assert db.get(Event, e1).status == EventStatus.SWAPPABLE
        assert db.query(SwapRequest).count() == 0

    def test_missing_event(self, db, alice, pair):
        e1, _ = pair

        with pytest.raises(EventNotFound):
            SwapManager.propose(db, alice, e1, uuid.uuid4())

    def test_event_already_pending_is_a_conflict(self, db, alice, bob, carol, pair):
        e1, e2 = pair
        e3 = make_slot(db, carol, "E3", offset_hours=10)
        SwapManager.propose(db, alice, e1, e2)

        with pytest.raises(ConflictError):
            SwapManager.propose(db, carol, e3.id, e2)

        assert db.get(Event, e3.id).status == EventStatus.SWAPPABLE
        assert db.query(SwapRequest).count() == 1


class TestAccept:

    def test_accept_swaps_owners(self, db, alice, bob, pair):
        e1, e2 = pair
        request_id = SwapManager.propose(db, alice, e1, e2).request.id

        SwapManager.accept(db, bob, request_id)

        event1, event2 = db.get(Event, e1), db.get(Event, e2)
        assert db.get(SwapRequest, request_id).status == SwapRequestStatus.ACCEPTED
        assert event1.user_id == bob
        assert event2.user_id == alice
        assert event1.status == EventStatus.BUSY
        assert event2.status == EventStatus.BUSY

    def test_second_accept_does_not_swap_again(self, db, alice, bob, pair):
        e1, e2 = pair
        request_id = SwapManager.propose(db, alice, e1, e2).request.id
        SwapManager.accept(db, bob, request_id)

        with pytest.raises(StateError):
            SwapManager.accept(db, bob, request_id)

        assert db.get(Event, e1).user_id == bob
        assert db.get(Event, e2).user_id == alice

    def test_requester_cannot_accept(self, db, alice, pair):
        e1, e2 = pair
        request_id = SwapManager.propose(db, alice, e1, e2).request.id

        with pytest.raises(AuthorizationError):
            SwapManager.accept(db, alice, request_id)

        assert db.get(SwapRequest, request_id).status == SwapRequestStatus.PENDING

    def test_outsider_sees_not_found(self, db, alice, carol, pair):
        e1, e2 = pair
        request_id = SwapManager.propose(db, alice, e1, e2).request.id

        with pytest.raises(SwapRequestNotFound):
            SwapManager.accept(db, carol, request_id)


class TestReject:

    def test_reject_restores_swappable(self, db, alice, bob, pair):
        e1, e2 = pair
        request_id = SwapManager.propose(db, alice, e1, e2).request.id

        SwapManager.reject(db, bob, request_id)

        event1, event2 = db.get(Event, e1), db.get(Event, e2)
        assert db.get(SwapRequest, request_id).status == SwapRequestStatus.REJECTED
        assert event1.status == EventStatus.SWAPPABLE
        assert event2.status == EventStatus.SWAPPABLE
        assert event1.user_id == alice
        assert event2.user_id == bob

    def test_cannot_accept_after_reject(self, db, alice, bob, pair):
        e1, e2 = pair
        request_id = SwapManager.propose(db, alice, e1, e2).request.id
        SwapManager.reject(db, bob, request_id)

        with pytest.raises(StateError):
            SwapManager.accept(db, bob, request_id)

        assert db.get(Event, e1).user_id == alice

    def test_events_can_be_offered_again_after_reject(self, db, alice, bob, pair):
        e1, e2 = pair
        first = SwapManager.propose(db, alice, e1, e2).request.id
        SwapManager.reject(db, bob, first)

        second = SwapManager.propose(db, alice, e1, e2).request.id

        assert second != first
        assert db.get(Event, e2).status == EventStatus.SWAP_PENDING


class TestConcurrentProposals:
    """Two sessions racing for the same slot: exactly one wins."""

    def test_loser_gets_conflict(self, tmp_path, alice, bob, carol):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'race.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=engine)
        Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

        setup = Session()
        e1 = make_slot(setup, alice, "Alice", offset_hours=0).id
        e2 = make_slot(setup, bob, "Bob", offset_hours=2).id
        e3 = make_slot(setup, carol, "Carol", offset_hours=4).id
        setup.close()

        barrier = threading.Barrier(2)
        results = {}

        def propose(requester_id, requester_event_id):
            session = Session()
            try:
                # both sessions see Bob's slot as SWAPPABLE before either writes
                assert session.get(Event, e2).status == EventStatus.SWAPPABLE
                session.rollback()
                barrier.wait(timeout=10)
                SwapManager.propose(session, requester_id, requester_event_id, e2)
                results[requester_id] = "ok"
            except ConflictError as e:
                results[requester_id] = e
            finally:
                session.close()

        threads = [
            threading.Thread(target=propose, args=(alice, e1)),
            threading.Thread(target=propose, args=(carol, e3)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert len(results) == 2, results
        winners = [user for user, outcome in results.items() if outcome == "ok"]
        losers = [user for user, outcome in results.items() if isinstance(outcome, ConflictError)]
        assert len(winners) == 1 and len(losers) == 1, results

        winner_event = e1 if winners[0] == alice else e3
        loser_event = e3 if winners[0] == alice else e1

        check = Session()
        try:
            assert check.get(Event, e2).status == EventStatus.SWAP_PENDING
            assert check.get(Event, winner_event).status == EventStatus.SWAP_PENDING
            assert check.get(Event, loser_event).status == EventStatus.SWAPPABLE
            requests = check.query(SwapRequest).all()
            assert len(requests) == 1
            assert requests[0].requester_id == winners[0]
            assert requests[0].status == SwapRequestStatus.PENDING
        finally:
            check.close()
            engine.dispose()
