"""
Swap request inbox service.

Builds the incoming/outgoing request lists for a user, joining each
request with both events and the counterpart's display name so the
frontend can render the inbox from a single call.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import Event, SwapRequest, SwapRequestStatus
from services.profile_service import get_display_names


@dataclass
class InboxEntry:
    request: SwapRequest
    requester_event: Optional[Event]
    recipient_event: Optional[Event]
    counterpart_id: UUID
    counterpart_name: str


@dataclass
class Inbox:
    incoming: List[InboxEntry] = field(default_factory=list)
    outgoing: List[InboxEntry] = field(default_factory=list)

    @property
    def incoming_pending(self) -> int:
        return sum(1 for e in self.incoming if e.request.status == SwapRequestStatus.PENDING)

    @property
    def outgoing_pending(self) -> int:
        return sum(1 for e in self.outgoing if e.request.status == SwapRequestStatus.PENDING)


def _load_events(db: Session, requests: List[SwapRequest]) -> Dict[UUID, Event]:
    event_ids = set()
    for request in requests:
        event_ids.add(request.requester_event_id)
        event_ids.add(request.recipient_event_id)
    if not event_ids:
        return {}
    events = db.query(Event).filter(Event.id.in_(event_ids)).all()
    return {event.id: event for event in events}


def get_inbox(db: Session, user_id: UUID) -> Inbox:
    """
    Return incoming (user is recipient) and outgoing (user is requester)
    requests, newest first.

    Events or profiles that cannot be found are left as None / "Unknown"
    rather than dropping the request from the list.
    """
    incoming = (
        db.query(SwapRequest)
        .filter(SwapRequest.recipient_id == user_id)
        .order_by(SwapRequest.created_at.desc())
        .all()
    )
    outgoing = (
        db.query(SwapRequest)
        .filter(SwapRequest.requester_id == user_id)
        .order_by(SwapRequest.created_at.desc())
        .all()
    )

    events = _load_events(db, incoming + outgoing)
    names = get_display_names(
        db,
        [r.requester_id for r in incoming] + [r.recipient_id for r in outgoing]
    )

    def entry(request: SwapRequest, counterpart_id: UUID) -> InboxEntry:
        return InboxEntry(
            request=request,
            requester_event=events.get(request.requester_event_id),
            recipient_event=events.get(request.recipient_event_id),
            counterpart_id=counterpart_id,
            counterpart_name=names[counterpart_id],
        )

    return Inbox(
        incoming=[entry(r, r.requester_id) for r in incoming],
        outgoing=[entry(r, r.recipient_id) for r in outgoing],
    )
