"""
API request / response schemas
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

from models import EventStatus, SwapRequestStatus


# ============ Profile ============

class ProfileUpsert(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    full_name: str


# ============ Event ============

class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    start_time: AwareDatetime
    end_time: AwareDatetime

    @model_validator(mode="after")
    def check_time_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    start_time: datetime
    end_time: datetime
    status: EventStatus
    status_label: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_event(cls, event) -> "EventResponse":
        return cls(
            id=event.id,
            user_id=event.user_id,
            title=event.title,
            start_time=event.start_time,
            end_time=event.end_time,
            status=event.status,
            status_label=event.status.label,
            created_at=event.created_at,
            updated_at=event.updated_at,
        )


class EventSummary(BaseModel):
    """交換請求中引用的時段（只給標題與時間）"""
    id: Optional[UUID] = None
    title: str = "Unknown"
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @classmethod
    def from_event(cls, event) -> "EventSummary":
        if event is None:
            return cls()
        return cls(
            id=event.id,
            title=event.title,
            start_time=event.start_time,
            end_time=event.end_time,
        )


class MarketplaceEventResponse(EventResponse):
    owner_name: str


# ============ Swap request ============

class SwapRequestCreate(BaseModel):
    requester_event_id: UUID
    recipient_event_id: UUID


class SwapRequestResponse(BaseModel):
    id: UUID
    requester_id: UUID
    requester_event_id: UUID
    recipient_id: UUID
    recipient_event_id: UUID
    status: SwapRequestStatus
    status_label: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_request(cls, request) -> "SwapRequestResponse":
        return cls(
            id=request.id,
            requester_id=request.requester_id,
            requester_event_id=request.requester_event_id,
            recipient_id=request.recipient_id,
            recipient_event_id=request.recipient_event_id,
            status=request.status,
            status_label=request.status.label,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )


class SwapOutcomeResponse(BaseModel):
    """propose / accept / reject 回傳確認後的狀態，前端不必重新查詢"""
    request: SwapRequestResponse
    requester_event: EventResponse
    recipient_event: EventResponse

    @classmethod
    def from_outcome(cls, outcome) -> "SwapOutcomeResponse":
        return cls(
            request=SwapRequestResponse.from_request(outcome.request),
            requester_event=EventResponse.from_event(outcome.requester_event),
            recipient_event=EventResponse.from_event(outcome.recipient_event),
        )


class InboxEntryResponse(SwapRequestResponse):
    requester_event: EventSummary
    recipient_event: EventSummary
    counterpart_id: UUID
    counterpart_name: str

    @classmethod
    def from_entry(cls, entry) -> "InboxEntryResponse":
        base = SwapRequestResponse.from_request(entry.request)
        return cls(
            **base.model_dump(),
            requester_event=EventSummary.from_event(entry.requester_event),
            recipient_event=EventSummary.from_event(entry.recipient_event),
            counterpart_id=entry.counterpart_id,
            counterpart_name=entry.counterpart_name,
        )


class InboxResponse(BaseModel):
    incoming: List[InboxEntryResponse]
    outgoing: List[InboxEntryResponse]
    incoming_pending: int
    outgoing_pending: int


# ============ Change feed ============

class ChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    entity: str
    entity_id: UUID
    change_type: str
    data: dict
    created_at: datetime


class ChangeFeedResponse(BaseModel):
    changes: List[ChangeResponse]
    cursor: int


class StatusResponse(BaseModel):
    status: str
