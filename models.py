"""
資料模型

四張表：
- profiles：使用者顯示名稱（一個帳號一筆）
- events：使用者的時段，帶有交換狀態
- swap_requests：兩個時段之間的交換請求
- change_log：每個使用者的變更紀錄（前端輪詢用，也是稽核紀錄）
"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, DateTime, Enum, ForeignKey, Integer, JSON, Uuid
)
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventStatus(str, enum.Enum):
    BUSY = "BUSY"
    SWAPPABLE = "SWAPPABLE"
    SWAP_PENDING = "SWAP_PENDING"

    @property
    def label(self) -> str:
        return EVENT_STATUS_LABELS[self]


class SwapRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

    @property
    def label(self) -> str:
        return SWAP_REQUEST_STATUS_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self != SwapRequestStatus.PENDING


# 每個狀態都必須有對應的顯示文字，缺少就是 KeyError，不給預設值
EVENT_STATUS_LABELS = {
    EventStatus.BUSY: "Busy",
    EventStatus.SWAPPABLE: "Swappable",
    EventStatus.SWAP_PENDING: "Pending Swap",
}

SWAP_REQUEST_STATUS_LABELS = {
    SwapRequestStatus.PENDING: "Pending",
    SwapRequestStatus.ACCEPTED: "Accepted",
    SwapRequestStatus.REJECTED: "Rejected",
}


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Event(Base):
    __tablename__ = "events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        Enum(EventStatus, name="event_status"),
        nullable=False,
        default=EventStatus.BUSY,
        index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class SwapRequest(Base):
    __tablename__ = "swap_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    requester_id = Column(Uuid, nullable=False, index=True)
    requester_event_id = Column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    recipient_id = Column(Uuid, nullable=False, index=True)
    recipient_event_id = Column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(
        Enum(SwapRequestStatus, name="swap_request_status"),
        nullable=False,
        default=SwapRequestStatus.PENDING,
        index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    requester_event = relationship("Event", foreign_keys=[requester_event_id])
    recipient_event = relationship("Event", foreign_keys=[recipient_event_id])


class ChangeLog(Base):
    __tablename__ = "change_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, nullable=False, index=True)
    entity = Column(String(32), nullable=False)
    entity_id = Column(Uuid, nullable=False)
    change_type = Column(String(32), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
