"""
Event Manager：管理時段（Event）的完整生命週期

職責：
1. 建立時段（預設 BUSY）
2. 查詢自己的時段 / 單一時段
3. Toggle BUSY <-> SWAPPABLE
4. 刪除時段

權限規則（跟原本的 row-level policy 一致）：
- 自己的時段：可讀可寫
- 別人的時段：只有 SWAPPABLE 的看得到，而且只能讀
"""
from datetime import datetime, timezone
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from models import Event, EventStatus, SwapRequest
from core.state_machine import EventStateMachine, EventTrigger
from core.locks import with_event_lock
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    EventNotFound,
    ValidationError
)
from services.change_feed_service import record_change
from database import transactional

logger = logging.getLogger(__name__)


def validate_event_fields(title: str, start_time: datetime, end_time: datetime):
    """
    驗證時段欄位，回傳 (去掉前後空白的標題, UTC 開始時間, UTC 結束時間)

    起訖時間一律要帶時區，存進資料庫前統一轉成 UTC

    異常：
        ValidationError: 標題空白、時間沒帶時區，或結束時間沒有晚於開始時間
    """
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title must not be blank")
    if start_time.tzinfo is None or end_time.tzinfo is None:
        raise ValidationError("Start and end time must include a timezone offset")

    start_time = start_time.astimezone(timezone.utc)
    end_time = end_time.astimezone(timezone.utc)
    if not start_time < end_time:
        raise ValidationError(
            f"Start time {start_time.isoformat()} must be before end time {end_time.isoformat()}"
        )
    return title, start_time, end_time


class EventManager:
    """Event 生命週期管理器"""

    @staticmethod
    @transactional
    def create_event(
        db: Session, user_id: UUID, title: str, start_time: datetime, end_time: datetime
    ) -> Event:
        """
        建立新時段

        參數：
            db: SQLAlchemy Session
            user_id: 擁有者
            title: 標題
            start_time / end_time: 起訖時間（必須帶時區，start < end，存成 UTC）

        返回：
            新建立的 Event（狀態 BUSY）

        異常：
            ValidationError: 欄位不合法
        """
        title, start_time, end_time = validate_event_fields(title, start_time, end_time)

        event = Event(
            user_id=user_id,
            title=title,
            start_time=start_time,
            end_time=end_time,
            status=EventStatus.BUSY
        )
        db.add(event)
        db.flush()  # 取得 event.id

        record_change(db, [user_id], "events", event.id, "EVENT_CREATED")
        logger.info(f"Created event {event.id} for user {user_id}")

        return event

    @staticmethod
    def list_user_events(db: Session, user_id: UUID) -> List[Event]:
        """自己的所有時段，依開始時間排序"""
        return db.query(Event).filter(
            Event.user_id == user_id
        ).order_by(Event.start_time).all()

    @staticmethod
    def get_event(db: Session, user_id: UUID, event_id: UUID) -> Event:
        """
        取得單一時段

        自己的時段或 SWAPPABLE 的時段才看得到，其餘一律當作不存在

        異常：
            EventNotFound: 不存在或看不到
        """
        event = db.query(Event).filter(
            Event.id == event_id,
            or_(Event.user_id == user_id, Event.status == EventStatus.SWAPPABLE)
        ).first()
        if not event:
            raise EventNotFound(event_id)
        return event

    @staticmethod
    def _get_owned_event_for_update(db: Session, user_id: UUID, event_id: UUID) -> Event:
        event = with_event_lock(event_id, db).first()
        if not event or (event.user_id != user_id and event.status != EventStatus.SWAPPABLE):
            raise EventNotFound(event_id)
        if event.user_id != user_id:
            raise AuthorizationError(f"Event {event_id} is not owned by user {user_id}")
        return event

    @staticmethod
    @transactional
    def toggle_swappable(db: Session, user_id: UUID, event_id: UUID) -> Event:
        """
        Toggle BUSY <-> SWAPPABLE

        前置條件：
        1. 時段存在且屬於自己
        2. 狀態不是 SWAP_PENDING（有交換請求在處理中時鎖住）

        異常：
            EventNotFound: 時段不存在
            AuthorizationError: 不是擁有者
            ConflictError: 狀態是 SWAP_PENDING，或被別的請求搶先修改
        """
        event = EventManager._get_owned_event_for_update(db, user_id, event_id)

        if event.status == EventStatus.SWAP_PENDING:
            raise ConflictError("Cannot modify event with pending swap")

        EventStateMachine.fire(db, event, EventTrigger.TOGGLE)

        record_change(
            db, [user_id], "events", event.id, "EVENT_STATUS_CHANGED",
            {"status": event.status.value}
        )
        return event

    @staticmethod
    @transactional
    def delete_event(db: Session, user_id: UUID, event_id: UUID) -> None:
        """
        刪除時段

        SWAP_PENDING 的時段不能刪，否則會留下指向不存在時段的 PENDING 請求。
        已經結束（ACCEPTED / REJECTED）的請求會跟著一起刪除。

        異常：
            EventNotFound: 時段不存在
            AuthorizationError: 不是擁有者
            ConflictError: 時段正在等待交換結果
        """
        event = EventManager._get_owned_event_for_update(db, user_id, event_id)

        if event.status == EventStatus.SWAP_PENDING:
            raise ConflictError("Cannot delete event with pending swap")

        removed = db.query(SwapRequest).filter(
            or_(
                SwapRequest.requester_event_id == event_id,
                SwapRequest.recipient_event_id == event_id
            )
        ).delete(synchronize_session=False)

        db.delete(event)
        record_change(db, [user_id], "events", event_id, "EVENT_DELETED")

        logger.info(
            f"Deleted event {event_id} of user {user_id} "
            f"(removed {removed} resolved swap requests)"
        )
