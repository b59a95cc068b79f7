"""
狀態機：集中管理所有狀態轉換

Event 狀態：
    BUSY <-> SWAPPABLE      （使用者 toggle）
    SWAPPABLE -> SWAP_PENDING（有人提出交換請求）
    SWAP_PENDING -> BUSY     （請求被接受，擁有者互換）
    SWAP_PENDING -> SWAPPABLE（請求被拒絕，回到可交換）

SwapRequest 狀態：
    PENDING -> ACCEPTED / REJECTED（終態，之後不可再變）

所有轉換都用 compare-and-set 寫入：
    UPDATE ... SET status = <new> WHERE id = <id> AND status = <current>
如果沒有任何一列被更新，代表別的 transaction 已經先改掉了，直接拋 ConflictError
"""
import enum
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import Event, EventStatus, SwapRequest, SwapRequestStatus
from core.exceptions import ConflictError, InvalidStateTransition, StateError

logger = logging.getLogger(__name__)


class EventTrigger(str, enum.Enum):
    TOGGLE = "TOGGLE"
    PROPOSE = "PROPOSE"
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


class EventStateMachine:
    """Event 狀態機"""

    TRANSITIONS = {
        EventTrigger.TOGGLE: {
            EventStatus.BUSY: EventStatus.SWAPPABLE,
            EventStatus.SWAPPABLE: EventStatus.BUSY,
        },
        EventTrigger.PROPOSE: {
            EventStatus.SWAPPABLE: EventStatus.SWAP_PENDING,
        },
        EventTrigger.ACCEPT: {
            EventStatus.SWAP_PENDING: EventStatus.BUSY,
        },
        EventTrigger.REJECT: {
            EventStatus.SWAP_PENDING: EventStatus.SWAPPABLE,
        },
    }

    @classmethod
    def next_status(cls, current: EventStatus, trigger: EventTrigger) -> EventStatus:
        """
        查表取得轉換後的狀態

        異常：
            InvalidStateTransition: 目前狀態不接受這個 trigger
        """
        target = cls.TRANSITIONS[trigger].get(current)
        if target is None:
            raise InvalidStateTransition(
                f"Cannot {trigger.value.lower()} event in status {current.value}"
            )
        return target

    @classmethod
    def fire(
        cls,
        db: Session,
        event: Event,
        trigger: EventTrigger,
        new_owner_id: Optional[UUID] = None
    ) -> Event:
        """
        對一個 Event 觸發狀態轉換

        參數：
            db: SQLAlchemy Session
            event: 已經上鎖讀出的 Event
            trigger: 觸發來源
            new_owner_id: 只有 ACCEPT 會用到，交換後的新擁有者

        返回：
            更新後的 Event

        異常：
            InvalidStateTransition: 目前狀態不接受這個 trigger
            ConflictError: 資料庫中的狀態已經被別的 transaction 改掉
        """
        current = event.status
        target = cls.next_status(current, trigger)

        values = {Event.status: target}
        if new_owner_id is not None:
            values[Event.user_id] = new_owner_id

        updated = db.query(Event).filter(
            Event.id == event.id,
            Event.status == current
        ).update(values, synchronize_session="fetch")

        if updated != 1:
            raise ConflictError(
                f"Event {event.id} is no longer {current.value}"
            )

        logger.info(
            f"Event {event.id}: {current.value} -> {target.value} ({trigger.value})"
        )
        return event


class SwapRequestStateMachine:
    """SwapRequest 狀態機"""

    ALLOWED_TRANSITIONS = {
        SwapRequestStatus.PENDING: {SwapRequestStatus.ACCEPTED, SwapRequestStatus.REJECTED},
        SwapRequestStatus.ACCEPTED: set(),
        SwapRequestStatus.REJECTED: set(),
    }

    @classmethod
    def transition(
        cls, db: Session, request: SwapRequest, new_status: SwapRequestStatus
    ) -> SwapRequest:
        """
        轉換 SwapRequest 狀態

        異常：
            StateError: 請求已經是終態，或資料庫中已被別人處理
        """
        current = request.status
        if new_status not in cls.ALLOWED_TRANSITIONS[current]:
            raise StateError(
                f"Swap request {request.id} is already {current.value}"
            )

        updated = db.query(SwapRequest).filter(
            SwapRequest.id == request.id,
            SwapRequest.status == current
        ).update({SwapRequest.status: new_status}, synchronize_session="fetch")

        if updated != 1:
            raise StateError(f"Swap request {request.id} was resolved concurrently")

        logger.info(f"SwapRequest {request.id}: {current.value} -> {new_status.value}")
        return request
