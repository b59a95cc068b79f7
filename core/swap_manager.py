"""
Swap Manager：管理交換請求（SwapRequest）的完整生命週期

職責：
1. 提出交換（propose）：兩個時段 SWAPPABLE -> SWAP_PENDING，建立 PENDING 請求
2. 接受交換（accept）：兩個時段互換擁有者並變成 BUSY，請求 -> ACCEPTED
3. 拒絕交換（reject）：兩個時段回到 SWAPPABLE，請求 -> REJECTED

並發安全：
- 每個操作都是單一 transaction（@transactional）
- 先鎖 SwapRequest，再依 id 順序鎖兩個 Event
- 狀態寫入都是 compare-and-set，輸掉競態的一方拿到 ConflictError
- 請求一旦是終態就不能再動，accept 兩次不會互換擁有者兩次
"""
from dataclasses import dataclass
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from models import Event, EventStatus, SwapRequest, SwapRequestStatus
from core.state_machine import EventStateMachine, EventTrigger, SwapRequestStateMachine
from core.locks import lock_event_pair, with_swap_request_lock
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    EventNotFound,
    StateError,
    SwapRequestNotFound,
    ValidationError
)
from services.change_feed_service import record_change
from database import transactional

logger = logging.getLogger(__name__)


@dataclass
class SwapOutcome:
    """交換操作的結果：請求本身加上兩個時段的最新狀態"""
    request: SwapRequest
    requester_event: Event
    recipient_event: Event


class SwapManager:
    """SwapRequest 生命週期管理器"""

    @staticmethod
    @transactional
    def propose(
        db: Session, user_id: UUID, requester_event_id: UUID, recipient_event_id: UUID
    ) -> SwapOutcome:
        """
        提出交換請求

        前置條件：
        1. requester_event 屬於呼叫者，而且是 SWAPPABLE
        2. recipient_event 屬於別人，而且是 SWAPPABLE
        3. 兩個時段不是同一個

        流程：
        1. 依 id 順序鎖定兩個時段
        2. 重新檢查前置條件（鎖內檢查，不信任先前讀到的狀態）
        3. 兩個時段 SWAPPABLE -> SWAP_PENDING
        4. 建立 PENDING 請求
        5. 記錄雙方的變更

        異常：
            ValidationError: 同一個時段，或想跟自己交換
            EventNotFound: 任一時段不存在
            AuthorizationError: requester_event 不屬於呼叫者
            ConflictError: 任一時段已經不是 SWAPPABLE
        """
        if requester_event_id == recipient_event_id:
            raise ValidationError("Cannot swap an event with itself")

        # 1. 鎖定兩個時段
        events = lock_event_pair([requester_event_id, recipient_event_id], db)
        requester_event = events.get(requester_event_id)
        recipient_event = events.get(recipient_event_id)

        if not requester_event:
            raise EventNotFound(requester_event_id)
        if not recipient_event:
            raise EventNotFound(recipient_event_id)

        # 2. 驗證擁有者
        if requester_event.user_id != user_id:
            raise AuthorizationError(
                f"Event {requester_event_id} is not owned by user {user_id}"
            )
        if recipient_event.user_id == user_id:
            raise ValidationError("Cannot request a swap with your own event")

        # 3. 驗證狀態
        for event in (requester_event, recipient_event):
            if event.status != EventStatus.SWAPPABLE:
                raise ConflictError(
                    f"Event {event.id} is not swappable (status: {event.status.value})"
                )

        recipient_id = recipient_event.user_id

        # 4. 狀態轉換（compare-and-set，輸掉競態會拋 ConflictError）
        EventStateMachine.fire(db, requester_event, EventTrigger.PROPOSE)
        EventStateMachine.fire(db, recipient_event, EventTrigger.PROPOSE)

        # 5. 建立請求
        request = SwapRequest(
            requester_id=user_id,
            requester_event_id=requester_event_id,
            recipient_id=recipient_id,
            recipient_event_id=recipient_event_id,
            status=SwapRequestStatus.PENDING
        )
        db.add(request)
        db.flush()  # 取得 request.id

        # 6. 記錄變更
        participants = [user_id, recipient_id]
        record_change(
            db, participants, "swap_requests", request.id, "SWAP_PROPOSED",
            {
                "requester_event_id": str(requester_event_id),
                "recipient_event_id": str(recipient_event_id)
            }
        )
        record_change(db, [user_id], "events", requester_event_id, "EVENT_STATUS_CHANGED",
                      {"status": EventStatus.SWAP_PENDING.value})
        record_change(db, [recipient_id], "events", recipient_event_id, "EVENT_STATUS_CHANGED",
                      {"status": EventStatus.SWAP_PENDING.value})

        logger.info(
            f"User {user_id} proposed swap {request.id}: "
            f"event {requester_event_id} <-> event {recipient_event_id} (user {recipient_id})"
        )

        return SwapOutcome(request, requester_event, recipient_event)

    @staticmethod
    def _lock_pending_request(db: Session, user_id: UUID, request_id: UUID):
        """
        鎖定請求和兩個時段，並檢查接收者身分與 SWAP_PENDING 狀態

        返回：
            (SwapRequest, requester_event, recipient_event)
        """
        request = with_swap_request_lock(request_id, db).first()
        if not request or user_id not in (request.requester_id, request.recipient_id):
            raise SwapRequestNotFound(request_id)

        if request.recipient_id != user_id:
            raise AuthorizationError("Only the recipient can respond to a swap request")

        if request.status.is_terminal:
            raise StateError(f"Swap request {request_id} is already {request.status.value}")

        events = lock_event_pair(
            [request.requester_event_id, request.recipient_event_id], db
        )
        requester_event = events.get(request.requester_event_id)
        recipient_event = events.get(request.recipient_event_id)

        if not requester_event or not recipient_event:
            raise ConflictError(f"Swap request {request_id} references a missing event")

        for event in (requester_event, recipient_event):
            if event.status != EventStatus.SWAP_PENDING:
                raise ConflictError(
                    f"Event {event.id} is not awaiting a swap (status: {event.status.value})"
                )

        if requester_event.user_id != request.requester_id or \
                recipient_event.user_id != request.recipient_id:
            raise ConflictError(f"Event ownership changed since swap request {request_id}")

        return request, requester_event, recipient_event

    @staticmethod
    @transactional
    def accept(db: Session, user_id: UUID, request_id: UUID) -> SwapOutcome:
        """
        接受交換請求

        前置條件：
        1. 呼叫者是接收者
        2. 請求是 PENDING
        3. 兩個時段都是 SWAP_PENDING

        效果（同一個 transaction）：
        - 請求 -> ACCEPTED
        - requester_event 的擁有者改成 recipient，recipient_event 的擁有者改成 requester
        - 兩個時段 -> BUSY

        異常：
            SwapRequestNotFound: 請求不存在
            AuthorizationError: 呼叫者不是接收者
            StateError: 請求已經處理過
            ConflictError: 時段狀態不一致
        """
        request, requester_event, recipient_event = SwapManager._lock_pending_request(
            db, user_id, request_id
        )

        SwapRequestStateMachine.transition(db, request, SwapRequestStatus.ACCEPTED)

        EventStateMachine.fire(
            db, requester_event, EventTrigger.ACCEPT, new_owner_id=request.recipient_id
        )
        EventStateMachine.fire(
            db, recipient_event, EventTrigger.ACCEPT, new_owner_id=request.requester_id
        )

        participants = [request.requester_id, request.recipient_id]
        record_change(db, participants, "swap_requests", request.id, "SWAP_ACCEPTED")
        for event in (requester_event, recipient_event):
            record_change(
                db, participants, "events", event.id, "EVENT_OWNER_CHANGED",
                {"user_id": str(event.user_id), "status": EventStatus.BUSY.value}
            )

        logger.info(
            f"Swap {request.id} accepted: event {requester_event.id} -> user {request.recipient_id}, "
            f"event {recipient_event.id} -> user {request.requester_id}"
        )

        return SwapOutcome(request, requester_event, recipient_event)

    @staticmethod
    @transactional
    def reject(db: Session, user_id: UUID, request_id: UUID) -> SwapOutcome:
        """
        拒絕交換請求

        效果（同一個 transaction）：
        - 請求 -> REJECTED
        - 兩個時段 -> SWAPPABLE（擁有者不變）

        異常：
            同 accept
        """
        request, requester_event, recipient_event = SwapManager._lock_pending_request(
            db, user_id, request_id
        )

        SwapRequestStateMachine.transition(db, request, SwapRequestStatus.REJECTED)

        EventStateMachine.fire(db, requester_event, EventTrigger.REJECT)
        EventStateMachine.fire(db, recipient_event, EventTrigger.REJECT)

        participants = [request.requester_id, request.recipient_id]
        record_change(db, participants, "swap_requests", request.id, "SWAP_REJECTED")
        record_change(db, [request.requester_id], "events", requester_event.id,
                      "EVENT_STATUS_CHANGED", {"status": EventStatus.SWAPPABLE.value})
        record_change(db, [request.recipient_id], "events", recipient_event.id,
                      "EVENT_STATUS_CHANGED", {"status": EventStatus.SWAPPABLE.value})

        logger.info(f"Swap {request.id} rejected by user {user_id}")

        return SwapOutcome(request, requester_event, recipient_event)

    @staticmethod
    def get_request(db: Session, user_id: UUID, request_id: UUID) -> SwapRequest:
        """
        取得單一請求（只有請求雙方看得到）

        異常：
            SwapRequestNotFound: 不存在或不是請求的任一方
        """
        request = db.query(SwapRequest).filter(SwapRequest.id == request_id).first()
        if not request or user_id not in (request.requester_id, request.recipient_id):
            raise SwapRequestNotFound(request_id)
        return request
