"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

主要使用 PostgreSQL 的 SELECT ... FOR UPDATE 來實現悲觀鎖（Pessimistic Locking）
SQLite 不支援 FOR UPDATE（SQLAlchemy 會直接忽略），
這時由 StateMachine 的 compare-and-set 更新負責擋下競態
"""
from sqlalchemy.orm import Session, Query
from typing import Iterable, Dict
from uuid import UUID

from models import Event, SwapRequest


def with_event_lock(event_id: UUID, db: Session) -> Query:
    """
    鎖定一個 Event（行級鎖）

    使用場景：
    - Toggle / 刪除時段時
    - 需要確保 Event 在整個 transaction 期間不被其他請求修改

    範例：
        event = with_event_lock(event_id, db).first()
        if not event:
            raise EventNotFound(event_id)

    參數：
        event_id: Event 的 UUID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）

    注意：
        - populate_existing 確保讀到的是資料庫最新狀態，不是 session 內的舊資料
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(Event).filter(
        Event.id == event_id
    ).populate_existing().with_for_update(nowait=False)


def lock_event_pair(event_ids: Iterable[UUID], db: Session) -> Dict[UUID, Event]:
    """
    鎖定交換涉及的兩個 Events

    ORDER BY id 決定上鎖順序，兩個請求以相反順序鎖同一對時段時不會 deadlock

    參數：
        event_ids: Event UUID 列表
        db: SQLAlchemy Session

    返回：
        {event_id: Event}，不存在的 id 不會出現在結果中
    """
    events = db.query(Event).filter(
        Event.id.in_(set(event_ids))
    ).order_by(Event.id).populate_existing().with_for_update(nowait=False).all()
    return {event.id: event for event in events}


def with_swap_request_lock(request_id: UUID, db: Session) -> Query:
    """
    鎖定一個 SwapRequest（行級鎖）

    使用場景：
    - 接受 / 拒絕交換請求時（防止同一請求被處理兩次）

    參數：
        request_id: SwapRequest 的 UUID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 來取得結果）
    """
    return db.query(SwapRequest).filter(
        SwapRequest.id == request_id
    ).populate_existing().with_for_update(nowait=False)
