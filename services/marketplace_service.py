"""
Marketplace 服務：列出可以拿來交換的時段

純查詢邏輯，不涉及狀態轉換
"""
from dataclasses import dataclass
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from models import Event, EventStatus
from services.profile_service import get_display_names


@dataclass
class MarketplaceListing:
    event: Event
    owner_name: str


def list_marketplace(db: Session, user_id: UUID) -> List[MarketplaceListing]:
    """
    別人的 SWAPPABLE 時段，附上擁有者名稱，依開始時間排序

    呼叫者自己的時段不論狀態都不會出現
    """
    events = db.query(Event).filter(
        Event.status == EventStatus.SWAPPABLE,
        Event.user_id != user_id
    ).order_by(Event.start_time).all()

    names = get_display_names(db, (event.user_id for event in events))
    return [MarketplaceListing(event=event, owner_name=names[event.user_id]) for event in events]


def list_offerable_events(db: Session, user_id: UUID) -> List[Event]:
    """自己的 SWAPPABLE 時段（提出交換時拿來交換的那一方）"""
    return db.query(Event).filter(
        Event.status == EventStatus.SWAPPABLE,
        Event.user_id == user_id
    ).order_by(Event.start_time).all()
