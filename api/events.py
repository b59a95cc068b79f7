"""
Event API Endpoints

職責：
1. 建立 / 查詢自己的時段
2. Toggle BUSY <-> SWAPPABLE
3. 刪除時段
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from auth import SessionContext, get_session_context
from database import get_db
from schemas import EventCreate, EventResponse, StatusResponse
from core.event_manager import EventManager
from core.exceptions import SlotSwapException
from api.errors import to_http_exception

router = APIRouter(prefix="/api/events", tags=["events"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[EventResponse])
def list_events(
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """自己的所有時段，依開始時間排序"""
    try:
        events = EventManager.list_user_events(db, ctx.user_id)
        return [EventResponse.from_event(event) for event in events]

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list events: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("", response_model=EventResponse, status_code=201)
def create_event(
    event_data: EventCreate,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """
    建立時段

    新時段一律是 BUSY，要交換需要再 toggle
    """
    try:
        event = EventManager.create_event(
            db, ctx.user_id, event_data.title, event_data.start_time, event_data.end_time
        )
        return EventResponse.from_event(event)

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create event: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{event_id}", response_model=EventResponse)
def get_event(
    event_id: UUID,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """取得單一時段（自己的，或別人 SWAPPABLE 的）"""
    try:
        return EventResponse.from_event(EventManager.get_event(db, ctx.user_id, event_id))

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get event: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{event_id}/toggle", response_model=EventResponse)
def toggle_event(
    event_id: UUID,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """
    Toggle BUSY <-> SWAPPABLE

    SWAP_PENDING 的時段會回 409
    """
    try:
        event = EventManager.toggle_swappable(db, ctx.user_id, event_id)
        return EventResponse.from_event(event)

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to toggle event: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{event_id}", response_model=StatusResponse)
def delete_event(
    event_id: UUID,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """刪除時段（SWAP_PENDING 的時段會回 409）"""
    try:
        EventManager.delete_event(db, ctx.user_id, event_id)
        return StatusResponse(status="ok")

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to delete event: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
