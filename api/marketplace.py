"""
Marketplace API Endpoints

職責：
1. 列出別人可交換的時段
2. 列出自己可拿來交換的時段
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import logging

from auth import SessionContext, get_session_context
from database import get_db
from schemas import EventResponse, MarketplaceEventResponse
from core.exceptions import SlotSwapException
from services.marketplace_service import list_marketplace, list_offerable_events
from api.errors import to_http_exception

router = APIRouter(prefix="/api/marketplace", tags=["marketplace"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[MarketplaceEventResponse])
def get_marketplace(
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """別人的 SWAPPABLE 時段，附擁有者名稱，依開始時間排序"""
    try:
        return [
            MarketplaceEventResponse(
                **EventResponse.from_event(listing.event).model_dump(),
                owner_name=listing.owner_name
            )
            for listing in list_marketplace(db, ctx.user_id)
        ]

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to load marketplace: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/offerable", response_model=List[EventResponse])
def get_offerable_events(
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """自己的 SWAPPABLE 時段"""
    try:
        return [EventResponse.from_event(event) for event in list_offerable_events(db, ctx.user_id)]

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to load offerable events: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
