"""
Swap Request API Endpoints

職責：
1. 提出交換請求
2. 收件匣（incoming / outgoing）
3. 接受 / 拒絕交換請求

所有寫入都回傳確認後的請求與兩個時段，前端不必重新查詢整個列表
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from auth import SessionContext, get_session_context
from database import get_db
from schemas import (
    InboxEntryResponse,
    InboxResponse,
    SwapOutcomeResponse,
    SwapRequestCreate,
    SwapRequestResponse
)
from core.swap_manager import SwapManager
from core.exceptions import ConflictError, SlotSwapException
from services.inbox_service import get_inbox
from api.errors import to_http_exception

router = APIRouter(prefix="/api/swap-requests", tags=["swap-requests"])
logger = logging.getLogger(__name__)


@router.post("", response_model=SwapOutcomeResponse, status_code=201)
def propose_swap(
    swap_data: SwapRequestCreate,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """
    提出交換請求

    前置條件：
    - requester_event_id 是自己的 SWAPPABLE 時段
    - recipient_event_id 是別人的 SWAPPABLE 時段

    返回：
        請求（PENDING）與兩個時段（SWAP_PENDING）
    """
    try:
        outcome = SwapManager.propose(
            db, ctx.user_id, swap_data.requester_event_id, swap_data.recipient_event_id
        )
        return SwapOutcomeResponse.from_outcome(outcome)

    except ConflictError as e:
        logger.warning(f"Swap proposal by {ctx.user_id} refused: {e}")
        raise to_http_exception(e)
    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create swap request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("", response_model=InboxResponse)
def list_swap_requests(
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """收件匣：收到的（incoming）與送出的（outgoing），新的在前"""
    try:
        inbox = get_inbox(db, ctx.user_id)
        return InboxResponse(
            incoming=[InboxEntryResponse.from_entry(entry) for entry in inbox.incoming],
            outgoing=[InboxEntryResponse.from_entry(entry) for entry in inbox.outgoing],
            incoming_pending=inbox.incoming_pending,
            outgoing_pending=inbox.outgoing_pending
        )

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to load swap requests: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{request_id}", response_model=SwapRequestResponse)
def get_swap_request(
    request_id: UUID,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    try:
        return SwapRequestResponse.from_request(
            SwapManager.get_request(db, ctx.user_id, request_id)
        )

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get swap request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{request_id}/accept", response_model=SwapOutcomeResponse)
def accept_swap(
    request_id: UUID,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """
    接受交換請求（接收者 endpoint）

    效果：
    - 請求 -> ACCEPTED
    - 兩個時段互換擁有者，都變成 BUSY

    已經處理過的請求回 409，不會再互換一次
    """
    try:
        outcome = SwapManager.accept(db, ctx.user_id, request_id)
        return SwapOutcomeResponse.from_outcome(outcome)

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to accept swap: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{request_id}/reject", response_model=SwapOutcomeResponse)
def reject_swap(
    request_id: UUID,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """
    拒絕交換請求（接收者 endpoint）

    效果：
    - 請求 -> REJECTED
    - 兩個時段回到 SWAPPABLE
    """
    try:
        outcome = SwapManager.reject(db, ctx.user_id, request_id)
        return SwapOutcomeResponse.from_outcome(outcome)

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to reject swap: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
