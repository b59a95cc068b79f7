"""
Profile API Endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from auth import SessionContext, get_session_context
from database import get_db
from schemas import ProfileResponse, ProfileUpsert
from core.exceptions import SlotSwapException
from services.profile_service import get_profile, upsert_profile
from api.errors import to_http_exception

router = APIRouter(prefix="/api/profiles", tags=["profiles"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=ProfileResponse)
def get_my_profile(
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    try:
        return get_profile(db, ctx.user_id)

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get profile: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/me", response_model=ProfileResponse)
def put_my_profile(
    profile_data: ProfileUpsert,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """建立或更新自己的顯示名稱"""
    try:
        return upsert_profile(db, ctx.user_id, profile_data.full_name)

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to save profile: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{user_id}", response_model=ProfileResponse)
def get_user_profile(
    user_id: UUID,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """任何登入的使用者都可以看別人的 profile"""
    try:
        return get_profile(db, user_id)

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get profile: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
