"""
Profile 服務：顯示名稱的查詢與維護

Profile 只用在畫面上顯示「誰的時段、誰發的請求」，不參與任何狀態轉換
"""
import logging
from typing import Dict, Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from models import Profile
from core.exceptions import ProfileNotFound, ValidationError
from services.change_feed_service import record_change
from database import transactional

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"
MAX_NAME_LENGTH = 200


def get_profile(db: Session, user_id: UUID) -> Profile:
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if not profile:
        raise ProfileNotFound(user_id)
    return profile


@transactional
def upsert_profile(db: Session, user_id: UUID, full_name: str) -> Profile:
    """
    建立或更新自己的 profile

    異常：
        ValidationError: 名稱空白或超過長度限制
    """
    full_name = (full_name or "").strip()
    if not full_name:
        raise ValidationError("Full name must not be blank")
    if len(full_name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Full name must be at most {MAX_NAME_LENGTH} characters")

    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if profile:
        profile.full_name = full_name
        change_type = "PROFILE_UPDATED"
    else:
        profile = Profile(user_id=user_id, full_name=full_name)
        db.add(profile)
        change_type = "PROFILE_CREATED"

    db.flush()
    record_change(db, [user_id], "profiles", profile.id, change_type)
    logger.info(f"{change_type} for user {user_id}")
    return profile


def get_display_names(db: Session, user_ids: Iterable[UUID]) -> Dict[UUID, str]:
    """
    批次查詢顯示名稱

    返回：
        {user_id: full_name}，沒有 profile 的使用者對應到 "Unknown"
    """
    user_ids = set(user_ids)
    if not user_ids:
        return {}

    rows = db.query(Profile.user_id, Profile.full_name).filter(
        Profile.user_id.in_(user_ids)
    ).all()
    names = {user_id: full_name for user_id, full_name in rows}
    return {user_id: names.get(user_id, UNKNOWN_NAME) for user_id in user_ids}
