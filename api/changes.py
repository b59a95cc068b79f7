"""
Change Feed API Endpoint - 短輪詢版

前端帶上次看到的 cursor 輪詢，有新變更就重新抓對應的畫面資料。
輪詢漏掉或延遲都不影響正確性，只影響畫面更新速度。
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import logging

from auth import SessionContext, get_session_context
from database import get_db
from schemas import ChangeFeedResponse, ChangeResponse
from core.exceptions import SlotSwapException
from services.change_feed_service import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    list_changes
)
from api.errors import to_http_exception

router = APIRouter(prefix="/api/changes", tags=["changes"])
logger = logging.getLogger(__name__)


@router.get("", response_model=ChangeFeedResponse)
def poll_changes(
    after: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db)
):
    """
    取得 cursor 之後的變更

    參數：
        after: 上次看到的最後一個變更 id（第一次輪詢傳 0）
        limit: 最多回傳幾筆

    返回：
        - changes: 變更列表（id 由小到大）
        - cursor: 下次輪詢要帶的 after
    """
    try:
        changes = list_changes(db, ctx.user_id, after=after, limit=limit)
        cursor = changes[-1].id if changes else after
        return ChangeFeedResponse(
            changes=[ChangeResponse.model_validate(change) for change in changes],
            cursor=cursor
        )

    except SlotSwapException as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to poll changes: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
