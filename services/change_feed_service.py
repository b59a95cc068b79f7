"""
Change feed service.

Every mutation appends one row per affected user inside the same
transaction, so a committed change is always visible in the feed and a
rolled-back one never is. Clients poll with the last id they saw and
re-fetch the views the returned rows touch; the feed is a refresh hint,
not a source of truth.
"""
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import ChangeLog

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def record_change(
    db: Session,
    user_ids: Iterable[UUID],
    entity: str,
    entity_id: UUID,
    change_type: str,
    data: Optional[Dict[str, Any]] = None
) -> None:
    """Append a change row for each distinct user whose view is affected."""
    for user_id in dict.fromkeys(user_ids):
        db.add(ChangeLog(
            user_id=user_id,
            entity=entity,
            entity_id=entity_id,
            change_type=change_type,
            data=data or {}
        ))


def list_changes(
    db: Session, user_id: UUID, after: int = 0, limit: int = DEFAULT_LIMIT
) -> List[ChangeLog]:
    limit = max(1, min(limit, MAX_LIMIT))
    return (
        db.query(ChangeLog)
        .filter(ChangeLog.user_id == user_id, ChangeLog.id > after)
        .order_by(ChangeLog.id)
        .limit(limit)
        .all()
    )
