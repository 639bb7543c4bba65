"""Active session routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from ...db.repositories import ActiveSessionRepository
from ...models.session import SessionKind
from .deps import get_actives

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("/active")
async def list_active(
    kind: SessionKind | None = Query(None),
    actives: ActiveSessionRepository = Depends(get_actives),
):
    """Stored active sessions with their remaining time as of now."""
    now = datetime.now()
    records = await actives.list_by_kind(kind)
    return [
        {
            "id": record.id,
            "user_id": record.user_id,
            "username": record.metadata.get("username", record.user_id),
            "kind": record.kind.value,
            "subject": record.subject,
            "phase": record.phase.value,
            "paused": record.paused,
            "current_cycle": record.current_cycle,
            "pomodoros_completed": record.pomodoros_completed,
            "start_time": record.start_time.isoformat(),
            "remaining_minutes": round(record.remaining_at(now) / 60, 1),
            "last_updated": record.last_updated.isoformat() if record.last_updated else None,
        }
        for record in records
    ]
