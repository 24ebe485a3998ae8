"""
Activity tracking API endpoint.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.application.activity import ActivityValidationError, record_activity
from app.infrastructure.db.models import User

router = APIRouter(prefix="/api/activity", tags=["activity"])


class ActivityRequest(BaseModel):
    event_type: str
    payload: dict | None = None
    occurred_at: datetime | None = None


@router.post("")
def track(body: ActivityRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        log = record_activity(db, user, body.event_type, body.payload, body.occurred_at)
    except ActivityValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return {"status": "ok", "id": log.id}
