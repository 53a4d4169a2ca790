from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.app.db import get_db
from backend.app.services import event_service

router = APIRouter(prefix="/api/events", tags=["events"])


class EventDeletedOut(BaseModel):
    id: str
    dedupe_key: str
    deleted_at: Optional[datetime] = None


@router.delete("/{event_id}", response_model=EventDeletedOut)
def delete_event(event_id: str, db: Session = Depends(get_db)):
    event = event_service.soft_delete_event(db, event_id)
    db.commit()
    return EventDeletedOut(id=event.id, dedupe_key=event.dedupe_key, deleted_at=event.deleted_at)
