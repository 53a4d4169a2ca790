from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Literal, Optional, Sequence

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.ledger.dedupe import compute_dedupe_key
from backend.app.models import Event, Leg, User, utcnow

logger = logging.getLogger(__name__)

RecordStatus = Literal["inserted", "skipped", "restored"]


@dataclass(frozen=True)
class LegInput:
    instrument_id: str
    amount_minor: int
    # Defaults to the event's account.
    account_id: Optional[str] = None


@dataclass(frozen=True)
class RecordOutcome:
    status: RecordStatus
    dedupe_key: str
    event_id: Optional[str] = None


def require_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="user not found")
    return user


def require_event(db: Session, event_id: str) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="event not found")
    return event


def _existing_by_key(db: Session, dedupe_key: str):
    return db.execute(
        select(Event.id, Event.deleted_at).where(Event.dedupe_key == dedupe_key)
    ).first()


def record_event(
    db: Session,
    *,
    user_id: str,
    account_id: str,
    event_type: str,
    effective_at: datetime,
    description: str,
    legs: Sequence[LegInput],
    external_id: Optional[str] = None,
    posted_at: Optional[datetime] = None,
    meta: Optional[Dict[str, Any]] = None,
    restore_deleted: bool = False,
) -> RecordOutcome:
    """
    Insert an event and its legs unless its dedupe key is already taken.

    - key taken by a live event: skipped
    - key taken by a soft-deleted event: restored if restore_deleted, else skipped
    - otherwise: inserted

    Does not commit; the caller owns the transaction.
    """
    primary_amount = legs[0].amount_minor if legs else 0
    dedupe_key = compute_dedupe_key(
        account_id=account_id,
        external_id=external_id,
        effective_at=effective_at,
        amount_minor=primary_amount,
        description=description,
    )

    existing = _existing_by_key(db, dedupe_key)
    if existing:
        event_id, deleted_at = existing
        if deleted_at is not None and restore_deleted:
            event = db.get(Event, event_id)
            event.deleted_at = None
            db.flush()
            logger.info("Restored soft-deleted event %s (dedupe_key=%s)", event_id, dedupe_key)
            return RecordOutcome(status="restored", dedupe_key=dedupe_key, event_id=event_id)
        logger.info("Skipped duplicate event (dedupe_key=%s)", dedupe_key)
        return RecordOutcome(status="skipped", dedupe_key=dedupe_key, event_id=event_id)

    event = Event(
        user_id=user_id,
        account_id=account_id,
        event_type=event_type,
        effective_at=effective_at,
        posted_at=posted_at,
        description=description,
        external_id=external_id,
        dedupe_key=dedupe_key,
        meta=meta,
    )
    event.legs = [
        Leg(
            account_id=leg.account_id or account_id,
            instrument_id=leg.instrument_id,
            position=position,
            amount_minor=int(leg.amount_minor),
        )
        for position, leg in enumerate(legs)
    ]

    try:
        with db.begin_nested():
            db.add(event)
            db.flush()
    except IntegrityError:
        # A duplicate only if a row now holds the key; FK and NOT NULL failures propagate.
        winner_id = db.scalar(select(Event.id).where(Event.dedupe_key == dedupe_key))
        if winner_id is None:
            raise
        logger.info("Skipped duplicate event on insert (dedupe_key=%s)", dedupe_key)
        return RecordOutcome(status="skipped", dedupe_key=dedupe_key, event_id=winner_id)

    return RecordOutcome(status="inserted", dedupe_key=dedupe_key, event_id=event.id)


def soft_delete_event(db: Session, event_id: str) -> Event:
    """Mark an event deleted; its legs stop counting toward balances. Idempotent."""
    event = require_event(db, event_id)
    if event.deleted_at is None:
        event.deleted_at = utcnow()
        db.flush()
    return event
