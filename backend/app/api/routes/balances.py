from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.app.db import get_db
from backend.app.services import balance_service
from backend.app.services.event_service import require_user

router = APIRouter(prefix="/api/users", tags=["balances"])


# -------------------------
# Schemas
# -------------------------

class BalanceOut(BaseModel):
    account_id: str
    account_name: str
    instrument_id: str
    instrument_code: str
    instrument_minor_unit: int
    instrument_kind: str

    # Strings, not numbers: JSON clients would round large ints and decimals.
    amount_minor: str
    amount: str
    display: str


# -------------------------
# Endpoints
# -------------------------

@router.get("/{user_id}/balances", response_model=List[BalanceOut])
def user_balances(
    user_id: str,
    account_id: Optional[List[str]] = Query(None, description="Restrict to these accounts (repeatable)"),
    locale: Optional[str] = Query(None, description="Locale tag, e.g. en_AU or de-DE"),
    db: Session = Depends(get_db),
):
    require_user(db, user_id)
    views = balance_service.balance_views(db, user_id, account_ids=account_id, locale=locale)
    return [
        BalanceOut(
            account_id=v.balance.account_id,
            account_name=v.balance.account_name,
            instrument_id=v.balance.instrument_id,
            instrument_code=v.balance.instrument_code,
            instrument_minor_unit=v.balance.instrument_minor_unit,
            instrument_kind=v.balance.instrument_kind,
            amount_minor=str(v.balance.amount_minor),
            amount=v.amount,
            display=v.display,
        )
        for v in views
    ]
