from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.ledger.money import format_balance, minor_to_decimal_string
from backend.app.models import Account, Event, Instrument, Leg

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountBalance:
    account_id: str
    account_name: str
    instrument_id: str
    instrument_code: str
    instrument_minor_unit: int
    instrument_kind: str
    amount_minor: int

    @property
    def instrument(self) -> InstrumentRef:
        return InstrumentRef(code=self.instrument_code, minor_unit=self.instrument_minor_unit)


@dataclass(frozen=True)
class InstrumentRef:
    code: str
    minor_unit: int


@dataclass(frozen=True)
class BalanceView:
    balance: AccountBalance
    amount: str     # exact decimal string, e.g. "-67.89"
    display: str    # locale rendering, e.g. "AUD 123.45"


def get_user_balances(
    db: Session,
    user_id: str,
    account_ids: Optional[Sequence[str]] = None,
) -> List[AccountBalance]:
    """
    Live balance per (account, instrument) for everything a user has posted.

    balance = SUM(legs.amount_minor) GROUP BY (legs.account_id, legs.instrument_id),
    legs of soft-deleted events excluded. One SELECT, recomputed on every call;
    store errors propagate to the caller as-is.
    """
    if account_ids is not None and len(account_ids) == 0:
        return []

    total = func.sum(Leg.amount_minor)
    stmt = (
        select(
            Leg.account_id,
            Account.name,
            Leg.instrument_id,
            Instrument.code,
            Instrument.minor_unit,
            Instrument.kind,
            total,
        )
        .join(Event, Event.id == Leg.event_id)
        .join(Account, Account.id == Leg.account_id)
        .join(Instrument, Instrument.id == Leg.instrument_id)
        .where(Event.user_id == user_id, Event.deleted_at.is_(None))
        .group_by(
            Leg.account_id,
            Account.name,
            Leg.instrument_id,
            Instrument.code,
            Instrument.minor_unit,
            Instrument.kind,
        )
        .order_by(Account.name, Instrument.code)
    )
    if account_ids is not None:
        stmt = stmt.where(Leg.account_id.in_(list(account_ids)))

    rows = db.execute(stmt).all()

    # SUM(bigint) is numeric on Postgres (Decimal here) and int on SQLite; int() is exact for both.
    return [
        AccountBalance(
            account_id=account_id,
            account_name=account_name,
            instrument_id=instrument_id,
            instrument_code=code,
            instrument_minor_unit=minor_unit,
            instrument_kind=kind,
            amount_minor=int(amount),
        )
        for account_id, account_name, instrument_id, code, minor_unit, kind, amount in rows
    ]


def balance_views(
    db: Session,
    user_id: str,
    account_ids: Optional[Sequence[str]] = None,
    locale: Optional[str] = None,
) -> List[BalanceView]:
    balances = get_user_balances(db, user_id, account_ids)
    logger.debug("Formatting %s balances for user %s", len(balances), user_id)
    return [
        BalanceView(
            balance=b,
            amount=minor_to_decimal_string(b.amount_minor, b.instrument_minor_unit),
            display=format_balance(b.amount_minor, b.instrument, locale=locale),
        )
        for b in balances
    ]
