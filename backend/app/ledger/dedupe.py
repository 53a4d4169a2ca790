"""
Dedupe keys for ledger events.

An ingestion run computes one key per incoming record and the events table
enforces uniqueness on it, so replaying the same upstream feed inserts nothing
new.

Two shapes:
- "{account_id}:{external_id}" when the provider gave us a transaction id
- sha256 hex of "{account_id}|{effective_at}|{amount_minor}|{description}"
  otherwise, with every field in canonical form

This module is pure: no IO, no global state.
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from typing import Optional

# JavaScript's whitespace set (\s, String.prototype.trim). Stored hash keys were
# built with it; Python's \s and str.strip() also match \x1c-\x1f and \x85 and
# miss \ufeff.
_WHITESPACE = "[\t\n\x0b\x0c\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff]"
_WHITESPACE_RUN = re.compile(_WHITESPACE + "+")
_EDGE_WHITESPACE = re.compile(r"\A" + _WHITESPACE + "+|" + _WHITESPACE + r"+\Z")

FIELD_DELIMITER = "|"


def normalize_description(description: str) -> str:
    """Trim, lowercase, collapse whitespace runs to one space."""
    trimmed = _EDGE_WHITESPACE.sub("", description)
    return _WHITESPACE_RUN.sub(" ", trimmed.lower())


def canonical_timestamp(value: datetime) -> str:
    """UTC, millisecond precision, 'Z' suffix: 2025-01-26T00:00:00.000Z.

    Naive datetimes are taken to already be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc).replace(tzinfo=None)
    return utc.isoformat(timespec="milliseconds") + "Z"


def has_external_id(external_id: Optional[str]) -> bool:
    # An empty string from a feed carries no identity; it is treated as absent.
    return external_id is not None and external_id != ""


def compute_dedupe_key(
    *,
    account_id: str,
    external_id: Optional[str],
    effective_at: datetime,
    amount_minor: int,
    description: str,
) -> str:
    """
    amount_minor is the primary (first) leg's amount. The hash path only needs
    to tell economically different events apart, not enumerate every leg.
    """
    if has_external_id(external_id):
        return f"{account_id}:{external_id}"

    payload = FIELD_DELIMITER.join(
        [
            account_id,
            canonical_timestamp(effective_at),
            str(int(amount_minor)),
            normalize_description(description),
        ]
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
