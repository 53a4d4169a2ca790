import hashlib
import re
from datetime import datetime, timedelta, timezone

import pytest

from backend.app.ledger.dedupe import (
    canonical_timestamp,
    compute_dedupe_key,
    normalize_description,
)

HEX64 = re.compile(r"^[0-9a-f]{64}$")

BASE = dict(
    account_id="acct-1",
    external_id=None,
    effective_at=datetime(2025, 1, 26, tzinfo=timezone.utc),
    amount_minor=-3750,
    description="WOOLWORTHS 1234  PENRITH",
)


def _key(**overrides):
    return compute_dedupe_key(**{**BASE, **overrides})


def test_external_id_wins_regardless_of_other_fields():
    assert _key(external_id="12345678") == "acct-1:12345678"
    assert _key(external_id="12345678", amount_minor=1, description="other") == "acct-1:12345678"


def test_empty_external_id_takes_the_hash_path():
    assert _key(external_id="") == _key(external_id=None)
    assert HEX64.match(_key(external_id=""))


def test_hash_path_is_lowercase_sha256_hex_and_deterministic():
    first = _key()
    assert HEX64.match(first)
    assert first == _key()


def test_hash_input_layout():
    expected = hashlib.sha256(
        b"acct-1|2025-01-26T00:00:00.000Z|-3750|woolworths 1234 penrith"
    ).hexdigest()
    assert _key() == expected


@pytest.mark.parametrize(
    "overrides",
    [
        {"account_id": "acct-2"},
        {"effective_at": datetime(2025, 1, 26, 0, 0, 0, 1000, tzinfo=timezone.utc)},
        {"amount_minor": -3751},
        {"description": "WOOLWORTHS 1235 PENRITH"},
    ],
)
def test_changing_any_field_changes_the_key(overrides):
    assert _key(**overrides) != _key()


def test_description_normalization_is_idempotent():
    once = normalize_description("  Coffee \t  Shop\n")
    assert once == "coffee shop"
    assert normalize_description(once) == once
    assert _key(description="  Coffee   Shop ") == _key(description="coffee shop")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("\ufeffabc", "abc"),
        ("\x1cabc\x1c", "\x1cabc\x1c"),
        ("abc\x85", "abc\x85"),
        ("Coffee\u3000\u00a0Shop\u2028", "coffee shop"),
    ],
)
def test_whitespace_set_is_the_javascript_one(raw, expected):
    assert normalize_description(raw) == expected


def test_empty_description_still_hashes():
    assert HEX64.match(_key(description="   "))
    assert _key(description="   ") == _key(description="")


def test_same_instant_in_other_zone_gives_same_key():
    sydney = timezone(timedelta(hours=11))
    local = datetime(2025, 1, 26, 11, 0, tzinfo=sydney)
    assert canonical_timestamp(local) == "2025-01-26T00:00:00.000Z"
    assert _key(effective_at=local) == _key()


def test_naive_timestamps_are_treated_as_utc():
    assert canonical_timestamp(datetime(2025, 1, 26, 8, 30, 15, 123456)) == "2025-01-26T08:30:15.123Z"


def test_large_amounts_keep_every_digit():
    big = 123456789012345678
    expected = hashlib.sha256(
        f"acct-1|2025-01-26T00:00:00.000Z|{big}|woolworths 1234 penrith".encode()
    ).hexdigest()
    assert _key(amount_minor=big) == expected
    assert _key(amount_minor=big) != _key(amount_minor=big + 1)
