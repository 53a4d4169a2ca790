"""
Money rendering for minor-unit integers.

Amounts live in the ledger as signed ints of an instrument's smallest unit
(cents for AUD, whole units for most securities). Everything here turns those
ints into strings without ever passing through a float:

- minor_to_decimal_string: exact digit split, "12345" @ 2 -> "123.45"
- format_amount: locale / currency aware rendering via Babel, built on the
  exact split, with a plain "{code} {amount}" fallback for codes that are not
  ISO currencies (securities, crypto tickers)
- format_balance / format_change: instrument-level helpers for views

scale_to_float is kept for callers that need a float (charts) and is
deprecated: it refuses magnitudes a double cannot hold exactly.
"""

from __future__ import annotations

import copy
import logging
import os
import re
import warnings
from decimal import Decimal, localcontext
from typing import Literal, Optional, Protocol

from babel.core import Locale, UnknownLocaleError
from babel.numbers import NumberPattern, UnknownCurrencyError, validate_currency

logger = logging.getLogger(__name__)

SignDisplay = Literal["auto", "always", "except_zero", "never"]
CurrencyDisplay = Literal["code", "symbol"]

DEFAULT_LOCALE = "en_AU"

# Largest magnitude a double represents exactly.
FLOAT_SAFE_MAGNITUDE = 2**53

_CURRENCY_SIGNS = re.compile("¤+")
_NBSP = "\u00a0"


class InstrumentLike(Protocol):
    code: str
    minor_unit: int


def default_locale() -> str:
    return os.getenv("LEDGER_DEFAULT_LOCALE", DEFAULT_LOCALE)


# -------------------------
# Exact decimal split
# -------------------------

def _magnitude_string(amount_minor: int, minor_unit: int) -> str:
    digits = str(abs(amount_minor))
    if minor_unit == 0:
        return digits
    padded = digits.rjust(minor_unit + 1, "0")
    return f"{padded[:-minor_unit]}.{padded[-minor_unit:]}"


def minor_to_decimal_string(amount_minor: int, minor_unit: int) -> str:
    amount_minor = int(amount_minor)
    magnitude = _magnitude_string(amount_minor, minor_unit)
    return f"-{magnitude}" if amount_minor < 0 else magnitude


def minor_to_decimal(amount_minor: int, minor_unit: int) -> Decimal:
    # Decimal(str) is exact regardless of the context precision.
    return Decimal(minor_to_decimal_string(amount_minor, minor_unit))


def scale_to_float(amount_minor: int, minor_unit: int) -> float:
    warnings.warn(
        "scale_to_float is lossy; use minor_to_decimal or format_amount",
        DeprecationWarning,
        stacklevel=2,
    )
    if abs(int(amount_minor)) > FLOAT_SAFE_MAGNITUDE:
        raise ValueError(
            f"amount_minor {amount_minor} exceeds {FLOAT_SAFE_MAGNITUDE} and cannot be scaled to a float exactly"
        )
    return float(minor_to_decimal(amount_minor, minor_unit))


# -------------------------
# Signs
# -------------------------

def _sign_prefix(amount_minor: int, sign_display: SignDisplay) -> str:
    if amount_minor < 0:
        return "" if sign_display == "never" else "-"
    if sign_display == "always":
        return "+"
    if sign_display == "except_zero" and amount_minor > 0:
        return "+"
    return ""


def _plain(amount_minor: int, minor_unit: int, sign_display: SignDisplay, code: Optional[str]) -> str:
    """Sign leads the whole output: "-VHY 500", not "VHY -500"."""
    sign = _sign_prefix(amount_minor, sign_display)
    magnitude = _magnitude_string(amount_minor, minor_unit)
    if code is None:
        return f"{sign}{magnitude}"
    return f"{sign}{code} {magnitude}"


# -------------------------
# Locale rendering (Babel)
# -------------------------

def _iso_code_affix(affix: str, *, before_number: bool) -> str:
    if "¤" not in affix:
        return affix
    affix = _CURRENCY_SIGNS.sub("¤¤", affix)
    if before_number and affix.endswith("¤"):
        return affix + _NBSP
    if not before_number and affix.startswith("¤"):
        return _NBSP + affix
    return affix


def _number_pattern(
    locale: Locale,
    minor_unit: int,
    currency: Optional[str],
    currency_display: CurrencyDisplay,
) -> NumberPattern:
    if currency is None:
        pattern = copy.copy(locale.decimal_formats[None])
    else:
        pattern = copy.copy(locale.currency_formats["standard"])
        if currency_display == "code":
            pattern.prefix = tuple(_iso_code_affix(p, before_number=True) for p in pattern.prefix)
            pattern.suffix = tuple(_iso_code_affix(s, before_number=False) for s in pattern.suffix)
    pattern.frac_prec = (minor_unit, minor_unit)
    return pattern


def _render(value: Decimal, pattern: NumberPattern, locale: Locale, currency: Optional[str]) -> str:
    with localcontext() as ctx:
        # Default precision (28 digits) would round very large balances.
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + 2)
        return pattern.apply(
            value,
            locale,
            currency=currency,
            currency_digits=False,
            decimal_quantization=True,
        )


def format_amount(
    amount_minor: int,
    minor_unit: int,
    *,
    locale: Optional[str] = None,
    currency: Optional[str] = None,
    sign_display: SignDisplay = "auto",
    currency_display: CurrencyDisplay = "code",
) -> str:
    """
    Render a minor-unit amount.

    - neither locale nor currency: the exact decimal string ("-67.89")
    - locale only: grouped decimal in that locale ("1,234.50")
    - currency: currency pattern of the locale (default LEDGER_DEFAULT_LOCALE),
      fraction digits fixed to minor_unit

    Never raises for an unknown currency code or locale; those render as
    "{sign}{code} {amount}" instead.
    """
    amount_minor = int(amount_minor)
    if locale is None and currency is None:
        return _plain(amount_minor, minor_unit, sign_display, None)

    try:
        babel_locale = Locale.parse((locale or default_locale()).replace("-", "_"))
        iso_code = None
        if currency is not None:
            iso_code = currency.upper()
            validate_currency(iso_code, babel_locale)
        pattern = _number_pattern(babel_locale, minor_unit, iso_code, currency_display)
    except (UnknownLocaleError, UnknownCurrencyError, ValueError) as exc:
        logger.warning(
            "Plain amount rendering for currency=%s locale=%s: %s", currency, locale, exc
        )
        return _plain(amount_minor, minor_unit, sign_display, currency)

    magnitude = minor_to_decimal(abs(amount_minor), minor_unit)
    if amount_minor < 0 and sign_display != "never":
        # Negative patterns differ per locale; let Babel place the minus.
        return _render(magnitude.copy_negate(), pattern, babel_locale, iso_code)
    return _sign_prefix(amount_minor, sign_display) + _render(magnitude, pattern, babel_locale, iso_code)


def format_balance(
    amount_minor: int,
    instrument: InstrumentLike,
    *,
    locale: Optional[str] = None,
    sign_display: SignDisplay = "auto",
    currency_display: CurrencyDisplay = "code",
) -> str:
    return format_amount(
        amount_minor,
        instrument.minor_unit,
        locale=locale or default_locale(),
        currency=instrument.code,
        sign_display=sign_display,
        currency_display=currency_display,
    )


def format_change(
    amount_minor: int,
    instrument: InstrumentLike,
    *,
    locale: Optional[str] = None,
    currency_display: CurrencyDisplay = "code",
) -> str:
    """'+' for inflows, '-' for outflows, no sign for zero."""
    return format_balance(
        amount_minor,
        instrument,
        locale=locale,
        sign_display="except_zero",
        currency_display=currency_display,
    )
