"""
Expiration Selector
===================

Decides which of a symbol's expirations get a chain fetch.

1. Validity: the date must parse as YYYY-MM-DD and must not be in the past
   (days from today ET >= 0, so today's expiration is still valid). Upstream
   occasionally lists stale dates, so this check is mandatory.
2. Horizon: "near" keeps expirations within SCREENER_NEAR_TERM_DAYS,
   "far" keeps the rest, "all" keeps everything.
3. Cap: only the first SCREENER_MAX_EXPIRATIONS (chronological) are examined.

Days are computed on ET calendar dates (date-to-date) to avoid drift.
"""
import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from models.options import ExpirationDebugEntry, ExpirationListing
from utils.environment import SCREENER_MAX_EXPIRATIONS, SCREENER_NEAR_TERM_DAYS

logger = logging.getLogger(__name__)

NY = ZoneInfo("America/New_York")


def now_et() -> datetime:
    return datetime.now(NY)


def _today_et(now: Optional[datetime] = None) -> date:
    n = now or now_et()
    if n.tzinfo is not None:
        n = n.astimezone(NY)
    return n.date()


def parse_expiration(value: str) -> Optional[date]:
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def days_from_now(expiration: str, now: Optional[datetime] = None) -> Optional[int]:
    """Calendar days until expiration (ET). None when the date does not parse."""
    exp = parse_expiration(expiration)
    if exp is None:
        return None
    return (exp - _today_et(now)).days


def evaluate_expirations(raw: Iterable[str], now: Optional[datetime] = None) -> ExpirationListing:
    """
    Drop malformed and expired dates; return the rest de-duplicated and
    sorted ascending, plus per-date debug entries.
    """
    raw_list = [str(d) for d in raw if d is not None]
    formatted: List[ExpirationDebugEntry] = []
    valid = set()

    for exp in raw_list:
        days = days_from_now(exp, now)
        is_valid = days is not None and days >= 0
        formatted.append(ExpirationDebugEntry(date=exp, days_from_now=days, is_valid=is_valid))
        if is_valid:
            valid.add(parse_expiration(exp).isoformat())

    if len(valid) < len(raw_list):
        dropped = [e.date for e in formatted if not e.is_valid]
        logger.debug(f"Dropped {len(dropped)} invalid/expired expirations: {dropped[:10]}")

    return ExpirationListing(expirations=sorted(valid), raw=raw_list, formatted=formatted)


def filter_by_horizon(
    expirations: Sequence[str],
    expiration_filter: str = "all",
    now: Optional[datetime] = None,
    near_term_days: int = SCREENER_NEAR_TERM_DAYS,
) -> List[str]:
    if expiration_filter == "all":
        return list(expirations)

    kept: List[str] = []
    for exp in expirations:
        days = days_from_now(exp, now)
        if days is None:
            continue
        if expiration_filter == "near" and days <= near_term_days:
            kept.append(exp)
        elif expiration_filter == "far" and days > near_term_days:
            kept.append(exp)
    return kept


def select_expirations(
    expirations: Sequence[str],
    max_expirations: int = SCREENER_MAX_EXPIRATIONS,
) -> List[str]:
    """First max_expirations entries in chronological order."""
    return sorted(expirations)[:max(0, max_expirations)]
