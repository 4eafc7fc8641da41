"""
Market data records used by the options screener.

Upstream payloads are normalized into these immutable records at the client
boundary (services/tradier_client.py). Everything downstream of the client
works with these types only.

Serialization (to_dict) uses the camelCase keys of the public API.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


def _safe_float(x, default=0.0) -> float:
    try:
        if x is None:
            return default
        if isinstance(x, float) and math.isnan(x):
            return default
        return float(x)
    except (TypeError, ValueError):
        return default


def _safe_int(x, default=0) -> int:
    try:
        if x is None:
            return default
        return int(float(x))
    except (TypeError, ValueError):
        return default


# ==================== QUOTE ====================

@dataclass(frozen=True)
class Quote:
    """Snapshot of an underlying's quote. Fetched fresh for every screening pass."""
    symbol: str
    last: float
    average_volume: int
    bid: float = 0.0
    ask: float = 0.0
    volume: int = 0
    change: float = 0.0
    change_percentage: float = 0.0
    description: str = ""
    exchange: str = ""
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    prevclose: float = 0.0
    week_52_high: float = 0.0
    week_52_low: float = 0.0
    bid_size: int = 0
    ask_size: int = 0
    trade_date: Optional[int] = None  # epoch millis from upstream

    @classmethod
    def from_tradier(cls, payload: Dict[str, Any]) -> "Quote":
        return cls(
            symbol=str(payload.get("symbol") or "").upper(),
            last=_safe_float(payload.get("last")),
            average_volume=_safe_int(payload.get("average_volume")),
            bid=_safe_float(payload.get("bid")),
            ask=_safe_float(payload.get("ask")),
            volume=_safe_int(payload.get("volume")),
            change=_safe_float(payload.get("change")),
            change_percentage=_safe_float(payload.get("change_percentage")),
            description=payload.get("description") or "",
            exchange=payload.get("exch") or "",
            open=_safe_float(payload.get("open")),
            high=_safe_float(payload.get("high")),
            low=_safe_float(payload.get("low")),
            prevclose=_safe_float(payload.get("prevclose")),
            week_52_high=_safe_float(payload.get("week_52_high")),
            week_52_low=_safe_float(payload.get("week_52_low")),
            bid_size=_safe_int(payload.get("bidsize")),
            ask_size=_safe_int(payload.get("asksize")),
            trade_date=_safe_int(payload.get("trade_date"), default=None),
        )

    def to_display_dict(self) -> Dict[str, Any]:
        """Quote shaped for the dashboard. Fundamentals are not part of a basic quote."""
        return {
            "symbol": self.symbol,
            "displayName": self.description,
            "price": self.last,
            "change": self.change,
            "changePercent": self.change_percentage,
            "volume": self.volume,
            "avgVolume": self.average_volume,
            "dayLow": self.low,
            "dayHigh": self.high,
            "previousClose": self.prevclose,
            "open": self.open,
            "fiftyTwoWeekLow": self.week_52_low,
            "fiftyTwoWeekHigh": self.week_52_high,
            "bid": self.bid,
            "ask": self.ask,
            "bidSize": self.bid_size,
            "askSize": self.ask_size,
            "exchange": self.exchange,
            "peRatio": None,
            "marketCap": None,
            "eps": None,
            "dividendYield": None,
            "beta": None,
        }


# ==================== OPTION CONTRACTS ====================

@dataclass(frozen=True)
class OptionContract:
    """Raw contract from an option chain (puts and calls arrive mixed)."""
    symbol: str
    underlying: str
    strike: float
    bid: float
    ask: float
    last: float
    volume: int
    open_interest: int
    expiration_date: str
    option_type: str  # "put" | "call"
    change: float = 0.0
    description: str = ""

    @classmethod
    def from_tradier(cls, payload: Dict[str, Any]) -> "OptionContract":
        return cls(
            symbol=payload.get("symbol") or "",
            underlying=str(payload.get("underlying") or payload.get("root_symbol") or "").upper(),
            strike=_safe_float(payload.get("strike")),
            bid=_safe_float(payload.get("bid")),
            ask=_safe_float(payload.get("ask")),
            last=_safe_float(payload.get("last")),
            volume=_safe_int(payload.get("volume")),
            open_interest=_safe_int(payload.get("open_interest")),
            expiration_date=payload.get("expiration_date") or "",
            option_type=str(payload.get("option_type") or "").lower(),
            change=_safe_float(payload.get("change")),
            description=payload.get("description") or "",
        )


@dataclass(frozen=True)
class FilteredOption:
    """A contract that survived the option filter. bid and ask are always > 0."""
    symbol: str
    description: str
    option_type: str
    strike: float
    bid: float
    ask: float
    bid_ask_spread: float
    volume: int
    open_interest: int
    expiration_date: str
    last_price: float
    change: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "description": self.description,
            "optionType": self.option_type,
            "strike": self.strike,
            "bid": self.bid,
            "ask": self.ask,
            "bidAskSpread": self.bid_ask_spread,
            "volume": self.volume,
            "openInterest": self.open_interest,
            "expirationDate": self.expiration_date,
            "lastPrice": self.last_price,
            "change": self.change,
        }


# ==================== SCREENING RESULT ====================

@dataclass(frozen=True)
class StockScreeningResult:
    """
    Outcome of screening one symbol.

    Gate flags are None when the quote could not be fetched, i.e. the gates
    were never evaluated.
    """
    symbol: str
    success: bool
    error: Optional[str] = None
    stock_price: Optional[float] = None
    average_volume: Optional[int] = None
    expirations: Tuple[str, ...] = ()
    best_put_options: Tuple[FilteredOption, ...] = ()
    best_call_options: Tuple[FilteredOption, ...] = ()
    total_put_options_found: int = 0
    total_call_options_found: int = 0
    price_filter_passed: Optional[bool] = None
    volume_filter_passed: Optional[bool] = None

    def matching_options(self, option_type: str) -> List[FilteredOption]:
        """Contracts on the requested side(s): "puts", "calls" or "both"."""
        options: List[FilteredOption] = []
        if option_type in ("puts", "both"):
            options.extend(self.best_put_options)
        if option_type in ("calls", "both"):
            options.extend(self.best_call_options)
        return options

    def max_volume(self, option_type: str) -> int:
        """Highest single-contract volume on the requested side(s), 0 if none."""
        return max((o.volume for o in self.matching_options(option_type)), default=0)

    def total_found(self, option_type: str) -> int:
        total = 0
        if option_type in ("puts", "both"):
            total += self.total_put_options_found
        if option_type in ("calls", "both"):
            total += self.total_call_options_found
        return total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "success": self.success,
            "error": self.error,
            "stockPrice": self.stock_price,
            "averageVolume": self.average_volume,
            "expirations": list(self.expirations),
            "bestPutOptions": [o.to_dict() for o in self.best_put_options],
            "bestCallOptions": [o.to_dict() for o in self.best_call_options],
            "totalPutOptionsFound": self.total_put_options_found,
            "totalCallOptionsFound": self.total_call_options_found,
            "priceFilterPassed": self.price_filter_passed,
            "volumeFilterPassed": self.volume_filter_passed,
        }


@dataclass
class ExpirationDebugEntry:
    date: str
    days_from_now: Optional[int]
    is_valid: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "daysFromNow": self.days_from_now, "isValid": self.is_valid}


@dataclass
class ExpirationListing:
    """Valid expirations for a symbol plus the raw listing they were derived from."""
    expirations: List[str]
    raw: List[str] = field(default_factory=list)
    formatted: List[ExpirationDebugEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expirations": list(self.expirations),
            "debugInfo": {
                "totalFound": len(self.raw),
                "raw": list(self.raw),
                "formatted": [entry.to_dict() for entry in self.formatted],
            },
        }
