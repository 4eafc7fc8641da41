"""
Pydantic models/schemas for the screener API, and the screening criteria record.

The request body uses camelCase keys. Every option has a default, and
ScreenerRequest.to_criteria() is the single path that turns a request into
the immutable ScreeningCriteria consumed by the services.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from data.screener_universe import SECTOR_UNIVERSES, resolve_price_ceiling

StrikeRange = Literal["tight", "moderate", "wide", "extended"]
OptionTypeSelection = Literal["puts", "calls", "both"]
ExpirationFilter = Literal["all", "near", "far"]
PriceFilter = Literal["all", "under50", "under25", "verified50"]

# Minimum distance of the strike from the stock price, in percent
STRIKE_RANGE_MIN_PCT: Dict[str, float] = {
    "tight": 1.0,
    "moderate": 3.0,
    "wide": 5.0,
    "extended": 10.0,
}


class MalformedRequestError(ValueError):
    """The screening request is missing or has invalid criteria. Aborts the whole run."""


# ==================== SCREENING CRITERIA ====================

@dataclass(frozen=True)
class ScreeningCriteria:
    exact_spreads: Tuple[float, ...] = (0.15,)
    min_bid: float = 0.05
    max_results: int = 75
    expiration_filter: str = "all"
    price_filter: str = "under50"
    max_stock_price: Optional[float] = 50.0
    min_average_volume: int = 1_000_000
    option_type: str = "puts"
    strike_range: str = "moderate"
    min_option_volume: int = 0
    min_open_interest: int = 0
    sector: str = "all"

    @property
    def min_strike_pct(self) -> float:
        return STRIKE_RANGE_MIN_PCT[self.strike_range]

    @property
    def wants_puts(self) -> bool:
        return self.option_type in ("puts", "both")

    @property
    def wants_calls(self) -> bool:
        return self.option_type in ("calls", "both")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "exactSpreads": list(data["exact_spreads"]),
            "minBid": data["min_bid"],
            "maxResults": data["max_results"],
            "expirationFilter": data["expiration_filter"],
            "priceFilter": data["price_filter"],
            "maxStockPrice": data["max_stock_price"],
            "minAverageVolume": data["min_average_volume"],
            "optionType": data["option_type"],
            "strikeRange": data["strike_range"],
            "minOptionVolume": data["min_option_volume"],
            "minOpenInterest": data["min_open_interest"],
            "sector": data["sector"],
        }


# ==================== REQUEST MODELS ====================

class ScreenerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbols: Optional[List[str]] = None
    exact_spreads: List[float] = Field(default_factory=lambda: [0.15], alias="exactSpreads")
    min_bid: float = Field(0.05, alias="minBid")
    max_results: int = Field(75, alias="maxResults")
    expiration_filter: ExpirationFilter = Field("all", alias="expirationFilter")
    price_filter: PriceFilter = Field("under50", alias="priceFilter")
    max_stock_price: Optional[float] = Field(None, alias="maxStockPrice")
    min_average_volume: int = Field(1_000_000, alias="minAverageVolume")
    option_type: OptionTypeSelection = Field("puts", alias="optionType")
    strike_range: StrikeRange = Field("moderate", alias="strikeRange")
    min_option_volume: Optional[int] = Field(None, alias="minOptionVolume")
    min_open_interest: Optional[int] = Field(None, alias="minOpenInterest")
    sector: str = "all"

    def to_criteria(self) -> ScreeningCriteria:
        """
        Validate the request and build the immutable criteria for a run.

        Raises:
            MalformedRequestError: empty or non-positive spreads, negative bid,
                non-positive maxResults or maxStockPrice, negative floors,
                unknown sector
        """
        if not self.exact_spreads:
            raise MalformedRequestError("exactSpreads must contain at least one spread value")
        if any(spread <= 0 for spread in self.exact_spreads):
            raise MalformedRequestError("exactSpreads values must be positive")
        if self.min_bid < 0:
            raise MalformedRequestError("minBid must be non-negative")
        if self.max_results <= 0:
            raise MalformedRequestError("maxResults must be positive")
        if self.max_stock_price is not None and self.max_stock_price <= 0:
            raise MalformedRequestError("maxStockPrice must be positive")
        if self.min_average_volume < 0:
            raise MalformedRequestError("minAverageVolume must be non-negative")
        if (self.min_option_volume or 0) < 0 or (self.min_open_interest or 0) < 0:
            raise MalformedRequestError("minOptionVolume and minOpenInterest must be non-negative")
        sector = self.sector.lower()
        if sector != "all" and sector not in SECTOR_UNIVERSES:
            available = ", ".join(["all"] + sorted(SECTOR_UNIVERSES))
            raise MalformedRequestError(f"Unknown sector '{self.sector}'. Available: {available}")

        return ScreeningCriteria(
            exact_spreads=tuple(dict.fromkeys(round(s, 2) for s in self.exact_spreads)),
            min_bid=self.min_bid,
            max_results=self.max_results,
            expiration_filter=self.expiration_filter,
            price_filter=self.price_filter,
            max_stock_price=resolve_price_ceiling(self.price_filter, self.max_stock_price),
            min_average_volume=self.min_average_volume,
            option_type=self.option_type,
            strike_range=self.strike_range,
            min_option_volume=self.min_option_volume or 0,
            min_open_interest=self.min_open_interest or 0,
            sector=sector,
        )
