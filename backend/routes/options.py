"""
Options Routes - single-symbol options lookups
==============================================

GET /api/options/{symbol}?action=...

ACTIONS:
- expirations        valid (non-expired) expirations, ascending
- debug-expirations  same, plus the raw upstream listing and per-date validity
- filtered-puts      puts of one expiration matching the spread criteria
- filtered-calls     calls of one expiration matching the spread criteria
- quote              dashboard-formatted quote

filtered-* require `expiration` and accept `exactSpreads` (comma list),
`minBid` and `strikeRange`. The quote is fetched first so the strike filter
works against the live price.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from models.schemas import STRIKE_RANGE_MIN_PCT
from services.tradier_client import TradierClient, TradierError, get_tradier_client

logger = logging.getLogger(__name__)

options_router = APIRouter(tags=["Options"])

SUPPORTED_ACTIONS = ("expirations", "filtered-puts", "filtered-calls", "debug-expirations", "quote")


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _parse_spreads(raw: str) -> List[float]:
    spreads = [round(float(s.strip()), 2) for s in raw.split(",") if s.strip()]
    if not spreads or any(s <= 0 for s in spreads):
        raise ValueError("exactSpreads must be a comma separated list of positive numbers")
    return spreads


@options_router.get("/{symbol}")
async def get_symbol_options(
    symbol: str,
    action: Optional[str] = Query(None),
    expiration: Optional[str] = Query(None),
    exact_spreads: str = Query("0.15", alias="exactSpreads"),
    min_bid: float = Query(0.05, alias="minBid"),
    strike_range: str = Query("moderate", alias="strikeRange"),
    client: TradierClient = Depends(get_tradier_client),
):
    symbol = symbol.strip().upper()

    if action not in SUPPORTED_ACTIONS:
        return _error_response(400, f"Invalid action. Supported actions: {', '.join(SUPPORTED_ACTIONS)}")

    try:
        if action == "expirations":
            expirations = await client.get_options_expirations(symbol)
            return {"success": True, "data": {"symbol": symbol, "expirations": expirations}}

        if action == "debug-expirations":
            listing = await client.get_options_expirations_with_debug(symbol)
            return {"success": True, "data": {"symbol": symbol, **listing.to_dict()}}

        if action == "quote":
            quote = await client.get_quote(symbol)
            return {"success": True, "data": quote.to_display_dict()}
    except TradierError as e:
        logger.error(f"Error fetching {action} for {symbol}: {e}")
        return _error_response(500, str(e))

    # filtered-puts / filtered-calls
    if not expiration:
        return _error_response(400, "Expiration date is required")
    if strike_range not in STRIKE_RANGE_MIN_PCT:
        return _error_response(400, f"strikeRange must be one of {', '.join(STRIKE_RANGE_MIN_PCT)}")
    try:
        spreads = _parse_spreads(exact_spreads)
    except ValueError as e:
        return _error_response(400, str(e))

    fetch = client.get_filtered_put_options if action == "filtered-puts" else client.get_filtered_call_options
    key = "putOptions" if action == "filtered-puts" else "callOptions"

    try:
        quote = await client.get_quote(symbol)
        options = await fetch(
            symbol,
            expiration,
            exact_spreads=spreads,
            min_bid=min_bid,
            current_stock_price=quote.last,
            strike_range=strike_range,
        )
    except TradierError as e:
        logger.error(f"Error fetching {action} for {symbol}: {e}")
        return _error_response(500, str(e))

    return {
        "success": True,
        "data": {
            "symbol": symbol,
            "expiration": expiration,
            "stockPrice": quote.last,
            "criteria": {"exactSpreads": spreads, "minBid": min_bid, "strikeRange": strike_range},
            key: [o.to_dict() for o in options],
            "count": len(options),
        },
    }
