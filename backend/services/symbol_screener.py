"""
Symbol Screener - one symbol in, one StockScreeningResult out
=============================================================

FLOW (sequential, early return):
1. Quote fetch
2. Price / volume gate - BEFORE any chain fetch (primary cost control)
3. Expirations: valid dates only, then horizon filter (all/near/far)
4. Chain fetch + filter per selected expiration, one expiration at a time
   (no fan-out inside a symbol; the batch bound is the only concurrency)
5. Aggregate across expirations: sort by volume, keep the top N per side,
   report pre-cap totals

ERRORS:
- Nothing raises out of screen(). Quote/expiration failures become a
  failed result; a failed expiration is logged by category and skipped.
- Retries already happened inside the client; categories here are for
  operators only.
"""
import logging
from datetime import datetime
from typing import List, Optional

from models.options import FilteredOption, StockScreeningResult
from models.schemas import ScreeningCriteria
from services.expiration_selector import filter_by_horizon, select_expirations
from services.option_filter import filter_options, sort_by_volume
from services.tradier_client import RequestFailedError, TradierClient
from utils.environment import (
    SCREENER_MAX_EXPIRATIONS,
    SCREENER_MAX_OPTIONS_PER_SIDE,
    SCREENER_NEAR_TERM_DAYS,
)

logger = logging.getLogger(__name__)


def categorize_fetch_error(error: Exception) -> str:
    """RATE_LIMITED | NOT_FOUND | SERVER_ERROR | UNKNOWN"""
    if isinstance(error, RequestFailedError):
        if error.is_quota:
            return "RATE_LIMITED"
        if error.status_code == 404:
            return "NOT_FOUND"
        if error.status_code is not None and error.status_code >= 500:
            return "SERVER_ERROR"
    message = str(error)
    if "Quota" in message:
        return "RATE_LIMITED"
    if "404" in message:
        return "NOT_FOUND"
    if "500" in message:
        return "SERVER_ERROR"
    return "UNKNOWN"


class SymbolScreener:
    """Screens single symbols against one run's criteria using a shared client."""

    def __init__(
        self,
        client: TradierClient,
        criteria: ScreeningCriteria,
        max_expirations: int = SCREENER_MAX_EXPIRATIONS,
        max_options_per_side: int = SCREENER_MAX_OPTIONS_PER_SIDE,
        near_term_days: int = SCREENER_NEAR_TERM_DAYS,
        now: Optional[datetime] = None,
    ):
        self.client = client
        self.criteria = criteria
        self.max_expirations = max_expirations
        self.max_options_per_side = max_options_per_side
        self.near_term_days = near_term_days
        self.now = now

    def _filter(self, chain, option_type: str, stock_price: float) -> List[FilteredOption]:
        c = self.criteria
        return filter_options(
            chain,
            option_type,
            stock_price,
            exact_spreads=c.exact_spreads,
            min_bid=c.min_bid,
            min_strike_pct=c.min_strike_pct,
            min_option_volume=c.min_option_volume,
            min_open_interest=c.min_open_interest,
        )

    async def screen(self, symbol: str) -> StockScreeningResult:
        c = self.criteria

        # 1. Quote
        try:
            quote = await self.client.get_quote(symbol)
        except Exception as e:
            logger.warning(f"SYMBOL_QUOTE_FAILED | symbol={symbol} | error={e}")
            return StockScreeningResult(symbol=symbol, success=False, error=str(e))

        stock_price = quote.last
        average_volume = quote.average_volume

        # 2. Gates
        price_ok = not c.max_stock_price or stock_price <= c.max_stock_price
        volume_ok = not c.min_average_volume or average_volume >= c.min_average_volume

        if not price_ok or not volume_ok:
            if not price_ok:
                error = f"Stock price ${stock_price:.2f} exceeds maximum ${c.max_stock_price:.2f}"
            else:
                error = f"Average volume {average_volume:,} below minimum {c.min_average_volume:,}"
            logger.debug(f"{symbol} gated out: {error}")
            return StockScreeningResult(
                symbol=symbol,
                success=False,
                error=error,
                stock_price=stock_price,
                average_volume=average_volume,
                price_filter_passed=price_ok,
                volume_filter_passed=volume_ok,
            )

        gated = dict(
            symbol=symbol,
            stock_price=stock_price,
            average_volume=average_volume,
            price_filter_passed=True,
            volume_filter_passed=True,
        )

        # 3. Expirations
        try:
            listing = await self.client.get_options_expirations_with_debug(symbol, now=self.now)
        except Exception as e:
            logger.warning(f"SYMBOL_EXPIRATIONS_FAILED | symbol={symbol} | error={e}")
            return StockScreeningResult(success=False, error=str(e), **gated)

        all_expirations = listing.expirations
        logger.debug(f"{symbol}: found {len(all_expirations)} valid expirations")

        if not all_expirations:
            return StockScreeningResult(success=False, error="No options available", **gated)

        in_horizon = filter_by_horizon(
            all_expirations, c.expiration_filter, now=self.now, near_term_days=self.near_term_days
        )
        if not in_horizon:
            return StockScreeningResult(
                success=False,
                error=f"No expirations match {c.expiration_filter} filter",
                expirations=tuple(all_expirations),
                **gated,
            )

        to_check = select_expirations(in_horizon, self.max_expirations)
        logger.debug(f"{symbol}: checking {len(to_check)} expirations: {', '.join(to_check)}")

        # 4. Chains, one expiration at a time
        all_puts: List[FilteredOption] = []
        all_calls: List[FilteredOption] = []

        for expiration in to_check:
            try:
                chain = await self.client.get_options_chain(symbol, expiration)
            except Exception as e:
                category = categorize_fetch_error(e)
                logger.warning(
                    f"EXPIRATION_FETCH_FAILED | symbol={symbol} | expiration={expiration} | "
                    f"category={category} | error={e}"
                )
                continue

            if c.wants_puts:
                puts = self._filter(chain, "put", stock_price)
                all_puts.extend(puts)
                logger.debug(f"   {symbol} {expiration}: {len(puts)} matching puts")
            if c.wants_calls:
                calls = self._filter(chain, "call", stock_price)
                all_calls.extend(calls)
                logger.debug(f"   {symbol} {expiration}: {len(calls)} matching calls")

        # 5. Aggregate
        best_puts = sort_by_volume(all_puts)[:self.max_options_per_side]
        best_calls = sort_by_volume(all_calls)[:self.max_options_per_side]

        logger.debug(
            f"{symbol}: final {len(best_puts)} puts, {len(best_calls)} calls "
            f"from {len(all_expirations)} expirations"
        )

        return StockScreeningResult(
            success=True,
            expirations=tuple(all_expirations),
            best_put_options=tuple(best_puts),
            best_call_options=tuple(best_calls),
            total_put_options_found=len(all_puts),
            total_call_options_found=len(all_calls),
            **gated,
        )
