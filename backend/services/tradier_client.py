"""
Tradier Client - Quote / Expiration / Chain access for the screener
===================================================================

Wraps the Tradier market-data REST API:
- GET /markets/quotes                 -> Quote
- GET /markets/options/expirations    -> valid, sorted expiration dates
- GET /markets/options/chains         -> OptionContract list (puts + calls mixed)

RETRY POLICY (every request):
- Up to TRADIER_MAX_RETRIES attempts
- Quota / rate-limit responses (429, or 400 mentioning "quota"):
  wait TRADIER_QUOTA_BACKOFF_SECONDS * attempt
- Any other failure (HTTP error status, transport error, bad JSON):
  wait TRADIER_RETRY_BACKOFF_SECONDS * attempt
- After the last attempt: RequestFailedError with the last status/message

REQUEST STATS:
One client instance is shared by every task of a screening run. The counters
(total_requests, start_time) are advisory throughput numbers only and are
never used for rate-limit decisions. Increments happen on the event loop
thread; a threaded caller must add a lock around them.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import httpx

from models.options import ExpirationListing, FilteredOption, OptionContract, Quote
from models.schemas import STRIKE_RANGE_MIN_PCT
from services.expiration_selector import evaluate_expirations
from services.option_filter import filter_options
from utils.environment import (
    TRADIER_BASE_URL,
    TRADIER_MAX_RETRIES,
    TRADIER_QUOTA_BACKOFF_SECONDS,
    TRADIER_RETRY_BACKOFF_SECONDS,
    TRADIER_TIMEOUT_SECONDS,
    get_tradier_api_key,
)

logger = logging.getLogger(__name__)

STATS_LOG_INTERVAL = 50


# ==================== ERRORS ====================

class TradierError(Exception):
    """Base class for upstream market-data errors."""


class TradierConfigError(TradierError):
    """Raised when the client cannot be configured (e.g. no API key)."""


class QuoteNotFoundError(TradierError):
    """Raised when the quote response carries no quote for the symbol."""
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"No quote data found for symbol: {symbol}")


class RequestFailedError(TradierError):
    """Raised when a request still fails after the retry budget is spent."""
    def __init__(self, status_code: Optional[int], message: str, endpoint: str = None):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)

    @property
    def is_quota(self) -> bool:
        return self.status_code == 429 or "quota" in str(self).lower()


def _as_list(value: Any) -> List[Any]:
    """Tradier collapses single-element arrays into a bare object."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


# ==================== CLIENT ====================

class TradierClient:
    """
    Async Tradier client.

    Usage:
        async with TradierClient() as client:
            quote = await client.get_quote("F")
            listing = await client.get_options_expirations_with_debug("F")
            chain = await client.get_options_chain("F", listing.expirations[0])
    """

    def __init__(
        self,
        api_key: str = None,
        base_url: str = TRADIER_BASE_URL,
        max_retries: int = TRADIER_MAX_RETRIES,
        retry_backoff_seconds: float = TRADIER_RETRY_BACKOFF_SECONDS,
        quota_backoff_seconds: float = TRADIER_QUOTA_BACKOFF_SECONDS,
        timeout_seconds: float = TRADIER_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or get_tradier_api_key()
        if not self.api_key:
            raise TradierConfigError("TRADIER_API_KEY environment variable is required")

        self.base_url = base_url.rstrip("/")
        self.max_retries = max(1, max_retries)
        self.retry_backoff_seconds = retry_backoff_seconds
        self.quota_backoff_seconds = quota_backoff_seconds

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds, connect=10.0)
        )

        self.total_requests = 0
        self.start_time = time.time()

    async def __aenter__(self) -> "TradierClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---------------------------------------------------------------------
    # Stats
    # ---------------------------------------------------------------------

    def get_api_stats(self) -> Dict[str, Any]:
        elapsed = max(time.time() - self.start_time, 1e-6)
        rate = self.total_requests / elapsed
        return {
            "totalRequests": self.total_requests,
            "elapsedSeconds": round(elapsed, 3),
            "requestsPerSecond": round(rate, 3),
            "startTime": datetime.fromtimestamp(self.start_time, tz=timezone.utc).isoformat(),
            "estimatedDailyUsage": round(rate * 86400),
        }

    def reset_api_stats(self) -> None:
        self.total_requests = 0
        self.start_time = time.time()
        logger.info("TRADIER_STATS | reset")

    def log_api_stats(self) -> Dict[str, Any]:
        stats = self.get_api_stats()
        logger.info(
            f"TRADIER_STATS | requests={stats['totalRequests']} | "
            f"elapsed={stats['elapsedSeconds']:.0f}s | rate={stats['requestsPerSecond']:.1f} req/sec"
        )
        return stats

    def _track_request(self) -> None:
        self.total_requests += 1
        if self.total_requests % STATS_LOG_INTERVAL == 0:
            self.log_api_stats()

    # ---------------------------------------------------------------------
    # HTTP
    # ---------------------------------------------------------------------

    @staticmethod
    def _is_quota_response(response: httpx.Response) -> bool:
        if response.status_code == 429:
            return True
        if response.status_code != 400:
            return False
        text = f"{response.reason_phrase} {response.text[:200]}"
        return "quota" in text.lower()

    async def _request(self, endpoint: str, params: Dict[str, str] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        logger.debug(f"Tradier API: {url} params={params}")
        self._track_request()

        last_error: Optional[RequestFailedError] = None

        for attempt in range(1, self.max_retries + 1):
            wait_time = self.retry_backoff_seconds * attempt
            try:
                response = await self._client.get(url, params=params, headers=headers)
            except httpx.HTTPError as e:
                last_error = RequestFailedError(None, f"Tradier request failed: {type(e).__name__}: {e}", endpoint)
            else:
                if self._is_quota_response(response):
                    wait_time = self.quota_backoff_seconds * attempt
                    last_error = RequestFailedError(
                        response.status_code,
                        f"Tradier API error: {response.status_code} Quota violation",
                        endpoint,
                    )
                    logger.warning(f"TRADIER_QUOTA | endpoint={endpoint} | attempt={attempt}/{self.max_retries}")
                elif response.is_error:
                    last_error = RequestFailedError(
                        response.status_code,
                        f"Tradier API error: {response.status_code} {response.reason_phrase}",
                        endpoint,
                    )
                else:
                    try:
                        payload = response.json()
                    except ValueError:
                        last_error = RequestFailedError(
                            response.status_code, f"Tradier response from {endpoint} was not valid JSON", endpoint
                        )
                    else:
                        return payload if isinstance(payload, dict) else {}

            if attempt < self.max_retries:
                logger.warning(
                    f"TRADIER_RETRY | endpoint={endpoint} | attempt={attempt}/{self.max_retries} | "
                    f"error={last_error} | wait={wait_time}s"
                )
                await asyncio.sleep(wait_time)

        raise last_error

    # ---------------------------------------------------------------------
    # Quotes
    # ---------------------------------------------------------------------

    async def get_quote(self, symbol: str) -> Quote:
        payload = await self._request("/markets/quotes", {"symbols": symbol.upper()})
        quotes = payload.get("quotes")
        if not isinstance(quotes, dict):
            raise QuoteNotFoundError(symbol)

        candidates = [q for q in _as_list(quotes.get("quote")) if isinstance(q, dict)]
        if not candidates:
            raise QuoteNotFoundError(symbol)
        return Quote.from_tradier(candidates[0])

    # ---------------------------------------------------------------------
    # Expirations
    # ---------------------------------------------------------------------

    async def get_options_expirations_with_debug(self, symbol: str, now: datetime = None) -> ExpirationListing:
        logger.debug(f"Fetching expirations for {symbol}")
        payload = await self._request("/markets/options/expirations", {"symbol": symbol.upper()})

        expirations = payload.get("expirations")
        raw = _as_list(expirations.get("date")) if isinstance(expirations, dict) else []
        listing = evaluate_expirations(raw, now=now)

        logger.debug(
            f"{symbol} expirations | from_api={len(listing.raw)} | valid={len(listing.expirations)}"
        )
        return listing

    async def get_options_expirations(self, symbol: str, now: datetime = None) -> List[str]:
        listing = await self.get_options_expirations_with_debug(symbol, now=now)
        return listing.expirations

    # ---------------------------------------------------------------------
    # Chains
    # ---------------------------------------------------------------------

    async def get_options_chain(self, symbol: str, expiration: str) -> List[OptionContract]:
        payload = await self._request(
            "/markets/options/chains",
            {"symbol": symbol.upper(), "expiration": expiration},
        )
        options = payload.get("options")
        if not isinstance(options, dict):
            return []
        return [OptionContract.from_tradier(o) for o in _as_list(options.get("option")) if isinstance(o, dict)]

    async def _get_filtered_options(
        self,
        option_type: str,
        symbol: str,
        expiration: str,
        exact_spreads: Sequence[float],
        min_bid: float,
        current_stock_price: Optional[float],
        strike_range: str,
        min_option_volume: int,
        min_open_interest: int,
    ) -> List[FilteredOption]:
        stock_price = current_stock_price
        if stock_price is None:
            quote = await self.get_quote(symbol)
            stock_price = quote.last

        chain = await self.get_options_chain(symbol, expiration)

        return filter_options(
            chain,
            option_type,
            stock_price,
            exact_spreads=exact_spreads,
            min_bid=min_bid,
            min_strike_pct=STRIKE_RANGE_MIN_PCT[strike_range],
            min_option_volume=min_option_volume,
            min_open_interest=min_open_interest,
        )

    async def get_filtered_put_options(
        self,
        symbol: str,
        expiration: str,
        exact_spreads: Sequence[float] = (0.15,),
        min_bid: float = 0.05,
        current_stock_price: float = None,
        strike_range: str = "moderate",
        min_option_volume: int = 0,
        min_open_interest: int = 0,
    ) -> List[FilteredOption]:
        """Puts of one expiration matching the criteria, fetching the quote if no price is given."""
        return await self._get_filtered_options(
            "put", symbol, expiration, exact_spreads, min_bid,
            current_stock_price, strike_range, min_option_volume, min_open_interest,
        )

    async def get_filtered_call_options(
        self,
        symbol: str,
        expiration: str,
        exact_spreads: Sequence[float] = (0.15,),
        min_bid: float = 0.05,
        current_stock_price: float = None,
        strike_range: str = "moderate",
        min_option_volume: int = 0,
        min_open_interest: int = 0,
    ) -> List[FilteredOption]:
        """Calls of one expiration matching the criteria, fetching the quote if no price is given."""
        return await self._get_filtered_options(
            "call", symbol, expiration, exact_spreads, min_bid,
            current_stock_price, strike_range, min_option_volume, min_open_interest,
        )


async def get_tradier_client() -> AsyncIterator[TradierClient]:
    """
    Route dependency: one client (and one request-stats window) per HTTP request.

    TradierConfigError propagates to the app-level TradierError handler.
    """
    client = TradierClient()
    try:
        yield client
    finally:
        await client.aclose()
