"""
Batch Orchestrator - screens a whole symbol universe
====================================================

- Fixed-size batches (SCREENER_BATCH_SIZE, default 6) screened concurrently
  with asyncio.gather; batch N+1 starts only after batch N settled
- SCREENER_BATCH_DELAY_SECONDS pause between batches (not after the last)
- Partial success: a failing symbol never aborts the run
- One TradierClient shared by the whole run (request stats are per run)

RESULT PIPELINE (fixed order):
1. drop price_filter_passed == False
2. drop volume_filter_passed == False
3. keep success and >= SCREENER_MIN_MATCHES contracts on the requested side(s)
4. rank by highest single-contract volume on the requested side(s)
   (max volume desc, symbol asc), cap to max_results
"""
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from models.options import StockScreeningResult
from models.schemas import ScreeningCriteria
from services.symbol_screener import SymbolScreener
from services.tradier_client import TradierClient
from utils.environment import (
    SCREENER_BATCH_DELAY_SECONDS,
    SCREENER_BATCH_SIZE,
    SCREENER_MAX_EXPIRATIONS,
    SCREENER_MAX_OPTIONS_PER_SIDE,
    SCREENER_MIN_MATCHES,
    SCREENER_NEAR_TERM_DAYS,
    SCREENER_TOP_PERFORMERS,
)

logger = logging.getLogger(__name__)

# quote + expirations + ~2 chains per symbol
ESTIMATED_REQUESTS_PER_SYMBOL = 4
HIGH_USAGE_WARNING_THRESHOLD = 2000
PROGRESS_LOG_EVERY_BATCHES = 5


@dataclass
class ScreeningStats:
    """Aggregated statistics for a screening run."""
    run_id: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    total_symbols: int = 0
    batches: int = 0
    successful: int = 0
    failed_error: int = 0
    gated_price: int = 0
    gated_volume: int = 0
    no_options: int = 0

    total_duration_seconds: float = 0.0
    failed_symbols: List[Dict[str, str]] = field(default_factory=list)

    def record(self, result: StockScreeningResult) -> None:
        if result.success:
            self.successful += 1
        elif result.price_filter_passed is False:
            self.gated_price += 1
        elif result.volume_filter_passed is False:
            self.gated_volume += 1
        elif result.price_filter_passed is None:
            self.failed_error += 1
            self.failed_symbols.append({"symbol": result.symbol, "reason": f"ERROR: {(result.error or '')[:100]}"})
        else:
            self.no_options += 1

    def complete(self) -> None:
        """Mark the run as complete and calculate final stats."""
        self.completed_at = datetime.now(timezone.utc)
        self.total_duration_seconds = (self.completed_at - self.started_at).total_seconds()

    def log_summary(self) -> None:
        success_rate = (self.successful / self.total_symbols * 100) if self.total_symbols > 0 else 0
        logger.info(
            f"SCREENER_STATS | run_id={self.run_id} | total={self.total_symbols} | "
            f"success={self.successful} ({success_rate:.1f}%) | price_gated={self.gated_price} | "
            f"volume_gated={self.gated_volume} | no_options={self.no_options} | "
            f"error={self.failed_error} | duration={self.total_duration_seconds:.1f}s"
        )
        if self.failed_symbols:
            logger.warning(
                f"SCREENER_FAILURES | run_id={self.run_id} | failed_symbols (first 5): {self.failed_symbols[:5]}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "totalSymbols": self.total_symbols,
            "batches": self.batches,
            "successful": self.successful,
            "failedError": self.failed_error,
            "gatedPrice": self.gated_price,
            "gatedVolume": self.gated_volume,
            "noOptions": self.no_options,
            "totalDurationSeconds": round(self.total_duration_seconds, 2),
            "failedSymbols": self.failed_symbols[:20],
        }


@dataclass
class ScreeningRun:
    """One run's ranked output. Transient, never persisted."""
    criteria: ScreeningCriteria
    results: List[StockScreeningResult]
    symbols_scanned: int
    successful_scans: int
    total_options_found: int
    stocks_with_results: int
    stocks_filtered_by_price: int
    stocks_filtered_by_volume: int
    stocks_failed: int
    top_performers: List[StockScreeningResult]
    stats: ScreeningStats
    api_stats: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        criteria = self.criteria.to_dict()
        criteria.update({
            "symbolsScanned": self.symbols_scanned,
            "successfulScans": self.successful_scans,
        })
        return {
            "results": [r.to_dict() for r in self.results],
            "criteria": criteria,
            "summary": {
                "symbolsScanned": self.symbols_scanned,
                "successfulScans": self.successful_scans,
                "totalOptionsFound": self.total_options_found,
                "stocksWithResults": self.stocks_with_results,
                "stocksFiltered": self.stocks_filtered_by_price + self.stocks_filtered_by_volume + self.stocks_failed,
                "stocksFilteredByPrice": self.stocks_filtered_by_price,
                "stocksFilteredByVolume": self.stocks_filtered_by_volume,
                "stocksFailed": self.stocks_failed,
                "topPerformers": [r.to_dict() for r in self.top_performers],
            },
            "apiStats": self.api_stats,
            "runStats": self.stats.to_dict(),
        }


def rank_results(
    results: Sequence[StockScreeningResult],
    option_type: str,
    min_matches: int = SCREENER_MIN_MATCHES,
) -> List[StockScreeningResult]:
    """Keep successful results with enough matches, best single-contract volume first."""
    def has_enough_matches(result: StockScreeningResult) -> bool:
        if not result.success:
            return False
        if option_type == "puts":
            return len(result.best_put_options) >= min_matches
        if option_type == "calls":
            return len(result.best_call_options) >= min_matches
        return len(result.best_put_options) >= min_matches or len(result.best_call_options) >= min_matches

    eligible = [r for r in results if has_enough_matches(r)]
    return sorted(eligible, key=lambda r: (-r.max_volume(option_type), r.symbol))


class BatchOrchestrator:
    """
    Drives SymbolScreener over a universe in rate-limit friendly batches.

    Usage:
        async with TradierClient() as client:
            run = await BatchOrchestrator(client, criteria).run(symbols)
    """

    def __init__(
        self,
        client: TradierClient,
        criteria: ScreeningCriteria,
        batch_size: int = SCREENER_BATCH_SIZE,
        batch_delay_seconds: float = SCREENER_BATCH_DELAY_SECONDS,
        max_expirations: int = SCREENER_MAX_EXPIRATIONS,
        max_options_per_side: int = SCREENER_MAX_OPTIONS_PER_SIDE,
        min_matches: int = SCREENER_MIN_MATCHES,
        top_performers: int = SCREENER_TOP_PERFORMERS,
        near_term_days: int = SCREENER_NEAR_TERM_DAYS,
        now: Optional[datetime] = None,
        run_id: str = None,
    ):
        self.client = client
        self.criteria = criteria
        self.batch_size = max(1, batch_size)
        self.batch_delay_seconds = batch_delay_seconds
        self.min_matches = min_matches
        self.top_performers = top_performers
        self.run_id = run_id or f"screener_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"
        self.screener = SymbolScreener(
            client,
            criteria,
            max_expirations=max_expirations,
            max_options_per_side=max_options_per_side,
            near_term_days=near_term_days,
            now=now,
        )

    async def _screen_batch(self, batch: List[str]) -> List[StockScreeningResult]:
        outcomes = await asyncio.gather(*(self.screener.screen(s) for s in batch), return_exceptions=True)

        results: List[StockScreeningResult] = []
        for symbol, outcome in zip(batch, outcomes):
            if isinstance(outcome, StockScreeningResult):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                logger.error(f"Unexpected exception screening {symbol}: {outcome}")
                results.append(StockScreeningResult(symbol=symbol, success=False, error=str(outcome)))
        return results

    async def run(self, symbols: Sequence[str]) -> ScreeningRun:
        c = self.criteria
        symbols = list(symbols)
        stats = ScreeningStats(run_id=self.run_id, total_symbols=len(symbols))

        estimated = len(symbols) * ESTIMATED_REQUESTS_PER_SYMBOL
        logger.info(f"SCREENER_ESTIMATE | run_id={self.run_id} | estimated_requests=~{estimated}")
        if estimated > HIGH_USAGE_WARNING_THRESHOLD:
            logger.warning(
                f"High API usage estimated: {estimated} requests. "
                f"Consider reducing stock count or running in smaller batches."
            )
        logger.info(
            f"SCREENER_START | run_id={self.run_id} | symbols={len(symbols)} | type={c.option_type} | "
            f"spreads={list(c.exact_spreads)} | min_bid={c.min_bid} | strike={c.strike_range} | "
            f"expirations={c.expiration_filter} | max_price={c.max_stock_price} | "
            f"min_avg_volume={c.min_average_volume} | batch_size={self.batch_size}"
        )

        results: List[StockScreeningResult] = []
        total_batches = (len(symbols) + self.batch_size - 1) // self.batch_size
        start = time.time()

        for i in range(0, len(symbols), self.batch_size):
            batch = symbols[i:i + self.batch_size]
            batch_number = i // self.batch_size + 1
            logger.debug(f"SCREENER_BATCH | {batch_number}/{total_batches} | {', '.join(batch)}")

            batch_results = await self._screen_batch(batch)
            for result in batch_results:
                stats.record(result)
            results.extend(batch_results)
            stats.batches = batch_number

            if batch_number % PROGRESS_LOG_EVERY_BATCHES == 0 or batch_number == total_batches:
                processed = min(i + self.batch_size, len(symbols))
                api = self.client.get_api_stats()
                logger.info(
                    f"SCREENER_PROGRESS | {processed}/{len(symbols)} "
                    f"({round(processed / len(symbols) * 100)}%) | requests={api['totalRequests']} | "
                    f"rate={api['requestsPerSecond']:.1f} req/sec | elapsed={time.time() - start:.1f}s"
                )

            # Inter-batch delay to respect rate limits
            if i + self.batch_size < len(symbols):
                await asyncio.sleep(self.batch_delay_seconds)

        api_stats = self.client.log_api_stats()
        stats.complete()
        stats.log_summary()

        price_passed = [r for r in results if r.price_filter_passed is not False]
        volume_passed = [r for r in price_passed if r.volume_filter_passed is not False]
        ranked = rank_results(volume_passed, c.option_type, self.min_matches)

        filtered_by_price = len(results) - len(price_passed)
        filtered_by_volume = len(price_passed) - len(volume_passed)
        # quote never fetched: gates not evaluated
        failed = sum(1 for r in results if not r.success and r.price_filter_passed is None)
        total_options_found = sum(r.total_found(c.option_type) for r in ranked)
        capped = ranked[:c.max_results]

        logger.info(
            f"SCREENER_COMPLETE | run_id={self.run_id} | with_results={len(ranked)}/{len(symbols)} | "
            f"returned={len(capped)} | options_found={total_options_found}"
        )
        logger.info(
            f"SCREENER_FILTERED | run_id={self.run_id} | by_price={filtered_by_price} | "
            f"by_volume={filtered_by_volume} | failed={failed}"
        )

        return ScreeningRun(
            criteria=c,
            results=capped,
            symbols_scanned=len(symbols),
            successful_scans=sum(1 for r in volume_passed if r.success),
            total_options_found=total_options_found,
            stocks_with_results=len(ranked),
            stocks_filtered_by_price=filtered_by_price,
            stocks_filtered_by_volume=filtered_by_volume,
            stocks_failed=failed,
            top_performers=capped[:self.top_performers],
            stats=stats,
            api_stats=api_stats,
        )
