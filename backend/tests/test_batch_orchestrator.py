"""
Unit Tests for the Batch Orchestrator
=====================================

Tests:
1. Partial failure: failing symbols never abort the run
2. Result pipeline: price gate, volume gate, minimum matches
3. Ranking by max single-contract volume with deterministic ties
4. Batching: bounded concurrency and inter-batch delay
5. Response shape
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import build_contract, build_quote
from models.options import StockScreeningResult
from models.schemas import ScreeningCriteria
from services.batch_orchestrator import BatchOrchestrator, rank_results
from services.expiration_selector import NY, evaluate_expirations
from services.option_filter import to_filtered_option
from services.tradier_client import QuoteNotFoundError

NOW = datetime(2025, 6, 11, 10, 0, tzinfo=NY)

API_STATS = {
    "totalRequests": 0,
    "elapsedSeconds": 1.0,
    "requestsPerSecond": 0.0,
    "startTime": "2025-06-11T14:00:00+00:00",
    "estimatedDailyUsage": 0,
}


def symbol_index(symbol: str) -> int:
    return int(symbol[1:])


@pytest.fixture
def client():
    """
    Client spy for symbols S1..Sn: $20 stock, one expiration, three matching
    puts whose volumes grow with the symbol number (Sn max volume = n*100 + 2).
    """
    client = MagicMock()
    client.get_quote = AsyncMock(side_effect=lambda symbol: build_quote(symbol, last=20.0))
    client.get_options_expirations_with_debug = AsyncMock(
        return_value=evaluate_expirations(["2025-06-20"], now=NOW)
    )
    client.get_options_chain = AsyncMock(side_effect=lambda symbol, expiration: [
        build_contract(16.0 + i, 0.50, 0.65, volume=symbol_index(symbol) * 100 + i,
                       underlying=symbol, expiration=expiration)
        for i in range(3)
    ])
    client.get_api_stats = MagicMock(return_value=API_STATS)
    client.log_api_stats = MagicMock(return_value=API_STATS)
    return client


def make_orchestrator(client, **kwargs) -> BatchOrchestrator:
    criteria = kwargs.pop("criteria", ScreeningCriteria())
    kwargs.setdefault("batch_delay_seconds", 0)
    return BatchOrchestrator(client, criteria, now=NOW, **kwargs)


def result_with_puts(symbol: str, volumes, **kwargs) -> StockScreeningResult:
    puts = tuple(
        to_filtered_option(build_contract(15.0 + i, 0.50, 0.65, volume=v, underlying=symbol))
        for i, v in enumerate(volumes)
    )
    kwargs.setdefault("price_filter_passed", True)
    kwargs.setdefault("volume_filter_passed", True)
    return StockScreeningResult(
        symbol=symbol,
        success=True,
        best_put_options=puts,
        total_put_options_found=len(puts),
        **kwargs,
    )


class TestPartialFailure:

    @pytest.mark.asyncio
    async def test_two_of_twelve_quotes_fail(self, client):
        symbols = [f"S{i}" for i in range(1, 13)]

        def quote(symbol):
            if symbol in ("S3", "S7"):
                raise QuoteNotFoundError(symbol)
            return build_quote(symbol, last=20.0)

        client.get_quote.side_effect = quote

        run = await make_orchestrator(client).run(symbols)

        assert run.symbols_scanned == 12
        assert len(run.results) == 10
        assert all(r.success for r in run.results)
        assert {r.symbol for r in run.results}.isdisjoint({"S3", "S7"})
        assert run.successful_scans == 10
        assert run.stats.failed_error == 2
        # unevaluated gates are reported as failures, not as gated
        assert run.stocks_filtered_by_price == 0
        assert run.stocks_filtered_by_volume == 0
        assert run.stocks_failed == 2
        assert run.to_dict()["summary"]["stocksFiltered"] == 2

    @pytest.mark.asyncio
    async def test_stray_exception_becomes_failed_result(self, client):
        orchestrator = make_orchestrator(client)
        real_screen = orchestrator.screener.screen

        async def screen(symbol):
            if symbol == "S2":
                raise RuntimeError("unexpected")
            return await real_screen(symbol)

        orchestrator.screener.screen = screen

        run = await orchestrator.run(["S1", "S2", "S3"])

        assert [r.symbol for r in run.results] == ["S3", "S1"]
        assert run.stats.failed_error == 1
        assert run.stats.failed_symbols[0]["symbol"] == "S2"

    @pytest.mark.asyncio
    async def test_all_symbols_fail_is_still_a_valid_run(self, client):
        client.get_quote.side_effect = QuoteNotFoundError("X")

        run = await make_orchestrator(client).run(["S1", "S2"])

        assert run.results == []
        summary = run.to_dict()["summary"]
        assert summary["stocksWithResults"] == 0
        assert summary["stocksFailed"] == 2
        assert summary["stocksFiltered"] == 2
        assert summary["successfulScans"] == 0


class TestResultPipeline:

    @pytest.mark.asyncio
    async def test_gate_counts(self, client):
        def quote(symbol):
            if symbol == "S1":
                return build_quote(symbol, last=75.0)
            if symbol in ("S2", "S3"):
                return build_quote(symbol, last=10.0, average_volume=100)
            return build_quote(symbol, last=20.0)

        client.get_quote.side_effect = quote

        run = await make_orchestrator(client).run(["S1", "S2", "S3", "S4"])

        assert run.stocks_filtered_by_price == 1
        assert run.stocks_filtered_by_volume == 2
        assert [r.symbol for r in run.results] == ["S4"]
        summary = run.to_dict()["summary"]
        assert summary["stocksFiltered"] == 3
        assert summary["stocksFailed"] == 0
        assert summary["successfulScans"] == 1

    @pytest.mark.asyncio
    async def test_single_match_is_dropped(self, client):
        def chain(symbol, expiration):
            count = 1 if symbol == "S1" else 2
            return [build_contract(16.0 + i, 0.50, 0.65, volume=1000 + i, underlying=symbol) for i in range(count)]

        client.get_options_chain.side_effect = chain

        run = await make_orchestrator(client).run(["S1", "S2"])

        assert [r.symbol for r in run.results] == ["S2"]
        assert run.successful_scans == 2
        assert all(len(r.best_put_options) >= 2 for r in run.results)

    @pytest.mark.asyncio
    async def test_requested_side_drives_min_matches(self, client):
        # fixture chains hold puts only
        run = await make_orchestrator(client, criteria=ScreeningCriteria(option_type="calls")).run(["S1", "S2"])

        assert run.results == []
        assert run.successful_scans == 2

    @pytest.mark.asyncio
    async def test_max_results_and_top_performers(self, client):
        symbols = [f"S{i}" for i in range(1, 16)]

        run = await make_orchestrator(
            client, criteria=ScreeningCriteria(max_results=12), top_performers=5
        ).run(symbols)

        assert len(run.results) == 12
        assert run.stocks_with_results == 15
        assert [r.symbol for r in run.top_performers] == ["S15", "S14", "S13", "S12", "S11"]
        # pre-cap totals of every survivor, not just the returned ones
        assert run.total_options_found == 45


class TestRanking:

    @pytest.mark.asyncio
    async def test_results_ordered_by_max_volume(self, client):
        symbols = [f"S{i}" for i in (4, 9, 1, 12, 6)]

        run = await make_orchestrator(client).run(symbols)

        assert [r.symbol for r in run.results] == ["S12", "S9", "S6", "S4", "S1"]
        volumes = [r.max_volume("puts") for r in run.results]
        assert all(a >= b for a, b in zip(volumes, volumes[1:]))

    def test_ties_break_by_symbol(self):
        results = [
            result_with_puts("MSFT", [500, 10]),
            result_with_puts("AAPL", [500, 20]),
            result_with_puts("F", [900, 1]),
        ]

        ranked = rank_results(results, "puts")

        assert [r.symbol for r in ranked] == ["F", "AAPL", "MSFT"]

    def test_both_sides_rank_on_best_contract_of_either(self):
        calls = tuple(
            to_filtered_option(build_contract(25.0 + i, 0.50, 0.65, volume=5000, option_type="call"))
            for i in range(2)
        )
        with_calls = StockScreeningResult(symbol="B", success=True, best_call_options=calls)

        ranked = rank_results([result_with_puts("A", [100, 200]), with_calls], "both")

        assert [r.symbol for r in ranked] == ["B", "A"]

    def test_failures_never_ranked(self):
        failed = StockScreeningResult(symbol="X", success=False, error="No options available")

        assert rank_results([failed], "puts") == []


class TestBatching:

    @pytest.mark.asyncio
    async def test_concurrency_bounded_by_batch_size(self, client):
        in_flight = 0
        peak = 0
        orchestrator = make_orchestrator(client, batch_size=3)

        async def screen(symbol):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return StockScreeningResult(symbol=symbol, success=False, error="No options available",
                                        price_filter_passed=True, volume_filter_passed=True)

        orchestrator.screener.screen = screen

        run = await orchestrator.run([f"S{i}" for i in range(1, 8)])

        assert peak == 3
        assert run.stats.batches == 3
        assert run.stats.no_options == 7

    @pytest.mark.asyncio
    async def test_delay_between_batches_only(self, client):
        orchestrator = make_orchestrator(client, batch_size=3, batch_delay_seconds=0.2)

        with patch("services.batch_orchestrator.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await orchestrator.run([f"S{i}" for i in range(1, 8)])

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.2)

    @pytest.mark.asyncio
    async def test_shared_client_across_batches(self, client):
        await make_orchestrator(client, batch_size=2).run(["S1", "S2", "S3"])

        assert client.get_quote.await_count == 3
        client.log_api_stats.assert_called_once()


class TestResponseShape:

    @pytest.mark.asyncio
    async def test_to_dict(self, client):
        run = await make_orchestrator(client, run_id="screener_test").run(["S1", "S2"])

        data = run.to_dict()

        assert set(data) == {"results", "criteria", "summary", "apiStats", "runStats"}
        assert data["criteria"]["exactSpreads"] == [0.15]
        assert data["criteria"]["symbolsScanned"] == 2
        assert data["summary"]["symbolsScanned"] == 2
        assert data["summary"]["totalOptionsFound"] == 6
        assert data["summary"]["topPerformers"][0]["symbol"] == "S2"
        assert data["results"][0]["bestPutOptions"][0]["volume"] == 202
        assert data["results"][0]["priceFilterPassed"] is True
        assert data["apiStats"] == API_STATS
        assert data["runStats"]["runId"] == "screener_test"
        assert data["runStats"]["completedAt"] is not None
