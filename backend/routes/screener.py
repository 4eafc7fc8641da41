"""
Screener Routes - bid/ask spread options screener
=================================================

POST /api/options/screener
    Body: ScreenerRequest (camelCase, every field optional)
    200: {"success": true, "data": {results, criteria, summary, apiStats, runStats}}
    400: {"success": false, "error": ...}  malformed criteria (e.g. empty exactSpreads)
    422: pydantic validation (wrong types, unknown enum values)
    500: {"success": false, "error": ...}  missing credentials / unexpected failure

GET /api/options/screener/config
    Current tunables (no secrets).

Individual symbol failures never fail the request; they show up only in the
summary counters and the (possibly empty) results array.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from data.screener_universe import resolve_universe
from models.schemas import MalformedRequestError, ScreenerRequest
from services.batch_orchestrator import BatchOrchestrator
from services.tradier_client import TradierClient, get_tradier_client
from utils.environment import get_screener_config

logger = logging.getLogger(__name__)

screener_router = APIRouter(tags=["Screener"])


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@screener_router.post("")
async def run_options_screener(
    request: ScreenerRequest,
    client: TradierClient = Depends(get_tradier_client),
):
    """Screen the requested universe and return the ranked results."""
    try:
        criteria = request.to_criteria()
    except MalformedRequestError as e:
        logger.warning(f"Rejected screener request: {e}")
        return _error_response(400, str(e))

    symbols = resolve_universe(request.symbols, criteria.price_filter, criteria.sector)
    logger.info(
        f"Screener request | symbols={len(symbols)} | explicit={bool(request.symbols)} | "
        f"price_filter={criteria.price_filter} | sector={criteria.sector}"
    )

    try:
        run = await BatchOrchestrator(client, criteria).run(symbols)
    except Exception as e:
        logger.exception(f"Screener run failed: {e}")
        return _error_response(500, f"Screener failed: {e}")

    return {"success": True, "data": run.to_dict()}


@screener_router.get("/config")
async def get_options_screener_config():
    return {"success": True, "data": get_screener_config()}
