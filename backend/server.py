"""
Options Spread Screener - API server
"""
from routes.options import options_router
from routes.screener import screener_router
from services.tradier_client import TradierError
from utils.environment import ENVIRONMENT, get_screener_config
from fastapi import FastAPI, APIRouter, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path
from datetime import datetime, timezone

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Create the main app
app = FastAPI(title="Options Spread Screener")

api_router = APIRouter(prefix="/api")


@api_router.get("/health")
async def health():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.exception_handler(TradierError)
async def tradier_error_handler(request: Request, exc: TradierError):
    logging.getLogger(__name__).error(f"Upstream error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


# Screener first: /options/screener must not be captured by /options/{symbol}
api_router.include_router(screener_router, prefix="/options/screener")
api_router.include_router(options_router, prefix="/options")

app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=[origin.strip() for origin in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:3000').split(',')],
    allow_methods=["*"],
    allow_headers=["*"],
)
logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def startup():
    config = get_screener_config()
    logger.info(f"Options Spread Screener starting | environment={ENVIRONMENT}")
    if not config["tradier_api_key_configured"]:
        logger.warning("TRADIER_API_KEY is not set - screener requests will fail with 500")
    logger.info(
        f"Screener config | batch_size={config['batch_size']} | "
        f"batch_delay={config['batch_delay_seconds']}s | max_expirations={config['max_expirations']} | "
        f"retries={config['tradier_max_retries']}"
    )


@app.on_event("shutdown")
async def shutdown():
    logger.info("Options Spread Screener shutting down")
