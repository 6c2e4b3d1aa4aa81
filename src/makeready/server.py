"""Make-ready enrichment service.

Runs the enrichment pipeline server-side so browser and CLI clients get
ready-to-render records without holding the Equips API key.

Run locally::

    uv run makeready-proxy

Or with uvicorn::

    uv run uvicorn makeready.server:app --host 0.0.0.0 --port 8000
"""

import json
import logging
import os

from dotenv import load_dotenv
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from makeready.core.config import get_equips_api_key, load_briefing_config
from makeready.equips.client import EquipsClient
from makeready.equips.enrich import enrich_service_requests

logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

load_dotenv()

CONFIG = load_briefing_config()

CORS_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


async def _read_filters(request: Request) -> dict:
    """Request body as a search filter; empty or unparseable means no filter."""
    body = await request.body()
    if not body:
        return {}
    try:
        filters = json.loads(body)
    except ValueError:
        logger.debug("Ignoring unparseable request body")
        return {}
    return filters if isinstance(filters, dict) else {}


async def equips_proxy(request: Request) -> JSONResponse:
    """Fetch and enrich service requests, returning ``{"data": [...]}``."""
    try:
        api_key = get_equips_api_key()
    except ValueError:
        logger.error("EQUIPS_API_KEY not configured")
        return JSONResponse({"error": "EQUIPS_API_KEY not configured"}, status_code=500)

    filters = {**CONFIG.search_body, **await _read_filters(request)}

    try:
        async with EquipsClient(
            api_key=api_key,
            base_url=CONFIG.equips_base_url,
            timeout=CONFIG.request_timeout,
            page_size=CONFIG.page_size,
            max_records=CONFIG.max_records,
        ) as client:
            records = await enrich_service_requests(
                client,
                filters,
                batch_size=CONFIG.lookup_batch_size,
                tz=CONFIG.tz,
            )
    except Exception as e:
        logger.exception("Enrichment failed")
        return JSONResponse({"error": str(e)}, status_code=500)

    logger.info(f"Returning {len(records)} enriched records")
    return JSONResponse({"data": records})


async def health(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(
        {
            "status": "ok",
            "service": "makeready-proxy",
            "version": os.getenv("BUILD_VERSION", "dev"),
        }
    )


app = Starlette(
    routes=[
        Route("/equips-proxy", equips_proxy, methods=["GET", "POST"]),
        Route("/health", health),
    ],
    middleware=[
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=CORS_HEADERS,
        )
    ],
)


def main() -> None:
    """Run the enrichment service with uvicorn."""
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info("Starting make-ready enrichment service on %s:%d", host, port)
    uvicorn.run(
        "makeready.server:app",
        host=host,
        port=port,
        log_level="info",
    )
