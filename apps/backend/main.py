from fastapi import FastAPI, HTTPException, Request, Depends, Header
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from typing import Optional
from contextlib import asynccontextmanager
import os
import time
import secrets
import logging
import traceback
from pydantic import BaseModel

from app.config import Capabilities, Settings, get_env_presence
from app.db_config import db_config
from app.rate_limit import limiter, RATE_LIMIT_SUBMIT
from slowapi.errors import RateLimitExceeded
from slowapi import _rate_limit_exceeded_handler
from core.errors import DuplicateUrlError, OpportunityError, http_status_for
from crawler.models import ScrapeMethod, ScrapeOptions
from crawler.orchestrator import FallbackOrchestrator
from crawler.smart_scrape import SmartScrapeGateway
from pipeline.db_insert import OpportunityStore
from pipeline.extractor import StructuredExtractor
from pipeline.submission import SubmissionCoordinator

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _is_dev() -> bool:
    return os.getenv("OPPBOARD_ENV", "").lower() == "dev"


class SubmitRequest(BaseModel):
    url: str
    company_name: Optional[str] = None
    opportunity_type: Optional[str] = None
    manual_content: Optional[str] = None
    submitted_by: Optional[str] = None


class ScrapeTestRequest(BaseModel):
    url: str
    force_method: Optional[ScrapeMethod] = None
    timeout_ms: Optional[int] = None
    wait_for_selector: Optional[str] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the ingestion services once and release the browsers on shutdown."""
    settings = Settings.from_env()
    if settings.is_dev:
        logger.info("[oppboard] env: OPPBOARD_ENV=dev (diagnostic routes enabled)")
    else:
        logger.info(f"[oppboard] env: OPPBOARD_ENV={settings.env} (diagnostic routes disabled)")

    orchestrator = FallbackOrchestrator(settings=settings.scraper)
    gateway = SmartScrapeGateway(orchestrator)

    coordinator = None
    if db_config.is_db_enabled:
        coordinator = SubmissionCoordinator(
            OpportunityStore(db_config.database_url),
            gateway=gateway,
            extractor=StructuredExtractor(settings=settings.extraction),
            settings=settings,
        )
    else:
        logger.warning("[oppboard] DATABASE_URL not set, submissions disabled")

    if not Capabilities.is_ai_enabled():
        logger.warning("[oppboard] OPENROUTER_API_KEY not set, extraction will fail")

    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.state.gateway = gateway
    app.state.coordinator = coordinator

    yield

    # Shutdown
    await gateway.close()


app = FastAPI(title="Oppboard API", version="0.1.0", lifespan=lifespan)

# Add rate limiter state
app.state.limiter = limiter

# Rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(OpportunityError)
async def opportunity_error_handler(request: Request, exc: OpportunityError):
    """Typed pipeline errors carry their own status code and client hints."""
    content = {
        "status": "error",
        "code": exc.code.value,
        "error": exc.message,
    }
    for key in ("requires_manual", "is_restricted", "restricted_site_message", "fallback_chain"):
        if key in exc.details:
            content[key] = exc.details[key]
    if isinstance(exc, DuplicateUrlError):
        content["existing"] = exc.existing

    return JSONResponse(status_code=http_status_for(exc.code), content=content)


# Error masking middleware
@app.middleware("http")
async def error_masking_middleware(request: Request, call_next):
    """Mask detailed errors in production; show full errors in dev."""
    try:
        response = await call_next(request)
        return response
    except HTTPException:
        raise
    except Exception as e:
        is_dev = _is_dev()

        # Log the full error
        logger.error(f"Unhandled error: {str(e)}")
        if is_dev:
            logger.error(traceback.format_exc())

        if is_dev:
            return JSONResponse(
                status_code=500,
                content={
                    "status": "error",
                    "error": str(e),
                    "traceback": traceback.format_exc()
                }
            )
        else:
            return JSONResponse(
                status_code=500,
                content={
                    "status": "error",
                    "error": "An internal error occurred. Please try again later."
                }
            )


app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


def get_coordinator(request: Request) -> SubmissionCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Database not configured")
    return coordinator


def get_orchestrator(request: Request) -> FallbackOrchestrator:
    return request.app.state.orchestrator


def get_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings or Settings.from_env()


@app.get("/api/healthz")
async def healthz():
    return Capabilities.get_status()


@app.get("/admin/config/env")
async def config_env():
    """Which configuration variables are set (dev-only)"""
    if not _is_dev():
        raise HTTPException(status_code=403, detail="Admin endpoints only available in dev mode")
    return get_env_presence()


@app.post("/api/opportunities/submit")
@limiter.limit(RATE_LIMIT_SUBMIT)
async def submit_opportunity(
    request: Request,
    body: SubmitRequest,
    coordinator: SubmissionCoordinator = Depends(get_coordinator),
):
    """
    Submit an opportunity URL for scraping, AI extraction and storage.

    Errors are answered by the OpportunityError handler:
    409 duplicate, 400 invalid URL/content, 429 rate limited, 500 otherwise
    (with requires_manual and restricted_site_message when a paste is needed).
    """
    record = await coordinator.submit(
        body.url,
        company_name=body.company_name,
        opportunity_type=body.opportunity_type,
        manual_content=body.manual_content,
        submitted_by=body.submitted_by,
    )
    return {
        "status": "ok",
        "data": record.to_dict(),
        "error": None,
    }


@app.post("/api/scrape/test")
async def scrape_test(
    body: ScrapeTestRequest,
    orchestrator: FallbackOrchestrator = Depends(get_orchestrator),
):
    """Run the scraping chain (or one forced strategy) and report every attempt (dev-only)"""
    if not _is_dev():
        raise HTTPException(status_code=403, detail="Admin endpoints only available in dev mode")

    defaults = orchestrator.default_options()
    options = ScrapeOptions(
        timeout_ms=body.timeout_ms or defaults.timeout_ms,
        wait_for_selector=body.wait_for_selector,
        force_method=body.force_method,
    )

    start = time.monotonic()
    result = await orchestrator.scrape(body.url, options)
    duration_ms = int((time.monotonic() - start) * 1000)

    return {
        "status": "ok" if result.success else "error",
        "data": {
            "success": result.success,
            "method": result.method_used.value if result.method_used else None,
            "fallback_chain": [a.to_dict() for a in result.fallback_chain],
            "fallback_used": result.fallback_used,
            "content_length": len(result.content),
            "title": result.title,
            "content_preview": result.content[:300],
            "duration_ms": duration_ms,
        },
        "error": result.error,
    }


@app.get("/api/cron/auto-expire")
async def cron_auto_expire(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    coordinator: SubmissionCoordinator = Depends(get_coordinator),
):
    """Mark active opportunities whose deadline has passed as expired."""
    cron_secret = settings.cron_secret
    if cron_secret and not secrets.compare_digest(authorization or "", f"Bearer {cron_secret}"):
        raise HTTPException(status_code=401, detail="Unauthorized")

    expired_count = await coordinator.expire_past_deadline()
    logger.info(f"[cron] Auto-expire completed: {expired_count} opportunities expired")
    return {
        "status": "ok",
        "data": {"expired_count": expired_count},
        "error": None,
    }
