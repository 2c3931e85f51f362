"""FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from ats.api.limiter import limiter
from ats.config import settings
from ats.db.base import init_db
from ats.exceptions import AtsError
from ats.log import configure_logging
from ats.scheduling.scheduler import init_scheduler, shutdown_scheduler

logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = settings.cors_origins.split(",")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize logging, database and the pipeline scheduler on startup."""
    configure_logging(settings.log_level)
    try:
        init_db()
    except ValueError:
        logger.warning("DATABASE_URL not configured, skipping table creation")
    init_scheduler()
    yield
    shutdown_scheduler()


app = FastAPI(
    title="Applicant Tracking API",
    description="Job postings, applications and deadline-driven candidate screening",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Return 429 with a clear message when rate limit is exceeded."""
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )


@app.exception_handler(AtsError)
async def ats_error_handler(request: Request, exc: AtsError):
    """Map service errors to their status code."""
    if exc.code.status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=exc.code.status,
        content={"code": exc.code.name, "detail": exc.detail},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-Company-Key", "X-Candidate-Key"],
)


# Import and include routers
from ats.api.routes import companies, job_postings  # noqa: E402

app.include_router(job_postings.router, prefix="/job-postings", tags=["Job Postings"])
app.include_router(companies.router, prefix="/companies", tags=["Companies"])


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
