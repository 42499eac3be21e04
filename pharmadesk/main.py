"""
PharmaDesk Backend - inventory, suppliers, sales and reporting for a small
pharmacy / clinic.

ARCHITECTURE:
- Mobile app: screens and forms, calls this API
- FastAPI backend: validation, stock reconciliation, aggregation
- SQL database: medicines, suppliers, stock batches, sales

SALES MODEL:
- Availability is checked before anything is written
- Sale, sale items and FIFO stock deduction are separate writes
- A failed deduction is reported as a warning, never rolled back
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from pharmadesk import __version__
from pharmadesk.api.routes import analytics, auth, medicines, sales, stock, suppliers
from pharmadesk.core.config import settings
from pharmadesk.core.exceptions import PharmaDeskError, database_error_handler, pharmadesk_error_handler
from pharmadesk.core.rate_limiter import RateLimitMiddleware
from pharmadesk.db.init_db import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    1. Create the media directory for profile photos
    2. Initialize database tables and the default admin
    """
    Path(settings.MEDIA_DIR).mkdir(parents=True, exist_ok=True)
    logger.info("[*] Initializing database...")
    init_db()
    logger.info("[OK] Database initialized")

    yield

    logger.info("[*] Shutting down")


app = FastAPI(
    title="PharmaDesk API",
    description="Medicine inventory, suppliers, sales and reports. FIFO stock deduction on every sale.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
    ],
    max_age=600,
    expose_headers=["Content-Type", "Content-Disposition"],
)

app.add_middleware(RateLimitMiddleware)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.SECURE_COOKIES:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


app.add_exception_handler(PharmaDeskError, pharmadesk_error_handler)
app.add_exception_handler(SQLAlchemyError, database_error_handler)

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(medicines.router, prefix="/medicines", tags=["medicines"])
app.include_router(suppliers.router, prefix="/suppliers", tags=["suppliers"])
app.include_router(stock.router, prefix="/stock", tags=["stock"])
app.include_router(sales.router, prefix="/sales", tags=["sales"])
app.include_router(analytics.router, prefix="/analytics", tags=["analytics"])

app.mount("/media", StaticFiles(directory=settings.MEDIA_DIR, check_dir=False), name="media")


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}
