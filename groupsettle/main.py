import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from groupsettle.core.config import settings
from groupsettle.core.errors import InvalidObligationRecord, InvariantViolation, MissingExchangeRate
from groupsettle.core.logging import configure_logging
from groupsettle.db.mongo import connect_to_mongo, close_mongo_connection
from groupsettle.api.v1.api import api_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_mongo()
    try:
        yield
    finally:
        await close_mongo_connection()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidObligationRecord)
async def invalid_record_handler(request: Request, exc: InvalidObligationRecord):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(MissingExchangeRate)
async def missing_rate_handler(request: Request, exc: MissingExchangeRate):
    return JSONResponse(
        status_code=422,
        content={
            "detail": str(exc),
            "from_currency": exc.from_currency,
            "to_currency": exc.to_currency,
        }
    )


@app.exception_handler(InvariantViolation)
async def invariant_violation_handler(request: Request, exc: InvariantViolation):
    # Already logged where it was detected; never answer with a partial plan
    logger.error("Request %s %s aborted: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Ledger is inconsistent; an operator has been notified"}
    )


@app.get("/")
async def root():
    return {"message": "Welcome to GroupSettle API"}


@app.get("/health")
async def health():
    return {"status": "ok", "environment": settings.ENVIRONMENT}


app.include_router(api_router, prefix=settings.API_V1_STR)
