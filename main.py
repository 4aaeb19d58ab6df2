from fastapi import FastAPI, HTTPException, Request, Depends, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import structlog
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List

from models import AccountSnapshot, Event, EventAcceptedResponse, ErrorResponse, HealthResponse
from services import LedgerService, create_ledger_service
from exceptions import DuplicateEventIdError
from config import get_settings
from logging_config import configure_logging

settings = get_settings()
configure_logging(settings)

logger = structlog.get_logger()

limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.ledger_service = create_ledger_service()
    logger.info("Ledger API started", transport="channel")
    yield
    service: LedgerService = app.state.ledger_service
    await service.close()
    logger.info(
        "Ledger API stopped",
        accounts_count=service.ledger.accounts_count,
        events_admitted=service.ledger.events_admitted
    )


app = FastAPI(
    title=settings.app_name,
    description="Per-client account ledger replaying deposits, withdrawals, disputes, resolves and chargebacks",
    version=settings.app_version,
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=settings.allowed_methods,
    allow_headers=settings.allowed_headers,
)


@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    """Tag every log line of a request with its id; optionally log timings."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request.headers.get("X-Request-ID") or uuid.uuid4().hex
    )

    if not settings.enable_request_logging:
        return await call_next(request)

    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "Request handled",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2)
    )
    return response


def get_service(request: Request) -> LedgerService:
    return request.app.state.ledger_service


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Ledger liveness with account and transaction id counts"
)
async def health_check(service: LedgerService = Depends(get_service)):
    return HealthResponse(
        status="healthy",
        accounts_count=service.ledger.accounts_count,
        events_admitted=service.ledger.events_admitted
    )


@app.post(
    "/events",
    response_model=EventAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit Event",
    description="Admit a deposit, withdrawal, dispute, resolve or chargeback and queue it for its account",
    responses={
        409: {"model": ErrorResponse, "description": "Transaction id was already admitted"},
        429: {"description": "Rate limit exceeded"},
    }
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def submit_event(
    request: Request,
    event: Event,
    service: LedgerService = Depends(get_service)
):
    await service.submit(event)
    logger.debug("Event admitted", client_id=event.client, tx=event.tx, type=event.type.value)

    return EventAcceptedResponse(
        status="accepted",
        client=event.client,
        tx=event.tx,
        timestamp=datetime.now(timezone.utc)
    )


@app.get(
    "/accounts",
    response_model=List[AccountSnapshot],
    summary="List Accounts",
    description="Apply every queued event, then return one snapshot per client ordered by client id"
)
async def list_accounts(service: LedgerService = Depends(get_service)):
    snapshots = await service.snapshot_all()
    return sorted(snapshots, key=lambda s: s.client)


@app.get(
    "/accounts/{client_id}",
    response_model=AccountSnapshot,
    summary="Get Account",
    responses={404: {"model": ErrorResponse, "description": "Client has no account"}}
)
async def get_account(client_id: int, service: LedgerService = Depends(get_service)):
    for snapshot in await service.snapshot_all():
        if snapshot.client == client_id:
            return snapshot
    raise HTTPException(status_code=404, detail="Account not found")


def error_response(status_code: int, detail: str, error_code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=detail, error_code=error_code).model_dump(mode="json")
    )


@app.exception_handler(DuplicateEventIdError)
async def duplicate_event_handler(request: Request, exc: DuplicateEventIdError):
    logger.warning("Duplicate transaction id rejected", tx=exc.event_id)
    return error_response(status.HTTP_409_CONFLICT, str(exc), "DUPLICATE_EVENT_ID")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(exc.status_code, exc.detail, f"HTTP_{exc.status_code}")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True
    )
    return error_response(500, "Internal server error", "INTERNAL_ERROR")


@app.get("/", include_in_schema=False)
async def root():
    return {"message": settings.app_name, "version": settings.app_version, "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
