"""
FastAPI application initialization
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from src.api.routes import admin, funds, investments, metrics, trade
from src.config.settings import settings
from src.database.connection import database
from src.observability.logging import setup_logging, get_logger
from src.observability.metrics import get_metrics_collector
from src.observability.tracing import RequestContext
from src.services.price_source import price_simulator
from src.utils.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    BrokerageServerError,
    DatabaseConnectionError,
    DatabaseError,
    InsufficientFundsError,
    InsufficientHoldingsError,
    InvalidStateTransitionError,
    NoSuchHoldingError,
    NotFoundError,
    ValidationError,
)

# Setup structured logging
setup_logging(
    level="INFO" if not settings.DEBUG else "DEBUG",
    log_file=settings.LOG_FILE
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Most specific first
ERROR_STATUS_CODES = (
    (AuthenticationError, 401),
    (AccessDeniedError, 403),
    (ValidationError, 400),
    (InsufficientFundsError, 400),
    (InsufficientHoldingsError, 400),
    (NoSuchHoldingError, 400),
    (NotFoundError, 404),
    (InvalidStateTransitionError, 409),
    (DatabaseConnectionError, 503),
    (DatabaseError, 500),
)

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Wallet ledger, trade settlement, funds review and fixed-term investment plans.

    ## Authentication

    Endpoints other than prices, plans and health require a JWT bearer token:

    ```
    Authorization: Bearer <jwt-token>
    ```

    Generate development tokens with:
    ```bash
    python scripts/generate_admin_token.py
    python scripts/generate_user_token.py --user-id 2
    ```

    ## API Endpoints

    * `/api/v1/trade` - Prices, buy/sell, holdings and trade history
    * `/api/v1/user` - Wallet, ledger history, deposit and withdrawal requests
    * `/api/v1/investments` - Plans and subscriptions
    * `/api/v1/algo` - Proprietary algorithm eligibility
    * `/api/v1/admin` - Back office
    * `/api/v1/metrics` - Prometheus metrics
    * `/health` - Health check
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=[
        {"name": "trade", "description": "Trading against caller-submitted prices"},
        {"name": "funds", "description": "Wallet and funds requests"},
        {"name": "investments", "description": "Investment plans and algorithm access"},
        {"name": "admin", "description": "Back-office review and management"},
        {"name": "metrics", "description": "Prometheus-compatible metrics"},
    ]
)


def status_code_for(error: BrokerageServerError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


@app.exception_handler(BrokerageServerError)
async def brokerage_error_handler(request: Request, exc: BrokerageServerError):
    status_code = status_code_for(exc)
    if status_code >= 500:
        get_metrics_collector().record_error(
            exc.error_code or type(exc).__name__,
            exc.message,
            context={"path": request.url.path}
        )
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.message, "error_code": exc.error_code, **exc.details()}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request",
            "error_code": "VALIDATION_ERROR",
            "fields": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]
        }
    )


@app.middleware("http")
async def request_tracing(request: Request, call_next):
    """Bind a request id to the request's logs and record endpoint metrics"""
    with RequestContext(request.headers.get(REQUEST_ID_HEADER)) as context:
        response = await call_next(request)
        route = request.scope.get("route")
        get_metrics_collector().record_endpoint_request(
            endpoint=getattr(route, "path", request.url.path),
            method=request.method,
            duration_ms=context.elapsed_ms(),
            status_code=response.status_code,
            request_id=context.request_id
        )
        response.headers[REQUEST_ID_HEADER] = context.request_id
        return response


@app.on_event("startup")
async def startup_event():
    """Initialize database and start the price simulator"""
    database.initialize(
        database_url=settings.DATABASE_URL,
        echo=settings.DB_ECHO
    )
    logger.info("Database initialized")

    if settings.PRICE_SIMULATOR_ENABLED:
        price_simulator.start(settings.PRICE_UPDATE_INTERVAL_SECONDS)


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the price simulator and close database connections"""
    price_simulator.stop()
    database.close()
    logger.info("Database connections closed")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers with versioning
app.include_router(trade.router, prefix="/api/v1", tags=["trade"])
app.include_router(funds.router, prefix="/api/v1", tags=["funds"])
app.include_router(investments.router, prefix="/api/v1", tags=["investments"])
app.include_router(admin.router, prefix="/api/v1", tags=["admin"])
app.include_router(metrics.router, prefix="/api/v1", tags=["metrics"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "database": "connected" if database.is_initialized() else "not_initialized",
        "price_simulator": "running" if price_simulator.is_running else "stopped"
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": "1.0.0",
        "docs": "/docs",
        "api_version": "v1"
    }
