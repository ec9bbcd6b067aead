"""
BizOps FastAPI Main Application
Entry point for the business operations REST and signalling API
"""
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bizops.api.v1 import webhooks, ws
from bizops.api.v1.api_router import api_router
from bizops.core.config import settings
from bizops.core.database import SessionLocal, check_db_connection, init_db
from bizops.core.exceptions import BizOpsException
from bizops.core.logging import get_logger, setup_logging
from bizops.services.signalling import DatabaseSignalRecorder, SignallingHub

logger = get_logger("api")

HTTP_ERROR_KINDS = {
    400: "Invalid",
    401: "Unauthorized",
    403: "Unauthorized",
    404: "NotFound",
    405: "Invalid",
    409: "Conflict",
}

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## BizOps API

    Multi-tenant business operations backend.

    ### Engines:
    - **Scheduling**: bookings with staff and vehicle conflict detection, free slot generation
    - **Ledger**: double-entry journal posting, trial balance, P&L and balance sheet
    - **Commerce**: inventory movements, point-of-sale transactions, cash drawers
    - **Signalling**: WebRTC room signalling over WebSocket
    """,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
    return response


def error_response(status_code: int, kind: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": kind, "details": details},
    )


@app.exception_handler(BizOpsException)
async def bizops_exception_handler(request: Request, exc: BizOpsException):
    """Render domain errors in the failure envelope"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.kind, exc.to_details())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Schema violations are reported as 400 Invalid"""
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return error_response(400, "Invalid", details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    kind = HTTP_ERROR_KINDS.get(exc.status_code, "Internal")
    return error_response(exc.status_code, kind, exc.detail)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors

    Args:
        request: FastAPI request object
        exc: Exception that occurred

    Returns:
        JSON error response
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return error_response(
        500,
        "Internal",
        str(exc) if settings.DEBUG else "An unexpected error occurred",
    )


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check():
    """
    Health check endpoint for monitoring and load balancers

    Returns system status and database connectivity
    """
    db_status = check_db_connection()
    return {
        "status": "healthy" if db_status else "degraded",
        "version": settings.APP_VERSION,
        "database": "connected" if db_status else "disconnected",
        "debug": settings.DEBUG,
    }


# System information endpoint
@app.get("/info", tags=["System"])
async def system_info():
    hub = getattr(app.state, "signalling_hub", None)
    return {
        "application": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "api_version": "v1",
        "features": [
            "Booking Scheduling",
            "Double-Entry Ledger",
            "Inventory & Point of Sale",
            "WebRTC Signalling",
        ],
        "signalling": {
            "connections": len(hub.connections) if hub else 0,
            "rooms": len(hub.rooms) if hub else 0,
        },
    }


# Application startup event
@app.on_event("startup")
async def startup_event():
    """
    Application startup tasks

    Verify the database, create tables and start the signalling hub
    """
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    if not check_db_connection():
        logger.error("Failed to connect to database on startup")
        raise RuntimeError("Database connection failed")
    logger.info("Database connection established")

    init_db()

    hub = SignallingHub(recorder=DatabaseSignalRecorder(SessionLocal))
    hub.start()
    app.state.signalling_hub = hub

    logger.info("Application startup completed successfully")


# Application shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application")
    hub = getattr(app.state, "signalling_hub", None)
    if hub is not None:
        await hub.stop()


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_STR)
app.include_router(ws.router, tags=["Signalling"])
app.include_router(webhooks.router, tags=["Webhooks"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bizops.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
