from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
import time

from multiplier_api.routes import records, status as status_routes
from multiplier_api.config import get_settings
from multiplier_api.logger import get_logger
from multiplier_api.exceptions import MultiplierException, DatabaseError
from multiplier_api.schemas import ErrorData, ErrorResponse

# Initialize settings and logging
settings = get_settings()
logger = get_logger("main")

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Preset and membership data API for the Multiplier synthesizer",
    version="1.1.0",
    debug=settings.debug,
)

# Include API routes
app.include_router(status_routes.router, prefix=settings.api_prefix)
app.include_router(records.router, prefix=settings.api_prefix)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time to response headers."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(f"{process_time:.4f}")
    return response


def error_response(code: str, message: str, status_code: int, errors=None) -> JSONResponse:
    body = ErrorResponse(code=code, message=message, data=ErrorData(status=status_code, errors=errors))
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(exclude_none=True))
    )


# Custom exception handlers
@app.exception_handler(MultiplierException)
async def multiplier_exception_handler(request: Request, exc: MultiplierException):
    """Render application errors in the shape the front end expects."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message} ({exc.details})")
    else:
        logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    message = exc.message
    if isinstance(exc, DatabaseError) and settings.debug and exc.details:
        message = f"{exc.message}: {exc.details}"
    return error_response(exc.code, message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle malformed request bodies and path parameters."""
    logger.warning(f"Request validation error on {request.url.path}: {exc.errors()}")
    return error_response(
        "invalid_data",
        "Request validation failed",
        status.HTTP_400_BAD_REQUEST,
        errors=[
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ],
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return error_response(
        "internal_error",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


# Health check and root endpoints
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": "1.1.0",
        "status": "operational",
        "api": settings.api_prefix,
        "health": "/health"
    }


@app.get("/health")
async def health_check():
    """General health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "timestamp": time.time()
    }


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"API prefix: {settings.api_prefix}")
    if settings.owner_scoped_deletes:
        logger.info("Deletes are restricted to rows owned by the caller")
    if settings.patreon_lookup_enabled:
        logger.info(f"Patreon lookup enabled against {settings.patreon_api_base}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.app_name}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "multiplier_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
