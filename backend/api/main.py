"""
FastAPI main application.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import API_V1_PREFIX, CORS_ORIGINS, LOG_LEVEL
from core.config_validator import config_validator
from core.errors import (
    ConfigurationError,
    ExternalServiceError,
    InputValidationError,
    QuotaExceededError,
)
from api.routes import actions, usage, videos

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Transcript Insights API",
    description="AI summaries, key points and topics for video transcripts",
    version="1.0.0",
)

@app.on_event("startup")
async def validate_configuration():
    """Validate configuration on application startup."""

    logger.info("Validating configuration...")

    try:
        config_validator.raise_if_invalid()
    except ConfigurationError:
        for error in config_validator.errors:
            logger.error(error)
        logger.critical("Application startup aborted due to configuration errors.")
        raise SystemExit(1)
    finally:
        for warning in config_validator.warnings:
            logger.warning(warning)

    logger.info("Configuration validated successfully")


@app.exception_handler(QuotaExceededError)
async def quota_exceeded_handler(request: Request, exc: QuotaExceededError):
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "quota_exceeded",
            "message": str(exc),
            "reset_hint": exc.reset_hint,
        },
    )


@app.exception_handler(InputValidationError)
async def input_validation_handler(request: Request, exc: InputValidationError):
    return JSONResponse(status_code=400, content={"success": False, "error": "invalid_input", "message": str(exc)})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=400, content={"success": False, "error": "configuration", "message": str(exc)})


@app.exception_handler(ExternalServiceError)
async def external_service_handler(request: Request, exc: ExternalServiceError):
    logger.error(f"External service failure ({exc.provider}): {exc}")
    return JSONResponse(status_code=502, content={"success": False, "error": "upstream_error", "message": str(exc)})


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(actions.router, prefix=f"{API_V1_PREFIX}/actions", tags=["actions"])
app.include_router(usage.router, prefix=f"{API_V1_PREFIX}/usage", tags=["usage"])
app.include_router(videos.router, prefix=f"{API_V1_PREFIX}/youtube", tags=["youtube"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Transcript Insights API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
