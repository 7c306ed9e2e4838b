from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import ValidationError

from prospector.api.routes import prospecting_router
from prospector.db.db import close_pool
from prospector.config import settings
from prospector.services.prospecting.service import Service


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: fail jobs orphaned by a previous shutdown before taking new work
    svc = Service.from_settings(settings)
    await svc.recover_stuck_jobs()

    worker_pool = None
    if settings.embedded_worker:
        worker_pool = svc.build_worker_pool(settings)
        worker_pool.start()
    else:
        logger.info("Embedded worker disabled; run `python -m prospector worker` separately")

    yield

    # Shutdown
    if worker_pool is not None:
        await worker_pool.stop()
    await close_pool()


app = FastAPI(
    title="Prospector API",
    description="Background prospect discovery for field sales agents",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(prospecting_router)


def _validation_response(errors: list[dict]) -> JSONResponse:
    details = []
    for error in errors:
        field = ".".join(str(loc) for loc in error["loc"])
        details.append({"field": field, "message": error["msg"]})

    return JSONResponse(
        status_code=400,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request",
            "details": details,
        },
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle malformed request bodies and query parameters."""
    return _validation_response(exc.errors())


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors."""
    return _validation_response(exc.errors())


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
