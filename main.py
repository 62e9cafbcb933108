import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_pagination import add_pagination
import uvicorn

import core.events  # noqa: F401  registers the vote counter listeners
from core.settings import settings
from core.async_engine import async_engine
from core.base import Base
from core.security import CSRFMiddleware, RateLimitMiddleware, SecurityHeadersMiddleware, rate_limiter
from api.api import api_router
from api.websocket_api import router as websocket_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper() if settings.LOG_LEVEL.lower() != "trace" else "DEBUG",
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT})")
    if async_engine.dialect.name == "sqlite":
        # Local runs without PostgreSQL get their schema straight from the models
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    yield
    rate_limiter.cleanup_old_entries()
    await async_engine.dispose()
    logger.info(f"Shutting down {settings.PROJECT_NAME}")


app = FastAPI(title=settings.PROJECT_NAME, version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Invalid input on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid input",
            "errors": jsonable_encoder(exc.errors(), custom_encoder={ValueError: str}),
        },
    )


if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"Adding CORS middleware with origins: {settings.BACKEND_CORS_ORIGINS}")
    cors_origins = [str(origin) for origin in settings.BACKEND_CORS_ORIGINS]
else:
    logger.info("No CORS origins configured, using wildcard")
    cors_origins = ["*"]

# Starlette runs the last added middleware first: CORS, then rate limiting, then CSRF
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(CSRFMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_origins != ["*"],  # Don't use credentials with wildcard
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=32400,
)

app.include_router(api_router)
app.include_router(websocket_router, tags=["websocket"])

add_pagination(app)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME, "version": "1.0.0"}


@app.get("/health")
async def health():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


if __name__ == "__main__":
    run_args = {
        "app": "main:app",
        "host": settings.SERVER_ADDRESS,
        "port": settings.SERVER_PORT,
        "log_level": settings.LOG_LEVEL,
        "reload": settings.WATCH_FILES,
    }

    uvicorn.run(**run_args)
