import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from guidex.exceptions import GuideXError
from guidex.logger import get_logger
from web.backend import deps
from web.backend.routers import goals, journal, mentor, profile, progress, session

logger = get_logger("api")

AREAS = ("goals", "journal", "mentor", "progress", "session", "profile")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await deps.shutdown()
    logger.info("GuideX API stopped")


def _cors_origins() -> list:
    raw = os.getenv("GUIDEX_ALLOWED_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()]


def create_app() -> FastAPI:
    app = FastAPI(title="GuideX API", version="1.0", lifespan=lifespan)

    origins = _cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GuideXError)
    async def guidex_error_handler(request: Request, exc: GuideXError):
        error = deps.http_error(exc)
        return JSONResponse(status_code=error.status_code, content={"detail": error.detail})

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": "GuideX"}

    @app.get("/api/v1")
    async def index():
        return {"areas": {area: f"/api/v1/{area}" for area in AREAS}, "docs": "/docs"}

    for module, area in zip((goals, journal, mentor, progress, session, profile), AREAS):
        app.include_router(module.router, prefix=f"/api/v1/{area}", tags=[area])

    logger.info("GuideX API ready (origins: %s)", ", ".join(origins))
    return app


app = create_app()
