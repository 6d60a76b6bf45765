# sdr/app/main.py
from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from sdr import __version__
from sdr.app.config import Settings, load_settings
from sdr.app.deps import Services, build_services
from sdr.app.responses import INTERNAL_ERROR_MESSAGE, respond_error
from sdr.app.routers.transcribe import router as transcribe_router
from sdr.app.routers.tutorials import router as tutorials_router

log = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    # stdout only, for dev and containers
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """
    Build the API. Settings are loaded here so a missing credential stops the
    process before any route is served.
    """
    settings = settings or load_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Sound Design Recipes API", version=__version__)
    app.state.settings = settings
    app.state.services = services or build_services(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.FRONTEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Authorization", "Content-Type"],
        max_age=300,
    )

    app.include_router(transcribe_router)
    app.include_router(tutorials_router)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        log.info("request.invalid path=%s errors=%s", request.url.path, exc.errors())
        if any(error.get("loc", ("",))[0] == "body" for error in exc.errors()):
            return respond_error(status.HTTP_400_BAD_REQUEST, "Invalid request body")
        return respond_error(status.HTTP_400_BAD_REQUEST, "Invalid request parameters")

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        log.exception("request.unhandled path=%s", request.url.path)
        return respond_error(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)

    @app.on_event("shutdown")
    def shutdown() -> None:
        app.state.services.close()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    log.info("Sound design recipes API ready: env=%s", settings.APP_ENV)
    return app


def run() -> None:
    settings = load_settings()
    app = create_app(settings)
    log.info("SDR Backend starting on port %s", settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
