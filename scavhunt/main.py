from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from scavhunt.api.router import router as api_router
from scavhunt.core.config import Settings, settings as default_settings
from scavhunt.core.errors import install_error_handlers
from scavhunt.core.logging import configure_logging
from scavhunt.core.request_log import install_request_logging
from scavhunt.db.session import AppContext


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or default_settings
    configure_logging(app_settings)
    context = AppContext(app_settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        context.start()
        try:
            yield
        finally:
            context.stop()

    app = FastAPI(title=app_settings.APP_NAME, version="0.1.0", lifespan=lifespan)
    app.state.context = context
    install_request_logging(app)
    install_error_handlers(app)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/", include_in_schema=False)
    def landing():
        return JSONResponse({"service": app_settings.APP_NAME, "status": "ok"})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
