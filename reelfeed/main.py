from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from reelfeed import __version__
from reelfeed.api.errors import register_exception_handlers
from reelfeed.api.router import router
from reelfeed.context import AppContext, build_context
from reelfeed.core.logging import setup_logging
from reelfeed.core.settings import Settings, settings as default_settings


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    settings = settings or (context.settings if context else default_settings)
    if context is None:
        setup_logging(settings.log_level, settings.log_structured)
        context = build_context(settings)

    app = FastAPI(title="Reelfeed Backend", version=__version__)
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(router)

    @app.on_event("shutdown")
    def _close_context():
        context.close()

    return app


def run():
    import uvicorn

    uvicorn.run(
        "reelfeed.main:create_app",
        factory=True,
        host=default_settings.app_host,
        port=default_settings.app_port,
    )


if __name__ == "__main__":
    run()
