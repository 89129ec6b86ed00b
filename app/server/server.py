from fastapi import FastAPI

from api.router import API_V1_PREFIX, api_router
from api.dependencies.rate_limits import setup_rate_limiter
from api.v1.routes.payments import WEBHOOK_PATH
from infrastructure.configuration import Settings, settings as default_settings
from server.lifespan import lifespan
from server.middleware import PathExemptCORSMiddleware


def create_app(settings: Settings | None = None, with_lifespan: bool = True) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to configure CORS with. Defaults to the process settings.
        with_lifespan: Start the retry scheduler and scheduled jobs with the app.
    """
    settings = settings or default_settings
    app = FastAPI(
        title="ERP sync and payments service",
        lifespan=lifespan if with_lifespan else None,
    )
    setup_rate_limiter(app)

    app.add_middleware(
        PathExemptCORSMiddleware,
        exempt_paths=[API_V1_PREFIX + WEBHOOK_PATH],
        allow_origins=settings.server.CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app


handler = create_app()
