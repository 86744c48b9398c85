"""FastAPI application entrypoint and configuration.

Example:
    The application can be run with uvicorn:
        $ uvicorn geomosaic.main:app --reload
"""

import fastapi
from fastapi.middleware import cors

from geomosaic.api import geo, mosaic
from geomosaic.core import config, logging_utils


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application.

    Configures logging, CORS middleware, the mosaic and geo routers and a
    health check endpoint.

    Returns:
        Configured FastAPI application instance ready for ASGI server.
    """
    settings = config.get_settings()
    logging_utils.configure_logging(
        settings.log_level,
        json_console=settings.log_json,
    )
    app = fastapi.FastAPI(title="Geomosaic", version="0.1.0")

    app.include_router(mosaic.router)
    app.include_router(geo.router)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Health check endpoint for monitoring and load balancers."""
        return {"status": "ok"}

    return app


app = create_app()
