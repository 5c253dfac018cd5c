"""CRUD demo service with request logging shipped to Loki.

Run with:
    lokiship-server
    # or
    uvicorn --factory lokiship.app:create_app --port 5000

Endpoints:
    POST   /item        - create (201)
    GET    /item/{id}   - read
    PUT    /item/{id}   - update
    DELETE /item/{id}   - delete
    GET    /test        - static test page
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import ValidationError

from lokiship.adapters.frameworks.asgi import RequestLoggingMiddleware
from lokiship.adapters.frameworks.fastapi import create_item_router
from lokiship.adapters.logging import ShipperHandler
from lokiship.config import Settings
from lokiship.core.errors import ConfigError
from lokiship.runtime.lifecycle import ShipperRuntime

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    runtime: ShipperRuntime | None = None,
) -> FastAPI:
    """Create the FastAPI application and its log shipping runtime.

    Args:
        settings: Process settings; read from the environment if omitted.
        runtime: Prebuilt runtime (tests inject one with an in-memory sink).

    Returns:
        Configured FastAPI application. The runtime is started and drained
        by the application lifespan.

    Raises:
        ConfigError: If the shipper cannot be configured.
    """
    settings = settings or Settings()
    runtime = runtime or ShipperRuntime(settings.shipper_config())
    static_file = Path(settings.static_file)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        """Start the shipper on startup; drain it on every exit path."""
        handler: ShipperHandler | None = None
        async with runtime:
            if settings.forward_logger:
                handler = ShipperHandler(runtime.shipper)
                logging.getLogger(settings.forward_logger).addHandler(handler)
            try:
                yield
            finally:
                if handler is not None:
                    logging.getLogger(settings.forward_logger).removeHandler(handler)

    app = FastAPI(title="CRUD Server", lifespan=lifespan)
    app.state.runtime = runtime
    app.state.shipper = runtime.shipper
    app.include_router(create_item_router())

    @app.get("/test", include_in_schema=False)
    async def test_page() -> FileResponse:
        """Serve the static test page."""
        if not static_file.is_file():
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(static_file)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )
    # Added last so it wraps CORS and sees every request
    app.add_middleware(RequestLoggingMiddleware, shipper=runtime.shipper)
    return app


def main() -> None:
    """Console entry point: exit 1 if the shipper cannot be built."""
    # @tra: App.FatalConfig
    try:
        settings = Settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.INFO)
        logger.critical("Invalid settings: %s", e)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        app = create_app(settings)
    except ConfigError as e:
        logger.critical("Failed to create log shipper: %s", e)
        sys.exit(1)

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
