from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ..core.container import shutdown, startup
from ..core.logging import setup_logging
from .routes import health_routes, project_routes, session_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup()
    yield
    await shutdown()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    setup_logging()
    app = FastAPI(
        title="Flashdeck API",
        description="Multiple-choice flashcard pools with a priority review scheduler",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Include routers
    app.include_router(project_routes.router)
    app.include_router(session_routes.router)
    app.include_router(health_routes.router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("flashdeck.api.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
