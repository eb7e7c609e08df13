"""FastAPI application for the event workspace collaboration service."""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.error_handlers import register_error_handlers
from api.middleware import RequestContextMiddleware
from api.routes import health, tasks, team, templates, workspaces
from api.services import ServiceContainer, build_services
from collab.config import CORS_ORIGINS, LOG_FORMAT, LOG_LEVEL
from collab.logging.structured import configure_structlog


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the application with its services, middleware and routes."""
    configure_structlog(json_format=LOG_FORMAT == "json", log_level=LOG_LEVEL)

    app = FastAPI(
        title="Event Workspace Collaboration API",
        description="Workspaces, teams, tasks and templates for events",
        version="1.0.0",
    )
    app.state.services = services or build_services()

    # Request context (closest to route handlers)
    app.add_middleware(RequestContextMiddleware)

    # CORS (outermost - handles preflight requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(workspaces.router, prefix="/api")
    app.include_router(team.router, prefix="/api")
    app.include_router(tasks.router, prefix="/api")
    app.include_router(templates.router, prefix="/api")
    app.include_router(health.router, prefix="/api")
    return app


app = create_app()
