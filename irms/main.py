# irms/main.py
from __future__ import annotations

import logging
from typing import Optional

import httpx
from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI

# ---------------------------
# Env loading (.env in the working directory, if present)
# ---------------------------
load_dotenv(find_dotenv(usecwd=True))

from irms.api import health  # noqa: E402
from irms.api.v1 import (  # noqa: E402
    ai,
    audit_logs,
    auth,
    categories,
    comments,
    dashboard,
    departments,
    incidents,
    risks,
    tasks,
    users,
)
from irms.core.config import Settings, get_settings  # noqa: E402
from irms.core.errors import register_exception_handlers  # noqa: E402
from irms.db.session import Database  # noqa: E402
from irms.middleware.request_logging import RequestLoggingMiddleware  # noqa: E402
from irms.services.advisor import AdvisoryClient  # noqa: E402

log = logging.getLogger("irms")

V1_ROUTERS = (
    auth.router,
    users.router,
    departments.router,
    categories.router,
    incidents.router,
    risks.router,
    tasks.router,
    comments.router,
    dashboard.router,
    ai.router,
    audit_logs.router,
)


def create_app(
    settings: Optional[Settings] = None,
    advisor_transport: Optional[httpx.BaseTransport] = None,
) -> FastAPI:
    """
    Build the application. Tests pass their own settings (and a mock
    transport for the AI client); production uses the environment.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.app_name, version="1.0.0")
    app.state.settings = settings
    app.state.db = Database(settings.database_url)
    app.state.advisor = AdvisoryClient(settings, transport=advisor_transport)

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    for router in V1_ROUTERS:
        app.include_router(router, prefix="/api/v1")
    app.include_router(health.router, prefix="/api")

    @app.on_event("startup")
    def _open_database():
        # dev convenience; production schema comes from alembic
        if settings.enable_create_all:
            app.state.db.create_all()
        if not app.state.advisor.enabled:
            log.warning("AI_API_KEY not set; AI endpoints will return fallback suggestions")
        log.info("IRMS started (db=%s)", app.state.db.engine.url.render_as_string(hide_password=True))

    @app.on_event("shutdown")
    def _close_database():
        app.state.db.dispose()

    return app


app = create_app()
