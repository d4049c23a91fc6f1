"""
FastAPI application factory.

``create_app`` wires the routers, the pagination extension and a lifespan that
configures logging, creates the message-log tables and runs the periodic
session/dedup sweeper.
"""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.responses import HTMLResponse
from fastapi_pagination import add_pagination

from recepcion.config import get_settings
from recepcion.core.app_state import AppState
from recepcion.db import db_manager
from recepcion.infra.logging_config import LoggingConfig, get_logger
from recepcion.routers import cases_router, outbound, sessions_router, system, webhooks
from recepcion.routers.utils.dependencies import get_app_state

logger = get_logger("main")

PRIVACY_HTML = """<html><head><meta charset="utf-8"><title>Privacidad</title></head>
<body style="font-family:system-ui;padding:24px;max-width:820px;margin:auto">
<h1>Política de Privacidad — Recepción Automática ({clinic_name})</h1>
<p>Este sistema responde mensajes para orientar turnos e información general.
No es un servicio de emergencias.</p>
<p>Los mensajes pueden procesarse para mejorar la atención y generar trazabilidad
operativa. No compartimos datos con terceros ajenos a la prestación del servicio.</p>
<p>Contacto: {clinic_email}</p>
</body></html>"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    state: AppState = app.state.recepcion
    LoggingConfig(state.settings.log_level)
    db_manager.create_all()
    sweeper = None if app.state.testing else asyncio.create_task(state.run_sweeper())
    logger.info(
        "Recepcion started",
        extra={"environment": state.settings.environment, "port": state.settings.port},
    )
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        state.shutdown()


def create_app(testing: bool = False, state: Optional[AppState] = None) -> FastAPI:
    settings = get_settings() if state is None else state.settings
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.testing = testing
    app.state.recepcion = state or AppState(settings)

    app.include_router(webhooks.router)
    app.include_router(webhooks.legacy_router)
    app.include_router(outbound.router)
    app.include_router(sessions_router.sessions_router)
    app.include_router(cases_router.cases_router)
    app.include_router(system.router)
    add_pagination(app)

    @app.get("/health", tags=["system"])
    def health(app_state: AppState = Depends(get_app_state)) -> dict:
        return {"ok": True, "uptime_s": app_state.uptime_seconds()}

    @app.get("/privacidad", response_class=HTMLResponse, include_in_schema=False)
    def privacy() -> str:
        return PRIVACY_HTML.format(
            clinic_name=settings.clinic_name, clinic_email=settings.clinic_email
        )

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn on PORT."""
    import uvicorn

    uvicorn.run("recepcion.main:app", host="0.0.0.0", port=get_settings().port)
