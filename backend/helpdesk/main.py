from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from helpdesk.core.config import settings
from helpdesk.core.exceptions import HelpdeskException
from helpdesk.core.logging import setup_logging
from helpdesk.routers import automations, mailboxes
from helpdesk.services.mail_poller import start_mail_poller, stop_mail_poller
from helpdesk.services.notifications import shutdown_notifications


def create_app() -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await start_mail_poller()
        try:
            yield
        finally:
            await stop_mail_poller()
            shutdown_notifications(wait=False)

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(mailboxes.router, prefix="/api/mailboxes", tags=["mailboxes"])
    app.include_router(automations.router, prefix="/api/tickets", tags=["automations"])

    @app.exception_handler(HelpdeskException)
    async def handle_helpdesk_exception(_: Request, exc: HelpdeskException) -> JSONResponse:
        headers = exc.headers if getattr(exc, "headers", None) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    return app


app = create_app()
