import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .api import auth, dues, members, notifications, payments, reminders, reports, system, transactions
from .config import Base, settings
from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .core.request_context import request_context_middleware
from .services.notifications import notification_center

configure_logging(settings.log_level, settings.log_format)

logger = logging.getLogger(__name__)

app = FastAPI(title="Kas Treasury")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_context_middleware)
register_exception_handlers(app)


@app.on_event("startup")
def startup() -> None:
    # In dev we make sure tables exist. Alembic migrations should be used for real schema evolution.
    Base.metadata.create_all(bind=config.engine)
    logger.info("Kas Treasury started (database=%s)", config.engine.url.render_as_string(hide_password=True))


@app.on_event("startup")
async def configure_notification_center() -> None:
    notification_center.configure_loop(asyncio.get_running_loop())


@app.on_event("shutdown")
async def shutdown_notification_center() -> None:
    await notification_center.shutdown()


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(members.router, prefix="/members", tags=["members"])
app.include_router(dues.router, prefix="/dues", tags=["dues"])
app.include_router(payments.router, prefix="/payments", tags=["payments"])
app.include_router(reminders.router, prefix="/reminders", tags=["reminders"])
app.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
app.include_router(reports.router, prefix="/reports", tags=["reports"])
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
app.include_router(system.router, prefix="/system", tags=["system"])
