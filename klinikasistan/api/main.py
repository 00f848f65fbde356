"""KlinikAsistan FastAPI application, entry point.

Start with:
    uvicorn klinikasistan.api.main:app --reload --host 0.0.0.0 --port 8000

The LLM client comes from env (OPENAI_API_KEY or GEMINI_API_KEY); without a
key the no-op client is used, free-text messages then get the parse-error
help text while slash commands keep working.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from klinikasistan.api.dependencies import limiter
from klinikasistan.api.errors import clinic_error_handler
from klinikasistan.clients.llm.base import BaseLLMClient
from klinikasistan.clients.llm.registry import build_llm_client_from_env
from klinikasistan.config import ClinicConfig, load_clinic_config
from klinikasistan.core.enums import ReminderChannel
from klinikasistan.core.exceptions import ClinicError
from klinikasistan.core.logger import configure as configure_logging
from klinikasistan.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from klinikasistan.integrations.base import LoggingSender, MessageSender
from klinikasistan.integrations.telegram import TelegramClient
from klinikasistan.integrations.whatsapp import WhatsAppClient
from klinikasistan.orchestrator.classifiers.message_classifier import MessageClassifier
from klinikasistan.orchestrator.commands.router import CommandRouter
from klinikasistan.orchestrator.dates import DateResolver
from klinikasistan.orchestrator.handlers.action_dispatcher import ActionDispatcher
from klinikasistan.orchestrator.handlers.assistant import ClinicAssistant, ClinicTools
from klinikasistan.orchestrator.pipeline import MessagePipeline
from klinikasistan.services.reminder_service import ReminderService

logger = logging.getLogger(__name__)


def _reminder_sender(
    channel: ReminderChannel,
    whatsapp: Optional[WhatsAppClient],
    telegram: Optional[TelegramClient],
) -> MessageSender:
    if channel == ReminderChannel.WHATSAPP and whatsapp is not None:
        return whatsapp
    if channel == ReminderChannel.TELEGRAM and telegram is not None:
        return telegram
    logger.info("API: no transport for %s reminders, messages will only be logged", channel.value)
    return LoggingSender(channel.value)


def build_components(
    app: FastAPI,
    session_factory: "async_sessionmaker[AsyncSession]",
    config: ClinicConfig,
    llm: BaseLLMClient,
) -> None:
    """Wire the pipeline, assistant and reminder service onto ``app.state``."""
    resolver = DateResolver(config.tzinfo)
    whatsapp = WhatsAppClient.from_env()
    telegram = TelegramClient.from_env()

    reminders = ReminderService(
        session_factory,
        llm=llm,
        sender=_reminder_sender(config.reminder_channel, whatsapp, telegram),
        tz=config.tzinfo,
        cooldown_days=config.reminder_cooldown_days,
        llm_timeout_seconds=config.llm_timeout_seconds,
    )
    router = CommandRouter(session_factory, resolver, reminders=reminders)
    classifier = MessageClassifier(llm, resolver, timeout_seconds=config.llm_timeout_seconds)
    dispatcher = ActionDispatcher(
        session_factory, resolver, default_appointment_minutes=config.default_appointment_minutes
    )

    app.state.session_factory = session_factory
    app.state.clinic_config = config
    app.state.resolver = resolver
    app.state.llm_client = llm
    app.state.reminders = reminders
    app.state.pipeline = MessagePipeline(router, classifier, dispatcher)
    app.state.assistant = ClinicAssistant(
        llm,
        ClinicTools(session_factory, resolver),
        resolver,
        max_steps=config.assistant_max_tool_steps,
        timeout_seconds=config.llm_timeout_seconds,
    )
    app.state.whatsapp = whatsapp
    app.state.telegram = telegram


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ──────────────────────────────────────────────────
    configure_logging()
    config = load_clinic_config()

    await ensure_database_exists()
    engine = build_engine()
    session_factory = build_session_factory(engine)
    await init_db()

    build_components(app, session_factory, config, build_llm_client_from_env())
    logger.info(
        "API: ready (timezone=%s, reminder channel=%s)", config.timezone, config.reminder_channel.value
    )

    yield

    # ── Shutdown ─────────────────────────────────────────────────
    await close_engine()
    logger.info("API: engine disposed")


app = FastAPI(
    title="KlinikAsistan API",
    version="1.0.0",
    description="Clinic messaging assistant: slash commands, free-text records, booking and reminders.",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(ClinicError, clinic_error_handler)

_allowed_origins = os.environ.get(
    "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ───────────────────────────────────────────────────────
from klinikasistan.api.routers import (  # noqa: E402
    appointments,
    assistant,
    cron,
    messages,
    reminder_rules,
    reminders,
    schedule,
    stock,
    webhooks,
)

app.include_router(appointments.router, prefix="/api/v1")
app.include_router(messages.router, prefix="/api/v1")
app.include_router(reminders.router, prefix="/api/v1")
app.include_router(reminder_rules.router, prefix="/api/v1")
app.include_router(schedule.router, prefix="/api/v1")
app.include_router(stock.router, prefix="/api/v1")
app.include_router(assistant.router, prefix="/api/v1")
app.include_router(cron.router)
app.include_router(webhooks.router)


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
