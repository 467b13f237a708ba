"""Telegram webhook relay for StudyBuddy.

This module is the bridge between Telegram and the StudyBuddy data.  It
receives Bot API updates (via webhook), works out which command was sent,
runs the matching handler and replies in the same chat.

Architecture overview:
  Telegram Cloud  ──webhook POST──►  Cloud Run (main.py)
                                        │
                                        ▼
                                  TelegramRelay.handle_webhook()
                                        │
                                        ▼
                                  decode_update()   body → IncomingMessage
                                        │
                                        ▼
                                  dispatch()  →  route(text) → Intent
                                        │
               ┌──────────────┬─────────┴─────────┬──────────────┐
               ▼              ▼                   ▼              ▼
            /myid          /stats            /insights      /start [code]
          (anyone)        (admin)             (admin)         (anyone)
               │              │                   │              │
               │         Firestore counts   Firestore + Gemini   Firestore
               │              │                   │          transaction
               └──────────────┴─────────┬─────────┴──────────────┘
                                        ▼
                              TelegramResponder.send()

Key design decisions:
  - The webhook is always acknowledged with HTTP 200.  Telegram redelivers
    anything else, so parse errors, unauthorized callers, provider failures
    and even unexpected exceptions end in a plain-text "ok"-style body.
  - No client outlives a request.  The responder, Firestore store and Gemini
    generator are built from RelayConfig at the start of every invocation
    and closed at the end (see open_context()).
  - Non-admin calls to admin commands get no reply at all, exactly like an
    unknown command.
  - Parent linking redeems the code inside one Firestore transaction, so a
    redelivered or duplicated /start cannot link twice.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from app.metrics import COMMAND_TOTAL, UPDATE_TOTAL
from app.services.firestore_store import FirestoreStore
from app.services.insight_generator import GeminiInsightGenerator
from app.services.telegram_responder import TelegramResponder
from studybuddy.config import RelayConfig
from studybuddy.handlers.context import RelayContext
from studybuddy.handlers.dispatch import dispatch
from studybuddy.update_decoder import decode_update

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_context(config: RelayConfig) -> AsyncIterator[RelayContext]:
    """Build the per-invocation collaborators and release them afterwards.

    The responder is only created when TELEGRAM_BOT_TOKEN is set, the store
    only when GOOGLE_CLOUD_PROJECT is set, and the generator only when
    GEMINI_API_KEY is set; handlers treat a missing collaborator as a
    configuration error.
    """
    responder = None
    if config.has_bot_token:
        responder = TelegramResponder(config.bot_token, timeout=config.send_timeout)
    store = None
    if config.has_data_store:
        store = FirestoreStore(
            project=config.firestore_project,
            database=config.firestore_database,
            timeout=config.data_store_timeout,
        )
    generator = None
    if config.has_insights_credential:
        generator = GeminiInsightGenerator(
            api_key=config.gemini_api_key,
            model=config.gemini_model,
            timeout=config.insights_timeout,
        )

    try:
        yield RelayContext(
            config=config, responder=responder, store=store, generator=generator
        )
    finally:
        if responder is not None:
            await responder.close()
        if store is not None:
            await store.close()


class TelegramRelay:
    """Stateless webhook handler; one handle_webhook() call per update."""

    def __init__(
        self,
        context_factory: Callable = open_context,
        config_loader: Callable[[], RelayConfig] = RelayConfig.from_env,
    ):
        """Initialize the relay.

        Args:
            context_factory: Async context manager factory taking a
                RelayConfig and yielding a RelayContext.
            config_loader: Reads configuration at the start of each update.
        """
        self.context_factory = context_factory
        self.config_loader = config_loader

    async def handle_webhook(self, raw_body, config: Optional[RelayConfig] = None) -> str:
        """Handle an incoming webhook POST from Telegram.

        This is the top-level entry point.  main.py passes the raw request
        body here and returns whatever string comes back as the response
        body.  Never raises.

        Args:
            raw_body: Raw bytes of the webhook POST body.
            config: Configuration override (read from the environment if None).

        Returns:
            A short informational acknowledgement ("ok", "no chat id", ...).
        """
        message = decode_update(raw_body)
        if message is None:
            UPDATE_TOTAL.labels(outcome="ignored").inc()
            return "ok"

        if message.chat_id is None:
            UPDATE_TOTAL.labels(outcome="no_chat_id").inc()
            return "no chat id"

        config = config or self.config_loader()
        if not config.has_bot_token:
            logger.error("TELEGRAM_BOT_TOKEN is missing")
            UPDATE_TOTAL.labels(outcome="config_error").inc()
            return "config error"

        logger.info(f"Processing Telegram message from {message.chat_id}: {message.text[:50]}")

        try:
            async with self.context_factory(config) as context:
                command, outcome = await dispatch(message, context)
        except Exception as e:
            logger.error(f"Error processing webhook update from {message.chat_id}: {e}")
            import traceback
            logger.error(traceback.format_exc())
            UPDATE_TOTAL.labels(outcome="error").inc()
            return "error"

        COMMAND_TOTAL.labels(command=command.intent.value, outcome=outcome).inc()
        UPDATE_TOTAL.labels(outcome="handled").inc()
        return outcome
