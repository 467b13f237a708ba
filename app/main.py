"""FastAPI entry point for Cloud Run deployment."""
import hmac
import json
import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.logging_config import setup_logging
from app.metrics import NOTIFICATION_TOTAL
from app.telegram_handler import TelegramRelay, open_context
from studybuddy.config import RelayConfig
from studybuddy.constants import CORS_HEADERS, RATE_LIMIT_LINK_CODES, RATE_LIMIT_NOTIFY
from studybuddy.errors import DataStoreError, ValidationError
from studybuddy.handlers.notify import notify_parent
from studybuddy.validation import validate_notification, validate_user_id

setup_logging()
logger = logging.getLogger(__name__)

# Stateless: all per-request clients are created inside handle_webhook().
relay = TelegramRelay()

app = FastAPI()

# Rate limiting configuration (never applied to the Telegram webhook, where a
# 429 would make Telegram redeliver the update).
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors.

    Returns JSONResponse instead of raising exception.
    """
    logger.warning(f"Rate limit exceeded for {request.client.host}")
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "detail": "Too many requests. Please try again later.",
            "retry_after": "60 seconds"
        },
        headers=CORS_HEADERS,
    )


def _cors_json(content: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


# ---------------------------------------------------------------------------
# Telegram webhook
# ---------------------------------------------------------------------------

@app.options("/webhook/telegram")
async def telegram_webhook_preflight():
    return Response(headers={"Access-Control-Allow-Origin": "*"})


@app.post("/webhook/telegram")
async def telegram_webhook(request: Request):
    """Webhook endpoint for Telegram bot updates.

    Endpoint: POST /webhook/telegram

    Always answers 200 with a short plain-text body; Telegram retries any
    other status, which would replay commands.
    """
    try:
        body = await request.body()
        result = await relay.handle_webhook(body)
    except Exception as e:
        logger.error(f"Error processing Telegram webhook: {e}")
        import traceback
        logger.error(traceback.format_exc())
        result = "error"
    return PlainTextResponse(result, status_code=200)


@app.get("/telegram/webhook-status")
async def telegram_webhook_status():
    """Get Telegram bot status."""
    config = RelayConfig.from_env()
    if not config.has_bot_token:
        return {
            "status": "disabled",
            "message": "Telegram bot not configured",
            "data_store": config.has_data_store,
            "insights": config.has_insights_credential,
        }

    try:
        async with open_context(config) as context:
            bot_info = await context.responder.get_me()
        return {
            "status": "active",
            "bot_username": bot_info.username,
            "bot_name": bot_info.first_name,
            "data_store": config.has_data_store,
            "insights": config.has_insights_credential,
        }
    except Exception as e:
        logger.error(f"Error getting bot info: {e}")
        return {"status": "error", "message": str(e)}


# ---------------------------------------------------------------------------
# Parent notifications (called by the student app)
# ---------------------------------------------------------------------------

@app.options("/notify-parent")
async def notify_parent_preflight():
    return Response(status_code=204, headers=CORS_HEADERS)


@app.post("/notify-parent")
@limiter.limit(RATE_LIMIT_NOTIFY)
async def notify_parent_endpoint(request: Request):
    """Send an activity alert to a student's linked parent and the admin.

    Endpoint: POST /notify-parent
    Body: {"userId": str, "eventType": str, "summary": str}
    """
    config = RelayConfig.from_env()
    if not config.has_bot_token:
        return _cors_json({"error": "TELEGRAM_BOT_TOKEN not set"}, status_code=500)

    try:
        body = json.loads(await request.body())
    except ValueError:
        return _cors_json({"error": "Invalid JSON body"}, status_code=400)

    try:
        payload = validate_notification(body)
    except ValidationError as e:
        return _cors_json({"error": str(e)}, status_code=400)

    if not config.has_data_store:
        return _cors_json({"error": "GOOGLE_CLOUD_PROJECT not set"}, status_code=500)

    try:
        async with open_context(config) as context:
            result = await notify_parent(
                payload["user_id"], payload["event_type"], payload["summary"], context
            )
    except DataStoreError as e:
        logger.error(f"Profile lookup failed for user {payload['user_id']}: {e}")
        return _cors_json({"ok": False, "reason": "profile lookup failed"}, status_code=502)

    NOTIFICATION_TOTAL.labels(outcome="sent" if result.get("ok") else "no_recipients").inc()
    return _cors_json(result)


# ---------------------------------------------------------------------------
# Link code issue (the app-side half of the /start handshake)
# ---------------------------------------------------------------------------

@app.post("/link-codes")
@limiter.limit(RATE_LIMIT_LINK_CODES)
async def create_link_code(request: Request):
    """Issue a single-use code a parent can send to the bot as /start CODE.

    Endpoint: POST /link-codes
    Header: X-Api-Key must equal LINK_CODE_API_KEY.
    Body: {"userId": str}
    """
    config = RelayConfig.from_env()
    if not config.link_code_api_key:
        return JSONResponse(status_code=503, content={"error": "Link code issuing disabled"})

    api_key = request.headers.get("x-api-key", "")
    if not hmac.compare_digest(api_key.encode(), config.link_code_api_key.encode()):
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    if not config.has_data_store:
        return JSONResponse(status_code=500, content={"error": "GOOGLE_CLOUD_PROJECT not set"})

    try:
        body = json.loads(await request.body())
        user_id = validate_user_id(body.get("userId") if isinstance(body, dict) else None)["user_id"]
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    try:
        async with open_context(config) as context:
            code, expires_at = await context.store.create_link_code(user_id, context.clock())
    except DataStoreError as e:
        logger.error(f"Error creating link code for {user_id}: {e}")
        return JSONResponse(status_code=502, content={"error": "Could not create link code"})

    return {"code": code, "expiresAt": expires_at.isoformat()}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/healthz")
async def healthz():
    """Basic health check for Cloud Run."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8080)))
