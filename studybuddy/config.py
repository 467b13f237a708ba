"""Per-invocation relay configuration read from the environment."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .constants import (
    DEFAULT_DATA_STORE_TIMEOUT,
    DEFAULT_DATABASE,
    DEFAULT_INSIGHTS_TIMEOUT,
    DEFAULT_MODEL,
    DEFAULT_SEND_TIMEOUT,
)


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key, "").strip()
    if not raw:
        return float(default)
    try:
        value = float(raw)
    except ValueError:
        return float(default)
    return value if value > 0 else float(default)


@dataclass(frozen=True)
class RelayConfig:
    """Settings for one webhook invocation.

    Built by from_env() at the start of every request so secret rotation on
    the hosting platform takes effect without a redeploy.
    """

    bot_token: str = ""
    admin_chat_id: str = ""
    firestore_project: str = ""
    firestore_database: str = DEFAULT_DATABASE
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_MODEL
    link_code_api_key: str = ""
    data_store_timeout: float = DEFAULT_DATA_STORE_TIMEOUT
    insights_timeout: float = DEFAULT_INSIGHTS_TIMEOUT
    send_timeout: float = DEFAULT_SEND_TIMEOUT

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        env = os.environ if env is None else env
        return cls(
            bot_token=env.get("TELEGRAM_BOT_TOKEN", "").strip(),
            admin_chat_id=env.get("ADMIN_TELEGRAM_CHAT_ID", "").strip(),
            firestore_project=env.get("GOOGLE_CLOUD_PROJECT", "").strip(),
            firestore_database=env.get("FIRESTORE_DATABASE", "").strip() or DEFAULT_DATABASE,
            gemini_api_key=env.get("GEMINI_API_KEY", "").strip(),
            gemini_model=env.get("GEMINI_MODEL", "").strip() or DEFAULT_MODEL,
            link_code_api_key=env.get("LINK_CODE_API_KEY", "").strip(),
            data_store_timeout=_env_float(env, "DATA_STORE_TIMEOUT_SECONDS", DEFAULT_DATA_STORE_TIMEOUT),
            insights_timeout=_env_float(env, "INSIGHTS_TIMEOUT_SECONDS", DEFAULT_INSIGHTS_TIMEOUT),
            send_timeout=_env_float(env, "TELEGRAM_SEND_TIMEOUT_SECONDS", DEFAULT_SEND_TIMEOUT),
        )

    @property
    def has_bot_token(self) -> bool:
        return bool(self.bot_token)

    @property
    def has_data_store(self) -> bool:
        return bool(self.firestore_project)

    @property
    def has_insights_credential(self) -> bool:
        return bool(self.gemini_api_key)


def is_admin(chat_id, config: RelayConfig) -> bool:
    """Return True if chat_id is the configured admin chat.

    Compared as strings, like the value copied from /myid into the
    environment. An unset admin id never matches.
    """
    if not config.admin_chat_id or chat_id is None:
        return False
    return str(chat_id) == config.admin_chat_id
