"""Shared in-memory collaborators for relay tests."""
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest

from studybuddy.config import RelayConfig
from studybuddy.errors import DataStoreError
from studybuddy.handlers.context import RelayContext
from studybuddy.insights import InsightResult
from studybuddy.link_codes import expiry_for, is_expired

ADMIN_CHAT_ID = 1001
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeResponder:
    def __init__(self):
        self.sent = []

    async def send(self, chat_id, text, parse_mode="HTML"):
        self.sent.append((chat_id, text))
        return True

    async def close(self):
        pass


class FakeStore:
    """Mimics FirestoreStore on plain dicts."""

    def __init__(self, students=0, quizzes=0, history=None):
        self.students = students
        self.quizzes = quizzes
        self.history = list(history or [])
        self.codes = {}
        self.profiles = {}
        self.fail_profile_update = False
        self.fail_reads = False
        self.code_reads = 0

    def add_code(self, code, user_id, expires_at):
        self.codes[code] = {"user_id": user_id, "expires_at": expires_at}

    async def count_students(self):
        if self.fail_reads:
            raise DataStoreError("count_students timed out")
        return self.students

    async def count_quizzes(self):
        if self.fail_reads:
            raise DataStoreError("count_quizzes timed out")
        return self.quizzes

    async def recent_quizzes(self, limit=20):
        if self.fail_reads:
            raise DataStoreError("recent_quizzes timed out")
        return self.history[:limit]

    async def link_parent_chat(self, code, chat_id, now):
        self.code_reads += 1
        row = self.codes.get(code)
        if row is None or is_expired(row["expires_at"], now):
            return None
        if self.fail_profile_update:
            raise DataStoreError("link_parent_chat failed: 404 profile not found")
        self.profiles.setdefault(row["user_id"], {})["parent_telegram_chat_id"] = str(chat_id)
        del self.codes[code]
        return row["user_id"]

    async def create_link_code(self, user_id, now):
        code = f"{100000 + len(self.codes)}"
        self.add_code(code, user_id, expiry_for(now))
        return code, expiry_for(now)

    async def parent_chat_for(self, user_id):
        profile = self.profiles.get(user_id)
        if profile is None:
            return None, None
        return profile.get("parent_telegram_chat_id"), profile.get("full_name")

    async def close(self):
        pass


class FakeGenerator:
    def __init__(self, result=None):
        self.result = result or InsightResult(ok=True, text="<b>PERFORMANCE TRENDS</b>\n• steady")
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        return self.result


def make_config(**overrides):
    base = {
        "bot_token": "123:abc",
        "admin_chat_id": str(ADMIN_CHAT_ID),
        "firestore_project": "studybuddy-test",
        "gemini_api_key": "gemini-key",
    }
    base.update(overrides)
    return RelayConfig(**base)


@pytest.fixture
def responder():
    return FakeResponder()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def make_context(responder, store, generator):
    def _make(config=None, with_store=True, with_generator=True):
        return RelayContext(
            config=config or make_config(),
            responder=responder,
            store=store if with_store else None,
            generator=generator if with_generator else None,
            clock=lambda: NOW,
        )
    return _make


@pytest.fixture
def fake_context_factory(responder, store, generator):
    """Stand-in for app.telegram_handler.open_context."""

    @asynccontextmanager
    async def factory(config):
        yield RelayContext(
            config=config,
            responder=responder,
            store=store if config.has_data_store else None,
            generator=generator if config.has_insights_credential else None,
            clock=lambda: NOW,
        )

    return factory


def future(minutes=10):
    return NOW + timedelta(minutes=minutes)


def past(minutes=10):
    return NOW - timedelta(minutes=minutes)
