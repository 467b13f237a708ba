import pytest

import app.telegram_handler as th
from conftest import ADMIN_CHAT_ID, FakeStore, make_config
from studybuddy.config import RelayConfig


def _relay(factory):
    return th.TelegramRelay(context_factory=factory, config_loader=make_config)


@pytest.mark.asyncio
async def test_ignored_update_needs_no_config(fake_context_factory, responder):
    def fail():
        raise AssertionError("config should not be read for ignored updates")

    relay = th.TelegramRelay(context_factory=fake_context_factory, config_loader=fail)
    assert await relay.handle_webhook(b"garbage") == "ok"
    assert await relay.handle_webhook(b'{"message": {"text": "/myid"}}') == "no chat id"
    assert responder.sent == []


@pytest.mark.asyncio
async def test_config_read_per_update(fake_context_factory, responder):
    calls = {"count": 0}

    def loader():
        calls["count"] += 1
        return make_config()

    relay = th.TelegramRelay(context_factory=fake_context_factory, config_loader=loader)
    body = b'{"message": {"chat": {"id": 5}, "text": "/myid"}}'
    await relay.handle_webhook(body)
    await relay.handle_webhook(body)
    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_explicit_config_overrides_loader(fake_context_factory, responder):
    relay = _relay(fake_context_factory)
    body = b'{"message": {"chat": {"id": 5}, "text": "/myid"}}'
    result = await relay.handle_webhook(body, config=RelayConfig())
    assert result == "config error"
    assert responder.sent == []


@pytest.mark.asyncio
async def test_returns_handler_outcome(fake_context_factory, store):
    store.students = 3
    relay = _relay(fake_context_factory)
    body = f'{{"message": {{"chat": {{"id": {ADMIN_CHAT_ID}}}, "text": "/stats"}}}}'
    assert await relay.handle_webhook(body.encode()) == "ok"
    stranger = b'{"message": {"chat": {"id": 2}, "text": "/stats"}}'
    assert await relay.handle_webhook(stranger) == "unauthorized"


@pytest.mark.asyncio
async def test_context_factory_failure_is_acknowledged():
    def broken_factory(config):
        raise RuntimeError("cannot build clients")

    relay = _relay(broken_factory)
    body = b'{"message": {"chat": {"id": 5}, "text": "/myid"}}'
    assert await relay.handle_webhook(body) == "error"


@pytest.mark.asyncio
async def test_open_context_builds_only_configured_clients(monkeypatch):
    closed = []

    class Recorder:
        def __init__(self, *args, **kwargs):
            self.kwargs = kwargs

        async def close(self):
            closed.append(type(self).__name__)

    class FakeResponder(Recorder):
        pass

    class FakeStore(Recorder):
        pass

    class FakeGenerator(Recorder):
        pass

    monkeypatch.setattr(th, "TelegramResponder", FakeResponder)
    monkeypatch.setattr(th, "FirestoreStore", FakeStore)
    monkeypatch.setattr(th, "GeminiInsightGenerator", FakeGenerator)

    async with th.open_context(make_config(gemini_api_key="")) as context:
        assert isinstance(context.responder, FakeResponder)
        assert isinstance(context.store, FakeStore)
        assert context.store.kwargs["project"] == "studybuddy-test"
        assert context.generator is None

    assert sorted(closed) == ["FakeResponder", "FakeStore"]

    async with th.open_context(make_config(firestore_project="")) as context:
        assert context.store is None
        assert isinstance(context.generator, FakeGenerator)
        assert context.generator.kwargs["model"] == "gemini-2.5-flash"


@pytest.mark.asyncio
async def test_open_context_without_bot_token_has_no_responder(monkeypatch):
    def no_bot(*args, **kwargs):
        raise AssertionError("responder needs a bot token")

    monkeypatch.setattr(th, "TelegramResponder", no_bot)
    monkeypatch.setattr(th, "FirestoreStore", lambda **kwargs: FakeStore())

    async with th.open_context(make_config(bot_token="")) as context:
        assert context.responder is None
        assert isinstance(context.store, FakeStore)
