import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.constants import ParseMode
from telegram.error import BadRequest, NetworkError

from app.services.telegram_responder import (
    FORMAT_ERROR_PREFIX,
    TelegramResponder,
    split_message,
    strip_tags,
)


def _responder(side_effect=None, timeout=10):
    bot = MagicMock()
    bot.send_message = AsyncMock(side_effect=side_effect)
    return TelegramResponder(bot=bot, timeout=timeout), bot


@pytest.mark.asyncio
async def test_send_uses_html_by_default():
    responder, bot = _responder()
    assert await responder.send(555, "<b>hi</b>") is True
    bot.send_message.assert_awaited_once_with(
        chat_id=555, text="<b>hi</b>", parse_mode=ParseMode.HTML
    )


@pytest.mark.asyncio
async def test_bad_html_falls_back_to_plain_text():
    responder, bot = _responder(side_effect=[BadRequest("Can't parse entities"), None])
    assert await responder.send(555, "<b>broken <i>tag</b>") is True
    fallback = bot.send_message.await_args_list[1].kwargs
    assert fallback["parse_mode"] is None
    assert fallback["text"] == FORMAT_ERROR_PREFIX + "broken tag"


@pytest.mark.asyncio
async def test_network_errors_are_swallowed():
    responder, bot = _responder(side_effect=NetworkError("connection reset"))
    assert await responder.send(555, "hello") is False
    assert bot.send_message.await_count == 1


@pytest.mark.asyncio
async def test_plain_text_rejection_is_not_retried():
    responder, bot = _responder(side_effect=BadRequest("chat not found"))
    assert await responder.send(555, "hello", parse_mode=None) is False
    assert bot.send_message.await_count == 1


@pytest.mark.asyncio
async def test_timeout_is_swallowed():
    async def hang(**kwargs):
        await asyncio.sleep(1)

    bot = MagicMock()
    bot.send_message = hang
    responder = TelegramResponder(bot=bot, timeout=0.01)
    assert await responder.send(555, "hello") is False


@pytest.mark.asyncio
async def test_missing_chat_or_text_sends_nothing():
    responder, bot = _responder()
    assert await responder.send(None, "hello") is False
    assert await responder.send(555, "") is False
    bot.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_long_messages_are_split():
    responder, bot = _responder()
    text = ("line\n" * 1000) + "x" * 5000
    assert await responder.send(555, text) is True
    sent = [call.kwargs["text"] for call in bot.send_message.await_args_list]
    assert all(len(chunk) <= 4096 for chunk in sent)
    assert "".join(sent).replace("\n", "") == text.replace("\n", "")


def test_split_message_prefers_newlines():
    chunks = split_message("aaaa\nbbbb\ncc", limit=6)
    assert chunks == ["aaaa", "bbbb", "cc"]


def test_split_message_short_text_untouched():
    assert split_message("hello") == ["hello"]


def test_strip_tags():
    assert strip_tags("<b>Success!</b>\nYou are <i>linked</i>.") == "Success!\nYou are linked."
