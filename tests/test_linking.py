import pytest

from conftest import future, past
from studybuddy import messages
from studybuddy.handlers.linking import link_account
from studybuddy.update_decoder import IncomingMessage

PARENT = IncomingMessage(chat_id=777, text="")


@pytest.mark.asyncio
async def test_empty_code_shows_instructions_without_store_read(make_context, responder, store):
    outcome = await link_account(PARENT, "", make_context())
    assert outcome == "instructions"
    assert responder.sent == [(777, messages.LINK_INSTRUCTIONS)]
    assert store.code_reads == 0


@pytest.mark.asyncio
async def test_empty_code_needs_no_store(make_context, responder):
    outcome = await link_account(PARENT, "", make_context(with_store=False))
    assert outcome == "instructions"


@pytest.mark.asyncio
async def test_valid_code_links_profile_and_is_consumed(make_context, responder, store):
    store.add_code("7Q2K9X", "u-1", future())
    outcome = await link_account(PARENT, "7Q2K9X", make_context())
    assert outcome == "linked"
    assert store.profiles["u-1"]["parent_telegram_chat_id"] == "777"
    assert "7Q2K9X" not in store.codes
    assert responder.sent == [(777, messages.LINK_SUCCESS)]


@pytest.mark.asyncio
async def test_unknown_and_expired_codes_get_same_reply(make_context, responder, store):
    store.add_code("ABC123", "u-2", past())

    await link_account(PARENT, "ABC123", make_context())
    expired_reply = responder.sent[-1]

    del store.codes["ABC123"]
    await link_account(PARENT, "ABC123", make_context())
    missing_reply = responder.sent[-1]

    assert expired_reply == missing_reply == (777, messages.LINK_INVALID)
    assert "u-2" not in store.profiles


@pytest.mark.asyncio
async def test_code_cannot_be_used_twice(make_context, responder, store):
    store.add_code("123456", "u-1", future())
    first = await link_account(PARENT, "123456", make_context())
    second = await link_account(IncomingMessage(chat_id=888, text=""), "123456", make_context())
    assert first == "linked"
    assert second == "invalid code"
    assert store.profiles["u-1"]["parent_telegram_chat_id"] == "777"
    assert responder.sent[-1] == (888, messages.LINK_INVALID)


@pytest.mark.asyncio
async def test_profile_update_failure_keeps_code(make_context, responder, store):
    store.add_code("123456", "u-1", future())
    store.fail_profile_update = True

    outcome = await link_account(PARENT, "123456", make_context())
    assert outcome == "link error"
    assert responder.sent == [(777, messages.LINK_FAILED)]
    assert "123456" in store.codes

    store.fail_profile_update = False
    assert await link_account(PARENT, "123456", make_context()) == "linked"


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["12/34", "a b", "x" * 40, "<b>1</b>"])
async def test_malformed_code_is_invalid_without_store_read(make_context, responder, store, code):
    outcome = await link_account(PARENT, code, make_context())
    assert outcome == "invalid code"
    assert responder.sent == [(777, messages.LINK_INVALID)]
    assert store.code_reads == 0


@pytest.mark.asyncio
async def test_missing_store_reports_config(make_context, responder):
    outcome = await link_account(PARENT, "123456", make_context(with_store=False))
    assert outcome == "missing db keys"
    assert responder.sent == [(777, messages.DATA_STORE_NOT_CONFIGURED)]
