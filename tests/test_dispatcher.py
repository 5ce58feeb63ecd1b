"""Event dispatch: log formatting and callback fan-out."""

import logging

from ws402.classifier import classify
from ws402.dispatcher import ALL_EVENTS, EventDispatcher, format_meta
from ws402.models.events import EventKind

TX = {
    "type": "transaction", "signature": "sig", "slot": 3, "commitment": "processed",
    "nativeTransfers": [], "tokenTransfers": [{"mint": "M"}],
}


def test_format_meta():
    assert format_meta({"a": 1}) == '{"a": 1}'
    assert format_meta({"bad": {1, 2}}).startswith('{"bad":')
    cyclic: dict = {}
    cyclic["self"] = cyclic
    assert format_meta(cyclic) == '"[unserializable]"'


def test_full_and_summary_modes():
    event = classify(TX)
    label, meta = EventDispatcher(mode="full").describe(event)
    assert label == "transaction"
    assert meta["event"]["signature"] == "sig"
    assert meta["event"]["tokenTransfers"][0]["mint"] == "M"

    label, meta = EventDispatcher(mode="summary").describe(event)
    assert meta == {"signature": "sig", "slot": 3, "commitment": "processed", "tokenTransfers": 1, "mints": ["M"]}


def test_describe_lifecycle_and_unrecognized():
    dispatcher = EventDispatcher()
    assert dispatcher.describe(classify({"op": "hello"})) == ("ws event", {"op": "hello"})
    label, meta = dispatcher.describe(classify("nope"))
    assert label == "ws event ignored"
    assert "reason" in meta


def test_callbacks_by_kind_and_wildcard():
    dispatcher = EventDispatcher()
    seen_slots, seen_all = [], []
    dispatcher.on(EventKind.SLOT, seen_slots.append)
    remove = dispatcher.on(ALL_EVENTS, seen_all.append)

    dispatcher.dispatch(classify({"type": "slot", "slot": 1}))
    dispatcher.dispatch(classify({"type": "account", "pubkey": "PK"}))
    assert len(seen_slots) == 1
    assert len(seen_all) == 2

    remove()
    remove()
    dispatcher.dispatch(classify({"type": "slot", "slot": 2}))
    assert len(seen_slots) == 2
    assert len(seen_all) == 2


def test_failing_callback_is_logged(caplog):
    dispatcher = EventDispatcher()
    after = []

    def boom(event):
        raise RuntimeError("boom")

    dispatcher.on(ALL_EVENTS, boom)
    dispatcher.on(ALL_EVENTS, after.append)
    with caplog.at_level(logging.INFO, logger="ws402.dispatcher"):
        dispatcher.dispatch(classify({"type": "slot", "slot": 1}))
    assert after
    assert "Event callback failed" in caplog.text
    assert 'slot {"slot": 1' in caplog.text


def test_unrecognized_logs_warning(caplog):
    with caplog.at_level(logging.INFO, logger="ws402.dispatcher"):
        EventDispatcher().dispatch(classify("[]"))
    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.getMessage().startswith("ws event ignored")
