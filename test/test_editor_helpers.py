import asyncio

import pytest

from taptab.services.editor.debounce import Debouncer
from taptab.services.editor.mutations import generate_temp_id, is_temp_id
from taptab.services.editor.notifier import Notifier
from taptab.services.editor.ordering import move_item, order_updates, reindex


def test_move_item():
    assert move_item(["a", "b", "c"], 2, 0) == ["c", "a", "b"]
    assert move_item(["a", "b", "c"], 0, 2) == ["b", "c", "a"]
    with pytest.raises(IndexError):
        move_item(["a"], 0, 3)


def test_reindex_is_contiguous():
    rows = [{"id": "x", "order_index": 7}, {"id": "y", "order_index": 2}]
    assert [r["order_index"] for r in reindex(rows)] == [0, 1]
    assert order_updates(reindex(rows)) == [{"id": "x", "order_index": 0}, {"id": "y", "order_index": 1}]


def test_temp_ids():
    temp = generate_temp_id()
    assert is_temp_id(temp)
    assert not is_temp_id("6d2f0c9e-0000-4000-8000-000000000000")
    assert not is_temp_id(None)


def test_notifier_keeps_recent_items():
    notifier = Notifier(max_items=2)
    notifier.success("Saved")
    notifier.error("Failed", "boom")
    notifier.error("Failed again")

    assert len(notifier.items) == 2
    assert [n.title for n in notifier.errors] == ["Failed", "Failed again"]
    assert notifier.errors[0].message == "boom"


async def test_debouncer_sends_only_latest_value():
    debouncer = Debouncer(delay=0.05)
    sent = []

    for value in ("C", "Ca", "Caf", "Cafe"):
        debouncer.call(("dish", "name"), lambda value=value: _record(sent, value))
        await asyncio.sleep(0.01)

    assert debouncer.pending == [("dish", "name")]
    await asyncio.sleep(0.1)
    await debouncer.wait_idle()

    assert sent == ["Cafe"]
    assert debouncer.pending == []


async def test_debouncer_flush_and_cancel():
    debouncer = Debouncer(delay=10)
    sent = []
    debouncer.call("a", lambda: _record(sent, "a"))
    debouncer.call("b", lambda: _record(sent, "b"))

    assert debouncer.cancel("b")
    results = await debouncer.flush()

    assert sent == ["a"]
    assert results == ["a"]
    assert not debouncer.cancel("a")


async def _record(sent, value):
    sent.append(value)
    return value
