"""
Tests for event fan-out and run history export.
"""
import asyncio

import pandas as pd
import pytest

from poster.export import HISTORY_COLUMNS, history_frame, save_run_report
from poster.notifier import Notifier


def test_emit_prefixes_and_timestamps():
    notifier = Notifier()
    received = []
    notifier.subscribe(lambda event, payload: received.append((event, payload)))

    payload = asyncio.run(notifier.emit("processing", item={"row_number": 5, "title": "Desk"}))

    assert received[0][0] == "automation:processing"
    assert payload["item"]["title"] == "Desk"
    assert "timestamp" in payload


def test_async_listeners_are_awaited():
    notifier = Notifier()
    received = []

    async def listener(event, payload):
        received.append(event)

    notifier.subscribe(listener)
    asyncio.run(notifier.emit("paused"))
    assert received == ["automation:paused"]


def test_failing_listener_does_not_block_others():
    notifier = Notifier()
    received = []

    def broken(event, payload):
        raise RuntimeError("socket closed")

    notifier.subscribe(broken)
    notifier.subscribe(lambda event, payload: received.append(event))
    asyncio.run(notifier.emit("resumed"))
    assert received == ["automation:resumed"]


def test_unknown_event_rejected():
    with pytest.raises(ValueError):
        asyncio.run(Notifier().emit("exploded"))


def test_subscribe_is_deduplicated():
    notifier = Notifier()

    def listener(event, payload):
        pass

    notifier.subscribe(listener)
    notifier.subscribe(listener)
    assert notifier.listener_count == 1
    notifier.unsubscribe(listener)
    assert notifier.listener_count == 0


HISTORY = [
    {"row_number": 5, "item_name": "Desk", "status": "Completed",
     "listing_url": "https://www.facebook.com/marketplace/item/1", "error": None,
     "method": "direct", "finished_at": "2024-01-01T00:00:00+00:00"},
    {"row_number": 6, "item_name": "Chair", "status": "Failed", "error": "Invalid price: free"},
]


def test_history_frame_columns():
    df = history_frame(HISTORY)
    assert list(df.columns) == HISTORY_COLUMNS
    assert len(df) == 2
    assert pd.isna(df.loc[1, "listing_url"])

    empty = history_frame([])
    assert list(empty.columns) == HISTORY_COLUMNS
    assert empty.empty


def test_save_run_report_csv(tmp_path):
    out = tmp_path / "report.csv"
    assert save_run_report(HISTORY, str(out)) == 2
    df = pd.read_csv(out)
    assert df["item_name"].tolist() == ["Desk", "Chair"]


def test_save_run_report_xlsx(tmp_path):
    out = tmp_path / "report.xlsx"
    assert save_run_report(HISTORY, str(out)) == 2
    df = pd.read_excel(out)
    assert df["status"].tolist() == ["Completed", "Failed"]
