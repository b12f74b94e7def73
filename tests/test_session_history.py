import json
from datetime import datetime, timedelta, timezone

from gw2.models import CurrencyDelta, ItemDelta
from loot.history import SessionHistory, format_timestamp

START = datetime(2024, 5, 1, 18, 0, 5, tzinfo=timezone.utc)


def test_format_timestamp_is_utc():
    assert format_timestamp(START) == "2024-05-01T18:00:05Z"
    local = START.astimezone(timezone(timedelta(hours=2)))
    assert format_timestamp(local) == "2024-05-01T18:00:05Z"
    assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05Z"


def test_empty_session_is_not_saved(tmp_path):
    history = SessionHistory(tmp_path / "history.json")
    assert history.save_session(START, START, [], []) is None
    assert history.save_session(
        START, START, [ItemDelta(id=1, name="Thing", delta=0)], []
    ) is None
    assert history.get_all() == []
    assert not (tmp_path / "history.json").exists()


def test_saved_sessions_persist_and_list_newest_first(tmp_path):
    path = tmp_path / "history.json"
    history = SessionHistory(path)
    first = history.save_session(
        START,
        START + timedelta(hours=1),
        [ItemDelta(id=19721, name="Glob of Ectoplasm", delta=4, rarity="Exotic", vendor_value=256)],
        [CurrencyDelta(id=1, name="Coin", delta=12345)],
    )
    second = history.save_session(
        START, START, [], [CurrencyDelta(id=2, name="Karma", delta=-10)]
    )
    assert first.label == "Session 1"
    assert second.label == "Session 2"

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw[0]["startTimestamp"] == "2024-05-01T18:00:05Z"
    assert raw[0]["endTimestamp"] == "2024-05-01T19:00:05Z"
    assert raw[0]["items"][0]["vendorValue"] == 256

    reloaded = SessionHistory(path)
    assert reloaded.load() == 2
    labels = [session.label for session in reloaded.get_all()]
    assert labels == ["Session 2", "Session 1"]
    restored = reloaded.get_all()[1]
    assert restored.items[0].name == "Glob of Ectoplasm"
    assert restored.items[0].rarity == "Exotic"
    assert restored.currencies[0].delta == 12345

    third = reloaded.save_session(START, START, [ItemDelta(id=3, name="X", delta=1)], [])
    assert third.label == "Session 3"


def test_corrupt_history_loads_empty(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{broken", encoding="utf-8")
    history = SessionHistory(path)
    assert history.load() == 0
    assert history.get_all() == []


def test_default_path_uses_data_dir(isolated_data_dir):
    history = SessionHistory()
    assert history.path == isolated_data_dir / "history.json"
