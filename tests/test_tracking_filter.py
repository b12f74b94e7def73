import json

from loot.tracking_filter import TrackingFilter, TrackingMode, TrackingProfile


def test_all_mode_tracks_everything(tmp_path):
    tracking = TrackingFilter(tmp_path / "profiles.json")
    assert tracking.mode is TrackingMode.ALL
    assert tracking.is_item_tracked(1)
    assert tracking.is_currency_tracked(99)


def test_custom_profile_restricts_ids(tmp_path):
    tracking = TrackingFilter(tmp_path / "profiles.json")
    index = tracking.new_profile("Fractals")
    assert tracking.mode is TrackingMode.CUSTOM
    assert tracking.active_index == index

    # Empty sets still mean "everything".
    assert tracking.is_item_tracked(5)

    tracking.update_profile(index, TrackingProfile("Fractals", {19721}, {1}))
    assert tracking.is_item_tracked(19721)
    assert not tracking.is_item_tracked(5)
    assert tracking.is_currency_tracked(1)
    assert not tracking.is_currency_tracked(2)

    tracking.set_mode(TrackingMode.ALL)
    assert tracking.is_item_tracked(5)
    assert tracking.active_index == -1


def test_get_profiles_returns_copies(tmp_path):
    tracking = TrackingFilter(tmp_path / "profiles.json")
    tracking.new_profile("A")
    tracking.get_profiles()[0].item_ids.add(7)
    assert tracking.get_profiles()[0].item_ids == set()


def test_delete_profile_fixes_active_index(tmp_path):
    tracking = TrackingFilter(tmp_path / "profiles.json")
    tracking.new_profile("A")
    tracking.new_profile("B")
    tracking.new_profile("C")
    tracking.set_active_profile(2)

    tracking.delete_profile(0)
    assert tracking.active_index == 1
    assert [p.name for p in tracking.get_profiles()] == ["B", "C"]

    tracking.delete_profile(1)
    assert tracking.active_index == -1
    assert tracking.mode is TrackingMode.ALL

    tracking.delete_profile(10)
    assert len(tracking.get_profiles()) == 1


def test_invalid_active_profile_falls_back_to_all(tmp_path):
    tracking = TrackingFilter(tmp_path / "profiles.json")
    tracking.new_profile("A")
    tracking.set_active_profile(3)
    assert tracking.mode is TrackingMode.ALL
    assert tracking.active_index == -1


def test_save_and_load_round_trip(tmp_path):
    path = tmp_path / "profiles.json"
    tracking = TrackingFilter(path)
    index = tracking.new_profile("Meta")
    tracking.update_profile(index, TrackingProfile("Meta", {3, 1}, {2}))
    tracking.save()

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw == {
        "active": 0,
        "mode": 1,
        "profiles": [{"name": "Meta", "itemIds": [1, 3], "currencyIds": [2]}],
    }

    loaded = TrackingFilter(path)
    loaded.load()
    assert loaded.mode is TrackingMode.CUSTOM
    assert loaded.get_profiles()[0].item_ids == {1, 3}
    assert not loaded.is_item_tracked(2)


def test_load_resets_stale_active_index(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text(
        json.dumps({"active": 4, "mode": 1, "profiles": [{"name": "Only", "itemIds": ["7", "x"]}]}),
        encoding="utf-8",
    )
    tracking = TrackingFilter(path)
    tracking.load()
    assert tracking.active_index == -1
    assert tracking.mode is TrackingMode.ALL
    assert tracking.get_profiles()[0].item_ids == {7}


def test_load_ignores_missing_or_corrupt_file(tmp_path):
    path = tmp_path / "profiles.json"
    tracking = TrackingFilter(path)
    tracking.load()
    assert tracking.get_profiles() == []

    path.write_text("not json", encoding="utf-8")
    tracking.load()
    assert tracking.get_profiles() == []
