import loot_tracker
from config.settings import Settings
from gw2.models import KeyStatus
from loot.autostart import parse_mode


class FakeClient:
    status = KeyStatus.VALID

    def __init__(self, *args, **kwargs):
        self.validated = []

    def validate_key(self, api_key):
        self.validated.append(api_key)
        return self.status


def test_validate_reports_status(monkeypatch, capsys):
    monkeypatch.setattr(loot_tracker, "GW2Client", FakeClient)
    assert loot_tracker.main(["--validate", "--api-key", "abc"]) == 0
    assert "valid" in capsys.readouterr().out

    monkeypatch.setattr(FakeClient, "status", KeyStatus.NO_PERMISSIONS)
    assert loot_tracker.main(["--validate", "--api-key", "abc"]) == 1


def test_missing_key_exits_with_usage_error(monkeypatch, capsys):
    monkeypatch.setattr(loot_tracker, "get_api_key", lambda **kwargs: None)
    monkeypatch.setattr(loot_tracker, "GW2Client", FakeClient)
    assert loot_tracker.main(["--validate"]) == 2
    assert "No API key" in capsys.readouterr().err


def test_history_without_sessions(capsys):
    assert loot_tracker.main(["--history"]) == 0
    assert "No saved sessions." in capsys.readouterr().out


def test_map_id_option_lets_on_login_fire():
    args = loot_tracker._parse_args(["--character", "Taimi", "--map-id", "15", "--auto-start", "on-login"])
    identity = loot_tracker.identity_from_args(args)
    assert identity.character_name() == "Taimi"
    assert identity.map_id() == 15

    settings = Settings(api_key="abc", auto_start=parse_mode(args.auto_start))
    tracker = loot_tracker.build_tracker(settings, client=FakeClient(), identity=identity)
    assert tracker.check_auto_start() is True
    assert tracker.is_active()
    assert tracker.check_auto_start() is False


def test_map_id_defaults_to_no_map():
    identity = loot_tracker.identity_from_args(loot_tracker._parse_args([]))
    assert identity.map_id() == 0
