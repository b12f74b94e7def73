from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Keep settings, history and profiles out of the real home directory."""

    home = tmp_path / "loot-home"
    monkeypatch.setenv("LOOT_TRACKER_HOME", str(home))
    monkeypatch.delenv("GW2_API_KEY", raising=False)
    return home
