from __future__ import annotations

"""Helpers for retrieving the configured GW2 API key."""

import os
from pathlib import Path
from typing import Optional

from . import secrets as secrets_cfg
from .settings import Settings

__all__ = ["get_api_key"]

_API_KEY: Optional[str] = None


def get_api_key(force_reload: bool = False, settings_path: Path | None = None) -> Optional[str]:
    """Return the GW2 API key.

    The ``GW2_API_KEY`` environment variable wins, then ``secrets.json``
    (``{"gw2": {"apiKey": ...}}``), then the ``ApiKey`` stored in the
    settings file.
    """

    global _API_KEY
    if not force_reload and _API_KEY:
        return _API_KEY

    key = os.getenv("GW2_API_KEY")
    if isinstance(key, str):
        key = key.strip()
        if key:
            _API_KEY = key
            return key

    secrets = secrets_cfg.load_secrets()
    section = secrets.get("gw2")
    if isinstance(section, dict):
        token = section.get("apiKey")
        if isinstance(token, str):
            token = token.strip()
            if token:
                _API_KEY = token
                return token

    stored = Settings.load(settings_path).api_key
    if stored:
        _API_KEY = stored
        return stored

    return None
