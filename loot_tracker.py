from __future__ import annotations

"""Headless Guild Wars 2 loot tracker.

Polls the GW2 API in the background, starts a session and prints the item
and currency changes until interrupted. Stopping with Ctrl+C saves the
session to the history file.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from config.gw2_api import get_api_key
from config.settings import Settings
from gw2 import GW2Client, KeyStatus, SnapshotPoller, StaticIdentity
from loot import LootSession, SessionHistory, TrackingFilter
from loot.autostart import parse_mode
from loot.formatting import format_duration, render_deltas

logger = logging.getLogger("loot_tracker")

_KEY_MESSAGES = {
    KeyStatus.VALID: "API key is valid.",
    KeyStatus.INVALID: "API key is invalid.",
    KeyStatus.NO_PERMISSIONS: "API key is missing the 'inventories' or 'wallet' permission.",
}


def build_tracker(
    settings: Settings,
    *,
    client: GW2Client | None = None,
    identity: StaticIdentity | None = None,
    history: SessionHistory | None = None,
) -> LootSession:
    """Wire a client, poller and history store into a :class:`LootSession`."""

    client = client or GW2Client()
    poller = SnapshotPoller(
        client,
        api_key=lambda: settings.api_key,
        interval=lambda: settings.poll_interval_sec,
        identity=identity or StaticIdentity(),
    )
    return LootSession(
        client,
        poller,
        history,
        auto_start=settings.auto_start,
    )


def render_status(
    tracker: LootSession,
    settings: Settings,
    tracking: TrackingFilter | None = None,
) -> str:
    items = tracker.get_item_deltas()
    currencies = tracker.get_currency_deltas()
    if tracking is not None:
        items = [i for i in items if tracking.is_item_tracked(i.id)]
        currencies = [c for c in currencies if tracking.is_currency_tracked(c.id)]

    if tracker.is_waiting_for_baseline():
        header = "Session: waiting for baseline..."
    elif tracker.is_active():
        header = f"Session: {format_duration(tracker.elapsed_time())}"
    else:
        header = "Session: stopped"
    body = render_deltas(
        items,
        currencies,
        show_zero=settings.show_zero_deltas,
        show_items=settings.track_items,
        show_currencies=settings.track_currency,
    )
    return f"{header}\n{body}"


def print_history(history: SessionHistory) -> None:
    sessions = history.get_all()
    if not sessions:
        print("No saved sessions.")
        return
    for session in sessions:
        print(f"{session.label}  {session.start_timestamp} -> {session.end_timestamp}")
        print(render_deltas(session.items, session.currencies, show_zero=True))
        print()


def identity_from_args(args: argparse.Namespace) -> StaticIdentity:
    """Character and map id given on the command line.

    With no live game link the map id never changes, so on-login auto-start
    fires once, on the first poll, when a non-zero id is given.
    """

    return StaticIdentity(name=args.character, current_map_id=max(args.map_id, 0))


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track GW2 loot gained per session")
    parser.add_argument("--api-key", help="GW2 API key (defaults to GW2_API_KEY / settings)")
    parser.add_argument("--character", default="", help="Character whose bags are included")
    parser.add_argument(
        "--map-id",
        type=int,
        default=0,
        help="Map id reported for the character; non-zero lets on-login auto-start fire",
    )
    parser.add_argument("--interval", type=int, default=None, help="Poll interval in seconds")
    parser.add_argument(
        "--auto-start",
        choices=["disabled", "on-login", "hourly", "daily"],
        default=None,
        help="Automatically restart the session",
    )
    parser.add_argument("--refresh", type=float, default=5.0, help="Seconds between table refreshes")
    parser.add_argument("--settings", type=Path, default=None, help="Path to settings.json")
    parser.add_argument("--validate", action="store_true", help="Check the API key and exit")
    parser.add_argument("--history", action="store_true", help="Print saved sessions and exit")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    history = SessionHistory()
    history.load()
    if args.history:
        print_history(history)
        return 0

    settings = Settings.load(args.settings)
    settings.api_key = (args.api_key or get_api_key(settings_path=args.settings) or "").strip()
    if args.interval is not None:
        settings.poll_interval_sec = max(args.interval, 1)
    if args.auto_start is not None:
        settings.auto_start = parse_mode(args.auto_start)

    client = GW2Client()
    if not settings.api_key:
        print("No API key configured. Pass --api-key or set GW2_API_KEY.", file=sys.stderr)
        return 2
    status = client.validate_key(settings.api_key)
    if args.validate:
        print(_KEY_MESSAGES.get(status, status.value))
        return 0 if status is KeyStatus.VALID else 1
    if status is not KeyStatus.VALID:
        print(_KEY_MESSAGES.get(status, status.value), file=sys.stderr)
        return 1

    tracking = TrackingFilter()
    tracking.load()
    tracker = build_tracker(
        settings,
        client=client,
        identity=identity_from_args(args),
        history=history,
    )
    tracker.init()
    tracker.start()
    try:
        while True:
            time.sleep(max(args.refresh, 0.5))
            print(render_status(tracker, settings, tracking))
            print()
    except KeyboardInterrupt:
        logger.info("Interrupted; saving session")
    finally:
        tracker.stop()
        tracker.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
