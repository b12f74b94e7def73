import threading
import time
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parent.parent))

from gw2.models import Snapshot, WalletEntry
from gw2.poller import SnapshotPoller, StaticIdentity


class FakeClient:
    def __init__(self):
        self.calls = []

    def fetch_snapshot(self, api_key, character_name=""):
        self.calls.append((api_key, character_name))
        return Snapshot(wallet=(WalletEntry(1, len(self.calls)),))


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def test_poll_now_wakes_worker_before_interval():
    client = FakeClient()
    received = []
    poller = SnapshotPoller(client, "key", interval=60, identity=StaticIdentity("Rytlock"))
    poller.start(received.append)
    try:
        assert poller.is_running()
        poller.poll_now()
        assert wait_until(lambda: len(received) == 1)
        assert client.calls == [("key", "Rytlock")]
    finally:
        poller.stop()


def test_interval_elapses_without_wake():
    client = FakeClient()
    received = []
    poller = SnapshotPoller(client, "key", interval=0.01)
    poller.start(received.append)
    try:
        assert wait_until(lambda: len(received) >= 3)
    finally:
        poller.stop()


def test_start_twice_is_a_noop():
    client = FakeClient()
    poller = SnapshotPoller(client, "key", interval=60)
    first = []
    second = []
    poller.start(first.append)
    thread = poller._thread
    poller.start(second.append)
    try:
        assert poller._thread is thread
        poller.poll_now()
        assert wait_until(lambda: len(first) == 1)
        assert second == []
    finally:
        poller.stop()


def test_stop_guarantees_no_further_callbacks():
    client = FakeClient()
    received = []
    poller = SnapshotPoller(client, "key", interval=0.005)
    poller.start(received.append)
    assert wait_until(lambda: len(received) >= 2)

    thread = poller._thread
    poller.stop()
    count = len(received)
    time.sleep(0.1)

    assert not poller.is_running()
    assert len(received) == count
    assert not thread.is_alive()


def test_stop_is_idempotent():
    poller = SnapshotPoller(FakeClient(), "key", interval=60)
    poller.stop()
    poller.start(lambda snap: None)
    poller.stop()
    poller.stop()
    assert not poller.is_running()


def test_poll_now_while_stopped_has_no_effect():
    client = FakeClient()
    poller = SnapshotPoller(client, "key", interval=60)
    poller.poll_now()
    time.sleep(0.05)
    assert client.calls == []
    assert not poller.is_running()


def test_cycles_are_skipped_without_api_key():
    client = FakeClient()
    key = {"value": ""}
    received = []
    poller = SnapshotPoller(client, lambda: key["value"], interval=0.005)
    poller.start(received.append)
    try:
        time.sleep(0.05)
        assert client.calls == []
        key["value"] = "late-key"
        assert wait_until(lambda: len(received) >= 1)
        assert client.calls[0][0] == "late-key"
    finally:
        poller.stop()


def test_consumer_errors_do_not_kill_the_worker():
    client = FakeClient()
    calls = []

    def consumer(snapshot):
        calls.append(snapshot)
        if len(calls) == 1:
            raise RuntimeError("boom")

    poller = SnapshotPoller(client, "key", interval=0.005)
    poller.start(consumer)
    try:
        assert wait_until(lambda: len(calls) >= 2)
    finally:
        poller.stop()


def test_stop_from_consumer_does_not_deadlock():
    client = FakeClient()
    poller = SnapshotPoller(client, "key", interval=0.05)
    done = threading.Event()

    def consumer(snapshot):
        poller.stop()
        done.set()

    poller.start(consumer)
    thread = poller._thread
    assert done.wait(2.0)
    thread.join(2.0)
    assert not thread.is_alive()
    assert not poller.is_running()
