import json
import os
import queue
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from app.services.change_feed import InventoryChangeFeed, change_event, heartbeat_event, reset_event


def test_publish_reaches_subscribers_and_history():
    feed = InventoryChangeFeed(history_size=10)
    q = feed.subscribe()

    change = feed.publish([3, 1, 3], source="inventory:adjust")

    assert change.material_ids == [1, 3]
    assert q.get_nowait() is change
    assert feed.last_id == change.id

    feed.unsubscribe(q)
    feed.publish([2], source="inventory:adjust")
    try:
        q.get_nowait()
        received = True
    except queue.Empty:
        received = False
    assert received is False


def test_publishing_nothing_is_a_no_op():
    feed = InventoryChangeFeed()

    assert feed.publish([], source="purchase:create") is None
    assert feed.last_id == 0
    assert feed.replay_since(0) == ([], False)


def test_replay_since_reports_evicted_history():
    feed = InventoryChangeFeed(history_size=3)
    for material_id in range(1, 6):
        feed.publish([material_id], source="test")

    replay, truncated = feed.replay_since(3)
    assert [change.id for change in replay] == [4, 5]
    assert truncated is False

    replay, truncated = feed.replay_since(1)
    assert [change.id for change in replay] == [3, 4, 5]
    assert truncated is True

    assert feed.materials_changed_since(3) == {4, 5}


def test_slow_subscriber_keeps_newest_changes():
    feed = InventoryChangeFeed(queue_size=2)
    q = feed.subscribe()
    for material_id in (1, 2, 3):
        feed.publish([material_id], source="test")

    ids = [q.get_nowait().material_ids[0], q.get_nowait().material_ids[0]]
    assert ids == [2, 3]


def test_client_ahead_of_the_feed_is_told_to_reset():
    feed = InventoryChangeFeed()

    assert feed.replay_since(42) == ([], True)

    feed.publish([1], source="test")
    feed.publish([2], source="test")
    replay, reset = feed.replay_since(42)
    assert replay == []
    assert reset is True

    replay, reset = feed.replay_since(2)
    assert replay == []
    assert reset is False


def test_sse_events_are_typed():
    feed = InventoryChangeFeed()
    change = feed.publish([5, 4], source="order:consumption")

    frame = change_event(change)
    head, data = frame.split("data: ", 1)
    assert head == f"id: {change.id}\nevent: inventory\n"
    assert frame.endswith("\n\n")
    payload = json.loads(data)
    assert payload["type"] == "inventory"
    assert payload["material_ids"] == [4, 5]
    assert payload["source"] == "order:consumption"

    reset = reset_event(9, feed.last_id)
    assert reset.startswith("event: reset\n")
    assert json.loads(reset.split("data: ", 1)[1]) == {"type": "reset", "after": 9, "last_id": change.id}

    heartbeat = heartbeat_event(feed.last_id)
    assert heartbeat.startswith("event: heartbeat\n")
    assert json.loads(heartbeat.split("data: ", 1)[1])["last_id"] == change.id
