import json
from datetime import date

import pytest
from pymongo.errors import AutoReconnect

from farmwise.core.activity_log_manager import ActivityLogManager
from farmwise.core.errors import InvalidInput, StoreWriteFailure
from farmwise.core.models import AnalysisResult, CropRecommendation, HistoryItem, Preferences
from farmwise.core.preference_manager import PreferenceManager
from farmwise.core.reminder_manager import ReminderManager
from farmwise.core.store import (
    HISTORY_KEY,
    PREFERENCES_KEY,
    REMINDERS_KEY,
    DurableStore,
    InMemoryBackend,
    JsonFileBackend,
    MongoBackend,
)

SOIL = AnalysisResult(
    healthScore=82,
    quality="Good",
    nutrients=[{"label": "Nitrogen", "value": 60}],
    recommendations=["Add compost"],
    description="Loamy soil.",
)

PLAN = [
    CropRecommendation(name="Millet", suitability="Dry spells", duration="70-90 days",
                       reason="Drought tolerant", difficulty="Easy"),
]


def soil_item(item_id="h1"):
    return HistoryItem(id=item_id, timestamp="2026-10-18T09:00:00", type="soil", data=SOIL,
                       image="data:image/jpeg;base64,AAAA", summary="Soil Quality: Good")


def planner_item(item_id="h2"):
    return HistoryItem(id=item_id, timestamp="2026-10-18T10:00:00", type="planner", data=PLAN,
                       summary="Spring Season Planting Plan")


class FakeMongoCollection:
    """Just enough of a pymongo collection for MongoBackend."""
    def __init__(self):
        self.docs = {}

    def find_one(self, query):
        return self.docs.get(query["key"])

    def replace_one(self, query, doc, upsert=False):
        assert upsert
        self.docs[query["key"]] = dict(doc)


def test_missing_collections_start_empty():
    store = DurableStore(InMemoryBackend())
    assert store.history == []
    assert store.reminders == []
    assert store.preferences == Preferences()


@pytest.mark.parametrize("raw", [
    "{not json",
    json.dumps({"id": "x"}),
    json.dumps([{"id": "x", "type": "soil"}]),
    json.dumps(["just a string"]),
    json.dumps([{"id": "x", "timestamp": "t", "type": "planner", "data": SOIL.model_dump(by_alias=True),
                 "summary": "wrong shape"}]),
])
def test_corrupt_history_is_treated_as_empty(raw):
    backend = InMemoryBackend({HISTORY_KEY: raw, REMINDERS_KEY: "[]"})
    store = DurableStore(backend)
    assert store.history == []
    assert backend.writes == []


def test_corrupt_reminders_and_preferences_are_treated_as_empty():
    backend = InMemoryBackend({
        REMINDERS_KEY: json.dumps([{"id": "r1", "title": "Water", "date": "not-a-date",
                                    "completed": False, "category": "Watering"}]),
        PREFERENCES_KEY: "[]",
    })
    store = DurableStore(backend)
    assert store.reminders == []
    assert store.preferences == Preferences()


def test_history_round_trips_through_fresh_start():
    backend = InMemoryBackend()
    ActivityLogManager(DurableStore(backend)).add(soil_item(), planner_item())

    reloaded = DurableStore(backend).history

    assert [h.id for h in reloaded] == ["h2", "h1"]
    assert reloaded[0].data == PLAN
    assert isinstance(reloaded[1].data, AnalysisResult)
    assert reloaded[1] == soil_item()


def test_persisted_keys_keep_wire_names():
    backend = InMemoryBackend()
    store = DurableStore(backend)
    ActivityLogManager(store).add(soil_item())
    PreferenceManager(store).set_dark_mode(True)

    assert json.loads(backend.values[HISTORY_KEY])[0]["data"]["healthScore"] == 82
    assert json.loads(backend.values[PREFERENCES_KEY]) == {"darkMode": True, "authenticated": False}


def test_mutating_one_collection_never_rewrites_another():
    backend = InMemoryBackend()
    store = DurableStore(backend)

    ReminderManager(store).add("Water the beds", "Watering")
    PreferenceManager(store).set_authenticated(True)
    ActivityLogManager(store).add(soil_item())

    assert backend.writes == [REMINDERS_KEY, PREFERENCES_KEY, HISTORY_KEY]


def test_activity_log_is_newest_first_and_clearable():
    backend = InMemoryBackend()
    store = DurableStore(backend)
    log = ActivityLogManager(store)
    log.add(soil_item("first"))
    log.add(planner_item("second"))
    ReminderManager(store).add("Harvest maize", "Harvesting")

    assert [h.id for h in log.list()] == ["second", "first"]
    assert [h.id for h in log.list(limit=1)] == ["second"]

    log.clear()
    restarted = DurableStore(backend)
    assert restarted.history == []
    assert [r.title for r in restarted.reminders] == ["Harvest maize"]


def test_reminder_lifecycle():
    store = DurableStore(InMemoryBackend())
    reminders = ReminderManager(store)
    water = reminders.add("Water the beds", "Watering", "2026-10-20")
    feed = reminders.add("Feed tomatoes", "Fertilizing")

    assert feed.date == date.today().isoformat()
    assert [r.id for r in reminders.list()] == [feed.id, water.id]
    assert reminders.pending_count() == 2

    assert reminders.toggle(feed.id).completed is True
    assert [r.id for r in reminders.for_display()] == [water.id, feed.id]
    assert [r.id for r in reminders.list()] == [feed.id, water.id]
    assert reminders.pending_count() == 1

    assert reminders.delete(water.id) is True
    assert reminders.delete("missing") is False
    assert reminders.toggle("missing") is None
    assert [r.id for r in DurableStore(store.backend).reminders] == [feed.id]


def test_reminder_requires_title():
    with pytest.raises(InvalidInput):
        ReminderManager(DurableStore(InMemoryBackend())).add("  ", "Planting")


def test_json_file_backend_keeps_one_file_per_key(tmp_path):
    backend = JsonFileBackend(str(tmp_path))
    assert backend.read(HISTORY_KEY) is None

    store = DurableStore(backend)
    ActivityLogManager(store).add(soil_item())
    ReminderManager(store).add("Water the beds", "Watering")

    assert sorted(p.name for p in tmp_path.iterdir()) == [f"{HISTORY_KEY}.json", f"{REMINDERS_KEY}.json"]
    assert DurableStore(JsonFileBackend(str(tmp_path))).history == [soil_item()]


def test_json_file_backend_recovers_from_corrupt_file(tmp_path):
    (tmp_path / f"{HISTORY_KEY}.json").write_text("[{truncated", encoding="utf-8")
    assert DurableStore(JsonFileBackend(str(tmp_path))).history == []


def test_mongo_backend_upserts_by_key():
    collection = FakeMongoCollection()
    store = DurableStore(MongoBackend(collection=collection))
    PreferenceManager(store).toggle_dark_mode()

    assert set(collection.docs) == {PREFERENCES_KEY}
    assert DurableStore(MongoBackend(collection=collection)).preferences.dark_mode is True


def test_json_file_backend_recovers_from_undecodable_bytes(tmp_path):
    (tmp_path / f"{HISTORY_KEY}.json").write_bytes(b"\xff\xfe\x00garbage")
    ReminderManager(DurableStore(JsonFileBackend(str(tmp_path)))).add("Water the beds", "Watering")

    store = DurableStore(JsonFileBackend(str(tmp_path)))

    assert store.history == []
    assert [r.title for r in store.reminders] == ["Water the beds"]


class UnreachableMongoCollection(FakeMongoCollection):
    def replace_one(self, query, doc, upsert=False):
        raise AutoReconnect("primary stepped down")


def test_failed_write_raises_and_keeps_memory():
    collection = UnreachableMongoCollection()
    store = DurableStore(MongoBackend(collection=collection))
    reminders = ReminderManager(store)

    with pytest.raises(StoreWriteFailure):
        reminders.add("Water the beds", "Watering")
    with pytest.raises(StoreWriteFailure):
        PreferenceManager(store).set_dark_mode(True)

    assert reminders.list() == []
    assert store.preferences.dark_mode is False
    assert collection.docs == {}


def test_activity_log_limit_zero_is_empty():
    store = DurableStore(InMemoryBackend())
    log = ActivityLogManager(store)
    log.add(soil_item())
    assert log.list(limit=0) == []
    assert len(log.list()) == 1
