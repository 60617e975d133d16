import json
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from odontogram.schemas.odontogram import empty_chart
from odontogram.services import chart_storage
from odontogram.services.chart_store import InMemoryChartStore, SqlChartStore
from odontogram.services.errors import ChartStoreError

PATIENT = "patient-1"


@pytest.mark.parametrize(
    ("moment", "expected"),
    [
        (datetime(2024, 1, 15, 23, 30, tzinfo=timezone.utc), "2024-01-16"),
        (datetime(2024, 7, 1, 21, 59, tzinfo=timezone.utc), "2024-07-01"),
        (datetime(2024, 7, 1, 22, 0, tzinfo=timezone.utc), "2024-07-02"),
        (datetime(2024, 7, 1, 22, 0), "2024-07-02"),
    ],
)
def test_local_date_key_uses_chart_timezone(moment, expected):
    assert chart_storage.local_date_key(moment, "Europe/Budapest") == expected


def test_local_date_key_other_timezone():
    moment = datetime(2024, 7, 1, 22, 0, tzinfo=timezone.utc)
    assert chart_storage.local_date_key(moment, "America/New_York") == "2024-07-01"


def test_save_and_load_current(store, clock):
    state = empty_chart()
    state.tooth(36).caries = ["occlusal"]
    saved = chart_storage.save_current(store, PATIENT, state)

    loaded = chart_storage.load_current(store, PATIENT)
    assert loaded is not None
    assert loaded.version == 1
    assert loaded.updated_at == saved.updated_at
    assert loaded.state.teeth["36"].caries == ["occlusal"]

    raw = json.loads(store.get(PATIENT, "current"))
    assert set(raw) == {"version", "updatedAt", "state"}
    assert raw["state"]["teeth"]["36"]["toothSelection"] == "tooth-base"
    assert "wisdomVisible" in raw["state"]["globals"]


def test_missing_current_is_none(store):
    assert chart_storage.load_current(store, PATIENT) is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps({"version": 1, "state": {}}),
        json.dumps({"version": 1, "updatedAt": "2024-01-01T00:00:00Z", "state": {"teeth": {"11": {"toothSelection": "ghost"}}}}),
    ],
)
def test_malformed_payload_is_none(store, raw):
    store.put(PATIENT, "current", "", raw)
    assert chart_storage.load_current(store, PATIENT) is None


@pytest.mark.parametrize(
    "error",
    [ChartStoreError("backend down"), ConnectionError("connection reset")],
)
def test_store_failure_reads_as_missing(error):
    class _BrokenStore(InMemoryChartStore):
        def get(self, patient_id, kind, key=""):
            raise error

    assert chart_storage.load_current(_BrokenStore(), PATIENT) is None
    assert chart_storage.list_history_index(_BrokenStore(), PATIENT) == []


def test_sql_store_wraps_database_errors():
    # No tables on this engine, so every statement fails.
    engine = create_engine("sqlite://", poolclass=StaticPool)
    broken = SqlChartStore(sessionmaker(bind=engine))

    with pytest.raises(ChartStoreError) as excinfo:
        broken.get(PATIENT, "current")
    assert isinstance(excinfo.value.__cause__, OperationalError)
    with pytest.raises(ChartStoreError):
        broken.put(PATIENT, "current", "", "{}")
    assert chart_storage.load_current(broken, PATIENT) is None
    engine.dispose()


def test_daily_snapshot_replaces_same_day(store, clock):
    first = empty_chart()
    second = empty_chart()
    second.tooth(11).endo = "endo-filling"

    chart_storage.save_daily_snapshot(store, PATIENT, first, "2024-05-06")
    chart_storage.save_daily_snapshot(store, PATIENT, second, "2024-05-06")

    index = chart_storage.list_history_index(store, PATIENT)
    assert [entry.date_key for entry in index] == ["2024-05-06"]
    snapshot = chart_storage.load_daily_snapshot(store, PATIENT, "2024-05-06")
    assert snapshot.state.teeth["11"].endo == "endo-filling"


def test_history_index_newest_first(store, clock):
    for date_key in ("2024-05-01", "2024-05-03", "2024-05-02"):
        chart_storage.save_daily_snapshot(store, PATIENT, empty_chart(), date_key)
    index = chart_storage.list_history_index(store, PATIENT)
    assert [entry.date_key for entry in index] == ["2024-05-02", "2024-05-03", "2024-05-01"]


def test_history_index_drops_invalid_rows(store):
    rows = [
        {"dateKey": "2024-05-01", "updatedAt": "2024-05-01T10:00:00Z"},
        {"dateKey": "", "updatedAt": "2024-05-02T10:00:00Z"},
        {"dateKey": "2024-05-03"},
        "garbage",
    ]
    store.put(PATIENT, "daily-index", "", json.dumps(rows))
    index = chart_storage.list_history_index(store, PATIENT)
    assert [entry.date_key for entry in index] == ["2024-05-01"]
    assert index[0].updated_at.tzinfo is not None


def test_history_index_not_a_list(store):
    store.put(PATIENT, "daily-index", "", json.dumps({"dateKey": "2024-05-01"}))
    assert chart_storage.list_history_index(store, PATIENT) == []


def test_restore_daily_snapshot(store, clock):
    old = empty_chart()
    old.tooth(46).tooth_selection = "implant"
    chart_storage.save_daily_snapshot(store, PATIENT, old, "2024-04-01")
    chart_storage.save_current(store, PATIENT, empty_chart())

    restored = chart_storage.restore_daily_snapshot_as_current(store, PATIENT, "2024-04-01")

    assert restored is not None
    assert chart_storage.load_current(store, PATIENT).state.teeth["46"].tooth_selection == "implant"
    assert chart_storage.list_history_index(store, PATIENT)[0].date_key == "2024-04-01"


def test_restore_missing_daily_snapshot(store):
    assert chart_storage.restore_daily_snapshot_as_current(store, PATIENT, "2024-04-01") is None


def test_sql_store_round_trip(sql_store, clock):
    state = empty_chart()
    state.tooth(21).crown_material = "emax"
    chart_storage.save_current(sql_store, PATIENT, state)
    chart_storage.save_current(sql_store, PATIENT, state)

    loaded = chart_storage.load_current(sql_store, PATIENT)
    assert loaded.state.teeth["21"].crown_material == "emax"
    assert chart_storage.load_current(sql_store, "someone-else") is None


def test_sql_store_delete(sql_store):
    sql_store.put(PATIENT, "timeline-entry", "abc", "{}")
    assert sql_store.get(PATIENT, "timeline-entry", "abc") == "{}"
    sql_store.delete(PATIENT, "timeline-entry", "abc")
    assert sql_store.get(PATIENT, "timeline-entry", "abc") is None
    sql_store.delete(PATIENT, "timeline-entry", "abc")
