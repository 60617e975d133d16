from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from pydantic import TypeAdapter, ValidationError

from odontogram.core.settings import settings
from odontogram.schemas.odontogram import (
    HistoryIndexEntry,
    OdontogramState,
    StoredOdontogramPayload,
)
from odontogram.services.chart_constants import STORAGE_VERSION
from odontogram.services.chart_store import ChartStore, StoreKind
from odontogram.services.errors import ChartStoreError

logger = logging.getLogger("odontogram.storage")

_entry_list = TypeAdapter(list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_date_key(now: datetime | None = None, tz_name: str | None = None) -> str:
    """Calendar date (YYYY-MM-DD) of `now` in the chart timezone."""
    moment = now or _utcnow()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name or settings.chart_timezone)).date().isoformat()


def wrap_payload(state: OdontogramState) -> StoredOdontogramPayload:
    return StoredOdontogramPayload(version=STORAGE_VERSION, updated_at=_utcnow(), state=state)


def dump_payload(payload: StoredOdontogramPayload) -> str:
    return payload.model_dump_json(by_alias=True)


def read_raw(store: ChartStore, patient_id: str, kind: StoreKind, key: str = "") -> str | None:
    try:
        return store.get(patient_id, kind, key)
    except (ChartStoreError, OSError):
        logger.exception("Chart store read failed (%s/%s/%s)", patient_id, kind, key)
        return None


def parse_payload(raw: str | None) -> StoredOdontogramPayload | None:
    if not raw:
        return None
    try:
        return StoredOdontogramPayload.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Discarding malformed chart payload: %s", exc.errors()[:1])
        return None


def parse_entries(raw: str | None, model):
    """Parse a stored index, dropping entries that do not validate."""
    if not raw:
        return []
    try:
        rows = _entry_list.validate_python(json.loads(raw))
    except (ValueError, ValidationError):
        logger.warning("Discarding malformed chart index")
        return []
    entries = []
    for row in rows:
        try:
            entries.append(model.model_validate(row))
        except ValidationError:
            continue
    return entries


def dump_entries(entries) -> str:
    return json.dumps([entry.model_dump(mode="json", by_alias=True) for entry in entries])


def _history_index(store: ChartStore, patient_id: str) -> list[HistoryIndexEntry]:
    return parse_entries(read_raw(store, patient_id, "daily-index"), HistoryIndexEntry)


def _update_history_index(
    store: ChartStore, patient_id: str, date_key: str, updated_at: datetime
) -> None:
    entries = [e for e in _history_index(store, patient_id) if e.date_key != date_key]
    entries.append(HistoryIndexEntry(date_key=date_key, updated_at=updated_at))
    store.put(patient_id, "daily-index", "", dump_entries(entries))


def load_current(store: ChartStore, patient_id: str) -> StoredOdontogramPayload | None:
    return parse_payload(read_raw(store, patient_id, "current"))


def save_current(store: ChartStore, patient_id: str, state: OdontogramState) -> StoredOdontogramPayload:
    payload = wrap_payload(state)
    store.put(patient_id, "current", "", dump_payload(payload))
    return payload


def save_daily_snapshot(
    store: ChartStore, patient_id: str, state: OdontogramState, date_key: str
) -> StoredOdontogramPayload:
    payload = wrap_payload(state)
    store.put(patient_id, "daily", date_key, dump_payload(payload))
    _update_history_index(store, patient_id, date_key, payload.updated_at)
    return payload


def list_history_index(store: ChartStore, patient_id: str) -> list[HistoryIndexEntry]:
    """Daily snapshots, most recently written first."""
    return sorted(_history_index(store, patient_id), key=lambda e: e.updated_at, reverse=True)


def load_daily_snapshot(
    store: ChartStore, patient_id: str, date_key: str
) -> StoredOdontogramPayload | None:
    return parse_payload(read_raw(store, patient_id, "daily", date_key))


def restore_daily_snapshot_as_current(
    store: ChartStore, patient_id: str, date_key: str
) -> StoredOdontogramPayload | None:
    snapshot = load_daily_snapshot(store, patient_id, date_key)
    if snapshot is None:
        return None
    save_current(store, patient_id, snapshot.state)
    save_daily_snapshot(store, patient_id, snapshot.state, date_key)
    logger.info("Restored daily snapshot %s as current for patient %s", date_key, patient_id)
    return snapshot
