from __future__ import annotations

import logging
import uuid

from odontogram.schemas.odontogram import OdontogramState, StoredOdontogramPayload, TimelineEntry
from odontogram.services.chart_storage import (
    dump_entries,
    dump_payload,
    list_history_index,
    load_current,
    load_daily_snapshot,
    local_date_key,
    parse_entries,
    parse_payload,
    read_raw,
    save_current,
    save_daily_snapshot,
    wrap_payload,
)
from odontogram.services.chart_store import ChartStore

logger = logging.getLogger("odontogram.timeline")


def _save_index(store: ChartStore, patient_id: str, entries: list[TimelineEntry]) -> None:
    store.put(patient_id, "timeline-index", "", dump_entries(entries))


def _write_through(store: ChartStore, patient_id: str, state: OdontogramState) -> None:
    save_current(store, patient_id, state)
    save_daily_snapshot(store, patient_id, state, local_date_key())


def list_timeline_entries(store: ChartStore, patient_id: str) -> list[TimelineEntry]:
    entries = parse_entries(read_raw(store, patient_id, "timeline-index"), TimelineEntry)
    return sorted(entries, key=lambda e: e.updated_at, reverse=True)


def load_timeline_snapshot(
    store: ChartStore, patient_id: str, snapshot_id: str
) -> StoredOdontogramPayload | None:
    return parse_payload(read_raw(store, patient_id, "timeline-entry", snapshot_id))


def create_timeline_snapshot(
    store: ChartStore, patient_id: str, state: OdontogramState
) -> TimelineEntry:
    snapshot_id = uuid.uuid4().hex
    payload = wrap_payload(state)
    store.put(patient_id, "timeline-entry", snapshot_id, dump_payload(payload))
    entry = TimelineEntry(snapshot_id=snapshot_id, updated_at=payload.updated_at)
    _save_index(store, patient_id, [entry, *list_timeline_entries(store, patient_id)])
    _write_through(store, patient_id, state)
    logger.info("Created timeline snapshot %s for patient %s", snapshot_id, patient_id)
    return entry


def update_timeline_snapshot(
    store: ChartStore, patient_id: str, snapshot_id: str, state: OdontogramState
) -> TimelineEntry | None:
    if load_timeline_snapshot(store, patient_id, snapshot_id) is None:
        return None
    payload = wrap_payload(state)
    store.put(patient_id, "timeline-entry", snapshot_id, dump_payload(payload))
    entry = TimelineEntry(snapshot_id=snapshot_id, updated_at=payload.updated_at)
    entries = [
        entry if existing.snapshot_id == snapshot_id else existing
        for existing in list_timeline_entries(store, patient_id)
    ]
    _save_index(store, patient_id, entries)
    _write_through(store, patient_id, state)
    return entry


def delete_timeline_snapshot(store: ChartStore, patient_id: str, snapshot_id: str) -> bool:
    if load_timeline_snapshot(store, patient_id, snapshot_id) is None:
        return False
    store.delete(patient_id, "timeline-entry", snapshot_id)
    entries = [e for e in list_timeline_entries(store, patient_id) if e.snapshot_id != snapshot_id]
    _save_index(store, patient_id, entries)
    logger.info("Deleted timeline snapshot %s for patient %s", snapshot_id, patient_id)
    return True


def apply_timeline_snapshot_as_current(
    store: ChartStore, patient_id: str, snapshot_id: str
) -> StoredOdontogramPayload | None:
    snapshot = load_timeline_snapshot(store, patient_id, snapshot_id)
    if snapshot is None:
        return None
    save_current(store, patient_id, snapshot.state)
    return snapshot


def duplicate_latest_snapshot(
    store: ChartStore, patient_id: str, fallback_state: OdontogramState | None = None
) -> TimelineEntry | None:
    """Start a new timeline entry from the newest snapshot, the current chart or the fallback."""
    entries = list_timeline_entries(store, patient_id)
    source: OdontogramState | None = None
    if entries:
        latest = load_timeline_snapshot(store, patient_id, entries[0].snapshot_id)
        source = latest.state if latest else None
    if source is None:
        current = load_current(store, patient_id)
        source = current.state if current else fallback_state
    if source is None:
        return None
    return create_timeline_snapshot(store, patient_id, source)


def ensure_timeline_initialized(store: ChartStore, patient_id: str) -> list[TimelineEntry]:
    """Seed an empty timeline from the daily history, or else from the current chart.

    Daily snapshots keep their own timestamps. Once the timeline holds an
    entry this is a no-op.
    """
    existing = list_timeline_entries(store, patient_id)
    if existing:
        return existing

    legacy = list_history_index(store, patient_id)
    if legacy:
        migrated: list[TimelineEntry] = []
        for entry in sorted(legacy, key=lambda e: e.updated_at):
            snapshot = load_daily_snapshot(store, patient_id, entry.date_key)
            if snapshot is None:
                continue
            snapshot_id = uuid.uuid4().hex
            payload = snapshot.model_copy(update={"updated_at": entry.updated_at})
            store.put(patient_id, "timeline-entry", snapshot_id, dump_payload(payload))
            migrated.append(TimelineEntry(snapshot_id=snapshot_id, updated_at=entry.updated_at))
        _save_index(store, patient_id, migrated)
        logger.info(
            "Migrated %s daily snapshot(s) into the timeline for patient %s", len(migrated), patient_id
        )
        return list_timeline_entries(store, patient_id)

    current = load_current(store, patient_id)
    if current is not None:
        create_timeline_snapshot(store, patient_id, current.state)
        return list_timeline_entries(store, patient_id)

    return []
