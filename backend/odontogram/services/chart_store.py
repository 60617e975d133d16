from __future__ import annotations

from typing import Literal, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from odontogram.models.odontogram import OdontogramRecord
from odontogram.services.errors import ChartStoreError

StoreKind = Literal["current", "daily", "daily-index", "timeline-index", "timeline-entry"]


class ChartStore(Protocol):
    """Key-value persistence addressed by (patient, kind, key); last write wins.

    Backend failures surface as `ChartStoreError`; reads that fail are treated
    as missing values by the storage layer.
    """

    def get(self, patient_id: str, kind: StoreKind, key: str = "") -> str | None: ...

    def put(self, patient_id: str, kind: StoreKind, key: str, value: str) -> None: ...

    def delete(self, patient_id: str, kind: StoreKind, key: str = "") -> None: ...


class InMemoryChartStore:
    def __init__(self) -> None:
        self.values: dict[tuple[str, str, str], str] = {}

    def get(self, patient_id: str, kind: StoreKind, key: str = "") -> str | None:
        return self.values.get((patient_id, kind, key))

    def put(self, patient_id: str, kind: StoreKind, key: str, value: str) -> None:
        self.values[(patient_id, kind, key)] = value

    def delete(self, patient_id: str, kind: StoreKind, key: str = "") -> None:
        self.values.pop((patient_id, kind, key), None)


class SqlChartStore:
    """`ChartStore` on the `odontogram_records` table; one transaction per call."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    @staticmethod
    def _find(db: Session, patient_id: str, kind: str, key: str) -> OdontogramRecord | None:
        return db.scalar(
            select(OdontogramRecord).where(
                OdontogramRecord.patient_id == patient_id,
                OdontogramRecord.kind == kind,
                OdontogramRecord.key == key,
            )
        )

    def get(self, patient_id: str, kind: StoreKind, key: str = "") -> str | None:
        try:
            with self.session_factory() as db:
                record = self._find(db, patient_id, kind, key)
                return record.payload if record else None
        except SQLAlchemyError as exc:
            raise ChartStoreError(f"read failed for {patient_id}/{kind}/{key}") from exc

    def put(self, patient_id: str, kind: StoreKind, key: str, value: str) -> None:
        try:
            with self.session_factory() as db:
                record = self._find(db, patient_id, kind, key)
                if record is None:
                    record = OdontogramRecord(patient_id=patient_id, kind=kind, key=key, payload=value)
                    db.add(record)
                else:
                    record.payload = value
                db.commit()
        except SQLAlchemyError as exc:
            raise ChartStoreError(f"write failed for {patient_id}/{kind}/{key}") from exc

    def delete(self, patient_id: str, kind: StoreKind, key: str = "") -> None:
        try:
            with self.session_factory() as db:
                record = self._find(db, patient_id, kind, key)
                if record is not None:
                    db.delete(record)
                    db.commit()
        except SQLAlchemyError as exc:
            raise ChartStoreError(f"delete failed for {patient_id}/{kind}/{key}") from exc
