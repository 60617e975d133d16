from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from odontogram.models.base import Base


class OdontogramRecord(Base):
    """One stored value of a patient's chart history.

    `kind` selects the slot family (current, daily, daily-index,
    timeline-index, timeline-entry) and `key` the slot within it.
    """

    __tablename__ = "odontogram_records"
    __table_args__ = (
        UniqueConstraint("patient_id", "kind", "key", name="uq_odontogram_records_slot"),
        Index("ix_odontogram_records_patient", "patient_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    key: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
