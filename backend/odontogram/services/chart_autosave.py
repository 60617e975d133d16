from __future__ import annotations

import logging
import threading
from typing import Callable

from odontogram.core.settings import settings
from odontogram.schemas.odontogram import OdontogramState
from odontogram.services.chart_storage import local_date_key, save_current, save_daily_snapshot
from odontogram.services.chart_store import ChartStore

logger = logging.getLogger("odontogram.autosave")

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class OdontogramAutosave:
    """Debounced writer for one patient's chart.

    Every `notify` cancels the pending write and schedules a new one. A write
    whose serialized state matches the last one written is skipped, and so is
    a write older than one already committed. A failed write stays pending.
    """

    def __init__(
        self,
        store: ChartStore,
        patient_id: str,
        debounce_ms: int | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self.store = store
        self.patient_id = patient_id
        self.debounce_ms = settings.autosave_debounce_ms if debounce_ms is None else debounce_ms
        self.timer_factory = timer_factory
        self.last_saved: str | None = None
        self._pending: OdontogramState | None = None
        self._timer = None
        self._generation = 0
        self._written_generation = 0
        self._lock = threading.Lock()
        # Held across the store writes so they land in notify order.
        self._write_lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def notify(self, state: OdontogramState) -> None:
        with self._lock:
            self._cancel_timer()
            self._pending = state.model_copy(deep=True)
            self._generation += 1
            if self.debounce_ms <= 0:
                timer = None
            else:
                timer = self.timer_factory(self.debounce_ms / 1000, self.flush)
                timer.daemon = True
                self._timer = timer
        if timer is None:
            self.flush()
        else:
            timer.start()

    def flush(self) -> bool:
        """Write the pending state now. Returns True when something was written."""
        with self._lock:
            self._cancel_timer()
            state, self._pending = self._pending, None
            generation = self._generation
        if state is None:
            return False
        with self._write_lock:
            if generation <= self._written_generation:
                logger.debug("Dropping stale chart write for patient %s", self.patient_id)
                return False
            serialized = state.serialized()
            if serialized == self.last_saved:
                self._written_generation = generation
                logger.debug("Chart for patient %s unchanged; skipping save", self.patient_id)
                return False
            try:
                save_current(self.store, self.patient_id, state)
                save_daily_snapshot(self.store, self.patient_id, state, local_date_key())
            except Exception:
                with self._lock:
                    if self._pending is None and generation == self._generation:
                        self._pending = state
                logger.warning("Autosave failed for patient %s; keeping the edit pending", self.patient_id)
                raise
            self.last_saved = serialized
            self._written_generation = generation
        logger.debug("Autosaved chart for patient %s", self.patient_id)
        return True

    def cancel(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._pending = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
