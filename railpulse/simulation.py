"""
Dashboard session: a simulated wall clock replayed over a fixed calendar
day, plus the controller's accept/reject decisions on the current snapshot.
"""

from typing import Optional
from datetime import date, datetime, timedelta
import logging
import threading

import numpy as np

from .engine import DssEngine
from .schemas import Snapshot, KpiSnapshot
from .errors import SuggestionNotFoundError
from .utils import anchor_to_date, format_clock_time, round_half_up, round_to_places

logger = logging.getLogger(__name__)

DECISION_ADVANCE_MINUTES = 1

class DashboardSession:
    def __init__(self, engine: DssEngine, simulation_date: date, clock: str = "00:00",
                 tick_minutes: int = 3, rng: Optional[np.random.Generator] = None):
        self.engine = engine
        self.simulation_date = simulation_date
        self.tick_minutes = tick_minutes
        # Serializes clock moves and decisions across server threads
        self._lock = threading.RLock()
        self.rng = rng if rng is not None else engine.make_rng()
        self.clock = format_clock_time(anchor_to_date(simulation_date, clock))
        self.snapshot: Snapshot = self.refresh()

    def now(self) -> datetime:
        return anchor_to_date(self.simulation_date, self.clock)

    def refresh(self) -> Snapshot:
        self.snapshot = self.engine.compute_snapshot(self.now(), rng=self.rng)
        return self.snapshot

    def set_time(self, clock: str) -> Snapshot:
        with self._lock:
            self.clock = format_clock_time(anchor_to_date(self.simulation_date, clock))
            logger.info(f"Session clock set to {self.clock}")
            return self.refresh()

    def advance(self, minutes: Optional[int] = None) -> Snapshot:
        """Move the clock forward, wrapping at midnight onto the same simulated day"""
        with self._lock:
            step = self.tick_minutes if minutes is None else minutes
            self.clock = format_clock_time(self.now() + timedelta(minutes=step))
            return self.refresh()

    def accept(self, suggestion_id: str) -> Snapshot:
        with self._lock:
            self._remove(suggestion_id)
            self.snapshot = self.snapshot.model_copy(update={"kpis": self._improved_kpis(self.snapshot.kpis)})
            logger.info(f"Suggestion {suggestion_id} accepted at {self.clock}")
            return self._after_decision()

    def reject(self, suggestion_id: str) -> Snapshot:
        with self._lock:
            self._remove(suggestion_id)
            logger.info(f"Suggestion {suggestion_id} rejected at {self.clock}")
            return self._after_decision()

    def _remove(self, suggestion_id: str):
        remaining = [s for s in self.snapshot.suggestions if s.suggestion_id != suggestion_id]
        if len(remaining) == len(self.snapshot.suggestions):
            raise SuggestionNotFoundError(suggestion_id)
        self.snapshot = self.snapshot.model_copy(update={"suggestions": remaining})

    def _after_decision(self) -> Snapshot:
        if not self.snapshot.suggestions:
            return self.advance(DECISION_ADVANCE_MINUTES)
        return self.snapshot

    def _improved_kpis(self, kpis: KpiSnapshot) -> KpiSnapshot:
        # An accepted recommendation nudges the delay figures in the operator's favor
        return kpis.model_copy(update={
            "avg_delay_minutes": round_to_places(max(0.0, kpis.avg_delay_minutes - self.rng.uniform(0.1, 0.6)), 1),
            "on_time_percent": min(100, round_half_up(kpis.on_time_percent + self.rng.uniform(0.5, 1.5))),
            "conflict_resolution_time": max(1.0, round_to_places(kpis.conflict_resolution_time - self.rng.uniform(0.1, 0.4), 1)),
            "avg_passenger_delay": round_to_places(max(0.0, kpis.avg_passenger_delay - self.rng.uniform(0.1, 0.5)), 1),
        })
