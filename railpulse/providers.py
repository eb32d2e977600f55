"""
Pluggable data sources for the DSS engine.

The engine never hardcodes predicted delays or KPI figures itself: it asks a
DelayPredictor and a KpiAggregator. The defaults below reproduce the
dashboard's placeholder behavior until a real delay feed and KPI pipeline
are wired in.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from datetime import datetime

from .schemas import OccupiedInterval, Conflict, KpiSnapshot
from .utils import round_half_up, round_to_places

DEFAULT_PREDICTED_DELAYS = {
    "12951": 8,
    "11041": 15,
}

class DelayPredictor(ABC):
    @abstractmethod
    def predict_delay(self, train_number: str) -> int:
        """Predicted arrival delay in whole minutes"""

class StaticDelayTable(DelayPredictor):
    """Fixed per-train delay lookup; unknown trains are on time"""

    def __init__(self, delays: Optional[Dict[str, int]] = None):
        self.delays = dict(DEFAULT_PREDICTED_DELAYS if delays is None else delays)

    def predict_delay(self, train_number: str) -> int:
        return self.delays.get(train_number, 0)

class KpiAggregator(ABC):
    @abstractmethod
    def aggregate_kpis(self, intervals: List[OccupiedInterval], conflicts: List[Conflict],
                       now: datetime, window_end: datetime) -> KpiSnapshot:
        """Build the KPI bundle for one snapshot"""

class DashboardKpiAggregator(KpiAggregator):
    """
    Dashboard figures: the conflict count for the next hour and the number of
    trains in the window are derived from the snapshot, everything else is a
    fixed display value.
    """

    conflict_horizon_minutes = 60

    def aggregate_kpis(self, intervals: List[OccupiedInterval], conflicts: List[Conflict],
                       now: datetime, window_end: datetime) -> KpiSnapshot:
        return KpiSnapshot(
            throughput_trains_per_hour=22,
            avg_delay_minutes=7.5,
            on_time_percent=86,
            conflict_resolution_time=3.2,
            train_density=11,
            platform_utilization_percent={"3": 78},
            passengers_affected_next_hour=14200,
            avg_passenger_delay=6.3,
            priority_train_punctuality=91,
            suburban_on_time_rate=83,
            freight_train_delay=12,
            goods_volume_moved=9200,
            freight_priority_decisions=35,
            signal_failures=2,
            emergency_holds=1,
            maintenance_blocks=2,
            ai_safety_overrides=3,
            track_utilization={"A": 85, "B": 60, "C": 40},
            yard_utilization={"X": 72, "Y": 55},
            conflict_count_next_hour=sum(
                1 for c in conflicts if c.time_to_conflict_minutes < self.conflict_horizon_minutes
            ),
            trains_in_window=len(intervals),
        )

class WindowKpiAggregator(DashboardKpiAggregator):
    """Derives the delay figures from trains scheduled inside the look-ahead window"""

    on_time_threshold_minutes = 5

    def aggregate_kpis(self, intervals: List[OccupiedInterval], conflicts: List[Conflict],
                       now: datetime, window_end: datetime) -> KpiSnapshot:
        kpis = super().aggregate_kpis(intervals, conflicts, now, window_end)

        in_window = [
            t for t in intervals
            if t.scheduled_arrival < window_end and t.scheduled_departure > now
        ]
        if not in_window:
            return kpis.model_copy(update={
                "avg_delay_minutes": 0.0,
                "on_time_percent": 100,
                "passengers_affected_next_hour": 0,
            })

        total_delay = sum(t.predicted_delay_minutes for t in in_window)
        on_time = sum(1 for t in in_window if t.predicted_delay_minutes <= self.on_time_threshold_minutes)
        affected = sum(t.passenger_count for t in in_window if t.predicted_delay_minutes > 0)

        return kpis.model_copy(update={
            "avg_delay_minutes": round_to_places(total_delay / len(in_window), 1),
            "on_time_percent": round_half_up(on_time / len(in_window) * 100),
            "passengers_affected_next_hour": affected,
        })
