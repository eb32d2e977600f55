from typing import List, Dict, Optional, Tuple, Sequence
from datetime import datetime, timedelta
from dataclasses import dataclass, replace
import logging
import time

import numpy as np

from .schemas import (
    ScheduleEntry, OccupiedInterval, Conflict, Snapshot,
    PriorityClass, Severity
)
from .providers import DelayPredictor, StaticDelayTable, KpiAggregator, DashboardKpiAggregator
from .scoring import SuggestionScorer
from .illustrative import pad_with_illustrative_examples
from .schedule import get_default_schedule, trains_running_on
from .utils import (
    ensure_utc, anchor_to_date, weekday_name, round_half_up, minutes_between, shift_minutes
)

logger = logging.getLogger(__name__)

UNASSIGNED_PLATFORM = "N/A"
UNASSIGNED_PLATFORMS = {UNASSIGNED_PLATFORM, "--"}

PRIORITY_BY_TRAIN_TYPE = {
    "Rajdhani": PriorityClass.HIGH,
    "Shatabdi": PriorityClass.HIGH,
    "VB": PriorityClass.HIGH,  # Vande Bharat
    "SF": PriorityClass.HIGH,  # Superfast
    "Exp": PriorityClass.NORMAL,
    "Mail": PriorityClass.NORMAL,
}

@dataclass
class EngineConfig:
    arrival_lead_minutes: int = 3
    min_dwell_minutes: int = 5
    window_ahead_minutes: int = 90
    passenger_impact_weight: float = 0.6
    delay_weight: float = 0.25
    priority_weight: float = 0.15
    delay_urgency_horizon_minutes: float = 20.0
    high_severity_minutes: int = 10
    medium_severity_minutes: int = 30
    passenger_range: Tuple[int, int] = (500, 1200)
    max_suggestions: int = 12
    illustrative_examples: bool = True
    random_seed: Optional[int] = None

def priority_class_for(train_type: str) -> PriorityClass:
    return PRIORITY_BY_TRAIN_TYPE.get(train_type, PriorityClass.LOW)

def severity_for(time_to_conflict_minutes: int, config: EngineConfig) -> Severity:
    if time_to_conflict_minutes <= config.high_severity_minutes:
        return Severity.HIGH
    if time_to_conflict_minutes <= config.medium_severity_minutes:
        return Severity.MEDIUM
    return Severity.LOW

def build_occupancies(entries: Sequence[ScheduleEntry], now: datetime, config: EngineConfig,
                      rng: np.random.Generator,
                      delay_predictor: DelayPredictor) -> List[OccupiedInterval]:
    """
    Turn schedule entries into platform-occupancy intervals anchored to the
    UTC calendar day of ``now``. Entries without both an arrival and a
    departure time are skipped.
    """
    today = ensure_utc(now).date()
    low, high = config.passenger_range
    intervals = []

    for entry in entries:
        if not entry.arrival_time or not entry.departure_time:
            logger.debug(f"Skipping {entry.train_number} at {entry.station_code}: missing arrival or departure")
            continue

        try:
            scheduled_arrival = anchor_to_date(today, entry.arrival_time)
            scheduled_departure = anchor_to_date(today, entry.departure_time)
        except ValueError as e:
            logger.debug(f"Skipping {entry.train_number} at {entry.station_code}: {e}")
            continue

        # Overnight halt
        if scheduled_departure < scheduled_arrival:
            scheduled_departure += timedelta(days=1)

        halt_minutes = minutes_between(scheduled_arrival, scheduled_departure)
        effective_halt = max(config.min_dwell_minutes, halt_minutes)

        if entry.passenger_count is not None:
            passengers = entry.passenger_count
        else:
            passengers = int(rng.integers(low, high + 1))

        platform = str(entry.platform).strip() if entry.platform is not None else ""

        intervals.append(OccupiedInterval(
            train_number=entry.train_number,
            train_name=entry.train_name,
            train_type=entry.train_type,
            station_code=entry.station_code,
            platform=platform or UNASSIGNED_PLATFORM,
            priority=priority_class_for(entry.train_type),
            passenger_count=passengers,
            predicted_delay_minutes=delay_predictor.predict_delay(entry.train_number),
            scheduled_arrival=scheduled_arrival,
            scheduled_departure=scheduled_departure,
            occupancy_start=shift_minutes(scheduled_arrival, -config.arrival_lead_minutes),
            occupancy_end=shift_minutes(scheduled_arrival, effective_halt),
        ))

    return intervals

def detect_conflicts(intervals: Sequence[OccupiedInterval], now: datetime,
                     config: EngineConfig) -> List[Conflict]:
    """Pairwise occupancy overlaps among trains sharing a station platform"""
    now = ensure_utc(now)
    by_platform: Dict[Tuple[str, str], List[OccupiedInterval]] = {}
    for interval in intervals:
        by_platform.setdefault((interval.station_code, interval.platform), []).append(interval)

    conflicts = []
    for (station_code, platform), trains in by_platform.items():
        if platform in UNASSIGNED_PLATFORMS:
            continue

        for i in range(len(trains)):
            for j in range(i + 1, len(trains)):
                train_a, train_b = trains[i], trains[j]

                overlap_start = max(train_a.occupancy_start, train_b.occupancy_start)
                overlap_end = min(train_a.occupancy_end, train_b.occupancy_end)
                if overlap_start >= overlap_end:
                    continue

                time_to_conflict = round_half_up(minutes_between(now, overlap_start))
                conflicts.append(Conflict(
                    conflict_id=f"conf-{station_code}-{platform}-{train_a.train_number}-{train_b.train_number}",
                    station_code=station_code,
                    platform=platform,
                    trains=[train_a.train_number, train_b.train_number],
                    overlap_start=overlap_start,
                    overlap_end=overlap_end,
                    time_to_conflict_minutes=time_to_conflict,
                    severity=severity_for(time_to_conflict, config),
                ))

    return conflicts

def in_window(intervals: Sequence[OccupiedInterval], now: datetime,
              window_end: datetime) -> List[OccupiedInterval]:
    return [t for t in intervals if t.occupancy_end > now and t.occupancy_start < window_end]

class DssEngine:
    """
    Platform-conflict decision support over a static schedule.

    Each ``compute_snapshot`` call is an independent, synchronous pass; the
    engine holds only read-only collaborators between calls.
    """

    def __init__(self, schedule: Optional[Sequence[ScheduleEntry]] = None,
                 config: EngineConfig = None,
                 delay_predictor: DelayPredictor = None,
                 kpi_aggregator: KpiAggregator = None,
                 illustrative_pool: Optional[List[Dict]] = None):
        self.schedule = tuple(get_default_schedule() if schedule is None else schedule)
        self.config = config or EngineConfig()
        self.delay_predictor = delay_predictor or StaticDelayTable()
        self.kpi_aggregator = kpi_aggregator or DashboardKpiAggregator()
        self.illustrative_pool = illustrative_pool

    def is_ready(self) -> bool:
        return len(self.schedule) > 0

    def make_rng(self, config: EngineConfig = None) -> np.random.Generator:
        config = config or self.config
        return np.random.default_rng(config.random_seed)

    def compute_snapshot(self, now: datetime, config: EngineConfig = None,
                         rng: np.random.Generator = None) -> Snapshot:
        """
        Build one dashboard snapshot for ``now``. ``config`` overrides the
        engine's configuration for this call only; ``rng`` supplies every
        random draw (passenger synthesis, savings jitter, example selection).
        """
        started = time.perf_counter()
        config = config or self.config
        rng = rng if rng is not None else self.make_rng(config)

        now = ensure_utc(now)
        today = weekday_name(now)
        window_end = shift_minutes(now, config.window_ahead_minutes)

        running_today = trains_running_on(self.schedule, now)
        occupancies = build_occupancies(running_today, now, config, rng, self.delay_predictor)
        trains_now_window = in_window(occupancies, now, window_end)

        conflicts = detect_conflicts(trains_now_window, now, config)

        scorer = SuggestionScorer(config)
        suggestions = [
            scorer.score(conflict, trains_now_window, rng)
            for conflict in conflicts[:config.max_suggestions]
        ]
        real_count = len(suggestions)

        if config.illustrative_examples:
            suggestions = pad_with_illustrative_examples(
                suggestions, config.max_suggestions, rng, self.illustrative_pool
            )

        kpis = self.kpi_aggregator.aggregate_kpis(trains_now_window, conflicts, now, window_end)

        elapsed = time.perf_counter() - started
        logger.info(
            f"Snapshot {now.isoformat()} ({today}): {len(running_today)} trains today, "
            f"{len(trains_now_window)} in window, {len(conflicts)} conflicts, "
            f"{real_count} real + {len(suggestions) - real_count} illustrative suggestions "
            f"in {elapsed * 1000:.1f}ms"
        )

        return Snapshot(
            view_timestamp=now,
            today=today,
            relevant_window_minutes=config.window_ahead_minutes,
            trains_now_window=trains_now_window,
            conflicts=conflicts,
            suggestions=suggestions,
            kpis=kpis,
        )

def compute_snapshot(now: datetime, config: EngineConfig = None,
                     rng: np.random.Generator = None) -> Snapshot:
    """Snapshot over the packaged schedule fixture"""
    return DssEngine(config=config).compute_snapshot(now, rng=rng)

def configured(config: EngineConfig, **overrides) -> EngineConfig:
    return replace(config, **overrides)
