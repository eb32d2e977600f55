import pytest
import numpy as np
from datetime import datetime, timedelta, timezone

from railpulse.engine import (
    DssEngine, EngineConfig, build_occupancies, detect_conflicts, severity_for,
    priority_class_for, in_window, compute_snapshot
)
from railpulse.errors import UnresolvableConflictError
from railpulse.illustrative import ILLUSTRATIVE_POOL
from railpulse.providers import StaticDelayTable
from railpulse.schemas import ScheduleEntry, PriorityClass, Severity
from railpulse.scoring import SuggestionScorer

MONDAY = datetime(2025, 9, 22, tzinfo=timezone.utc)

def at(hhmm: str, day: datetime = MONDAY) -> datetime:
    hours, minutes = map(int, hhmm.split(":"))
    return day.replace(hour=hours, minute=minutes)

def entry(number, arrival, departure, platform="3", station="NDLS", train_type="Exp",
          days=("M",), passengers=None, name=None):
    return ScheduleEntry(
        train_number=number,
        train_name=name or f"Train {number}",
        train_type=train_type,
        station_code=station,
        platform=platform,
        running_days=list(days),
        arrival_time=arrival,
        departure_time=departure,
        passenger_count=passengers
    )

@pytest.fixture
def config():
    return EngineConfig(random_seed=7)

@pytest.fixture
def rng():
    return np.random.default_rng(7)

@pytest.fixture
def delays():
    return StaticDelayTable()

@pytest.fixture
def sample_entries():
    return [
        entry("12951", "10:00", "10:10", train_type="Rajdhani", passengers=1150, name="Mumbai Rajdhani"),
        entry("11041", "10:05", "10:15", train_type="Exp", passengers=900, name="Chennai Express"),
    ]

def test_occupancy_interval_example(sample_entries, config, rng, delays):
    intervals = build_occupancies(sample_entries, at("09:54"), config, rng, delays)

    assert len(intervals) == 2
    a, b = intervals
    assert a.occupancy_start == at("09:57")
    assert a.occupancy_end == at("10:10")
    assert b.occupancy_start == at("10:02")
    assert b.occupancy_end == at("10:15")
    assert a.priority == PriorityClass.HIGH
    assert b.priority == PriorityClass.NORMAL

def test_minimum_dwell_is_applied(config, rng, delays):
    intervals = build_occupancies([entry("1", "10:00", "10:02")], at("09:00"), config, rng, delays)

    assert intervals[0].occupancy_end == at("10:05")
    assert intervals[0].occupancy_start <= intervals[0].occupancy_end

def test_overnight_departure_rolls_to_next_day(config, rng, delays):
    intervals = build_occupancies([entry("12430", "23:55", "00:10")], at("23:00"), config, rng, delays)

    train = intervals[0]
    assert train.scheduled_departure == at("00:10") + timedelta(days=1)
    assert train.occupancy_end == at("00:10") + timedelta(days=1)

def test_entries_without_times_are_dropped(config, rng, delays):
    entries = [
        entry("1", "10:00", None),
        entry("2", None, "10:00"),
        entry("3", "25:00", "10:00"),
        entry("4", "10:00", "10:05"),
    ]
    intervals = build_occupancies(entries, at("09:00"), config, rng, delays)

    assert [t.train_number for t in intervals] == ["4"]

def test_missing_platform_becomes_unassigned(config, rng, delays):
    intervals = build_occupancies([entry("1", "10:00", "10:05", platform=None)], at("09:00"), config, rng, delays)
    assert intervals[0].platform == "N/A"

def test_priority_class_mapping():
    assert priority_class_for("Rajdhani") == PriorityClass.HIGH
    assert priority_class_for("VB") == PriorityClass.HIGH
    assert priority_class_for("SF") == PriorityClass.HIGH
    assert priority_class_for("Mail") == PriorityClass.NORMAL
    assert priority_class_for("MEMU") == PriorityClass.LOW
    assert priority_class_for("Freight") == PriorityClass.LOW
    assert priority_class_for("Unknown") == PriorityClass.LOW

def test_passenger_synthesis_is_bounded_and_seeded(config, delays):
    entries = [entry(str(n), "10:00", "10:05") for n in range(50)]

    first = build_occupancies(entries, at("09:00"), config, np.random.default_rng(11), delays)
    second = build_occupancies(entries, at("09:00"), config, np.random.default_rng(11), delays)

    counts = [t.passenger_count for t in first]
    assert all(500 <= c <= 1200 for c in counts)
    assert counts == [t.passenger_count for t in second]

def test_given_passenger_count_is_kept(config, rng, delays):
    intervals = build_occupancies([entry("1", "10:00", "10:05", passengers=0)], at("09:00"), config, rng, delays)
    assert intervals[0].passenger_count == 0

def test_predicted_delay_comes_from_predictor(sample_entries, config, rng):
    intervals = build_occupancies(sample_entries, at("09:54"), config, rng, StaticDelayTable())
    assert [t.predicted_delay_minutes for t in intervals] == [8, 15]

    custom = build_occupancies(sample_entries, at("09:54"), config, rng, StaticDelayTable({"11041": 3}))
    assert [t.predicted_delay_minutes for t in custom] == [0, 3]

def test_single_conflict_for_overlapping_trains(sample_entries, config, rng, delays):
    now = at("09:54")
    intervals = build_occupancies(sample_entries, now, config, rng, delays)

    conflicts = detect_conflicts(intervals, now, config)

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.trains == ["12951", "11041"]
    assert conflict.station_code == "NDLS"
    assert conflict.platform == "3"
    assert conflict.overlap_start == at("10:02")
    assert conflict.overlap_end == at("10:10")
    assert conflict.time_to_conflict_minutes == 8
    assert conflict.severity == Severity.HIGH

def test_different_platforms_do_not_conflict(config, rng, delays):
    entries = [entry("A", "10:00", "10:10", platform="3"), entry("B", "10:05", "10:15", platform="4")]
    intervals = build_occupancies(entries, at("09:54"), config, rng, delays)

    assert detect_conflicts(intervals, at("09:54"), config) == []

def test_different_stations_do_not_conflict(config, rng, delays):
    entries = [entry("A", "10:00", "10:10", station="NDLS"), entry("B", "10:05", "10:15", station="AGC")]
    intervals = build_occupancies(entries, at("09:54"), config, rng, delays)

    assert detect_conflicts(intervals, at("09:54"), config) == []

@pytest.mark.parametrize("platform", [None, "N/A", "--"])
def test_unassigned_platforms_never_conflict(platform, config, rng, delays):
    entries = [entry("A", "10:00", "10:10", platform=platform), entry("B", "10:05", "10:15", platform=platform)]
    intervals = build_occupancies(entries, at("09:54"), config, rng, delays)

    assert detect_conflicts(intervals, at("09:54"), config) == []

def test_touching_intervals_do_not_conflict(config, rng, delays):
    # A holds the platform until 10:05, B's lead starts at 10:05
    entries = [entry("A", "10:00", "10:05"), entry("B", "10:08", "10:15")]
    intervals = build_occupancies(entries, at("09:54"), config, rng, delays)

    assert detect_conflicts(intervals, at("09:54"), config) == []

def test_every_overlapping_pair_is_reported(config, rng, delays):
    entries = [entry("A", "10:00", "10:10"), entry("B", "10:05", "10:15"), entry("C", "10:08", "10:20")]
    intervals = build_occupancies(entries, at("09:54"), config, rng, delays)

    conflicts = detect_conflicts(intervals, at("09:54"), config)

    assert [c.trains for c in conflicts] == [["A", "B"], ["A", "C"], ["B", "C"]]

def test_time_to_conflict_can_be_negative(sample_entries, config, rng, delays):
    now = at("10:05")
    intervals = build_occupancies(sample_entries, now, config, rng, delays)

    conflict = detect_conflicts(intervals, now, config)[0]

    assert conflict.time_to_conflict_minutes == -3
    assert conflict.severity == Severity.HIGH

@pytest.mark.parametrize("minutes,expected", [
    (-5, Severity.HIGH),
    (8, Severity.HIGH),
    (10, Severity.HIGH),
    (11, Severity.MEDIUM),
    (30, Severity.MEDIUM),
    (31, Severity.LOW),
    (120, Severity.LOW),
])
def test_severity_thresholds(minutes, expected, config):
    assert severity_for(minutes, config) == expected

def test_window_keeps_only_intervals_intersecting_look_ahead(config, rng, delays):
    entries = [entry("early", "09:00", "09:10"), entry("soon", "10:00", "10:10"), entry("late", "12:00", "12:10")]
    now = at("09:54")
    intervals = build_occupancies(entries, now, config, rng, delays)

    kept = in_window(intervals, now, now + timedelta(minutes=90))

    assert [t.train_number for t in kept] == ["soon"]

def test_snapshot_example(sample_entries, config):
    engine = DssEngine(schedule=sample_entries, config=config)

    snapshot = engine.compute_snapshot(at("09:54"))

    assert snapshot.today == "Mon"
    assert snapshot.relevant_window_minutes == 90
    assert len(snapshot.trains_now_window) == 2
    assert len(snapshot.conflicts) == 1
    assert len(snapshot.suggestions) == 12

    real = snapshot.suggestions[0]
    assert not real.illustrative
    assert real.conflict_id == snapshot.conflicts[0].conflict_id
    assert real.suggestion_id == f"sugg-{real.conflict_id}"

    padding = snapshot.suggestions[1:]
    assert all(s.illustrative for s in padding)
    assert all(s.suggestion_id.startswith("demo-") for s in padding)
    assert len({s.suggestion_id for s in padding}) == len(padding)

    assert snapshot.kpis.conflict_count_next_hour == 1
    assert snapshot.kpis.trains_in_window == 2

def test_snapshot_without_illustrative_examples(sample_entries):
    engine = DssEngine(schedule=sample_entries, config=EngineConfig(random_seed=1, illustrative_examples=False))

    snapshot = engine.compute_snapshot(at("09:54"))

    assert len(snapshot.suggestions) == 1

def test_call_time_config_overrides_engine_config(sample_entries, config):
    engine = DssEngine(schedule=sample_entries, config=config)

    snapshot = engine.compute_snapshot(at("09:54"), config=EngineConfig(illustrative_examples=False, window_ahead_minutes=30))

    assert snapshot.relevant_window_minutes == 30
    assert len(snapshot.suggestions) == 1

def test_snapshot_filters_to_trains_running_today(config):
    entries = [entry("tue", "10:00", "10:10", days=["T"]), entry("mon", "10:05", "10:15", days=["M"])]
    engine = DssEngine(schedule=entries, config=config)

    monday = engine.compute_snapshot(at("09:54"))
    tuesday = engine.compute_snapshot(at("09:54", MONDAY + timedelta(days=1)))

    assert [t.train_number for t in monday.trains_now_window] == ["mon"]
    assert monday.conflicts == []
    assert len(tuesday.conflicts) == 0
    assert [t.train_number for t in tuesday.trains_now_window] == ["tue"]

def test_snapshot_is_reproducible_with_same_seed():
    entries = [entry(str(n), "10:00", "10:10") for n in range(4)]
    engine = DssEngine(schedule=entries, config=EngineConfig(random_seed=42))

    first = engine.compute_snapshot(at("09:54"))
    second = engine.compute_snapshot(at("09:54"))

    assert first.model_dump() == second.model_dump()

def test_suggestions_are_capped(config):
    # Six trains on one platform give fifteen pairwise conflicts
    entries = [entry(str(n), "10:00", "10:20") for n in range(6)]
    engine = DssEngine(schedule=entries, config=config)

    snapshot = engine.compute_snapshot(at("09:54"))

    assert len(snapshot.conflicts) == 15
    assert len(snapshot.suggestions) == 12
    assert not any(s.illustrative for s in snapshot.suggestions)

def test_padding_stops_when_pool_is_exhausted(sample_entries, config):
    engine = DssEngine(schedule=sample_entries, config=config, illustrative_pool=ILLUSTRATIVE_POOL[:2])

    snapshot = engine.compute_snapshot(at("09:54"))

    assert len(snapshot.suggestions) == 3

def test_suggestion_count_matches_available_examples(config):
    engine = DssEngine(schedule=[entry("solo", "10:00", "10:10")], config=config)

    snapshot = engine.compute_snapshot(at("09:54"))

    assert snapshot.conflicts == []
    assert len(snapshot.suggestions) == min(12, len(ILLUSTRATIVE_POOL))

def test_unresolvable_conflict_raises(sample_entries, config, rng, delays):
    now = at("09:54")
    intervals = build_occupancies(sample_entries, now, config, rng, delays)
    conflict = detect_conflicts(intervals, now, config)[0]

    with pytest.raises(UnresolvableConflictError):
        SuggestionScorer(config).score(conflict, intervals[:1], rng)

@pytest.mark.parametrize("clock", ["06:00", "09:15", "16:40", "21:00"])
def test_fixture_conflicts_share_platform_and_overlap(clock):
    engine = DssEngine(config=EngineConfig(random_seed=5))

    snapshot = engine.compute_snapshot(at(clock))

    by_number = {t.train_number: t for t in snapshot.trains_now_window}
    for conflict in snapshot.conflicts:
        a, b = (by_number[n] for n in conflict.trains)
        assert (a.station_code, a.platform) == (b.station_code, b.platform)
        assert conflict.platform not in ("N/A", "--")
        assert max(a.occupancy_start, b.occupancy_start) < min(a.occupancy_end, b.occupancy_end)
    for suggestion in snapshot.suggestions:
        assert 51 <= suggestion.confidence_percent <= 99
    assert len(snapshot.suggestions) <= 12

def test_fixture_rajdhani_conflict_at_new_delhi():
    engine = DssEngine(config=EngineConfig(random_seed=5))

    snapshot = engine.compute_snapshot(at("16:40"))

    conflict = next(c for c in snapshot.conflicts if c.trains == ["12951", "11041"])
    assert conflict.station_code == "NDLS"
    assert conflict.time_to_conflict_minutes == 2
    assert conflict.severity == Severity.HIGH
    assert snapshot.kpis.conflict_count_next_hour >= 1

def test_engine_is_ready():
    assert DssEngine().is_ready()
    assert not DssEngine(schedule=[]).is_ready()

def test_module_compute_snapshot_uses_packaged_fixture():
    snapshot = compute_snapshot(at("16:40"), config=EngineConfig(illustrative_examples=False),
                                rng=np.random.default_rng(4))

    assert snapshot.today == "Mon"
    assert all(not s.illustrative for s in snapshot.suggestions)
    assert any(c.trains == ["12951", "11041"] for c in snapshot.conflicts)
