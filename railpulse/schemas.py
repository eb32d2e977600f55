from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any, Union
from datetime import datetime
from enum import Enum

class PriorityClass(str, Enum):
    HIGH = "High"
    NORMAL = "Normal"
    LOW = "Low"

class Severity(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

class ScheduleEntry(BaseModel):
    train_number: str
    train_name: str
    train_type: str
    station_code: str
    platform: Optional[Union[str, int]] = None
    running_days: List[str] = []  # single-letter day codes, e.g. ["M", "W", "F"]
    arrival_time: Optional[str] = None  # HH:MM
    departure_time: Optional[str] = None  # HH:MM
    passenger_count: Optional[int] = None

class OccupiedInterval(BaseModel):
    train_number: str
    train_name: str
    train_type: str
    station_code: str
    platform: str
    priority: PriorityClass
    passenger_count: int
    predicted_delay_minutes: int = 0
    scheduled_arrival: datetime
    scheduled_departure: datetime
    occupancy_start: datetime
    occupancy_end: datetime

class Conflict(BaseModel):
    conflict_id: str
    station_code: str
    platform: str
    trains: List[str]  # exactly two train numbers
    overlap_start: datetime
    overlap_end: datetime
    time_to_conflict_minutes: int
    severity: Severity

class Suggestion(BaseModel):
    suggestion_id: str
    conflict_id: str
    action: str = "Hold"
    suggested_first: str
    trains: List[str]  # display labels, "Name (number)"
    station_code: str
    platform: str
    scores: Dict[str, float]
    confidence_percent: int
    estimated_passenger_delay_saved_min: int
    reason: str
    accept_label: str = "Accept"
    reject_label: str = "Reject"
    illustrative: bool = False

class KpiSnapshot(BaseModel):
    throughput_trains_per_hour: int
    avg_delay_minutes: float
    on_time_percent: int
    conflict_count_next_hour: int
    trains_in_window: int = 0
    platform_utilization_percent: Dict[str, int]
    passengers_affected_next_hour: int
    train_density: int
    freight_train_delay: int
    goods_volume_moved: int
    freight_priority_decisions: int
    signal_failures: int
    emergency_holds: int
    maintenance_blocks: int
    ai_safety_overrides: int
    suburban_on_time_rate: int
    priority_train_punctuality: int
    avg_passenger_delay: float
    conflict_resolution_time: float
    track_utilization: Dict[str, int]
    yard_utilization: Dict[str, int]

class Snapshot(BaseModel):
    view_timestamp: datetime
    today: str  # weekday abbreviation, e.g. "Mon"
    relevant_window_minutes: int
    trains_now_window: List[OccupiedInterval]
    conflicts: List[Conflict]
    suggestions: List[Suggestion]
    kpis: KpiSnapshot

class SessionTimeUpdate(BaseModel):
    time: str  # HH:MM

class SessionState(BaseModel):
    time: str
    snapshot: Snapshot

class RecommendationBatch(BaseModel):
    # Records without a usable trainId are skipped individually on upsert
    recommendations: List[Any]

class RecommendationBatchResponse(BaseModel):
    message: str
    stored: int
    skipped: int

class RecommendationRecord(BaseModel):
    train_id: str
    action: Optional[str]
    reason: Optional[str]
    payload: Dict[str, Any]
    updated_at: datetime

class OverrideCreate(BaseModel):
    train_id: str = Field(..., alias="trainId", min_length=1)
    overridden_action: str = Field(..., alias="overriddenAction", min_length=1)
    new_action: str = Field(..., alias="newAction", min_length=1)
    reason: Optional[str] = None
    controller_id: str = Field(..., alias="controllerId", min_length=1)

class OverrideRecord(BaseModel):
    id: int
    train_id: str
    overridden_action: str
    new_action: str
    reason: str
    controller_id: str
    created_at: datetime
