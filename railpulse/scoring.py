from typing import List, Dict, Tuple, TYPE_CHECKING
import math
import logging

import numpy as np

from .schemas import OccupiedInterval, Conflict, Suggestion, PriorityClass
from .errors import UnresolvableConflictError
from .utils import round_half_up, round_to_places

if TYPE_CHECKING:
    from .engine import EngineConfig

logger = logging.getLogger(__name__)

HIGH_PRIORITY_SCORE_TYPES = {"Rajdhani", "Shatabdi", "VB", "SF", "Drnt"}
NORMAL_PRIORITY_SCORE_TYPES = {"Exp", "Mail", "SKr", "Hms"}

PASSENGER_MARGIN = 1.1
DELAY_MARGIN_MINUTES = 5

FALLBACK_REASON = "It has a slightly better overall operational score based on current conditions."

def priority_score(train: OccupiedInterval) -> float:
    if train.priority == PriorityClass.HIGH or train.train_type in HIGH_PRIORITY_SCORE_TYPES:
        return 1.0
    if train.priority == PriorityClass.NORMAL or train.train_type in NORMAL_PRIORITY_SCORE_TYPES:
        return 0.6
    return 0.3

def passenger_impact_score(passengers: int, max_passengers: int) -> float:
    return passengers / max_passengers if max_passengers > 0 else 0.0

def delay_urgency_score(delay_minutes: float, horizon_minutes: float = 20.0) -> float:
    return min(1.0, delay_minutes / horizon_minutes)

class SuggestionScorer:
    """Weighted precedence scoring for the two trains of a platform conflict"""

    def __init__(self, config: "EngineConfig"):
        self.config = config

    def weighted_score(self, train: OccupiedInterval, max_passengers: int) -> float:
        return (
            self.config.priority_weight * priority_score(train)
            + self.config.passenger_impact_weight * passenger_impact_score(train.passenger_count, max_passengers)
            + self.config.delay_weight * delay_urgency_score(
                train.predicted_delay_minutes, self.config.delay_urgency_horizon_minutes
            )
        )

    def score(self, conflict: Conflict, intervals: List[OccupiedInterval],
              rng: np.random.Generator) -> Suggestion:
        train_a, train_b = self._resolve_trains(conflict, intervals)

        max_passengers = max([t.passenger_count for t in intervals] + [1])
        score_a = self.weighted_score(train_a, max_passengers)
        score_b = self.weighted_score(train_b, max_passengers)

        if score_a >= score_b:
            winner, other = train_a, train_b
        else:
            winner, other = train_b, train_a
        score_diff = abs(score_a - score_b)

        jitter = rng.uniform(1.0, 4.0)
        estimated_saved = round_half_up(score_diff * 10 + jitter)

        return Suggestion(
            suggestion_id=f"sugg-{conflict.conflict_id}",
            conflict_id=conflict.conflict_id,
            action="Hold",
            suggested_first=winner.train_number,
            trains=[self._label(train_a), self._label(train_b)],
            station_code=conflict.station_code,
            platform=conflict.platform,
            scores={
                train_a.train_number: round_to_places(score_a, 2),
                train_b.train_number: round_to_places(score_b, 2),
            },
            confidence_percent=confidence_percent(score_diff),
            estimated_passenger_delay_saved_min=estimated_saved,
            reason=justification(winner, other),
        )

    def _resolve_trains(self, conflict: Conflict,
                        intervals: List[OccupiedInterval]) -> Tuple[OccupiedInterval, OccupiedInterval]:
        by_number: Dict[str, OccupiedInterval] = {}
        for interval in intervals:
            by_number.setdefault(interval.train_number, interval)

        resolved = []
        for train_number in conflict.trains:
            if train_number not in by_number:
                raise UnresolvableConflictError(conflict.conflict_id, train_number)
            resolved.append(by_number[train_number])
        return resolved[0], resolved[1]

    @staticmethod
    def _label(train: OccupiedInterval) -> str:
        return f"{train.train_name} ({train.train_number})"

def confidence_percent(score_diff: float) -> int:
    """
    Map the score separation onto a 51-99 confidence band. Near-ties
    (separation under 0.1) are pulled down to signal a weak recommendation.
    """
    confidence = math.floor(60 + score_diff * 80)
    confidence = min(99, max(51, confidence))
    if score_diff < 0.1:
        confidence = max(55, confidence - 15)
    return confidence

def justification(winner: OccupiedInterval, other: OccupiedInterval) -> str:
    reason = f"{winner.train_name} ({winner.train_number}) is prioritized. "

    reasons = []
    if priority_score(winner) > priority_score(other):
        reasons.append("it has higher operational priority")
    if winner.passenger_count > other.passenger_count * PASSENGER_MARGIN:
        reasons.append(f"it affects more passengers ({winner.passenger_count} vs {other.passenger_count})")
    if winner.predicted_delay_minutes > other.predicted_delay_minutes + DELAY_MARGIN_MINUTES:
        reasons.append(f"it is already running later ({winner.predicted_delay_minutes} min)")

    if reasons:
        return reason + "This is because " + ", and ".join(reasons) + "."
    return reason + FALLBACK_REASON
