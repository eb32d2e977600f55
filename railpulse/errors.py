class DssError(Exception):
    """Base class for decision-support engine failures"""

class ScheduleLoadError(DssError):
    """The static schedule fixture is missing or malformed"""

class UnresolvableConflictError(DssError):
    """A conflict references a train that is not in the supplied interval window"""

    def __init__(self, conflict_id: str, train_number: str):
        super().__init__(
            f"Conflict {conflict_id} references train {train_number}, "
            f"which is not in the current occupancy window"
        )
        self.conflict_id = conflict_id
        self.train_number = train_number

class SuggestionNotFoundError(DssError):
    def __init__(self, suggestion_id: str):
        super().__init__(f"No active suggestion with id {suggestion_id}")
        self.suggestion_id = suggestion_id
