"""
Experiment record model and the errors raised while editing experiments
"""
import uuid
from enum import Enum


class RecordState(Enum):
    """Lifecycle of a row in the editor"""
    DRAFT = "draft"
    LIVE = "live"
    DELETED = "deleted"


class ExperimentError(Exception):
    """Base class for experiment editing errors"""


class DuplicateIdError(ExperimentError):
    """Raised when a rename would give two experiments the same id"""

    def __init__(self, experiment_id: str):
        super().__init__(f"An experiment with id '{experiment_id}' already exists.")
        self.experiment_id = experiment_id


class InvalidIdError(ExperimentError, ValueError):
    """Raised when an id does not match [A-Za-z0-9-]+"""

    def __init__(self, experiment_id: str):
        super().__init__(f"Invalid experiment id '{experiment_id}'. Only letters, digits and '-' are allowed.")
        self.experiment_id = experiment_id


class UnknownExperimentError(ExperimentError, KeyError):
    """Raised when an edit refers to an id that is not in the store"""

    def __init__(self, experiment_id: str):
        super().__init__(experiment_id)
        self.experiment_id = experiment_id

    def __str__(self):
        return f"Experiment '{self.experiment_id}' not found."


class Experiment:
    """One A/B-test assignment from the `_gaexp` cookie"""

    def __init__(self, id: str, expiry: int, flow_id: int, alias: str = "", state: RecordState = RecordState.LIVE):
        self.row_id = "gaexp-" + str(uuid.uuid4())
        self.id = id
        self.expiry = int(expiry)
        self.flow_id = int(flow_id)
        self.alias = alias
        self.state = state

    @classmethod
    def draft(cls, expiry: int) -> "Experiment":
        """Create the empty "add new" row"""
        return cls("", expiry, 0, state=RecordState.DRAFT)

    @property
    def is_draft(self) -> bool:
        return self.state is RecordState.DRAFT

    def to_dict(self) -> dict:
        return {
            "row_id": self.row_id,
            "id": self.id,
            "expiry": self.expiry,
            "flow_id": self.flow_id,
            "alias": self.alias,
            "state": self.state.value,
        }

    def __repr__(self):
        return f"Experiment(id={self.id!r}, expiry={self.expiry}, flow_id={self.flow_id}, state={self.state.value})"
