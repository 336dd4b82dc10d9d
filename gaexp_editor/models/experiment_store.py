"""
In-memory collection of the experiments being edited in one editor session
"""
import logging
import time
from typing import Dict, Iterable, List, Set

from gaexp_editor.models.experiment import (
    DuplicateIdError,
    Experiment,
    InvalidIdError,
    RecordState,
    UnknownExperimentError,
)
from gaexp_editor.utils.cookie_codec import FORMAT_PREFIX, encode, is_valid_id

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

# Default lifetime of a newly added experiment
DRAFT_EXPIRY_DAYS = 90


class ExperimentStore:
    """Experiments keyed by id, plus the single draft row used to add a new one.

    Labels are read from and written through the alias registry; the store never
    owns them.
    """

    def __init__(self, aliases, draft_expiry_days: int = DRAFT_EXPIRY_DAYS, clock=time.time):
        self.aliases = aliases
        self.draft_expiry_days = draft_expiry_days
        self._clock = clock
        self._experiments: Dict[str, Experiment] = {}
        self.draft = self._new_draft()

    def _new_draft(self) -> Experiment:
        # Cookie expiry is counted in days since the epoch
        today = int(self._clock() // SECONDS_PER_DAY)
        return Experiment.draft(today + self.draft_expiry_days)

    def populate(self, records: Iterable):
        """Replace the store's contents with decoded `(id, expiry, flow_id)` records"""
        self._experiments = {}
        for exp_id, expiry, flow_id in records:
            if exp_id in self._experiments:
                logger.warning(f"Cookie contains experiment '{exp_id}' more than once; keeping the last value")
                existing = self._experiments[exp_id]
                existing.expiry = int(expiry)
                existing.flow_id = int(flow_id)
                continue
            self._experiments[exp_id] = Experiment(exp_id, expiry, flow_id, alias=self.aliases.get(exp_id))
        self.draft = self._new_draft()

    def refresh_aliases(self):
        """Re-read every live experiment's label from the registry"""
        for experiment in self._experiments.values():
            experiment.alias = self.aliases.get(experiment.id)

    def get(self, experiment_id: str) -> Experiment:
        if experiment_id == "":
            return self.draft
        try:
            return self._experiments[experiment_id]
        except KeyError:
            raise UnknownExperimentError(experiment_id) from None

    def experiments(self) -> List[Experiment]:
        """Live experiments in cookie order"""
        return list(self._experiments.values())

    def rows(self) -> List[Experiment]:
        """Everything the editor shows: live experiments followed by the draft row"""
        return self.experiments() + [self.draft]

    def live_ids(self) -> Set[str]:
        return {exp_id for exp_id in self._experiments if exp_id}

    def __contains__(self, experiment_id) -> bool:
        return experiment_id in self._experiments

    def __len__(self) -> int:
        return len(self._experiments)

    def rename(self, old_id: str, new_id: str):
        """Change an experiment's id. An empty `new_id` deletes the experiment."""
        if old_id == new_id:
            return

        if new_id == "":
            self._delete(old_id)
            return

        experiment = self.get(old_id)
        if not is_valid_id(new_id):
            raise InvalidIdError(new_id)
        if new_id in self._experiments:
            raise DuplicateIdError(new_id)

        if experiment.is_draft:
            self._promote_draft(new_id)
            return

        self.aliases.rename(old_id, new_id)
        # Rebuild the mapping so the experiment keeps its position in the cookie
        self._experiments = {
            (new_id if key == old_id else key): value for key, value in self._experiments.items()
        }
        experiment.id = new_id

    def _promote_draft(self, new_id: str):
        experiment = self.draft
        experiment.id = new_id
        experiment.state = RecordState.LIVE
        self._experiments[new_id] = experiment
        if experiment.alias:
            self.aliases.set(new_id, experiment.alias)
        self.draft = self._new_draft()
        logger.debug(f"Added experiment '{new_id}'")

    def _delete(self, experiment_id: str):
        if experiment_id == "":
            # The draft row has nothing to delete
            return
        experiment = self._experiments.pop(experiment_id, None)
        if experiment is None:
            raise UnknownExperimentError(experiment_id)
        experiment.id = ""
        experiment.state = RecordState.DELETED
        self.aliases.remove(experiment_id)
        logger.debug(f"Deleted experiment '{experiment_id}'")

    def set_alias(self, experiment_id: str, label: str):
        experiment = self.get(experiment_id)
        experiment.alias = label
        if experiment.is_draft:
            # Stored once the draft gets an id
            return
        self.aliases.set(experiment_id, label)

    def set_expiry(self, experiment_id: str, value):
        experiment = self.get(experiment_id)
        experiment.expiry = _to_int(value, "expiry")

    def set_flow_id(self, experiment_id: str, value):
        experiment = self.get(experiment_id)
        experiment.flow_id = _to_int(value, "flow_id")

    def commit(self, prefix: str = FORMAT_PREFIX) -> str:
        """Encode the live experiments into a cookie value"""
        return encode(self.experiments(), prefix=prefix)


def _to_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    if isinstance(value, int):
        number = value
    else:
        try:
            number = int(str(value).strip())
        except (TypeError, ValueError):
            raise ValueError(f"{field} must be a number, got {value!r}") from None
    # The cookie only holds unsigned decimals
    if number < 0:
        raise ValueError(f"{field} cannot be negative, got {value!r}")
    return number
