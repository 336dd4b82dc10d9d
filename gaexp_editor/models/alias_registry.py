"""
Alias registry for experiment ids.

Optimize experiment ids are random strings that don't say much, so the user can
give each one a human readable label. Labels are not part of the cookie; they
live in a JSON file in the instance folder and survive across editor sessions.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, Optional, Set

logger = logging.getLogger(__name__)

GLOBAL_KEY = "aliases"


class AliasRegistryNotLoaded(RuntimeError):
    """Raised when reconcile gives up waiting for the alias load"""


class MemoryAliasStore:
    """Key-value store kept in memory (used by tests and as a fallback)"""

    def __init__(self, data: Optional[Dict[str, Dict[str, str]]] = None):
        self._data = {key: dict(value) for key, value in (data or {}).items()}
        self._lock = threading.Lock()

    def read(self, key: str) -> Dict[str, str]:
        with self._lock:
            return dict(self._data.get(key, {}))

    def write(self, key: str, mapping: Dict[str, str]):
        with self._lock:
            self._data[key] = dict(mapping)


class AliasStore:
    """Key-value store backed by a JSON file.

    Every key holds a complete `id -> label` mapping. Writes replace the whole
    mapping for a key and are serialized by a lock shared by all stores in the
    process, so the last write wins and concurrent writers never merge halves.
    """

    _file_lock = threading.Lock()

    def __init__(self, data_file):
        self.data_file = Path(data_file)
        self.data_file.parent.mkdir(parents=True, exist_ok=True)

    def _load_data(self) -> Dict:
        if self.data_file.exists():
            try:
                with open(self.data_file, 'r') as f:
                    data = json.load(f)
                    return data if isinstance(data, dict) else {}
            except Exception as e:
                logger.error(f"Error loading alias data from {self.data_file}: {e}")
        return {}

    def read(self, key: str) -> Dict[str, str]:
        with self._file_lock:
            mapping = self._load_data().get(key, {})
        if not isinstance(mapping, dict):
            logger.warning(f"Ignoring malformed alias mapping under '{key}'")
            return {}
        return {str(k): str(v) for k, v in mapping.items()}

    def write(self, key: str, mapping: Dict[str, str]):
        with self._file_lock:
            data = self._load_data()
            data[key] = dict(mapping)
            tmp_file = self.data_file.with_suffix('.tmp')
            with open(tmp_file, 'w') as f:
                json.dump(data, f, indent=2, sort_keys=True)
            tmp_file.replace(self.data_file)


def scope_key(cookie_name: Optional[str] = None, domain: Optional[str] = None) -> str:
    """Storage key for a (cookie name, domain) pair; the global key when no scope is given"""
    if not cookie_name and not domain:
        return GLOBAL_KEY
    return f"{GLOBAL_KEY}:{cookie_name or ''}@{(domain or '').lstrip('.').lower()}"


class AliasRegistry:
    """Mapping of experiment id to user supplied label"""

    def __init__(self, store, key: str = GLOBAL_KEY):
        self.store = store
        self.key = key
        self._aliases: Dict[str, str] = {}
        self._lock = threading.RLock()
        self._loaded = threading.Event()
        self._load_thread = None

    @property
    def loaded(self) -> bool:
        return self._loaded.is_set()

    def load(self) -> Dict[str, str]:
        """Read the persisted mapping and mark the registry as loaded.

        A failed read still completes the load with whatever was found, so
        waiting callers are released instead of hanging.
        """
        try:
            stored = self.store.read(self.key)
        except Exception as e:
            logger.error(f"Error reading aliases for '{self.key}': {e}", exc_info=True)
            stored = {}

        with self._lock:
            # Labels set before the load finished take precedence
            pending = bool(self._aliases)
            merged = dict(stored)
            merged.update(self._aliases)
            self._aliases = merged
            snapshot = dict(self._aliases)

        self._loaded.set()
        if pending:
            self._persist()
        logger.debug(f"Loaded {len(snapshot)} aliases for '{self.key}'")
        return snapshot

    def start_load(self, on_loaded=None) -> threading.Thread:
        """Load in a background thread, calling `on_loaded(mapping)` when done"""
        def run():
            mapping = self.load()
            if on_loaded is not None:
                try:
                    on_loaded(mapping)
                except Exception as e:
                    logger.error(f"Error in alias load callback: {e}", exc_info=True)

        self._load_thread = threading.Thread(target=run, name=f"alias-load-{self.key}", daemon=True)
        self._load_thread.start()
        return self._load_thread

    def wait_until_loaded(self, timeout: Optional[float] = None) -> bool:
        return self._loaded.wait(timeout)

    def get(self, experiment_id: str) -> str:
        with self._lock:
            return self._aliases.get(experiment_id, "")

    def as_dict(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._aliases)

    def set(self, experiment_id: str, label: str):
        with self._lock:
            self._aliases[experiment_id] = label
        self._persist()

    def rename(self, old_id: str, new_id: str):
        """Move the label of `old_id` to `new_id`. Nothing happens if `old_id` has no label."""
        with self._lock:
            if old_id not in self._aliases:
                return
            self._aliases[new_id] = self._aliases[old_id]
            del self._aliases[old_id]
        self._persist()

    def remove(self, experiment_id: str):
        with self._lock:
            self._aliases.pop(experiment_id, None)
        self._persist()

    def reconcile(self, live_ids: Iterable[str], timeout: Optional[float] = None) -> Set[str]:
        """Drop every alias whose id is not in `live_ids` and return the dropped ids.

        Blocks until `load()` has completed; running against an unloaded
        registry would discard aliases before they were ever read.
        """
        if not self._loaded.wait(timeout):
            raise AliasRegistryNotLoaded(f"Aliases for '{self.key}' were not loaded within {timeout}s")

        live = set(live_ids)
        with self._lock:
            removed = {exp_id for exp_id in self._aliases if exp_id not in live}
            for exp_id in removed:
                del self._aliases[exp_id]
        self._persist()

        if removed:
            logger.info(f"Garbage collected {len(removed)} aliases: {', '.join(sorted(removed))}")
        return removed

    def _persist(self):
        # Snapshot and write under the registry lock so writes leave in mutation order
        with self._lock:
            if not self._loaded.is_set():
                # Writing now would clobber the stored mapping; load() merges pending labels
                return
            try:
                self.store.write(self.key, dict(self._aliases))
            except Exception as e:
                logger.error(f"Error saving aliases for '{self.key}': {e}")
