"""
Editor session: ties the `_gaexp` cookie, the experiment store and the alias
registry together for one opening of the editor.

    INIT -> LOADING -> HIDDEN                       (no cookie, nothing to edit)
                    -> LOADED -> EDITING -> SAVING -> CLOSED (reload)
                                              `-> ERROR -> SAVING ...

All mutations go through the session lock, so edits, the alias garbage
collection and saving never interleave.
"""
import logging
import threading
import uuid
from collections import OrderedDict
from enum import Enum
from typing import Optional

from gaexp_editor.models.alias_registry import AliasRegistryNotLoaded
from gaexp_editor.models.experiment_store import DRAFT_EXPIRY_DAYS, ExperimentStore
from gaexp_editor.utils.cookie_codec import COOKIE_NAME, FORMAT_PREFIX, decode
from gaexp_editor.utils.cookie_jar import CookieWriteError

logger = logging.getLogger(__name__)

# Time given to the rows to render before aliases of vanished experiments are dropped
SETTLE_DELAY_SECONDS = 0.25

LOAD_TIMEOUT_SECONDS = 5.0


class SessionState(Enum):
    INIT = "init"
    LOADING = "loading"
    HIDDEN = "hidden"
    LOADED = "loaded"
    EDITING = "editing"
    SAVING = "saving"
    ERROR = "error"
    CLOSED = "closed"


EDITABLE_STATES = (SessionState.LOADED, SessionState.EDITING, SessionState.ERROR)


class SessionStateError(Exception):
    """Raised when an action is not allowed in the session's current state"""


class EditorHost:
    """Actions the editor asks of its host. The defaults only log."""

    def render(self, rows):
        logger.debug(f"Rendering {len(rows)} rows")

    def reload_tab(self):
        logger.debug("Reload of the owning tab requested")

    def reload_editor(self):
        logger.debug("Reload of the editor requested")

    def alert(self, message: str):
        logger.warning(f"Editor alert: {message}")


class EditorSession:
    """One editing session for the `_gaexp` cookie of a URL"""

    def __init__(
        self,
        url: str,
        cookie_jar,
        aliases,
        host: Optional[EditorHost] = None,
        cookie_name: str = COOKIE_NAME,
        prefix: str = FORMAT_PREFIX,
        settle_delay: float = SETTLE_DELAY_SECONDS,
        draft_expiry_days: int = DRAFT_EXPIRY_DAYS,
        load_timeout: float = LOAD_TIMEOUT_SECONDS,
    ):
        self.token = uuid.uuid4().hex
        self.url = url
        self.cookie_jar = cookie_jar
        self.aliases = aliases
        self.host = host or EditorHost()
        self.cookie_name = cookie_name
        self.prefix = prefix
        self.settle_delay = settle_delay
        self.load_timeout = load_timeout
        self.store = ExperimentStore(aliases, draft_expiry_days=draft_expiry_days)

        self.state = SessionState.INIT
        self.cookie = None
        self.last_error: Optional[str] = None
        self.removed_aliases = set()

        self._lock = threading.RLock()
        self._settle_timer: Optional[threading.Timer] = None
        self._rows_ready = threading.Event()
        self._reconciled = threading.Event()

    def start(self) -> SessionState:
        """Read the cookie and populate the store; aliases load in the background"""
        with self._lock:
            if self.state is not SessionState.INIT:
                raise SessionStateError(f"Session already started (state: {self.state.value})")

            self.state = SessionState.LOADING
            cookie = self.cookie_jar.get(self.url, self.cookie_name)
            if cookie is None:
                logger.info(f"No {self.cookie_name} cookie for {self.url}; editor hidden")
                self.state = SessionState.HIDDEN
                return self.state

            self.cookie = cookie
            self.store.populate(decode(cookie.value))
            self.state = SessionState.LOADED
            logger.info(f"Loaded {len(self.store)} experiments from {self.cookie_name} for {self.url}")

        self.aliases.start_load(on_loaded=self._on_aliases_loaded)
        return self.state

    def _on_aliases_loaded(self, _mapping):
        with self._lock:
            if self.state is SessionState.CLOSED:
                self._rows_ready.set()
                return
            self.store.refresh_aliases()
            rows = self.store.rows()
            self._rows_ready.set()

        self.host.render(rows)

        timer = threading.Timer(self.settle_delay, self._reconcile_aliases)
        timer.daemon = True
        with self._lock:
            self._settle_timer = timer
        timer.start()

    def _reconcile_aliases(self):
        with self._lock:
            if self.state is SessionState.CLOSED or self._reconciled.is_set():
                return
            try:
                self.removed_aliases = self.aliases.reconcile(self.store.live_ids(), timeout=self.load_timeout)
            except AliasRegistryNotLoaded as e:
                logger.error(f"Skipping alias garbage collection: {e}")
                return
            self._reconciled.set()

    def wait_until_loaded(self, timeout: Optional[float] = None) -> bool:
        """Wait until the aliases are loaded and copied onto the rows"""
        return self._rows_ready.wait(timeout)

    def wait_until_reconciled(self, timeout: Optional[float] = None) -> bool:
        return self._reconciled.wait(timeout)

    def rows(self):
        with self._lock:
            return self.store.rows()

    def _edit(self, action, *args):
        with self._lock:
            if self.state not in EDITABLE_STATES:
                raise SessionStateError(f"Cannot edit experiments while {self.state.value}")
            # Alias moves must see the stored labels
            self.aliases.wait_until_loaded(self.load_timeout)
            action(*args)
            self.state = SessionState.EDITING

    def rename(self, old_id: str, new_id: str):
        self._edit(self.store.rename, old_id, new_id)

    def delete(self, experiment_id: str):
        self._edit(self.store.rename, experiment_id, "")

    def set_alias(self, experiment_id: str, label: str):
        self._edit(self.store.set_alias, experiment_id, label)

    def set_expiry(self, experiment_id: str, value):
        self._edit(self.store.set_expiry, experiment_id, value)

    def set_flow_id(self, experiment_id: str, value):
        self._edit(self.store.set_flow_id, experiment_id, value)

    def save(self):
        """Write the edited experiments back to the cookie.

        Returns (success, message). On success the session is over and the host
        is asked to reload; on failure everything stays editable for a retry.
        """
        with self._lock:
            if self.state not in EDITABLE_STATES:
                raise SessionStateError(f"Cannot save while {self.state.value}")

            self.state = SessionState.SAVING
            value = self.store.commit(prefix=self.prefix)
            cookie = self.cookie.with_value(value)
            try:
                written = self.cookie_jar.set(self.url, cookie)
            except CookieWriteError as e:
                self.state = SessionState.ERROR
                self.last_error = str(e) or "Unknown error while writing the cookie"
                logger.warning(f"Saving {self.cookie_name} for {self.url} failed: {self.last_error}")
                self.host.alert(self.last_error)
                return False, self.last_error

            self.cookie = written or cookie
            self.last_error = None
            self._close()
            logger.info(f"Saved {self.cookie_name} for {self.url}: {value}")

        self.host.reload_tab()
        self.host.reload_editor()
        return True, value

    def reload(self):
        """Discard the session; the editor starts over from the cookie"""
        with self._lock:
            self._close()
        self.host.reload_editor()

    def _close(self):
        self.state = SessionState.CLOSED
        if self._settle_timer is not None:
            self._settle_timer.cancel()

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "token": self.token,
                "state": self.state.value,
                "cookie_name": self.cookie_name,
                "experiments": [row.to_dict() for row in self.store.rows()],
                "error": self.last_error,
            }


class EditorSessionManager:
    """Open editor sessions, keyed by token"""

    def __init__(self, max_sessions: int = 100):
        self.max_sessions = max_sessions
        self._sessions = OrderedDict()
        self._lock = threading.Lock()

    def open(self, session: EditorSession, replaces: Optional[str] = None) -> EditorSession:
        with self._lock:
            if replaces:
                old = self._sessions.pop(replaces, None)
                if old is not None:
                    old.reload()
            self._sessions[session.token] = session
            while len(self._sessions) > self.max_sessions:
                _, oldest = self._sessions.popitem(last=False)
                logger.info(f"Dropping editor session {oldest.token} (too many open sessions)")
        return session

    def get(self, token: Optional[str]) -> Optional[EditorSession]:
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is not None and session.state is SessionState.CLOSED:
                del self._sessions[token]
                return None
            return session

    def discard(self, token: Optional[str]):
        with self._lock:
            self._sessions.pop(token, None)

    def __len__(self):
        with self._lock:
            return len(self._sessions)


_manager_instance = None


def get_session_manager() -> EditorSessionManager:
    """Get or create the global session manager"""
    global _manager_instance
    if _manager_instance is None:
        _manager_instance = EditorSessionManager()
    return _manager_instance
