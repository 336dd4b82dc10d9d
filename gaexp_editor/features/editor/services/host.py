"""
Host adapters for the HTTP editor.

The browser page performs the actual reloads and alerts; the server side only
queues the requested actions and hands them out with the next JSON response.
"""

import threading

from gaexp_editor.utils.editor_session import EditorHost


class ResponseHost(EditorHost):
    """Collects host actions until the next response drains them."""

    def __init__(self):
        self._actions = []
        self._lock = threading.Lock()

    def _queue(self, action, **data):
        with self._lock:
            self._actions.append(dict(action=action, **data))

    def reload_tab(self):
        self._queue("reload_tab")

    def reload_editor(self):
        self._queue("reload_editor")

    def alert(self, message):
        super().alert(message)
        self._queue("alert", message=message)

    def drain(self):
        with self._lock:
            actions, self._actions = self._actions, []
        return actions


class ResponseIndicator:
    """Records whether the page icon should be shown, per tab."""

    def __init__(self):
        self.visible = {}

    def show(self, tab_id):
        self.visible[tab_id] = True

    def hide(self, tab_id):
        self.visible[tab_id] = False
