"""
Per-tab visibility indicator.

Whenever the user switches tabs or navigates, check whether the `_gaexp` cookie
exists for the tab's URL and show or hide the editor's indicator for that tab.
"""
import logging

from gaexp_editor.utils.cookie_codec import COOKIE_NAME

logger = logging.getLogger(__name__)


class Tab:
    def __init__(self, id: str, url: str):
        self.id = id
        self.url = url


class TabWatcher:
    """Stateless watcher; calling it twice for the same tab gives the same result"""

    def __init__(self, cookie_jar, indicator, cookie_name: str = COOKIE_NAME):
        self.cookie_jar = cookie_jar
        self.indicator = indicator
        self.cookie_name = cookie_name

    def check(self, tab: Tab) -> bool:
        try:
            present = self.cookie_jar.get(tab.url, self.cookie_name) is not None
        except Exception as e:
            logger.warning(f"Cookie lookup failed for tab {tab.id}: {e}")
            present = False

        if present:
            self.indicator.show(tab.id)
        else:
            self.indicator.hide(tab.id)
        return present

    def on_tab_activated(self, tab: Tab) -> bool:
        return self.check(tab)

    def on_tab_updated(self, tab: Tab) -> bool:
        return self.check(tab)
