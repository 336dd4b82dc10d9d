"""
Visibility indicator API: is there an experiment cookie for this site?
"""

from flask import current_app, jsonify, request

from gaexp_editor.utils.tab_watcher import Tab, TabWatcher

from ..blueprint import bp
from ..services.cookies import RequestCookieJar
from ..services.host import ResponseIndicator


@bp.route("/api/indicator", methods=["GET"])
def indicator():
    """Tab activation/navigation check used to show or hide the editor icon."""
    tab_id = request.args.get("tab", "current")
    indicator_state = ResponseIndicator()
    watcher = TabWatcher(
        RequestCookieJar(),
        indicator_state,
        cookie_name=current_app.config["GAEXP_COOKIE_NAME"],
    )
    visible = watcher.check(Tab(tab_id, request.host_url))
    return jsonify({"success": True, "tab": tab_id, "visible": visible})
