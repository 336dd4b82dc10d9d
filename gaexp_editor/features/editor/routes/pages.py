"""
Editor page.
"""

from flask import current_app, render_template, request, session

from gaexp_editor.utils.editor_session import EditorSession, SessionState, get_session_manager

from ..blueprint import SESSION_KEY, bp
from ..services.aliases import build_registry
from ..services.cookies import RequestCookieJar
from ..services.host import ResponseHost


def open_editor_session() -> EditorSession:
    """Start a new editor session for the current request, replacing the caller's previous one."""
    config = current_app.config
    editor = EditorSession(
        url=request.host_url,
        cookie_jar=RequestCookieJar(domain=config["GAEXP_COOKIE_DOMAIN"], path=config["GAEXP_COOKIE_PATH"]),
        aliases=build_registry(),
        host=ResponseHost(),
        cookie_name=config["GAEXP_COOKIE_NAME"],
        prefix=config["GAEXP_COOKIE_PREFIX"],
        settle_delay=config["GAEXP_SETTLE_SECONDS"],
        draft_expiry_days=config["GAEXP_DRAFT_EXPIRY_DAYS"],
        load_timeout=config["GAEXP_LOAD_TIMEOUT_SECONDS"],
    )
    get_session_manager().open(editor, replaces=session.get(SESSION_KEY))
    session[SESSION_KEY] = editor.token
    editor.start()
    return editor


@bp.route("/")
def index():
    """Editor page; every load starts a fresh session from the cookie."""
    editor = open_editor_session()

    if editor.state is SessionState.HIDDEN:
        get_session_manager().discard(editor.token)
        return render_template("editor/index.html", hidden=True, cookie_name=editor.cookie_name, rows=[])

    if not editor.wait_until_loaded(current_app.config["GAEXP_LOAD_TIMEOUT_SECONDS"]):
        current_app.logger.warning("Aliases not loaded in time; rendering without labels")

    return render_template(
        "editor/index.html",
        hidden=False,
        cookie_name=editor.cookie_name,
        rows=editor.rows(),
    )
