"""
Experiment editing API routes.
"""

from flask import current_app, jsonify, request, session

from gaexp_editor.models.experiment import DuplicateIdError, ExperimentError, UnknownExperimentError
from gaexp_editor.utils.editor_session import SessionStateError, get_session_manager

from ..blueprint import SESSION_KEY, bp

# Form field -> session operation
FIELD_SETTERS = {
    "id": "rename",
    "alias": "set_alias",
    "expiry": "set_expiry",
    "flow_id": "set_flow_id",
}


def _current_editor():
    return get_session_manager().get(session.get(SESSION_KEY))


def _no_session():
    return jsonify({"success": False, "error": "No active editor session. Reload the editor.", "reload": True}), 409


def _state_payload(editor, **extra):
    payload = {"success": True}
    payload.update(editor.to_dict())
    payload["actions"] = editor.host.drain()
    payload.update(extra)
    return payload


def _error_status(error):
    if isinstance(error, UnknownExperimentError):
        return 404
    if isinstance(error, (DuplicateIdError, SessionStateError)):
        return 409
    return 400


@bp.route("/api/experiments", methods=["GET"])
def list_experiments():
    """Rows of the caller's editor session."""
    editor = _current_editor()
    if editor is None:
        return _no_session()
    return jsonify(_state_payload(editor))


@bp.route("/api/experiments/field", methods=["POST"])
def update_field():
    """Apply a single field change: {"id": current id, "field": ..., "value": ...}."""
    editor = _current_editor()
    if editor is None:
        return _no_session()

    try:
        data = request.get_json(silent=True) or {}
        field = data.get("field")
        experiment_id = data.get("id", "")
        value = data.get("value")

        if field not in FIELD_SETTERS:
            return jsonify({"success": False, "error": f"field must be one of: {', '.join(FIELD_SETTERS)}"}), 400
        if value is None:
            return jsonify({"success": False, "error": "value is required"}), 400
        if field in ("id", "alias"):
            value = str(value).strip() if field == "id" else str(value)

        getattr(editor, FIELD_SETTERS[field])(str(experiment_id), value)
        return jsonify(_state_payload(editor))
    except (ExperimentError, SessionStateError, ValueError) as e:
        return jsonify({"success": False, "error": str(e)}), _error_status(e)
    except Exception as e:
        current_app.logger.error(f"Error updating experiment field: {str(e)}", exc_info=True)
        return jsonify({"success": False, "error": str(e)}), 500


@bp.route("/api/experiments/delete", methods=["POST"])
def delete_experiment():
    """Trash button: remove the experiment and its alias."""
    editor = _current_editor()
    if editor is None:
        return _no_session()

    try:
        data = request.get_json(silent=True) or {}
        experiment_id = data.get("id")
        if not experiment_id:
            return jsonify({"success": False, "error": "id is required"}), 400

        editor.delete(str(experiment_id))
        return jsonify(_state_payload(editor))
    except (ExperimentError, SessionStateError) as e:
        return jsonify({"success": False, "error": str(e)}), _error_status(e)
    except Exception as e:
        current_app.logger.error(f"Error deleting experiment: {str(e)}", exc_info=True)
        return jsonify({"success": False, "error": str(e)}), 500


@bp.route("/api/save", methods=["POST"])
def save():
    """Write the cookie back; on success the page reloads and a new session starts."""
    editor = _current_editor()
    if editor is None:
        return _no_session()

    try:
        ok, message = editor.save()
        if not ok:
            payload = _state_payload(editor, success=False, error=message)
            return jsonify(payload), 400

        get_session_manager().discard(editor.token)
        session.pop(SESSION_KEY, None)
        return jsonify({"success": True, "value": message, "actions": editor.host.drain()})
    except SessionStateError as e:
        return jsonify({"success": False, "error": str(e)}), 409
    except Exception as e:
        current_app.logger.error(f"Error saving {editor.cookie_name}: {str(e)}", exc_info=True)
        return jsonify({"success": False, "error": str(e)}), 500


@bp.route("/api/reload", methods=["POST"])
def reload():
    """Drop the caller's session without saving."""
    editor = _current_editor()
    if editor is None:
        return jsonify({"success": True, "actions": [{"action": "reload_editor"}]})

    editor.reload()
    get_session_manager().discard(editor.token)
    session.pop(SESSION_KEY, None)
    return jsonify({"success": True, "actions": editor.host.drain()})
