"""Bug dependency API endpoints."""

from flask import Blueprint, current_app, request, jsonify
from services.bugzilla_client import BugzillaBugSource, NetworkError, MalformedResponseError
from services.bug_classifier import classify_bugs
from services.dependency_collector import DependencyCollector

bp = Blueprint("bugs", __name__, url_prefix="/api/bugs")


def get_bug_source():
    """Build a Bugzilla source, honouring the X-Bugzilla-Server header."""
    server = request.headers.get("X-Bugzilla-Server", "").rstrip("/")
    return BugzillaBugSource(
        server=server or current_app.config["BUGZILLA_URL"],
        product=current_app.config.get("BUGZILLA_PRODUCT"),
        timeout=current_app.config.get("BUGZILLA_TIMEOUT", 30)
    )


def bug_source_error(e):
    """Turn a Bugzilla failure into a JSON error response."""
    current_app.logger.warning(f"Bugzilla request failed: {e}")
    if isinstance(e, MalformedResponseError):
        return jsonify({"error": f"Unexpected Bugzilla response: {str(e)}"}), 502
    return jsonify({"error": str(e)}), 502


@bp.route("/<int:bug_id>/dependencies", methods=["GET"])
def get_dependencies(bug_id):
    """Get a bug and every transitive dependency.

    Includes CLOSED bugs and [meta] bugs.
    """
    try:
        collector = DependencyCollector(get_bug_source())
        bugs = collector.collect(bug_id)
    except (NetworkError, MalformedResponseError) as e:
        return bug_source_error(e)

    return jsonify({
        "data": {
            "root": bug_id,
            "bugs": [bug.to_dict() for bug in bugs],
            "total": len(bugs)
        }
    })


@bp.route("/closure", methods=["POST"])
def get_closure():
    """Get the dependency closure of several bugs at once.

    Expects JSON body with:
        - roots: list of bug ids (or a comma separated string)
    """
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or "roots" not in data:
        return jsonify({"error": "Missing required field: roots"}), 400

    try:
        collector = DependencyCollector(get_bug_source())
        bugs = collector.collect(data["roots"])
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except (NetworkError, MalformedResponseError) as e:
        return bug_source_error(e)

    return jsonify({
        "data": {
            "roots": data["roots"],
            "bugs": [bug.to_dict() for bug in bugs],
            "total": len(bugs)
        }
    })


@bp.route("/<int:bug_id>/summary", methods=["GET"])
def get_summary(bug_id):
    """Get total / meta / committed / solved counts for a bug closure."""
    try:
        collector = DependencyCollector(get_bug_source())
        bugs = collector.collect(bug_id)
    except (NetworkError, MalformedResponseError) as e:
        return bug_source_error(e)

    summary = classify_bugs(bugs)
    summary["root"] = bug_id
    return jsonify({"data": summary})
