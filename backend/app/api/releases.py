"""Release dashboard API endpoints."""

from flask import Blueprint, current_app, request, jsonify
from app.api.bugs import get_bug_source, bug_source_error
from services.bugzilla_client import NetworkError, MalformedResponseError
from services.release_metrics import ReleaseMetricsService, find_release

bp = Blueprint("releases", __name__, url_prefix="/api/releases")


def get_release_count():
    """Get optional release count from query params.

    Query params:
        - release_count: Number of most recent releases to include

    Returns:
        Positive int, or None when missing or invalid
    """
    release_count = request.args.get("release_count")
    if release_count:
        try:
            count = int(release_count)
        except ValueError:
            return None
        return count if count > 0 else None
    return None


def get_service():
    return ReleaseMetricsService(get_bug_source(), current_app.config["RELEASES"])


@bp.route("", methods=["GET"])
def list_releases():
    """List the release calendar."""
    return jsonify({"data": current_app.config["RELEASES"]})


@bp.route("/summary", methods=["GET"])
def get_all_summaries():
    """Get bug counts for every release of the calendar.

    Releases are processed in calendar order; any Bugzilla failure
    fails the whole request.
    """
    try:
        summaries = get_service().get_all_summaries()
    except (NetworkError, MalformedResponseError) as e:
        return bug_source_error(e)

    return jsonify({"data": summaries})


@bp.route("/velocity", methods=["GET"])
def get_velocity():
    """Get velocity metrics for releases.

    Query params:
        - release_count: Optional number of most recent releases to include

    Returns:
        - Per-release solved bugs
        - Average velocity (normalized to the median release length)
    """
    try:
        velocity = get_service().get_velocity_metrics(get_release_count())
    except (NetworkError, MalformedResponseError) as e:
        return bug_source_error(e)

    return jsonify({"data": velocity})


@bp.route("/<name>/summary", methods=["GET"])
def get_release_summary(name):
    """Get total / meta / committed / solved counts for one release."""
    release = find_release(current_app.config["RELEASES"], name)
    if not release:
        return jsonify({"error": "Release not found"}), 404

    try:
        summary = get_service().get_release_summary(release)
    except (NetworkError, MalformedResponseError) as e:
        return bug_source_error(e)

    return jsonify({"data": summary})
