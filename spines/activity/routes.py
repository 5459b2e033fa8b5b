from flask import Blueprint, abort, current_app, jsonify, request

from ..models import User
from .feed import for_user, latest_per_user, recent, serialize_event

events_bp = Blueprint("events", __name__)

USER_FEED_DEFAULT_LIMIT = 20


def _limit(default=None):
    """Read ``?limit=`` and clamp it to [1, FEED_MAX_LIMIT]."""
    if default is None:
        default = current_app.config["FEED_DEFAULT_LIMIT"]
    limit = request.args.get("limit", default, type=int)
    return max(1, min(limit, current_app.config["FEED_MAX_LIMIT"]))


@events_bp.route("/api/events")
def latest_events():
    """Each reader's most recent event."""
    events = latest_per_user(_limit())
    return jsonify({"events": [serialize_event(event) for event in events]})


@events_bp.route("/api/events/recent")
def recent_events():
    events = recent(_limit())
    return jsonify({"events": [serialize_event(event) for event in events]})


@events_bp.route("/api/events/user/<username>")
def user_events(username):
    user = User.query.filter_by(username=username).first()
    if user is None:
        abort(404)
    events = for_user(user.id, _limit(USER_FEED_DEFAULT_LIMIT))
    return jsonify({"user": user.to_dict(), "events": [serialize_event(event, include_user=False) for event in events]})
