"""
Event Blueprint: calendar of events and their required sections.

Endpoints (all under /api/v1):
    GET  /events                 ?is_active=1&country_id=N
    GET  /events/upcoming        visible, active, not-ended; by deadline
    GET  /events/upcoming-for-me alias kept for the browser client
    GET  /events/<id>            403 when not visible to the caller
    POST /events                 event editors
    PUT  /events/<id>            event editors; required sections replaced
    POST /events/<id>/end        admin, supervisor, chairman, protocol
"""

import logging

from flask import Blueprint, jsonify, request

from collab_portal.blueprints import json_body, param, query_flag, with_snake_keys
from collab_portal.middleware.jwt_auth import current_user
from collab_portal.services import event_service

logger = logging.getLogger(__name__)

event_bp = Blueprint("events", __name__, url_prefix="/api/v1/events")

_EVENT_FIELDS = ("country_id", "deadline_date", "required_section_ids", "is_active")


@event_bp.route("", methods=["GET"])
def list_events():
    events = event_service.list_visible_events(
        current_user(),
        is_active=query_flag("is_active"),
        country_id=param(request.args.to_dict(), "country_id"),
    )
    return jsonify({"items": [e.to_dict() for e in events], "total": len(events)}), 200


@event_bp.route("/upcoming", methods=["GET"])
@event_bp.route("/upcoming-for-me", methods=["GET"])
def list_upcoming():
    events = event_service.list_upcoming_events(current_user())
    return jsonify({"items": [e.to_dict(include_sections=True) for e in events]}), 200


@event_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id: int):
    return jsonify(event_service.get_event_detail(current_user(), event_id)), 200


@event_bp.route("", methods=["POST"])
def create_event():
    data = with_snake_keys(json_body(), *_EVENT_FIELDS)
    event = event_service.create_event(current_user(), data)
    return jsonify(event.to_dict(include_sections=True)), 201


@event_bp.route("/<int:event_id>", methods=["PUT"])
def update_event(event_id: int):
    data = with_snake_keys(json_body(), *_EVENT_FIELDS)
    event = event_service.update_event(current_user(), event_id, data)
    return jsonify(event.to_dict(include_sections=True)), 200


@event_bp.route("/<int:event_id>/end", methods=["POST"])
def end_event(event_id: int):
    event = event_service.end_event(current_user(), event_id)
    return jsonify({"ok": True, "event": event.to_dict()}), 200
