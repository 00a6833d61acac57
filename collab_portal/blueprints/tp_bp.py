"""
Talking Points Blueprint: per-section content and its status workflow.

Endpoints (all under /api/v1/tp):
    GET  /                     ?event_id=&section_id=[&country_id=]
    POST /save                 {event_id, section_id, [country_id], html_content}
    POST /submit               {event_id, section_id, [country_id], [html_content]}
    POST /return               {event_id, section_id, [country_id], comment}
    POST /approve-section      {event_id, section_id, [country_id]}
    POST /approve-section-chairman
    POST /approve-all-sections {event_id, [country_id]}
    GET  /status-grid          ?event_id=[&country_id=]
    GET  /document-status      ?event_id=[&country_id=]

Ids are accepted as snake_case or camelCase (eventId, sectionId, countryId).

Layer contract:
    - Blueprint: parse ids, call content_workflow / document_workflow.
    - Role, assignment and status rules live in the services.
"""

import logging

from flask import Blueprint, jsonify, request

from collab_portal.blueprints import json_body, param
from collab_portal.middleware.jwt_auth import current_user
from collab_portal.services import content_workflow, document_workflow

logger = logging.getLogger(__name__)

tp_bp = Blueprint("talking_points", __name__, url_prefix="/api/v1/tp")


def _target(data: dict) -> dict:
    return {
        "event_id": param(data, "event_id"),
        "section_id": param(data, "section_id"),
        "country_id": param(data, "country_id"),
    }


def _ok(item):
    return jsonify({"ok": True, "item": item.to_dict()}), 200


@tp_bp.route("", methods=["GET"])
def get_content():
    item = content_workflow.get_content(current_user(), **_target(request.args.to_dict()))
    return jsonify(item), 200


@tp_bp.route("/save", methods=["POST"])
def save_content():
    data = json_body()
    item = content_workflow.save_content(
        current_user(), html_content=param(data, "html_content", default=""), **_target(data),
    )
    return _ok(item)


@tp_bp.route("/submit", methods=["POST"])
def submit_content():
    data = json_body()
    item = content_workflow.submit_content(
        current_user(), html_content=param(data, "html_content"), **_target(data),
    )
    return _ok(item)


@tp_bp.route("/return", methods=["POST"])
def return_content():
    data = json_body()
    comment = data.get("comment", data.get("note"))
    item = content_workflow.return_content(current_user(), comment=comment, **_target(data))
    return _ok(item)


@tp_bp.route("/approve-section", methods=["POST"])
def approve_section():
    item = content_workflow.approve_section_supervisor(current_user(), **_target(json_body()))
    return _ok(item)


@tp_bp.route("/approve-section-chairman", methods=["POST"])
def approve_section_chairman():
    item = content_workflow.approve_section_chairman(current_user(), **_target(json_body()))
    return _ok(item)


@tp_bp.route("/approve-all-sections", methods=["POST"])
def approve_all_sections():
    data = json_body()
    result = content_workflow.approve_all_sections(
        current_user(), param(data, "event_id"), param(data, "country_id"),
    )
    return jsonify(result), 200


@tp_bp.route("/status-grid", methods=["GET"])
def status_grid():
    args = request.args.to_dict()
    grid = content_workflow.get_status_grid(
        current_user(), param(args, "event_id"), param(args, "country_id"),
    )
    return jsonify({"items": grid}), 200


@tp_bp.route("/document-status", methods=["GET"])
def document_status():
    args = request.args.to_dict()
    doc = document_workflow.get_document_status(
        current_user(), param(args, "event_id"), param(args, "country_id"),
    )
    return jsonify(doc.to_dict()), 200
