"""
Document Blueprint: aggregate document transitions for one (event, country).

Endpoints (all under /api/v1/document), body {event_id, [country_id]}:
    POST /submit-to-supervisor
    POST /submit-to-chairman
    POST /approve               cascades to every required section
    POST /return                {comment}
"""

import logging

from flask import Blueprint, jsonify

from collab_portal.blueprints import json_body, param
from collab_portal.middleware.jwt_auth import current_user
from collab_portal.services import document_workflow

logger = logging.getLogger(__name__)

document_bp = Blueprint("document", __name__, url_prefix="/api/v1/document")


def _ok(doc):
    return jsonify({"ok": True, "document": doc.to_dict()}), 200


@document_bp.route("/submit-to-supervisor", methods=["POST"])
def submit_to_supervisor():
    data = json_body()
    doc = document_workflow.submit_to_supervisor(
        current_user(), param(data, "event_id"), param(data, "country_id"),
    )
    return _ok(doc)


@document_bp.route("/submit-to-chairman", methods=["POST"])
def submit_to_chairman():
    data = json_body()
    doc = document_workflow.submit_to_chairman(
        current_user(), param(data, "event_id"), param(data, "country_id"),
    )
    return _ok(doc)


@document_bp.route("/approve", methods=["POST"])
def approve():
    data = json_body()
    doc = document_workflow.approve_document(
        current_user(), param(data, "event_id"), param(data, "country_id"),
    )
    return _ok(doc)


@document_bp.route("/return", methods=["POST"])
def return_document():
    data = json_body()
    doc = document_workflow.return_document(
        current_user(),
        param(data, "event_id"),
        data.get("comment", data.get("note")),
        param(data, "country_id"),
    )
    return _ok(doc)
