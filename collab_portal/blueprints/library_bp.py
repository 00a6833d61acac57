"""
Library Blueprint: approved documents.

    GET /api/v1/library?country_id=N
    GET /api/v1/library/document?event_id=N[&country_id=N]
"""

from flask import Blueprint, jsonify, request

from collab_portal.blueprints import param
from collab_portal.middleware.jwt_auth import current_user
from collab_portal.services import library_service

library_bp = Blueprint("library", __name__, url_prefix="/api/v1/library")


@library_bp.route("", methods=["GET"])
def list_library():
    items = library_service.list_library(
        current_user(), param(request.args.to_dict(), "country_id"),
    )
    return jsonify({"items": items}), 200


@library_bp.route("/document", methods=["GET"])
def get_document():
    args = request.args.to_dict()
    doc = library_service.get_library_document(
        current_user(), param(args, "event_id"), param(args, "country_id"),
    )
    return jsonify(doc), 200
