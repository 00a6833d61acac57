"""
Directory Blueprint: users, roles, sections, countries, assignments.

Endpoints (all under /api/v1):
    GET/POST        /users                 admin
    GET/PUT/DELETE  /users/<id>            admin (DELETE soft-deletes)
    GET             /roles
    GET             /sections              ?mine=1 -> caller's sections
    POST            /sections              admin
    PUT/DELETE      /sections/<id>         admin (DELETE deactivates)
    GET             /countries             ?active=1
    POST            /countries             admin
    PUT/DELETE      /countries/<id>        admin (DELETE deactivates)
    GET/POST        /section-assignments   admin
    DELETE          /section-assignments/<id>
    GET/PUT/POST    /country-assignments   admin (PUT replaces the set)

Layer contract:
    - Blueprint: parse input, call directory_service, return JSON.
    - No db.session calls here; the services own every write.
"""

import logging

from flask import Blueprint, jsonify, request

from collab_portal.blueprints import json_body, param, query_flag, with_snake_keys
from collab_portal.core.roles import ADMIN
from collab_portal.middleware.jwt_auth import current_user
from collab_portal.middleware.permission_required import require_role
from collab_portal.services import directory_service

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1")


def _user_payload(data: dict) -> dict:
    return with_snake_keys(data, "full_name", "is_active")


# ── Users ──────────────────────────────────────────────────────────────────────


@admin_bp.route("/users", methods=["GET"])
@require_role(ADMIN)
def list_users():
    include_deleted = bool(query_flag("include_deleted"))
    users = directory_service.list_users(include_deleted=include_deleted)
    return jsonify({"items": [u.to_dict() for u in users], "total": len(users)}), 200


@admin_bp.route("/users", methods=["POST"])
@require_role(ADMIN)
def create_user():
    user = directory_service.create_user(_user_payload(json_body()), actor=current_user())
    return jsonify(user.to_dict()), 201


@admin_bp.route("/users/<int:user_id>", methods=["GET"])
@require_role(ADMIN)
def get_user(user_id: int):
    return jsonify(directory_service.get_user(user_id).to_dict()), 200


@admin_bp.route("/users/<int:user_id>", methods=["PUT"])
@require_role(ADMIN)
def update_user(user_id: int):
    user = directory_service.update_user(user_id, _user_payload(json_body()), actor=current_user())
    return jsonify(user.to_dict()), 200


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@require_role(ADMIN)
def delete_user(user_id: int):
    directory_service.delete_user(user_id, actor=current_user())
    return jsonify({"ok": True}), 200


# ── Roles ──────────────────────────────────────────────────────────────────────


@admin_bp.route("/roles", methods=["GET"])
def list_roles():
    return jsonify({"items": [r.to_dict() for r in directory_service.list_roles()]}), 200


# ── Sections ───────────────────────────────────────────────────────────────────


@admin_bp.route("/sections", methods=["GET"])
def list_sections():
    if query_flag("mine"):
        sections = directory_service.list_user_sections(current_user())
    else:
        sections = directory_service.list_sections(
            include_inactive=query_flag("active") is not True,
        )
    return jsonify({"items": [s.to_dict() for s in sections]}), 200


@admin_bp.route("/sections", methods=["POST"])
@require_role(ADMIN)
def create_section():
    data = with_snake_keys(json_body(), "order_index", "is_active")
    return jsonify(directory_service.create_section(data).to_dict()), 201


@admin_bp.route("/sections/<int:section_id>", methods=["PUT"])
@require_role(ADMIN)
def update_section(section_id: int):
    data = with_snake_keys(json_body(), "order_index", "is_active")
    return jsonify(directory_service.update_section(section_id, data).to_dict()), 200


@admin_bp.route("/sections/<int:section_id>", methods=["DELETE"])
@require_role(ADMIN)
def deactivate_section(section_id: int):
    directory_service.deactivate_section(section_id)
    return jsonify({"ok": True}), 200


# ── Countries ──────────────────────────────────────────────────────────────────


@admin_bp.route("/countries", methods=["GET"])
def list_countries():
    countries = directory_service.list_countries(active_only=bool(query_flag("active")))
    return jsonify({"items": [c.to_dict() for c in countries]}), 200


@admin_bp.route("/countries", methods=["POST"])
@require_role(ADMIN)
def create_country():
    data = with_snake_keys(json_body(), "name_en", "is_active")
    return jsonify(directory_service.create_country(data).to_dict()), 201


@admin_bp.route("/countries/<int:country_id>", methods=["PUT"])
@require_role(ADMIN)
def update_country(country_id: int):
    data = with_snake_keys(json_body(), "name_en", "is_active")
    return jsonify(directory_service.update_country(country_id, data).to_dict()), 200


@admin_bp.route("/countries/<int:country_id>", methods=["DELETE"])
@require_role(ADMIN)
def deactivate_country(country_id: int):
    directory_service.deactivate_country(country_id)
    return jsonify({"ok": True}), 200


# ── Section assignments ────────────────────────────────────────────────────────


@admin_bp.route("/section-assignments", methods=["GET"])
@require_role(ADMIN)
def list_section_assignments():
    args = request.args.to_dict()
    items = directory_service.list_section_assignments(
        user_id=param(args, "user_id"), section_id=param(args, "section_id"),
    )
    return jsonify({"items": [a.to_dict() for a in items]}), 200


@admin_bp.route("/section-assignments", methods=["POST"])
@require_role(ADMIN)
def add_section_assignment():
    data = json_body()
    assignment = directory_service.add_section_assignment(
        param(data, "user_id"), param(data, "section_id"),
    )
    return jsonify(assignment.to_dict()), 201


@admin_bp.route("/section-assignments/<int:assignment_id>", methods=["DELETE"])
@require_role(ADMIN)
def remove_section_assignment(assignment_id: int):
    directory_service.remove_section_assignment(assignment_id)
    return jsonify({"ok": True}), 200


# ── Country assignments ────────────────────────────────────────────────────────


@admin_bp.route("/country-assignments", methods=["GET"])
@require_role(ADMIN)
def list_country_assignments():
    items = directory_service.list_country_assignments(param(request.args.to_dict(), "user_id"))
    return jsonify({"items": [a.to_dict() for a in items]}), 200


@admin_bp.route("/country-assignments", methods=["PUT"])
@require_role(ADMIN)
def replace_country_assignments():
    data = json_body()
    country_ids = directory_service.replace_country_assignments(
        param(data, "user_id"), param(data, "country_ids", default=[]),
    )
    return jsonify({"ok": True, "country_ids": country_ids}), 200


@admin_bp.route("/country-assignments", methods=["POST"])
@require_role(ADMIN)
def add_country_assignment():
    data = json_body()
    assignment = directory_service.add_country_assignment(
        param(data, "user_id"), param(data, "country_id"),
    )
    return jsonify(assignment.to_dict()), 201
