"""
Auth Blueprint: password login and current-identity lookup.

Endpoints:
    POST /api/v1/auth/login   Body: {"username": "...", "password": "..."}
    GET  /api/v1/auth/me
"""

import logging

from flask import Blueprint, current_app, jsonify

from collab_portal import limiter
from collab_portal.blueprints import json_body
from collab_portal.middleware.jwt_auth import current_user
from collab_portal.services import auth_service
from collab_portal.utils.errors import E, api_error
from collab_portal.utils.helpers import clean_str

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _login_limit():
    return current_app.config.get("LOGIN_RATE_LIMIT", "10/minute")


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(_login_limit)
def login():
    data = json_body()
    username = clean_str(data.get("username"), "username")
    password = data.get("password") or ""
    if not isinstance(password, str):
        return api_error(E.VALIDATION_INVALID, "password must be a string")
    if not username or not password:
        return api_error(E.VALIDATION_REQUIRED, "username and password are required")

    return jsonify(auth_service.login(username, password)), 200


@auth_bp.route("/me", methods=["GET"])
def me():
    return jsonify({"user": current_user().to_dict()}), 200
