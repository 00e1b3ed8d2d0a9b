"""
Authentication blueprint:
- POST /auth/login    email + password -> access token + refresh token
- POST /auth/refresh  Bearer <refresh token> -> new access token
- POST /auth/revoke   Bearer <refresh token> -> 204

Access tokens are short-lived JWTs (HS256). Refresh tokens are opaque
random strings stored in the refresh_tokens table; they are not rotated on
refresh and stay valid until they expire or are revoked.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify

from models.schemas.user import UserLoginSchema, UserOutSchema
from security.credentials import get_bearer_token
from security.decorators import get_auth_service

bp = Blueprint("auth", __name__, url_prefix="/auth")

user_login_schema = UserLoginSchema()
user_out_schema = UserOutSchema()


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
             expires_in_seconds: { type: integer }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Incorrect email or password
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    result = get_auth_service().login(
        data["email"], data["password"], data.get("expires_in_seconds")
    )
    return jsonify(
        {
            "data": user_out_schema.dump(result.user),
            "access_token": result.access_token,
            "refresh_token": result.refresh_token,
            "token_type": "bearer",
            "expires_in": result.expires_in,
        }
    ), 200


@bp.post("/refresh")
def refresh():
    """
    Exchange a refresh token for a new access token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK (returns a new access token)
      401:
        description: Invalid refresh token
    """
    token = get_bearer_token(request.headers)
    service = get_auth_service()
    access_token = service.refresh(token)
    return jsonify(
        {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": service.signer.default_ttl,
        }
    ), 200


@bp.post("/revoke")
def revoke():
    """
    Revoke a refresh token (logout)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      204:
        description: Revoked
      401:
        description: Invalid refresh token
    """
    token = get_bearer_token(request.headers)
    get_auth_service().logout(token)
    return ("", 204)
