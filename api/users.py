"""
Account management: create a user, read and update the current user.
Passwords are hashed here; only the hash is stored.
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g, abort

from models.user import User
from models.schemas.user import UserCreateSchema, UserOutSchema, UserUpdateSchema
from security.decorators import get_auth_service, jwt_required
from security.errors import Unauthorized

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__)

user_create_schema = UserCreateSchema()
user_update_schema = UserUpdateSchema()
user_out_schema = UserOutSchema()


def _current_user() -> User:
    user = get_auth_service().get_user(g.current_user_id)
    if user is None:
        # token outlived its account
        raise Unauthorized()
    return user


@bp.post("/users")
def create_user():
    """
    Register a new user.
    ---
    tags:
      - Users
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    service = get_auth_service()
    session = service.storage.get_session()
    if session.query(User).filter(User.email == data["email"]).first():
        abort(409, description="Email already registered")

    user = User(email=data["email"], password_hash=service.hasher.hash(data["password"]))
    service.storage.new(user)
    service.storage.save()
    logger.info("Created user %s", user.id)

    return jsonify({"data": user_out_schema.dump(user)}), 201


@bp.get("/users/me")
@jwt_required()
def me():
    """
    Get current user info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"data": user_out_schema.dump(_current_user())}), 200


@bp.put("/users")
@jwt_required()
def update_user():
    """
    Update the current user's email and/or password.
    A password change revokes every refresh token of the user.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      409:
        description: Email already registered
    """
    payload = request.get_json(silent=True) or {}
    data = user_update_schema.load(payload)
    user = _current_user()

    email = data.get("email")
    service = get_auth_service()
    if email and email != user.email:
        session = service.storage.get_session()
        if session.query(User).filter(User.email == email).first():
            abort(409, description="Email already registered")

    service.change_credentials(user, email=email, password=data.get("password"))
    return jsonify({"data": user_out_schema.dump(user)}), 200
