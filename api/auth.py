"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/password

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens (JWTs signed with HMAC) in the JSON body
- Hands out opaque refresh tokens only through an HttpOnly cookie; the DB
  keeps their SHA-256 digest so they can be rotated and revoked
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g, make_response

from api import get_sessions, get_settings
from api.errors import service_error_response
from models.schemas.user import (
    PasswordChangeSchema,
    UserCreateSchema,
    UserLoginSchema,
    UserOutSchema,
)
from services.sessions import SessionTokens
from utils.decorators import jwt_required
from utils.errors import InvalidRefreshToken

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_out_schema = UserOutSchema()
user_login_schema = UserLoginSchema()
password_change_schema = PasswordChangeSchema()


def set_refresh_cookie(response, tokens: SessionTokens):
    settings = get_settings()
    response.set_cookie(
        settings.cookie_name,
        tokens.refresh_token,
        max_age=tokens.refresh_max_age,
        path=settings.cookie_path,
        domain=settings.cookie_domain,
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.cookie_samesite,
    )
    return response


def clear_refresh_cookie(response):
    settings = get_settings()
    response.delete_cookie(
        settings.cookie_name,
        path=settings.cookie_path,
        domain=settings.cookie_domain,
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.cookie_samesite,
    )
    return response


def presented_refresh_token() -> str | None:
    """The refresh secret from the cookie, falling back to a JSON body field."""
    token = request.cookies.get(get_settings().cookie_name)
    if token:
        return token
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None
    token = payload.get("refresh_token")
    return token if isinstance(token, str) and token else None


def token_response(tokens: SessionTokens):
    response = jsonify(
        {
            "access_token": tokens.access_token,
            "token_type": "bearer",
            "expires_in": tokens.expires_in,
        }
    )
    response.headers["Cache-Control"] = "no-store"
    return set_refresh_cookie(response, tokens)


@bp.post("/register")
def register():
    """
    register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [name, email, password]
          properties:
            name: { type: string }
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
    logger.info("Register attempt", extra={"email": data["email"]})

    user = get_sessions().register(data["name"], data["email"], data["password"])

    return jsonify(
        {
            "data": user_out_schema.dump(user)
        }
    ), 201


@bp.post("/login")
def login():
    """
    Login: returns an access token; the refresh token is set as an HttpOnly cookie
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
           required: [email, password]
           properties:
             email: { type: string }
             password: { type: string }
             remember_me: { type: boolean }
    responses:
      200:
        description: OK (returns access token, sets refresh cookie)
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    tokens = get_sessions().login(data["email"], data["password"], data["remember_me"])
    return token_response(tokens), 200


@bp.post("/refresh")
def refresh():
    """
    Exchange the refresh cookie for a new access token and a new refresh cookie (rotation)
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK (returns access token, sets refresh cookie)
      401:
        description: Invalid refresh token; the cookie is cleared
    """
    try:
        tokens = get_sessions().refresh(presented_refresh_token())
    except InvalidRefreshToken as err:
        response, status = service_error_response(err)
        return clear_refresh_cookie(response), status
    return token_response(tokens), 200


@bp.post("/logout")
def logout():
    """
    logout: revokes the presented refresh token and clears the cookie
    ---
    tags:
      - Auth
    responses:
      204:
        description: ""
    """
    get_sessions().logout(presented_refresh_token())
    return clear_refresh_cookie(make_response("", 204))


@bp.post("/password")
@jwt_required()
def change_password():
    """
    Change password; every refresh token of the user is revoked
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [current_password, new_password]
           properties:
             current_password: { type: string }
             new_password: { type: string }
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = password_change_schema.load(payload)

    revoked = get_sessions().change_password(g.current_user.id, data["current_password"], data["new_password"])
    return clear_refresh_cookie(jsonify({"revoked_sessions": revoked})), 200
