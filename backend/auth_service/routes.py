"""
Authentication service route handlers.

Provides routes for:
- User registration
- User login

Token logic lives in `auth_service.utils`.
"""

import logging
from typing import Tuple, Dict, Any

import psycopg2
import psycopg2.errors
from argon2.exceptions import VerificationError, InvalidHashError
from flask import Blueprint, jsonify, Response

from backend.auth_service.models import Identity, ROLE_STUDENT, VALID_ROLES, serialize_user
from backend.auth_service.utils import ph, get_token_service
from backend.common.errors import InvalidInput, Conflict, Internal, Unauthorized
from backend.common.payload import json_body, string_field
from backend.database.db_connection import get_db

auth_bp = Blueprint("auth", __name__)


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Register a new user in the system.

    Expects a JSON body with:
    - firstName (str)
    - lastName (str)
    - email (str): Unique email address.
    - password (str)
    - type (str, optional): "student" (default) or "organizer".

    Returns:
        201: JSON with a new JWT token and the created user.
        400: Missing fields or invalid type.
        409: Email already exists.
        500: Server-side error (hashing or database).
    """
    data: Dict[str, Any] = json_body()
    email: str = (string_field(data, "email") or "").lower()
    password: str = string_field(data, "password", strip=False) or ""
    first_name: str = string_field(data, "firstName") or ""
    last_name: str = string_field(data, "lastName") or ""
    role: str = string_field(data, "type") or ROLE_STUDENT

    # Validate input
    if not email or not password:
        raise InvalidInput("Email and password required")
    if not first_name or not last_name:
        raise InvalidInput("First and last name required")
    if role not in VALID_ROLES:
        raise InvalidInput(f"type must be one of: {', '.join(VALID_ROLES)}")

    # Hash password using Argon2
    pw_hash = ph.hash(password)

    sql = """
        INSERT INTO users (email, password_hash, first_name, last_name, role)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING user_id, first_name, last_name, email, role, photo;
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (email, pw_hash, first_name, last_name, role))
                user = cur.fetchone()
    except psycopg2.errors.UniqueViolation:
        raise Conflict("Email already exists")
    except psycopg2.Error:
        logging.exception(f"[Auth] Registration failed for {email}")
        raise Internal("Registration failed")

    # Generate initial token for immediate login
    token = get_token_service().issue(Identity(user["user_id"], user["role"]))
    logging.info(f"[Auth] Registered user {user['user_id']} as {user['role']}")

    return jsonify({"token": token, "user": serialize_user(user)}), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate a user and return a JWT.

    Expects a JSON body with:
    - email (str)
    - password (str)

    Returns:
        200: JSON with token and the user.
        400: Missing credentials.
        401: Invalid credentials (wrong password or email).
        500: Database error.
    """
    data: Dict[str, Any] = json_body()
    email: str = (string_field(data, "email") or "").lower()
    password: str = string_field(data, "password", strip=False) or ""

    if not email or not password:
        raise InvalidInput("Email and password required")

    sql = """
        SELECT user_id, first_name, last_name, email, role, photo, password_hash
        FROM users WHERE email = %s;
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (email,))
                user = cur.fetchone()
    except psycopg2.Error:
        logging.exception(f"[Auth] Login lookup failed for {email}")
        raise Internal("Login failed")

    if not user:
        raise Unauthorized("Invalid credentials")

    # Verify password against hash
    try:
        ph.verify(user["password_hash"], password)
    except (VerificationError, InvalidHashError):
        raise Unauthorized("Invalid credentials")

    token = get_token_service().issue(Identity(user["user_id"], user["role"]))

    return jsonify({"token": token, "user": serialize_user(user)}), 200
