"""
User service routes: profile details, profile photo, suggestions.
"""

import logging
from typing import Tuple, Dict, Any

import psycopg2
import psycopg2.errors
from flask import Blueprint, current_app, request, jsonify, Response

from backend.auth_service.models import Identity, ROLE_ORGANIZER, serialize_user
from backend.auth_service.utils import ph, require_auth, optional_identity
from backend.common.errors import InvalidInput, NotFound, Conflict, Internal
from backend.common.payload import json_body, string_field
from backend.database.db_connection import get_db
from backend.user_service.photos import PhotoManager, ALLOWED_EXTENSIONS, photo_extension

user_bp = Blueprint("user", __name__)

USER_COLUMNS = "user_id, first_name, last_name, email, role, photo"


def get_photo_manager() -> PhotoManager:
    return current_app.extensions["photo_manager"]


def _origin() -> str:
    return request.host_url


def _fetch_user(user_id: int) -> Dict[str, Any]:
    sql = f"SELECT {USER_COLUMNS} FROM users WHERE user_id = %s;"
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (user_id,))
                user = cur.fetchone()
    except psycopg2.Error:
        logging.exception(f"[User] Could not load user {user_id}")
        raise Internal("Could not retrieve user")

    if not user:
        raise NotFound("User not found")
    return user


# --- GET DETAILS ---
@user_bp.route("/details", methods=["GET"])
@require_auth
def get_details(identity: Identity) -> Tuple[Response, int]:
    """
    Return the caller's profile.

    Returns:
        200: { firstName, lastName, email, photoUrl }
        401: Authentication failure.
        404: User no longer exists.
    """
    user = _fetch_user(identity.user_id)
    photo_url = get_photo_manager().resolve_url(user["photo"], _origin())

    return jsonify({
        "firstName": user["first_name"],
        "lastName": user["last_name"],
        "email": user["email"],
        "photoUrl": photo_url,
    }), 200


# --- UPDATE DETAILS ---
@user_bp.route("/details", methods=["PUT"])
@require_auth
def update_details(identity: Identity) -> Tuple[Response, int]:
    """
    Update the caller's name and email, and optionally their password.

    Expects JSON: { firstName, lastName, email, password? }

    Returns:
        200: Updated user.
        400: Missing fields.
        404: User not found.
        409: Email taken by another account.
    """
    data: Dict[str, Any] = json_body()
    first_name = string_field(data, "firstName")
    last_name = string_field(data, "lastName")
    email = (string_field(data, "email") or "").lower()
    password = string_field(data, "password", strip=False)

    if not first_name or not last_name or not email:
        raise InvalidInput("First name, last name, and email are required")

    assignments = ["first_name = %s", "last_name = %s", "email = %s"]
    values = [first_name, last_name, email]
    if password:
        assignments.append("password_hash = %s")
        values.append(ph.hash(password))

    sql = f"""
        UPDATE users SET {', '.join(assignments)}, updated_at = CURRENT_TIMESTAMP
        WHERE user_id = %s
        RETURNING {USER_COLUMNS};
    """

    logging.info(f"[User] Updating details for user {identity.user_id}")
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, values + [identity.user_id])
                user = cur.fetchone()
    except psycopg2.errors.UniqueViolation:
        raise Conflict("Email already exists")
    except psycopg2.Error:
        logging.exception(f"[User] Update failed for user {identity.user_id}")
        raise Internal("Update failed")

    if not user:
        raise NotFound("User not found")

    photo_url = get_photo_manager().resolve_url(user["photo"], _origin())
    return jsonify(serialize_user(user, photo_url)), 200


# --- UPDATE PHOTO ---
@user_bp.route("/update-photo", methods=["PUT"])
@require_auth
def update_photo(identity: Identity) -> Tuple[Response, int]:
    """
    Replace the caller's profile photo.

    Expects multipart/form-data with a single file field `photo`.

    Returns:
        200: { message, user: { firstName, lastName, email, photo } }
        400: No file or unsupported file type.
        404: User not found.
        413: File too large.
    """
    upload = request.files.get("photo")
    if upload is None or not upload.filename:
        raise InvalidInput("No image uploaded")

    if photo_extension(upload.filename) not in ALLOWED_EXTENSIONS:
        raise InvalidInput(f"Photo must be one of: {', '.join(sorted(ALLOWED_EXTENSIONS))}")

    user = _fetch_user(identity.user_id)
    photos = get_photo_manager()

    try:
        stored_name = photos.store(upload.read(), upload.filename)
    except OSError:
        logging.exception(f"[User] Could not store photo for user {identity.user_id}")
        raise Internal("Could not save photo")

    try:
        user = photos.replace(user, stored_name)
    except NotFound:
        photos.discard(stored_name)
        raise
    except psycopg2.Error:
        photos.discard(stored_name)
        logging.exception(f"[User] Could not attach photo to user {identity.user_id}")
        raise Internal("Could not update photo")

    return jsonify({
        "message": "Profile photo updated successfully",
        "user": {
            "firstName": user["first_name"],
            "lastName": user["last_name"],
            "email": user["email"],
            "photo": photos.resolve_url(user["photo"], _origin()),
        },
    }), 200


# --- SERVE PHOTO ---
@user_bp.route("/photo/<filename>", methods=["GET"])
def serve_photo(filename: str) -> Response:
    """
    Stream an uploaded profile photo. Public.

    Returns:
        200: File bytes.
        404: Unknown file.
    """
    return get_photo_manager().serve(filename)


# --- SUGGESTIONS ---
@user_bp.route("/suggestions", methods=["GET"])
def suggestions() -> Tuple[Response, int]:
    """
    People the caller might want to connect with: every non-organizer
    account except the caller (when a valid token is supplied).

    Returns:
        200: List of users with absolute photo URLs.
        500: Database error.
    """
    identity = optional_identity()
    exclude_id = identity.user_id if identity else None

    sql = f"""
        SELECT {USER_COLUMNS} FROM users
        WHERE role <> %s
          AND (%s::integer IS NULL OR user_id <> %s)
        ORDER BY first_name, last_name;
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (ROLE_ORGANIZER, exclude_id, exclude_id))
                rows = cur.fetchall()
    except psycopg2.Error:
        logging.exception("[User] Error fetching suggestions")
        raise Internal("Could not fetch suggestions")

    photos = get_photo_manager()
    origin = _origin()
    users = [
        {
            "id": row["user_id"],
            "firstName": row["first_name"],
            "lastName": row["last_name"],
            "email": row["email"],
            "photo": photos.resolve_url(row["photo"], origin),
        }
        for row in rows
    ]

    return jsonify(users), 200
