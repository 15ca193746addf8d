"""
Events service routes: create, read, update, delete events, plus likes and
comments.

Likes and comments are stored on the event row itself (an integer array and
a JSONB array) and are changed with single-statement updates.
"""

import logging
from datetime import datetime, timezone
from typing import Tuple, Dict, Any, Optional

import psycopg2
from psycopg2.extras import Json
from flask import Blueprint, jsonify, Response

from backend.auth_service.models import Identity
from backend.auth_service.utils import require_auth
from backend.common.errors import InvalidInput, NotFound, Forbidden, Internal
from backend.common.payload import json_body, string_field
from backend.database.db_connection import get_db

events_bp = Blueprint("events", __name__)

# --- CONSTANTS FOR VALIDATION ---
TITLE_MAX_LENGTH = 200
LOCATION_MAX_LENGTH = 255
COMMENT_MAX_LENGTH = 1000

EVENT_COLUMNS = """
    event_id, owner_id, title, description, location, event_date,
    likes, comments, created_at, updated_at
"""


def parse_dt(val: Optional[str]) -> Optional[datetime]:
    """
    Safely parse an ISO-8601 or datetime-local string to a datetime object.

    Args:
        val (str): The date string to parse.

    Returns:
        datetime: The parsed datetime, or None if invalid.
    """
    if not val or not isinstance(val, str):
        return None
    try:
        # Handles 'YYYY-MM-DDTHH:MM' and '...Z' or '...+00:00'
        if val.endswith('Z'):
            val = val[:-1] + '+00:00'
        return datetime.fromisoformat(val)
    except (ValueError, TypeError):
        return None


def _iso(val: Any) -> Any:
    return val.isoformat() if hasattr(val, "isoformat") else val


def serialize_event(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    JSON shape of an events row.
    """
    likes = list(row.get("likes") or [])
    comments = list(row.get("comments") or [])
    return {
        "id": row["event_id"],
        "owner": row["owner_id"],
        "title": row["title"],
        "description": row.get("description"),
        "location": row.get("location"),
        "date": _iso(row.get("event_date")),
        "likes": likes,
        "likeCount": len(likes),
        "comments": comments,
        "commentCount": len(comments),
        "createdAt": _iso(row.get("created_at")),
        "updatedAt": _iso(row.get("updated_at")),
    }


def _validate_fields(data: Dict[str, Any], partial: bool) -> Dict[str, Any]:
    """
    Check the descriptive fields of a create/update payload and map them to
    column values. With partial=True only supplied keys are validated.
    """
    fields: Dict[str, Any] = {}

    if not partial or "title" in data:
        title = string_field(data, "title")
        if not title:
            raise InvalidInput("title is required")
        if len(title) > TITLE_MAX_LENGTH:
            raise InvalidInput(f"Title must be {TITLE_MAX_LENGTH} characters or less.")
        fields["title"] = title

    if not partial or "date" in data:
        event_date = parse_dt(data.get("date"))
        if not event_date:
            raise InvalidInput("date is required and must be ISO-8601")
        fields["event_date"] = event_date

    if "description" in data:
        fields["description"] = string_field(data, "description", strip=False)

    if "location" in data:
        location = string_field(data, "location")
        if location and len(location) > LOCATION_MAX_LENGTH:
            raise InvalidInput(f"Location must be {LOCATION_MAX_LENGTH} characters or less.")
        fields["location"] = location

    return fields


def _load_owned_event(cur, event_id: int, identity: Identity) -> Dict[str, Any]:
    """
    Lock an event row for the rest of the transaction and check ownership.

    Raises:
        NotFound: No such event.
        Forbidden: The caller is not the owner.
    """
    cur.execute("SELECT owner_id FROM events WHERE event_id = %s FOR UPDATE;", (event_id,))
    ev = cur.fetchone()
    if not ev:
        raise NotFound("Event not found")
    if ev["owner_id"] != identity.user_id:
        logging.info(f"[Event] User {identity.user_id} denied on event {event_id}")
        raise Forbidden("Only the event owner can modify this event")
    return ev


# --- LIST ---
@events_bp.route("/getevent", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Return all events, latest event date first. Public.

    Returns:
        200: List of event objects.
        500: Database error.
    """
    sql = f"SELECT {EVENT_COLUMNS} FROM events ORDER BY event_date DESC, event_id DESC;"

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql)
                rows = cur.fetchall()
    except psycopg2.Error:
        logging.exception("[Event] Database error listing events")
        raise Internal("Failed to retrieve events")

    return jsonify([serialize_event(r) for r in rows]), 200


# --- GET ONE ---
@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id: int) -> Tuple[Response, int]:
    """
    Get a single event by ID.

    Returns:
        200: Event object.
        404: Event not found.
    """
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {EVENT_COLUMNS} FROM events WHERE event_id = %s;", (event_id,))
                event = cur.fetchone()
    except psycopg2.Error:
        logging.exception(f"[Event] Database error getting event {event_id}")
        raise Internal("Failed to retrieve event")

    if not event:
        raise NotFound("Event not found")

    return jsonify(serialize_event(event)), 200


# --- CREATE ---
@events_bp.route("/create", methods=["POST"])
@require_auth
def create_event(identity: Identity) -> Tuple[Response, int]:
    """
    Create an event owned by the caller.

    Expects JSON: { title, date, description?, location? }

    Returns:
        201: The created event.
        400: Validation error.
        401: Authentication failure.
    """
    data: Dict[str, Any] = json_body()
    fields = _validate_fields(data, partial=False)

    sql = f"""
        INSERT INTO events (owner_id, title, description, location, event_date)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING {EVENT_COLUMNS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    identity.user_id,
                    fields["title"],
                    fields.get("description"),
                    fields.get("location"),
                    fields["event_date"],
                ))
                event = cur.fetchone()
    except psycopg2.Error:
        logging.exception("[Event] Database error creating event")
        raise Internal("Failed to create event")

    logging.info(f"[Event] User {identity.user_id} created event {event['event_id']}")
    return jsonify(serialize_event(event)), 201


# --- UPDATE ---
@events_bp.route("/<int:event_id>", methods=["PUT"])
@require_auth
def update_event(event_id: int, identity: Identity) -> Tuple[Response, int]:
    """
    Update an event. Owner only.

    Returns:
        200: The updated event.
        400: Validation error / nothing to update.
        403: Caller is not the owner.
        404: Event not found.
    """
    data: Dict[str, Any] = json_body()
    fields = _validate_fields(data, partial=True)
    if not fields:
        raise InvalidInput("No valid fields to update")

    assignments = [f"{column} = %s" for column in fields]
    assignments.append("updated_at = CURRENT_TIMESTAMP")
    sql = f"""
        UPDATE events SET {', '.join(assignments)}
        WHERE event_id = %s
        RETURNING {EVENT_COLUMNS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                _load_owned_event(cur, event_id, identity)
                cur.execute(sql, list(fields.values()) + [event_id])
                event = cur.fetchone()
    except psycopg2.Error:
        logging.exception(f"[Event] Database error updating event {event_id}")
        raise Internal("Failed to update event")

    return jsonify(serialize_event(event)), 200


# --- DELETE ---
@events_bp.route("/<int:event_id>", methods=["DELETE"])
@require_auth
def delete_event(event_id: int, identity: Identity) -> Tuple[Response, int]:
    """
    Delete an event. Owner only.

    Returns:
        200: { message }
        403: Caller is not the owner.
        404: Event not found.
    """
    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                _load_owned_event(cur, event_id, identity)
                cur.execute("DELETE FROM events WHERE event_id = %s;", (event_id,))
    except psycopg2.Error:
        logging.exception(f"[Event] Database error deleting event {event_id}")
        raise Internal("Failed to delete event")

    logging.info(f"[Event] User {identity.user_id} deleted event {event_id}")
    return jsonify({"message": "Event deleted"}), 200


# --- LIKE ---
@events_bp.route("/<int:event_id>/like", methods=["PUT"])
@require_auth
def like_event(event_id: int, identity: Identity) -> Tuple[Response, int]:
    """
    Toggle the caller's like on an event.

    A first call adds the caller to the like set, a second call removes them.
    The check and the change happen in one UPDATE, so the set never holds a
    duplicate.

    Returns:
        200: The updated event.
        404: Event not found.
    """
    sql = f"""
        UPDATE events SET likes = CASE
            WHEN %(uid)s = ANY(likes) THEN array_remove(likes, %(uid)s)
            ELSE array_append(likes, %(uid)s)
        END
        WHERE event_id = %(event_id)s
        RETURNING {EVENT_COLUMNS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, {"uid": identity.user_id, "event_id": event_id})
                event = cur.fetchone()
    except psycopg2.Error:
        logging.exception(f"[Event] Database error liking event {event_id}")
        raise Internal("Failed to like event")

    if not event:
        raise NotFound("Event not found")

    return jsonify(serialize_event(event)), 200


# --- COMMENT ---
@events_bp.route("/<int:event_id>/comment", methods=["POST"])
@require_auth
def add_comment(event_id: int, identity: Identity) -> Tuple[Response, int]:
    """
    Append a comment to an event. Any authenticated user may comment.

    Expects JSON: { text }

    Returns:
        200: The updated event.
        400: Missing or overlong text.
        404: Event not found.
    """
    data: Dict[str, Any] = json_body()
    text = string_field(data, "text") or ""

    if not text:
        raise InvalidInput("Comment text is required")
    if len(text) > COMMENT_MAX_LENGTH:
        raise InvalidInput(f"Comment must be {COMMENT_MAX_LENGTH} characters or less.")

    comment = {
        "userId": identity.user_id,
        "text": text,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }

    sql = f"""
        UPDATE events SET comments = comments || %s::jsonb
        WHERE event_id = %s
        RETURNING {EVENT_COLUMNS};
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (Json([comment]), event_id))
                event = cur.fetchone()
    except psycopg2.Error:
        logging.exception(f"[Event] Database error commenting on event {event_id}")
        raise Internal("Failed to add comment")

    if not event:
        raise NotFound("Event not found")

    return jsonify(serialize_event(event)), 200
