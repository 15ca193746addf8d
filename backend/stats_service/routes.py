"""
Statistics routes: simple aggregate counts over users and events.
"""

import logging
from typing import Tuple

import psycopg2
from flask import Blueprint, jsonify, Response

from backend.auth_service.models import Identity, ROLE_STUDENT, ROLE_ORGANIZER
from backend.auth_service.utils import require_auth
from backend.common.errors import Internal
from backend.database.db_connection import get_db

stats_bp = Blueprint("stats", __name__)


@stats_bp.route("/summary", methods=["GET"])
def summary() -> Tuple[Response, int]:
    """
    Site-wide totals. Public.

    Returns:
        200: { users, students, organizers, events, likes, comments }
    """
    users_sql = """
        SELECT COUNT(*) AS users,
               COUNT(*) FILTER (WHERE role = %s) AS students,
               COUNT(*) FILTER (WHERE role = %s) AS organizers
        FROM users;
    """
    events_sql = """
        SELECT COUNT(*) AS events,
               COALESCE(SUM(cardinality(likes)), 0) AS likes,
               COALESCE(SUM(jsonb_array_length(comments)), 0) AS comments
        FROM events;
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(users_sql, (ROLE_STUDENT, ROLE_ORGANIZER))
                users = cur.fetchone()
                cur.execute(events_sql)
                events = cur.fetchone()
    except psycopg2.Error:
        logging.exception("[Stat] Error computing summary")
        raise Internal("Failed to compute statistics")

    return jsonify({
        "users": int(users["users"]),
        "students": int(users["students"]),
        "organizers": int(users["organizers"]),
        "events": int(events["events"]),
        "likes": int(events["likes"]),
        "comments": int(events["comments"]),
    }), 200


@stats_bp.route("/me", methods=["GET"])
@require_auth
def my_stats(identity: Identity) -> Tuple[Response, int]:
    """
    Activity counts for the caller.

    Returns:
        200: { eventsCreated, likesReceived, commentsReceived, likesGiven }
    """
    sql = """
        SELECT
            COUNT(*) FILTER (WHERE owner_id = %(uid)s) AS events_created,
            COALESCE(SUM(cardinality(likes)) FILTER (WHERE owner_id = %(uid)s), 0) AS likes_received,
            COALESCE(SUM(jsonb_array_length(comments)) FILTER (WHERE owner_id = %(uid)s), 0) AS comments_received,
            COUNT(*) FILTER (WHERE %(uid)s = ANY(likes)) AS likes_given
        FROM events;
    """

    try:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, {"uid": identity.user_id})
                row = cur.fetchone()
    except psycopg2.Error:
        logging.exception(f"[Stat] Error computing stats for user {identity.user_id}")
        raise Internal("Failed to compute statistics")

    return jsonify({
        "eventsCreated": int(row["events_created"]),
        "likesReceived": int(row["likes_received"]),
        "commentsReceived": int(row["comments_received"]),
        "likesGiven": int(row["likes_given"]),
    }), 200
