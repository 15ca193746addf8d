"""
User-facing value types for the authentication service.

Rows come back from psycopg2 as dictionaries keyed by column name; the
helpers here turn them into the camelCase shapes returned by the API and
make sure the password hash never leaves the server.
"""

from typing import Any, Dict, NamedTuple, Optional

ROLE_STUDENT = "student"
ROLE_ORGANIZER = "organizer"
VALID_ROLES = [ROLE_STUDENT, ROLE_ORGANIZER]


class Identity(NamedTuple):
    """Who is making a request, as asserted by a verified token."""

    user_id: int
    role: str


def serialize_user(row: Dict[str, Any], photo_url: Optional[str] = None) -> Dict[str, Any]:
    """
    Public representation of a user row.

    Args:
        row (dict): A users table row.
        photo_url (str, optional): Absolute URL of the profile photo.

    Returns:
        dict: id, firstName, lastName, email, type and photoUrl.
    """
    return {
        "id": row["user_id"],
        "firstName": row["first_name"],
        "lastName": row["last_name"],
        "email": row["email"],
        "type": row.get("role"),
        "photoUrl": photo_url,
    }
