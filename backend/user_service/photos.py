"""
Profile photo storage.

All file-system work for uploaded photos happens here so route handlers only
deal in stored names and URLs. Files live in one flat content directory and
are served back through a single route (see user_service.routes).
"""

import logging
import os
import random
import time
from typing import Any, Dict, Optional

from flask import Response, send_from_directory
from werkzeug.security import safe_join

from backend.common.errors import NotFound
from backend.database.db_connection import get_db

PHOTO_MOUNT = "/user/photo"
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
MAX_NAME_ATTEMPTS = 5


def photo_extension(original_name: str) -> str:
    """Lower-cased extension of the client's file name ('' if none)."""
    return os.path.splitext(os.path.basename(original_name or ""))[1].lower()


class PhotoManager:
    def __init__(self, content_dir: str, mount: str = PHOTO_MOUNT):
        self.content_dir = os.path.abspath(content_dir)
        self.mount = mount.rstrip("/")

    def _new_name(self, extension: str) -> str:
        # <epoch millis>-<random below 1e9><ext>
        return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{extension}"

    def path_for(self, stored_name: str) -> Optional[str]:
        """Absolute path of a stored name, or None if it escapes the directory."""
        return safe_join(self.content_dir, stored_name)

    def store(self, data: bytes, original_name: str) -> str:
        """
        Write uploaded bytes under a fresh, collision-resistant name.

        The file is opened in exclusive-create mode so an existing photo is
        never overwritten; on the rare clash a new name is drawn.

        Returns:
            str: The stored name (not the path).
        """
        os.makedirs(self.content_dir, exist_ok=True)
        extension = photo_extension(original_name)

        for _ in range(MAX_NAME_ATTEMPTS):
            stored_name = self._new_name(extension)
            try:
                with open(os.path.join(self.content_dir, stored_name), "xb") as fh:
                    fh.write(data)
            except FileExistsError:
                continue
            logging.info(f"[Photo] Stored {original_name!r} as {stored_name} ({len(data)} bytes)")
            return stored_name

        raise FileExistsError(f"Could not find a free photo name after {MAX_NAME_ATTEMPTS} attempts")

    def discard(self, stored_name: Optional[str]) -> None:
        """
        Best-effort removal of a stored photo.

        A file that is already gone is ignored; any other OS error is logged
        and the stale file is left in place.
        """
        if not stored_name:
            return
        path = self.path_for(stored_name)
        if path is None:
            logging.warning(f"[Photo] Refusing to remove suspicious name {stored_name!r}")
            return
        try:
            os.remove(path)
        except FileNotFoundError:
            logging.debug(f"[Photo] {stored_name} already absent")
        except OSError as e:
            logging.warning(f"[Photo] Could not remove stale photo {stored_name}: {e}")

    def replace(self, user: Dict[str, Any], new_stored_name: str) -> Dict[str, Any]:
        """
        Point a user at a newly stored photo and drop the previous file.

        The new reference is persisted first so the user never refers to a
        deleted file.

        Args:
            user (dict): users row with at least user_id and photo.
            new_stored_name (str): Name returned by store().

        Returns:
            dict: The updated users row.

        Raises:
            NotFound: If the user row no longer exists.
            psycopg2.Error: If the update fails.
        """
        sql = """
            UPDATE users SET photo = %s, updated_at = CURRENT_TIMESTAMP
            WHERE user_id = %s
            RETURNING user_id, first_name, last_name, email, role, photo;
        """
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(sql, (new_stored_name, user["user_id"]))
                updated = cur.fetchone()

        if not updated:
            raise NotFound("User not found")

        old_name = user.get("photo")
        if old_name and old_name != new_stored_name:
            self.discard(old_name)

        return updated

    def resolve_url(self, stored_name: Optional[str], origin: str) -> Optional[str]:
        """
        Absolute URL for a stored name, e.g.
        http://localhost:5050/user/photo/1700000000000-42.png
        """
        if not stored_name:
            return None
        return f"{origin.rstrip('/')}{self.mount}/{stored_name}"

    def serve(self, stored_name: str) -> Response:
        """
        Stream a stored photo.

        Raises:
            NotFound: If no such file exists in the content directory.
        """
        path = self.path_for(stored_name)
        if path is None or not os.path.isfile(path):
            raise NotFound("Profile photo not found")
        return send_from_directory(self.content_dir, stored_name)
