"""
Request body helpers shared by the route handlers.
"""

from typing import Any, Dict, Optional

from flask import request

from backend.common.errors import InvalidInput


def json_body() -> Dict[str, Any]:
    """
    The request's JSON body as a dict.

    A missing or unparsable body counts as empty; any other JSON type
    (list, string, number) is rejected.

    Raises:
        InvalidInput: If the body is JSON but not an object.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def string_field(data: Dict[str, Any], key: str, strip: bool = True) -> Optional[str]:
    """
    Read an optional string field.

    Returns:
        str: The value (stripped unless strip=False), or None if absent/null.

    Raises:
        InvalidInput: If the value is present but not a string.
    """
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"{key} must be a string")
    return value.strip() if strip else value
