"""Shared utility functions for services and blueprints.

escape_like:   escape LIKE wildcards in user-supplied search terms
parse_bool:    parse "true"/"false" query-string flags (None when absent)
string_field:  read a string value from a JSON payload (ValidationError otherwise)
json_object:   require a JSON request body to be an object
"""

from kaizen.core.exceptions import ValidationError


def escape_like(term):
    """Escape ``%``, ``_`` and the escape character itself for LIKE ... ESCAPE '\\'."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def parse_bool(value):
    """Parse a query-string boolean.

    Returns None for missing/empty input so callers can distinguish
    "no filter" from an explicit false.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes")


def string_field(data, key, *, required=False, label=None):
    """Return ``data[key]`` stripped, or None when absent or blank.

    Raises:
        ValidationError: the value is present but not a string, or it is
            ``required`` and absent/blank.
    """
    label = label or key
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{label} must be a string", details={label: "must be a string"})
    value = (value or "").strip() or None
    if required and value is None:
        raise ValidationError(f"{label} is required", details={label: "is required"})
    return value


def json_object(payload):
    """Return a JSON request body as a dict (``{}`` when absent).

    Raises:
        ValidationError: the body is JSON but not an object.
    """
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload
