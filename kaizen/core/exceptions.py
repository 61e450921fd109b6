"""
Kaizen-wide exception hierarchy.

Every service raises these types; blueprints register handlers against them
once (see ``kaizen.blueprints.errors``) and get consistent HTTP status codes.

Usage:
    from kaizen.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Idea", resource_id=42)
    raise ValidationError("Invalid status", details={"status": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist or is inactive.

    Soft-deleted rows are reported exactly like missing ones.

    Args:
        resource: Human-readable model name (e.g. "Idea", "Employee").
        resource_id: The key that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is malformed or violates a business rule.

    Always raised before any mutation starts.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would violate a uniqueness constraint.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class UnauthorizedError(Exception):
    """Raised when the caller lacks the role an operation requires.

    Args:
        role: The caller's role (None when no identity was supplied).
        required: Roles that would have been accepted.
    """

    def __init__(self, role: str | None, required: tuple[str, ...] | frozenset = ()) -> None:
        self.role = role
        self.required = tuple(sorted(required))
        if role is None:
            msg = "Authentication required"
        else:
            msg = f"Role {role!r} is not permitted"
            if self.required:
                msg += f" (requires one of: {', '.join(self.required)})"
        super().__init__(msg)


class StoreTimeoutError(Exception):
    """Raised when a store call exceeds its bounded timeout.

    The unit of work has been rolled back; the whole operation may be retried.
    """


class ServerError(Exception):
    """Raised for unclassified store failures.

    The unit of work has been rolled back; nothing was partially applied.
    """
