"""
Exceptions raised by the service layer.

Services never build HTTP responses. They raise one of the types below and
``collab_portal.blueprints.register_error_handlers`` turns it into the JSON
error body, so an event lookup fails the same way from every endpoint.

    from collab_portal.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Event", resource_id=42)
    raise ValidationError("A return comment is required", details={"comment": "required"})
"""


class PortalError(Exception):
    """Common base so callers can catch every service failure at once."""


class NotFoundError(PortalError):
    """No row for ``resource`` with ``resource_id`` (HTTP 404)."""

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        suffix = f" id={resource_id}" if resource_id is not None else ""
        super().__init__(f"{resource}{suffix} not found")


class ValidationError(PortalError):
    """Rejected input or a workflow move the current status does not allow.

    ``status`` defaults to 422. Callers pass ``status=400`` when the request
    itself is malformed (missing ids, unparseable dates, short passwords).
    ``details`` is a field -> problem mapping copied into the response body.
    """

    def __init__(self, message: str, details: dict | None = None, status: int = 422) -> None:
        self.details = details or {}
        self.status = status
        super().__init__(message)


class ConflictError(PortalError):
    """A unique username, section key or country code is already taken (HTTP 409)."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class ForbiddenError(PortalError):
    """Caller is signed in but their role or assignments do not cover the target (HTTP 403).

    ``required`` lists the roles that would have been accepted; it is sorted
    so the response body is stable.
    """

    def __init__(self, message: str = "Forbidden", required=None) -> None:
        self.required = sorted(required) if required else None
        super().__init__(message)


class UnauthenticatedError(PortalError):
    """Missing, malformed, expired or revoked access token (HTTP 401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)
