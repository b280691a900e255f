"""Application error taxonomy.

Services raise these; the exception handler in app.main maps them to
HTTP responses. Request validation errors are handled by pydantic (422).
"""


class AppError(Exception):
    """Base exception for errors surfaced to the caller."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthenticatedError(AppError):
    """No (valid) actor on the request."""

    status_code = 401
    default_message = "Not authenticated"


class ForbiddenError(AppError):
    """Authorization policy denied the action."""

    status_code = 403
    default_message = "This action is unauthorized."


class NotFoundError(AppError):
    """Target entity does not exist (or is not visible)."""

    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    """Mutation would violate a uniqueness or lifecycle invariant."""

    status_code = 409
    default_message = "Conflict"


class AlreadyMemberError(ConflictError):
    """An accepted membership already exists for the (user, business) pair."""

    default_message = "User is already a member of this business."
