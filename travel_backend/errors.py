"""
Error taxonomy shared by the route handlers.

Handlers raise these; `app.create_app` converts them into the JSON envelope.
"""

from __future__ import annotations


class ApiError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(ApiError):
    status_code = 401
    default_message = "Unauthorized. Authentication required."


class Forbidden(ApiError):
    status_code = 403
    default_message = "Unauthorized. Admin access required."


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class Conflict(ApiError):
    status_code = 400
    default_message = "Already exists"


class UpstreamFailure(ApiError):
    status_code = 500
    default_message = "Upstream service failed"


class DuplicateKeyError(Exception):
    """Raised by a document store when a unique field would be duplicated."""

    def __init__(self, collection: str, field: str, value: object = None):
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"duplicate {collection}.{field}: {value!r}")


def conflict_from_duplicate(
    exc: DuplicateKeyError, messages: dict[str, str] | None = None
) -> Conflict:
    """Map a store-level duplicate key onto a user-facing Conflict."""
    messages = messages or {}
    if exc.field in messages:
        return Conflict(messages[exc.field])
    return Conflict(f"{exc.field.capitalize()} already exists")


def validation_message(errors: list[dict]) -> str:
    """First pydantic error as a user-facing sentence."""
    if not errors:
        return ValidationError.default_message
    first = errors[0]
    message = str(first.get("msg") or ValidationError.default_message)
    message = message.removeprefix("Value error, ")
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    if first.get("type") == "missing" and location:
        return f"{location[-1]} is required"
    if location and first.get("type") != "value_error":
        return f"{location[-1]}: {message}"
    return message
