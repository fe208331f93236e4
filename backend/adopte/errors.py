"""Typed application errors and the validation message formatter."""

from collections.abc import Sequence
from typing import Any


class AppError(Exception):
    """Base error carrying an HTTP status. Rendered as ``{"message": ...}``."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class AuthorizationError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


def _constraint_text(error: dict[str, Any]) -> str:
    kind = error.get("type", "")
    ctx = error.get("ctx") or {}
    if kind == "missing":
        return f"must have required property '{error['loc'][-1]}'"
    if kind == "string_too_short":
        return f"must NOT have fewer than {ctx.get('min_length')} characters"
    if kind == "string_too_long":
        return f"must NOT have more than {ctx.get('max_length')} characters"
    if kind == "string_type":
        return "must be string"
    if kind in ("int_type", "int_parsing", "int_from_float"):
        return "must be integer"
    if kind in ("bool_type", "bool_parsing"):
        return "must be boolean"
    if kind in ("list_type", "set_type"):
        return "must be array"
    if kind in ("dict_type", "model_type", "model_attributes_type", "json_invalid"):
        return "must be object"
    if kind in ("enum", "literal_error"):
        return "must be equal to one of the allowed values"
    if kind == "greater_than_equal":
        return f"must be >= {ctx.get('ge')}"
    if kind == "less_than_equal":
        return f"must be <= {ctx.get('le')}"
    if kind == "value_error" and ctx.get("error") is not None:
        return str(ctx["error"])
    if kind == "uuid_parsing":
        return 'must match format "uuid"'
    return str(error.get("msg", "is invalid"))


def format_validation_errors(errors: Sequence[dict[str, Any]]) -> str:
    """Render the first request validation error as ``"<path> <constraint>"``.

    ``loc=("body", "message")`` with a too-short string becomes
    ``"body/message must NOT have fewer than 10 characters"``; a missing
    property is reported against its parent (``"body must have required
    property 'studentId'"``).
    """
    if not errors:
        return "Validation failed"
    error = errors[0]
    loc = [str(part) for part in error.get("loc", ())]
    if error.get("type") == "missing":
        loc = loc[:-1]
    path = "/".join(loc)
    text = _constraint_text(error)
    return f"{path} {text}" if path else text
