from __future__ import annotations
"""HTTP translation of validation outcomes.

Validators return data; routes turn a failing result into a 400 through
``raise_for_result`` so the unified error handler can render the messages.
"""
from typing import Dict, Iterable, List, Optional
from flask import abort, request
from werkzeug.exceptions import BadRequest

from ims.utils.validation import FormValidationResult, ValidationResult


class ValidationFailed(BadRequest):
    description = 'Validation failed'

    def __init__(self, errors: Optional[List[str]] = None, field_errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(description=self.description)
        self.errors = list(errors or [])
        self.field_errors = dict(field_errors or {})


def raise_for_result(result: ValidationResult) -> None:
    if not result.is_valid:
        raise ValidationFailed(result.errors)


def raise_for_form(result: FormValidationResult) -> None:
    if not result.is_valid:
        flat = [msg for msgs in result.errors.values() for msg in msgs]
        raise ValidationFailed(flat, result.errors)


def json_body() -> dict:
    """Parsed JSON request body; a missing body is empty, anything but an object is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        abort(400, description='JSON object body required')
    return data


def require_strings(data: dict, keys: Iterable[str]) -> None:
    """Abort with 400 when a present, non-null field is not a string."""
    for key in keys:
        if key in data and data[key] is not None and not isinstance(data[key], str):
            abort(400, description=f"{key} must be a string")


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Return new_status when it is one of ``allowed``, else abort with 400."""
    if new_status not in allowed:
        abort(400, description=f"{field_name} invalid")
    return new_status


__all__ = ['ValidationFailed', 'json_body', 'raise_for_result', 'raise_for_form', 'require_strings', 'validate_status']
