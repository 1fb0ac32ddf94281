from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional

from .models import ALLOWED_STATUSES, ROLES, User
from .policy import status_editable

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MAX_FIELD_LENGTH = 100
MIN_PASSWORD_LENGTH = 6

REQUIRED_ISSUE_FIELDS = {
    "title": "Title is required.",
    "location": "Location is required.",
    "department": "Department is required.",
}


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match((email or "").strip()))


def validate_issue(fields: Mapping[str, Any], user: Optional[User]) -> Dict[str, str]:
    """Return {field: message} for every invalid field; empty when the form is fine."""
    errors: Dict[str, str] = {}
    for name, message in REQUIRED_ISSUE_FIELDS.items():
        value = str(fields.get(name) or "").strip()
        if not value:
            errors[name] = message
        elif len(value) > MAX_FIELD_LENGTH:
            errors[name] = f"{name.capitalize()} must be at most {MAX_FIELD_LENGTH} characters."
    if status_editable(user):
        status = fields.get("status")
        if not status:
            errors["status"] = "Status is required."
        elif status not in ALLOWED_STATUSES:
            errors["status"] = f"Invalid status '{status}'."
    return errors


def validate_login(email: str, password: str) -> List[str]:
    errs = []
    if not (email or "").strip() or not password:
        errs.append("Email and password are required.")
    elif not is_valid_email(email):
        errs.append("Please enter a valid email.")
    return errs


def validate_registration(
    *,
    username: str,
    email: str,
    password: str,
    confirm_password: str,
    phone_number: str,
    role: str,
) -> List[str]:
    required = [username, email, password, confirm_password, phone_number, role]
    if not all((value or "").strip() for value in required):
        return ["All fields are required."]
    errs = []
    if not is_valid_email(email):
        errs.append("Please enter a valid email.")
    if len(password) < MIN_PASSWORD_LENGTH:
        errs.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
    if password != confirm_password:
        errs.append("Passwords do not match.")
    if role not in ROLES:
        errs.append(f"Role must be one of: {', '.join(ROLES)}.")
    return errs
