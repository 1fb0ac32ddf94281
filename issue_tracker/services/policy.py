"""
Who may do what with an issue.

Everything here is pure: no I/O, no session lookups, nothing that can fail.
Pages ask these functions instead of checking roles inline.
"""
from __future__ import annotations

from typing import Any, Dict, FrozenSet, Mapping, Optional, Set

from .models import DEFAULT_STATUS, EDITABLE_FIELDS, Issue, User

VIEW = "view"
CREATE = "create"
EDIT = "edit"
CHANGE_STATUS = "change_status"
DELETE = "delete"
EXPORT = "export"

CUSTOMER = "customer"
TECHNICIAN = "technician"
ADMIN = "admin"

# route guard outcomes
PENDING = "pending"
ALLOW = "allow"
REDIRECT_LOGIN = "redirect_login"
REDIRECT_HOME = "redirect_home"


def is_reporter(user: Optional[User], issue: Optional[Issue]) -> bool:
    if user is None or issue is None or not issue.user_id:
        return False
    return str(user.id) == str(issue.user_id)


def capabilities(user: Optional[User], issue: Optional[Issue] = None) -> FrozenSet[str]:
    if user is None:
        return frozenset()
    caps: Set[str] = set()
    reporter = is_reporter(user, issue)
    if user.role == CUSTOMER:
        caps.add(CREATE)
        if reporter:
            caps.update({VIEW, EDIT})
    if user.role == TECHNICIAN:
        caps.update({VIEW, EDIT, CHANGE_STATUS})
    if user.role == ADMIN:
        caps.update({VIEW, EDIT, DELETE, CHANGE_STATUS, EXPORT})
    if reporter:
        caps.add(DELETE)
    return frozenset(caps)


def can_view(user: Optional[User], issue: Optional[Issue]) -> bool:
    return VIEW in capabilities(user, issue)


def can_create(user: Optional[User]) -> bool:
    return CREATE in capabilities(user)


def can_edit(user: Optional[User], issue: Optional[Issue]) -> bool:
    return EDIT in capabilities(user, issue)


def can_change_status(user: Optional[User], issue: Optional[Issue]) -> bool:
    return CHANGE_STATUS in capabilities(user, issue)


def can_delete(user: Optional[User], issue: Optional[Issue]) -> bool:
    return DELETE in capabilities(user, issue)


def can_export(user: Optional[User]) -> bool:
    return EXPORT in capabilities(user)


def status_editable(user: Optional[User]) -> bool:
    """The status field shows up in the issue form only for technicians and admins."""
    return user is not None and user.role in {TECHNICIAN, ADMIN}


def _editable(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}


def update_payload(user: Optional[User], fields: Mapping[str, Any]) -> Dict[str, Any]:
    payload = _editable(fields)
    if not status_editable(user):
        # status stays at its prior value server-side
        payload.pop("status", None)
    return payload


def create_payload(fields: Mapping[str, Any]) -> Dict[str, Any]:
    payload = _editable(fields)
    payload["status"] = DEFAULT_STATUS
    return payload


def guard_authenticated(user: Optional[User], pending: bool) -> str:
    if pending:
        return PENDING
    return ALLOW if user is not None else REDIRECT_LOGIN


def guard_admin(user: Optional[User], pending: bool) -> str:
    decision = guard_authenticated(user, pending)
    if decision != ALLOW:
        return decision
    return ALLOW if user.role == ADMIN else REDIRECT_HOME
