from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from .errors import IssueTrackerError

ALLOWED_STATUSES = [
    "OPEN",         # freshly reported
    "IN_PROGRESS",  # picked up by a technician
    "CLOSED",
]
DEFAULT_STATUS = "OPEN"

ROLES = ["customer", "technician", "admin"]

# Fields a client may send on create/update
EDITABLE_FIELDS = ("title", "description", "location", "department", "status")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class User:
    id: str
    username: str
    email: str
    phone_number: str
    role: str

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "User":
        return cls(
            id=_text(claims.get("id")),
            username=_text(claims.get("username")),
            email=_text(claims.get("email")),
            phone_number=_text(claims.get("phone_number")),
            role=_text(claims.get("role")),
        )


@dataclass
class Issue:
    id: str
    title: str
    location: str
    department: str
    status: str = DEFAULT_STATUS
    description: str = ""
    user_id: str = ""  # reporter
    username: str = ""
    user_email: str = ""
    user_phone_number: str = ""
    created_at: str = ""

    @classmethod
    def from_api(cls, record: Mapping[str, Any]) -> "Issue":
        """Build an Issue from a backend record; raises ValueError when malformed."""
        if not isinstance(record, Mapping):
            raise ValueError(f"Issue record must be an object, got {type(record).__name__}")
        raw_id = record.get("id")
        if raw_id is None or _text(raw_id) == "":
            raw_id = record.get("_id")
        if raw_id is None or _text(raw_id) == "":
            raise ValueError("Issue record has no identifier")
        status = _text(record.get("status")) or DEFAULT_STATUS
        if status not in ALLOWED_STATUSES:
            raise ValueError(f"Invalid status '{status}'. Allowed: {ALLOWED_STATUSES}")
        return cls(
            id=_text(raw_id),
            title=_text(record.get("title")),
            location=_text(record.get("location")),
            department=_text(record.get("department")),
            status=status,
            description=_text(record.get("description")),
            user_id=_text(record.get("userId")),
            username=_text(record.get("username")),
            user_email=_text(record.get("user_email")),
            user_phone_number=_text(record.get("user_phone_number")),
            created_at=_text(record.get("createdAt")),
        )

    def created(self) -> Optional[datetime]:
        if not self.created_at:
            return None
        try:
            return datetime.fromisoformat(self.created_at.replace("Z", "+00:00"))
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class Result:
    ok: bool
    message: str = ""
    error: Optional[str] = None  # IssueTrackerError.kind
    value: Any = None

    @classmethod
    def success(cls, value: Any = None, message: str = "") -> "Result":
        return cls(ok=True, message=message, value=value)

    @classmethod
    def failure(cls, exc: IssueTrackerError, message: str = "") -> "Result":
        return cls(ok=False, message=message or exc.message, error=exc.kind)
