from .api import ApiClient
from .config import Settings, configure_logging, load_settings
from .errors import (
    DecodeError,
    InvalidIssue,
    IssueTrackerError,
    LoadError,
    NotAuthenticated,
    NotFound,
    ServerRejected,
    TransportError,
)
from .models import ALLOWED_STATUSES, ROLES, Issue, Result, User
from .session import SessionService, TokenStorage, decode_token
from .store import ExportedFile, IssueStore

__all__ = [
    "ApiClient",
    "Settings",
    "configure_logging",
    "load_settings",
    "DecodeError",
    "InvalidIssue",
    "IssueTrackerError",
    "LoadError",
    "NotAuthenticated",
    "NotFound",
    "ServerRejected",
    "TransportError",
    "ALLOWED_STATUSES",
    "ROLES",
    "Issue",
    "Result",
    "User",
    "SessionService",
    "TokenStorage",
    "decode_token",
    "ExportedFile",
    "IssueStore",
]
