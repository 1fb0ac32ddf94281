from __future__ import annotations

from typing import Optional


class IssueTrackerError(Exception):
    kind = "error"
    default_message = "Something went wrong."

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotAuthenticated(IssueTrackerError):
    kind = "not_authenticated"
    default_message = "User not authenticated."


class TransportError(IssueTrackerError):
    """Network failure, or a non-2xx reply without a readable message."""

    kind = "transport_error"
    default_message = "Could not reach the server."

    def __init__(self, message: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ServerRejected(IssueTrackerError):
    kind = "server_rejected"

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFound(IssueTrackerError):
    kind = "not_found"
    default_message = "Issue not found."


class InvalidIssue(IssueTrackerError):
    """Rejected client-side before anything is sent."""

    kind = "invalid_issue"
    default_message = "Invalid issue fields."


class DecodeError(IssueTrackerError):
    kind = "decode_error"
    default_message = "Malformed session token."


class LoadError(IssueTrackerError):
    kind = "load_error"
    default_message = "Failed to load issues."
