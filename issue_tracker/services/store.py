# services/store.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .api import EXPORT_PATH, ISSUES_PATH, ApiClient
from .errors import (
    InvalidIssue,
    IssueTrackerError,
    LoadError,
    NotAuthenticated,
    NotFound,
    ServerRejected,
    TransportError,
)
from .models import ALLOWED_STATUSES, Issue, Result
from .policy import create_payload, update_payload
from .session import SessionService

logger = logging.getLogger(__name__)

EXPORT_DIR_NAME = "exports"


@dataclass
class ExportedFile:
    path: Path
    content: bytes

    @property
    def name(self) -> str:
        return self.path.name


class IssueStore:
    """
    Client-side cache of the issues the backend lets the caller see.

    Every write is followed by a full list() refresh, so the cache only ever
    holds states the backend accepted.
    """

    def __init__(
        self,
        client: ApiClient,
        session: SessionService,
        data_dir: Path = Path("data"),
    ) -> None:
        self.client = client
        self.session = session
        self.data_dir = Path(data_dir)
        self.issues: List[Issue] = []
        self.loading = False
        self.error: Optional[str] = None

    def _token(self) -> str:
        token = self.session.token
        if not token or not self.session.authenticated:
            raise NotAuthenticated()
        return token

    def _cached(self, issue_id: Any) -> Issue:
        key = str(issue_id)
        for issue in self.issues:
            if issue.id == key:
                return issue
        raise NotFound(f"Issue {key} not found. It may have been deleted.")

    # ---------- reads ----------

    def list(self) -> Result:
        self.loading = True
        try:
            token = self._token()
            try:
                data = self.client.json("GET", ISSUES_PATH, token=token)
                if not isinstance(data, list):
                    raise TransportError("Malformed issue list from server.")
                issues = [Issue.from_api(record) for record in data]
            except ServerRejected as exc:
                raise LoadError(exc.message) from exc
            except (TransportError, ValueError) as exc:
                logger.warning("Failed to fetch issues: %s", exc)
                raise LoadError() from exc
        except IssueTrackerError as exc:
            self.error = exc.message
            return Result.failure(exc)
        finally:
            self.loading = False

        self.issues = issues
        self.error = None
        return Result.success(issues)

    def get(self, issue_id: Any) -> Result:
        try:
            return Result.success(self._cached(issue_id))
        except NotFound as exc:
            return Result.failure(exc)

    def by_status(self, status: str) -> List[Issue]:
        return [i for i in self.issues if i.status == status]

    def status_counts(self) -> Dict[str, int]:
        return {s: len(self.by_status(s)) for s in ALLOWED_STATUSES}

    def recent(self, limit: int = 5) -> List[Issue]:
        def stamp(issue: Issue) -> float:
            created = issue.created()
            return created.timestamp() if created else 0.0

        return sorted(self.issues, key=stamp, reverse=True)[:limit]

    # ---------- writes ----------

    def _write(self, method: str, path: str, fallback: str, payload: Any = None) -> Result:
        try:
            token = self._token()
            data = self.client.json(method, path, token=token, payload=payload)
        except (ServerRejected, NotAuthenticated) as exc:
            return Result.failure(exc)
        except IssueTrackerError as exc:
            logger.warning("%s %s failed: %s", method, path, exc.message)
            return Result.failure(exc, fallback)

        refreshed = self.list()
        if not refreshed.ok:
            logger.warning("Refresh after %s %s failed: %s", method, path, refreshed.message)
        return Result.success(data)

    def create(self, fields: Mapping[str, Any]) -> Result:
        return self._write("POST", ISSUES_PATH, "Failed to add issue.", create_payload(fields))

    def update(self, issue_id: Any, fields: Mapping[str, Any]) -> Result:
        try:
            self._token()
            issue = self._cached(issue_id)
            payload = update_payload(self.session.user, fields)
            status = payload.get("status")
            if "status" in payload and status not in ALLOWED_STATUSES:
                raise InvalidIssue(f"Invalid status '{status}'. Allowed: {', '.join(ALLOWED_STATUSES)}")
        except IssueTrackerError as exc:
            return Result.failure(exc)
        return self._write("PUT", f"{ISSUES_PATH}/{issue.id}", "Failed to update issue.", payload)

    def delete(self, issue_id: Any) -> Result:
        try:
            self._token()
            issue = self._cached(issue_id)
        except IssueTrackerError as exc:
            return Result.failure(exc)
        return self._write("DELETE", f"{ISSUES_PATH}/{issue.id}", "Failed to delete issue.")

    # ---------- export ----------

    def export_csv(self, dest_dir: Optional[Path] = None) -> Result:
        """Download the admin CSV export and save it; the issue cache is left alone."""
        try:
            token = self._token()
            response = self.client.request("GET", EXPORT_PATH, token=token, accept="text/csv")
        except IssueTrackerError as exc:
            logger.warning("CSV export failed: %s", exc.message)
            return Result.failure(exc)

        folder = Path(dest_dir) if dest_dir else self.data_dir / EXPORT_DIR_NAME
        folder.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        path = folder / f"issues_{stamp}.csv"
        path.write_bytes(response.content)
        logger.info("Saved issue export to %s", path)
        return Result.success(ExportedFile(path=path, content=response.content))

    def clear(self) -> None:
        self.issues = []
        self.error = None
        self.loading = False
