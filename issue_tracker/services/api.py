from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from .errors import ServerRejected, TransportError

logger = logging.getLogger(__name__)

AUTH_PATH = "/api/auth"
ISSUES_PATH = "/api/issues"
EXPORT_PATH = "/api/issues/admin/export/issues"


def server_message(response: requests.Response) -> str:
    """Return the backend's `message` field, or "" when the body has none."""
    if not response.content:
        return ""
    try:
        data = response.json()
    except ValueError:
        return ""
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return ""


class ApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        payload: Any = None,
        accept: str = "application/json",
    ) -> requests.Response:
        headers = {"Accept": accept}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = self.session.request(
                method,
                self.url(path),
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransportError(f"Network error: {exc}") from exc

        if not response.ok:
            message = server_message(response)
            logger.warning("%s %s -> HTTP %s %s", method, path, response.status_code, message)
            if message:
                raise ServerRejected(message, response.status_code)
            raise TransportError(
                f"{method} {path} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self.request(method, path, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError("Malformed response body from server.") from exc
