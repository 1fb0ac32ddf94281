from __future__ import annotations

import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from jose import JWTError, jwt

from .api import AUTH_PATH, ApiClient
from .errors import DecodeError, IssueTrackerError, NotAuthenticated, TransportError
from .models import Result, User

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
CLIENT_ID_RE = re.compile(r"[A-Za-z0-9_-]{8,64}")


class TokenStorage:
    """
    Durable client storage: a JSON file holding the single `token` key.

    Each browser client gets its own file (see `for_client`); two visitors
    never read or clear each other's token.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @classmethod
    def for_client(cls, root: Path, client_id: str) -> "TokenStorage":
        if not CLIENT_ID_RE.fullmatch(client_id or ""):
            raise ValueError(f"Invalid client id {client_id!r}")
        return cls(Path(root) / f"{client_id}.json")

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning("Discarding unreadable token file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self) -> Optional[str]:
        token = self._read().get(TOKEN_KEY)
        return token if isinstance(token, str) and token else None

    def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({TOKEN_KEY: token}), encoding="utf-8")

    def remove(self) -> None:
        if self.path.exists():
            self.path.unlink()


def decode_token(token: str, now: Optional[float] = None) -> User:
    """
    Decode the bearer token's claims into a User.

    The signature is not checked here (the backend re-validates on every
    call); only structure and `exp` are.
    Raises DecodeError for a malformed token, NotAuthenticated once expired.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise DecodeError(f"Malformed session token: {exc}") from exc

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise DecodeError("Session token has no valid expiry.")
    current = time.time() if now is None else now
    if exp <= current:
        raise NotAuthenticated("Session expired.")
    return User.from_claims(claims)


class SessionService:
    def __init__(
        self,
        client: ApiClient,
        storage: TokenStorage,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.storage = storage
        self.clock = clock
        self.user: Optional[User] = None
        self.pending = True
        self._token: Optional[str] = None

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def authenticated(self) -> bool:
        return self.user is not None and self._token is not None

    def start(self) -> Optional[User]:
        """Resolve the identity from stored state. Invalid or expired tokens are dropped."""
        token = self.storage.get()
        if token:
            try:
                self.user = decode_token(token, now=self.clock())
                self._token = token
            except (DecodeError, NotAuthenticated) as exc:
                logger.info("Clearing stored session: %s", exc.message)
                self.storage.remove()
                self.user = None
                self._token = None
        self.pending = False
        return self.user

    def login(self, email: str, password: str) -> Result:
        try:
            data = self.client.json(
                "POST",
                f"{AUTH_PATH}/login",
                payload={"email": email, "password": password},
            )
            if not isinstance(data, dict) or not data.get("token"):
                raise TransportError("Login response did not include a token.")
            token = str(data["token"])
            try:
                user = decode_token(token, now=self.clock())
            except DecodeError:
                profile = data.get("user")
                if not isinstance(profile, dict):
                    raise
                user = User.from_claims(profile)
        except IssueTrackerError as exc:
            logger.warning("Login failed: %s", exc.message)
            return Result.failure(exc)

        self.storage.set(token)
        self._token = token
        self.user = user
        self.pending = False
        logger.info("Logged in as %s (%s)", user.username, user.role)
        return Result.success(user)

    def register(
        self,
        username: str,
        email: str,
        password: str,
        phone_number: str,
        role: str,
    ) -> Result:
        try:
            self.client.json(
                "POST",
                f"{AUTH_PATH}/register",
                payload={
                    "username": username,
                    "email": email,
                    "password": password,
                    "phone_number": phone_number,
                    "role": role,
                },
            )
        except IssueTrackerError as exc:
            logger.warning("Registration failed: %s", exc.message)
            return Result.failure(exc)
        return Result.success(message="Registration successful! You can now log in.")

    def logout(self) -> None:
        self.storage.remove()
        self.user = None
        self._token = None
