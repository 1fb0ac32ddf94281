from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional

import pytest
import requests
from jose import jwt

from issue_tracker.services import ApiClient, IssueStore, SessionService, TokenStorage, User

SECRET = "test-secret"
BASE_URL = "http://backend.test"


def make_token(
    user_id="42",
    role="customer",
    username="alice",
    email="alice@example.com",
    phone_number="555-0100",
    exp: Optional[float] = None,
) -> str:
    claims = {
        "id": user_id,
        "username": username,
        "email": email,
        "phone_number": phone_number,
        "role": role,
        "exp": int(time.time() + 3600 if exp is None else exp),
    }
    return jwt.encode(claims, SECRET, algorithm="HS256")


def make_user(user_id="42", role="customer", username="alice") -> User:
    return User(id=user_id, username=username, email=f"{username}@example.com", phone_number="555-0100", role=role)


class FakeResponse:
    def __init__(self, status_code: int, body: Any = None, content: Optional[bytes] = None, headers=None):
        self.status_code = status_code
        if content is None:
            content = b"" if body is None else json.dumps(body).encode("utf-8")
        self.content = content
        self.headers = headers or {"Content-Type": "application/json"}

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.content.decode("utf-8"))


class FakeBackend:
    """In-memory stand-in for the REST backend, shaped like requests.Session."""

    def __init__(self) -> None:
        self.issues: Dict[int, Dict[str, Any]] = {}
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Dict[str, Any]] = []
        self.overrides: Dict[tuple, FakeResponse] = {}
        self.fail_with: Optional[Exception] = None
        self._next_id = 1

    def add_issue(self, **fields) -> Dict[str, Any]:
        issue_id = self._next_id
        self._next_id += 1
        record = {
            "id": issue_id,
            "title": "Printer jammed",
            "description": "",
            "location": "Floor 2",
            "department": "IT",
            "status": "OPEN",
            "userId": 42,
            "username": "alice",
            "user_email": "alice@example.com",
            "user_phone_number": "555-0100",
            "createdAt": f"2024-05-0{min(issue_id, 9)}T10:00:00.000Z",
        }
        record.update(fields)
        self.issues[issue_id] = record
        return record

    def add_account(self, email: str, password: str, token: str, user: Optional[dict] = None) -> None:
        self.accounts[email] = {"password": password, "token": token, "user": user or {}}

    def request(self, method, url, json=None, headers=None, timeout=None):
        path = url[len(BASE_URL):]
        self.calls.append({"method": method, "path": path, "json": json, "headers": headers or {}})
        if self.fail_with is not None:
            raise self.fail_with
        if (method, path) in self.overrides:
            return self.overrides[(method, path)]
        return self._route(method, path, json or {}, headers or {})

    def _route(self, method, path, body, headers) -> FakeResponse:
        if path == "/api/auth/login":
            account = self.accounts.get(body.get("email"))
            if not account or account["password"] != body.get("password"):
                return FakeResponse(401, {"message": "Invalid credentials"})
            return FakeResponse(200, {"token": account["token"], "user": account["user"]})
        if path == "/api/auth/register":
            if body.get("email") in self.accounts:
                return FakeResponse(400, {"message": "User already exists"})
            self.add_account(body["email"], body["password"], "", {"role": body.get("role")})
            return FakeResponse(201, {"message": "User registered"})

        if not headers.get("Authorization", "").startswith("Bearer "):
            return FakeResponse(401, {"message": "No token provided"})

        if path == "/api/issues/admin/export/issues":
            lines = ["id,title,status"] + [f"{i['id']},{i['title']},{i['status']}" for i in self.issues.values()]
            return FakeResponse(200, content="\n".join(lines).encode("utf-8"), headers={"Content-Type": "text/csv"})
        if path == "/api/issues" and method == "GET":
            return FakeResponse(200, list(self.issues.values()))
        if path == "/api/issues" and method == "POST":
            return FakeResponse(201, self.add_issue(**body))

        issue_id = int(path.rsplit("/", 1)[-1])
        if issue_id not in self.issues:
            return FakeResponse(404, {"message": "Issue not found"})
        if method == "PUT":
            self.issues[issue_id].update(body)
            return FakeResponse(200, self.issues[issue_id])
        if method == "DELETE":
            del self.issues[issue_id]
            return FakeResponse(200, {"message": "Issue deleted"})
        return FakeResponse(405, {"message": "Method not allowed"})

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [c["path"] for c in self.calls if method is None or c["method"] == method]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def client(backend) -> ApiClient:
    return ApiClient(BASE_URL, timeout=5, session=backend)


@pytest.fixture
def storage(tmp_path) -> TokenStorage:
    return TokenStorage(tmp_path / "session.json")


@pytest.fixture
def session(client, storage) -> SessionService:
    return SessionService(client, storage)


def signed_in(session: SessionService, storage: TokenStorage, **claims) -> SessionService:
    storage.set(make_token(**claims))
    session.start()
    return session


@pytest.fixture
def customer_store(session, storage, client, tmp_path) -> IssueStore:
    signed_in(session, storage, user_id="42", role="customer")
    return IssueStore(client, session, data_dir=tmp_path)


@pytest.fixture
def network_error() -> Exception:
    return requests.ConnectionError("connection refused")
