"""
Root-level shared test fixtures.

``FakeVault`` is an in-memory Pleasant Password Server speaking the v6 REST
shapes over ``httpx.MockTransport``. It records every request so tests can
count calls, and can be told to fail specific endpoints.
"""

from __future__ import annotations

import json
import uuid
from urllib.parse import parse_qs

import httpx
import pytest

from vaultsync.client import VaultClient

ROOT_ID = "00000000-0000-0000-0000-000000000000"
BASE_URL = "https://vault.test"
API = "/api/v6/rest/"


class FakeVault:
    def __init__(
        self,
        *,
        username: str = "admin",
        password: str = "correct-horse",
        token: str = "tok-123",
        otp: tuple[str, str] | None = None,
        quote_ids: bool = True,
        quote_secrets: bool = True,
    ) -> None:
        self.username = username
        self.password = password
        self.token = token
        self.otp = otp
        self.quote_ids = quote_ids
        self.quote_secrets = quote_secrets
        self.folders: dict[str, dict] = {
            ROOT_ID: self._folder_record(ROOT_ID, "Root", None, "", [])
        }
        self.credentials: dict[str, dict] = {}
        self.secrets: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self.transport = httpx.MockTransport(self.handle)

    # ─── Seeding / inspection ───────────────────────────────────────────

    @staticmethod
    def _folder_record(folder_id, name, parent_id, notes, tags) -> dict:
        return {
            "Id": folder_id,
            "Name": name,
            "ParentId": parent_id,
            "Notes": notes,
            "Tags": [{"Name": t} for t in tags],
            "Expires": None,
            "Created": "2024-01-01T00:00:00",
            "Modified": "2024-01-02T00:00:00",
        }

    def add_folder(self, name: str, parent_id: str = ROOT_ID, *, notes: str = "", tags=()) -> str:
        folder_id = str(uuid.uuid4())
        self.folders[folder_id] = self._folder_record(folder_id, name, parent_id, notes, tags)
        return folder_id

    def add_credential(
        self,
        name: str,
        folder_id: str,
        *,
        username: str = "",
        password: str = "",
        url: str = "",
        notes: str = "",
        tags=(),
    ) -> str:
        cred_id = str(uuid.uuid4())
        self.credentials[cred_id] = {
            "Id": cred_id,
            "Name": name,
            "GroupId": folder_id,
            "Username": username,
            "Url": url,
            "Notes": notes,
            "Tags": [{"Name": t} for t in tags],
            "Expires": None,
            "Created": "2024-01-01T00:00:00",
            "Modified": "2024-01-02T00:00:00",
        }
        self.secrets[cred_id] = password
        return cred_id

    def fail(self, method: str, path: str, status: int, body: str = "injected failure") -> None:
        self.failures[(method, path)] = (status, body)

    def count(self, method: str, prefix: str) -> int:
        return sum(
            1 for r in self.requests if r.method == method and r.url.path.startswith(prefix)
        )

    def folder_fetches(self) -> int:
        return sum(
            1
            for r in self.requests
            if r.method == "GET"
            and r.url.path.startswith(API + "folders/")
            and r.url.path != API + "folders/root"
        )

    def full_path(self, folder_id: str) -> str:
        names = []
        current: str | None = folder_id
        while current is not None:
            record = self.folders[current]
            names.append(record["Name"])
            current = record["ParentId"]
        return "/".join(reversed(names))

    # ─── HTTP handling ──────────────────────────────────────────────────

    def _string(self, value: str, quoted: bool) -> httpx.Response:
        return httpx.Response(200, text=json.dumps(value) if quoted else value)

    def _folder_payload(self, folder_id: str) -> dict:
        payload = dict(self.folders[folder_id])
        payload["Credentials"] = [
            dict(c) for c in self.credentials.values() if c["GroupId"] == folder_id
        ]
        payload["Children"] = [
            {"Id": f["Id"], "Name": f["Name"], "ParentId": folder_id}
            for f in self.folders.values()
            if f["ParentId"] == folder_id
        ]
        return payload

    def _delete_folder(self, folder_id: str) -> None:
        for child_id in [f["Id"] for f in self.folders.values() if f["ParentId"] == folder_id]:
            self._delete_folder(child_id)
        for cred_id in [c["Id"] for c in self.credentials.values() if c["GroupId"] == folder_id]:
            del self.credentials[cred_id]
            del self.secrets[cred_id]
        del self.folders[folder_id]

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        if form.get("grant_type") != "password":
            return httpx.Response(400, text='{"error":"unsupported_grant_type"}')
        if form.get("username") != self.username or form.get("password") != self.password:
            return httpx.Response(
                400,
                text='{"error":"invalid_grant","error_description":"The user name or password is incorrect."}',
            )
        if self.otp is not None:
            code, provider = self.otp
            if (
                request.headers.get("X-Pleasant-OTP") != code
                or request.headers.get("X-Pleasant-OTP-Provider") != provider
            ):
                return httpx.Response(400, text='{"error":"invalid_grant","error_description":"OTP required"}')
        return httpx.Response(
            200, json={"access_token": self.token, "token_type": "bearer", "expires_in": 3600}
        )

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        method = request.method

        if (method, path) in self.failures:
            status, body = self.failures[(method, path)]
            return httpx.Response(status, text=body)

        if path == "/OAuth2/Token":
            return self._token(request)

        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"Message": "Authorization has been denied for this request."})

        if not path.startswith(API):
            return httpx.Response(404)
        parts = path[len(API):].split("/")
        body = json.loads(request.content) if request.content else None

        if parts[0] == "folders":
            return self._handle_folders(method, parts[1:], body)
        if parts[0] == "credentials":
            return self._handle_credentials(method, parts[1:], body)
        if parts == ["search"] and method == "POST":
            return self._handle_search(body["Search"])
        return httpx.Response(404)

    def _handle_folders(self, method: str, parts: list[str], body: dict | None) -> httpx.Response:
        if parts == ["root"] and method == "GET":
            return self._string(ROOT_ID, self.quote_ids)
        if not parts and method == "POST":
            if body["ParentId"] not in self.folders:
                return httpx.Response(400, text="Parent folder not found")
            folder_id = str(uuid.uuid4())
            self.folders[folder_id] = self._folder_record(
                folder_id, body["Name"], body["ParentId"], body["Notes"], []
            )
            return self._string(folder_id, self.quote_ids)

        folder_id = parts[0]
        if folder_id not in self.folders:
            return httpx.Response(404, text="Folder not found")
        if method == "GET":
            return httpx.Response(200, json=self._folder_payload(folder_id))
        if method == "PATCH":
            self.folders[folder_id].update(
                Name=body["Name"], Notes=body["Notes"], ParentId=body["ParentId"]
            )
            return httpx.Response(204)
        if method == "DELETE":
            self._delete_folder(folder_id)
            return httpx.Response(204)
        return httpx.Response(405)

    def _handle_credentials(self, method: str, parts: list[str], body: dict | None) -> httpx.Response:
        if not parts and method == "POST":
            if body["GroupId"] not in self.folders:
                return httpx.Response(400, text="Folder not found")
            cred_id = self.add_credential(
                body["Name"],
                body["GroupId"],
                username=body["Username"],
                password=body["Password"],
                url=body["Url"],
                notes=body["Notes"],
                tags=[t["Name"] for t in body.get("Tags") or []],
            )
            return self._string(cred_id, self.quote_ids)

        cred_id = parts[0]
        if cred_id not in self.credentials:
            return httpx.Response(404, text="Credential not found")
        if parts[1:] == ["password"] and method == "GET":
            return self._string(self.secrets[cred_id], self.quote_secrets)
        if method == "GET":
            return httpx.Response(200, json=self.credentials[cred_id])
        if method == "PATCH":
            self.credentials[cred_id].update(
                Name=body["Name"],
                GroupId=body["GroupId"],
                Username=body["Username"],
                Url=body["Url"],
                Notes=body["Notes"],
                Tags=list(body.get("Tags") or []),
            )
            self.secrets[cred_id] = body["Password"]
            return httpx.Response(204)
        if method == "DELETE":
            del self.credentials[cred_id]
            del self.secrets[cred_id]
            return httpx.Response(204)
        return httpx.Response(405)

    def _handle_search(self, query: str) -> httpx.Response:
        q = query.lower()
        creds = [
            {
                "Id": c["Id"],
                "Name": c["Name"],
                "Username": c["Username"],
                "Url": c["Url"],
                "Notes": c["Notes"],
                "GroupId": c["GroupId"],
                "Path": self.full_path(c["GroupId"]),
            }
            for c in self.credentials.values()
            if q in c["Name"].lower() or q in c["Username"].lower()
        ]
        groups = [
            {"Id": f["Id"], "Name": f["Name"], "FullPath": self.full_path(f["Id"])}
            for f in self.folders.values()
            if q in f["Name"].lower()
        ]
        return httpx.Response(200, json={"Credentials": creds, "Groups": groups})


@pytest.fixture
def fake_vault():
    return FakeVault()


@pytest.fixture
def vault_client(fake_vault):
    with VaultClient(BASE_URL, fake_vault.token, transport=fake_vault.transport) as client:
        yield client


@pytest.fixture
def clean_env(monkeypatch):
    """Remove PPS_* env vars that leak in from the developer's shell."""
    for key in [
        "PPS_SERVER_URL",
        "PPS_USERNAME",
        "PPS_PASSWORD",
        "PPS_ALLOW_INSECURE",
    ]:
        monkeypatch.delenv(key, raising=False)
