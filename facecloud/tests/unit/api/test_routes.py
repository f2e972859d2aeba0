"""End-to-end tests for the HTTP routes with stubbed backends."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from facecloud.api import dependencies
from facecloud.api.main import app
from facecloud.api.routes import auth as auth_routes
from facecloud.api.routes import onboarding as onboarding_routes
from facecloud.api.routes import staff as staff_routes
from facecloud.auth.provider import Session, SessionStore
from facecloud.errors import AuthExchangeError
from facecloud.metrics.cache import MetricsCache
from facecloud.metrics.service import MetricsService
from facecloud.services.session_storage import SessionStorage, SessionStorageRegistry
from facecloud.workflow.drafts import DraftStore

HEADERS = {"Authorization": "Bearer token", "X-Session-Id": "tab-1"}


class StubDB:
    def __init__(self) -> None:
        self.inserted: List[Dict[str, Any]] = []
        self.staff = {
            "staff-1": {
                "id": "staff-1",
                "user_id": "member-1",
                "company_id": "company-1",
                "role": "nurse",
                "active": True,
                "user_profiles": {"first_name": "Sam", "last_name": "Lee", "email": "sam@example.com"},
                "clinics": {"name": "Bondi Clinic"},
            }
        }

    def _insert(self, kind: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        row = {"id": f"{kind}-{len(self.inserted) + 1}", **payload}
        self.inserted.append(row)
        return row

    def rpc(self, name: str, params: Dict[str, Any]):
        if name == "check_clinic_access":
            return params["clinic_id"] == "clinic-1"
        return [{"revenue": 100, "booking_count": 4}]

    def get_owned_company_id(self, user_id: str) -> Optional[str]:
        return "company-1"

    def resolve_company_id(self, user_id: str) -> Optional[str]:
        return "company-1"

    def list_company_clinics(self, company_id: str):
        return [{"id": "clinic-1", "name": "Bondi Clinic"}]

    def get_clinic(self, clinic_id: str):
        return {"id": clinic_id, "name": "Bondi Clinic"}

    def get_first_location(self, clinic_id: str):
        return {"id": "loc-1", "name": "Bondi Beach"}

    def insert_clinic(self, payload):
        return self._insert("clinic", payload)

    def insert_location(self, payload):
        return self._insert("location", payload)

    def insert_staff(self, payload):
        return self._insert("staff", payload)

    def get_staff(self, staff_id: str):
        return self.staff.get(staff_id)

    def get_member_role(self, user_id: str, company_id: str):
        return "doctor"

    def update_staff(self, staff_id, updates):
        return None

    def insert_room(self, payload):
        return self._insert("room", payload)

    def list_room_types(self, clinic_id: str):
        return [{"id": "type-1", "name": "Treatment"}]

    def setup_new_company(self, user_id: str, email: str, company_name: str):
        return {"company_id": "company-9", "company_name": company_name}


class StubProvider:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error

    async def verify_token(self, token_hash: str, token_type: str) -> Session:
        if self.error is not None:
            raise self.error
        return Session(access_token="access", refresh_token="refresh", user_id="user-1", expires_at=1700003600)

    async def exchange_code_for_session(self, code: str) -> Session:
        return Session(access_token="pkce", refresh_token="refresh", user_id="user-1")

    async def get_current_user(self):
        return None

    def on_auth_state_change(self, callback):
        return lambda: None


@pytest.fixture
def db() -> StubDB:
    return StubDB()


@pytest.fixture
def storage() -> SessionStorage:
    return SessionStorage("tab-1")


@pytest.fixture
def client(db: StubDB, storage: SessionStorage):
    drafts = DraftStore(storage, debounce_seconds=0)
    app.dependency_overrides[dependencies.get_current_user_id] = lambda: "user-1"
    app.dependency_overrides[dependencies.get_database_with_user] = lambda: ("user-1", db)
    app.dependency_overrides[dependencies.get_user_database] = lambda: db
    app.dependency_overrides[dependencies.get_authenticated_user] = lambda: {
        "id": "user-1",
        "email": "owner@example.com",
        "metadata": {},
    }
    app.dependency_overrides[dependencies.get_draft_store] = lambda: drafts
    app.dependency_overrides[dependencies.get_session_drafts] = lambda: drafts
    app.dependency_overrides[dependencies.get_session_store] = lambda: SessionStore(storage)
    app.dependency_overrides[dependencies.get_identity_provider] = lambda: StubProvider()
    app.dependency_overrides[dependencies.get_metrics] = lambda: MetricsService(db, MetricsCache(ttl_seconds=300))
    yield TestClient(app)
    app.dependency_overrides.clear()


def _clinic_payload() -> Dict[str, Any]:
    return {
        "clinic": {"name": "Bondi Clinic"},
        "location": {"address": "1 Campbell Parade", "suburb": "Bondi Beach", "state": "nsw", "postcode": "2026"},
        "contact": {"phone": "+61 2 9000 0000", "email": "hello@bondiclinic.com.au"},
        "operating_hours": {"monday": {"is_open": True, "open_time": "09:00", "close_time": "17:00"}},
    }


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_create_clinic_returns_redirect_path(client: TestClient) -> None:
    response = client.post("/v1/clinics", json=_clinic_payload(), headers=HEADERS)

    assert response.status_code == 201
    body = response.json()
    assert body["clinic_id"] == "clinic-1"
    assert body["redirect_path"] == "/clinics/clinic-1"


def test_create_clinic_validation_error_is_422(client: TestClient) -> None:
    payload = _clinic_payload()
    payload["location"]["postcode"] = "20"

    response = client.post("/v1/clinics", json=payload, headers=HEADERS)

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == [
        {"field": "location.postcode", "message": "Please enter a valid 4-digit postcode"}
    ]


def test_list_clinics(client: TestClient) -> None:
    response = client.get("/v1/clinics", headers=HEADERS)

    assert response.json() == {"clinics": [{"id": "clinic-1", "name": "Bondi Clinic", "location_name": "Bondi Beach"}]}


def test_clinic_metrics(client: TestClient) -> None:
    response = client.get("/v1/clinics/clinic-1/metrics?timeframe=week", headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["timeframe"] == "week"
    assert body["revenue"] == 100.0
    assert body["revenue_change"] == 0.0


def test_clinic_metrics_hidden_clinic(client: TestClient) -> None:
    response = client.get("/v1/clinics/clinic-2/metrics", headers=HEADERS)

    assert response.status_code == 404


def test_update_staff_forbidden_for_non_managers(client: TestClient) -> None:
    payload = {
        "basic": {"first_name": "Sam", "last_name": "Lee", "email": "sam@example.com"},
        "role": {"role": "nurse"},
    }

    response = client.patch("/v1/staff/staff-1", json=payload, headers=HEADERS)

    assert response.status_code == 403


def test_get_missing_staff(client: TestClient) -> None:
    assert client.get("/v1/staff/nobody", headers=HEADERS).status_code == 404


def test_resend_invitation(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    invites = []

    class StubAuth:
        def invite_user_by_email(self, email, *, redirect_to=None, data=None):
            invites.append(email)
            return {"id": "member-1"}

    monkeypatch.setattr(staff_routes, "get_auth_manager", lambda: StubAuth())

    response = client.post("/v1/staff/staff-1/resend-invitation", headers=HEADERS)

    assert response.json() == {"success": True}
    assert invites == ["sam@example.com"]


def test_room_types(client: TestClient) -> None:
    response = client.get("/v1/clinics/clinic-1/room-types", headers=HEADERS)

    assert response.json() == [{"id": "type-1", "name": "Treatment", "description": None}]


def test_draft_lifecycle(client: TestClient) -> None:
    saved = client.put(
        "/v1/drafts/new-clinic",
        json={"step_index": 2, "fields": {"clinic": {"name": "Bondi"}}},
        headers=HEADERS,
    )
    assert saved.status_code == 202
    assert saved.json() == {"form": "new-clinic", "saved": True}

    loaded = client.get("/v1/drafts/new-clinic", headers=HEADERS).json()
    assert loaded["step_index"] == 2
    assert loaded["fields"] == {"clinic": {"name": "Bondi"}}

    assert client.delete("/v1/drafts/new-clinic", headers=HEADERS).status_code == 204
    assert client.get("/v1/drafts/new-clinic", headers=HEADERS).status_code == 404


def test_unknown_form_draft(client: TestClient) -> None:
    response = client.put("/v1/drafts/payroll", json={"fields": {}}, headers=HEADERS)

    assert response.status_code == 404


def test_confirm_token_establishes_session(client: TestClient, storage: SessionStorage) -> None:
    response = client.post(
        "/auth/confirm",
        json={"url": "https://app.facecloud.test/auth/confirm?token_hash=abc&type=invite"},
        headers=HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "session_established"
    assert body["redirect_url"] == "/?onboard=true"
    assert body["scrubbed_url"] == "https://app.facecloud.test/auth/confirm"
    assert SessionStore(storage).get().access_token == "access"


def test_confirm_token_without_token_is_idle(client: TestClient) -> None:
    response = client.post("/auth/confirm", json={"url": "https://app.facecloud.test/dashboard"}, headers=HEADERS)

    assert response.json()["state"] == "idle"


def test_confirm_token_failure_is_401(client: TestClient) -> None:
    app.dependency_overrides[dependencies.get_identity_provider] = lambda: StubProvider(
        AuthExchangeError("Token has expired or is invalid")
    )

    response = client.post(
        "/auth/confirm",
        json={"url": "https://app.facecloud.test/auth/confirm?token_hash=old&type=recovery&next=1"},
        headers=HEADERS,
    )

    assert response.status_code == 401
    assert response.json()["detail"] == {
        "message": "Token has expired or is invalid",
        "scrubbed_url": "https://app.facecloud.test/auth/confirm?next=1",
    }


def test_auth_callback_exchanges_code(client: TestClient, storage: SessionStorage) -> None:
    response = client.get(
        "/auth/callback?code=pkce-code&redirect_to=https://evil.example.com",
        headers=HEADERS,
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/auth/success?redirectTo=%2F"
    assert SessionStore(storage).get().access_token == "pkce"


def test_set_password_only_for_own_account(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    class StubAuth:
        def set_password_for_email(self, email, password):
            calls.append(email)
            return "user-1"

    monkeypatch.setattr(onboarding_routes, "get_auth_manager", lambda: StubAuth())

    other = client.post(
        "/v1/onboarding/set-password",
        json={"email": "someone@example.com", "password": "long-enough"},
        headers=HEADERS,
    )
    own = client.post(
        "/v1/onboarding/set-password",
        json={"email": "Owner@Example.com", "password": "long-enough"},
        headers=HEADERS,
    )

    assert other.status_code == 403
    assert own.json() == {"success": True}
    assert [email.lower() for email in calls] == ["owner@example.com"]


def test_company_setup(client: TestClient) -> None:
    response = client.post("/v1/onboarding/company", json={"company_name": " Glow Clinics "}, headers=HEADERS)

    assert response.status_code == 201
    assert response.json()["company_id"] == "company-9"


def test_created_clinic_clears_its_draft(client: TestClient) -> None:
    client.put(
        "/v1/drafts/new-clinic",
        json={"step_index": 4, "fields": {"clinic": {"name": "Bondi"}}},
        headers=HEADERS,
    )

    created = client.post("/v1/clinics", json=_clinic_payload(), headers=HEADERS)

    assert created.status_code == 201
    assert client.get("/v1/drafts/new-clinic", headers=HEADERS).status_code == 404


def test_rejected_clinic_keeps_its_draft(client: TestClient) -> None:
    client.put("/v1/drafts/new-clinic", json={"step_index": 1, "fields": {"clinic": {"name": "Bondi"}}}, headers=HEADERS)
    payload = _clinic_payload()
    payload["clinic"]["name"] = ""

    assert client.post("/v1/clinics", json=payload, headers=HEADERS).status_code == 422
    assert client.get("/v1/drafts/new-clinic", headers=HEADERS).status_code == 200


def test_created_room_clears_only_the_room_draft(client: TestClient) -> None:
    client.put("/v1/drafts/new-room", json={"fields": {"room": {"name": "Suite 1"}}}, headers=HEADERS)
    client.put("/v1/drafts/new-clinic", json={"fields": {"clinic": {"name": "Bondi"}}}, headers=HEADERS)
    payload = {"room": {"clinic_id": "clinic-1", "name": "Suite 1", "room_type_id": "type-1"}}

    created = client.post("/v1/rooms", json=payload, headers=HEADERS)

    assert created.status_code == 201
    assert client.get("/v1/drafts/new-room", headers=HEADERS).status_code == 404
    assert client.get("/v1/drafts/new-clinic", headers=HEADERS).status_code == 200


def test_drafts_require_authentication(client: TestClient) -> None:
    del app.dependency_overrides[dependencies.get_current_user_id]

    response = client.get("/v1/drafts/new-clinic", headers={"X-Session-Id": "tab-1"})

    assert response.status_code == 401


def test_sign_out_ends_the_browser_session(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    registry = SessionStorageRegistry()
    storage = registry.get("tab-9")
    SessionStore(storage).set(Session(access_token="access", refresh_token="refresh", user_id="user-1"))
    drafts = storage.scoped("drafts", lambda owner: DraftStore(owner, debounce_seconds=0))
    drafts.save("new-staff", {"basic": {"first_name": "Sam"}})
    monkeypatch.setattr(auth_routes, "get_session_registry", lambda: registry)

    response = client.get("/auth/sign-out", headers={"X-Session-Id": "tab-9"}, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/sign-in"
    assert registry.active_sessions() == []
    assert SessionStore(storage).get() is None
    assert drafts.restore("new-staff") is None
