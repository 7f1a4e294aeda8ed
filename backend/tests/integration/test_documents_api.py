"""Integration tests for the document and verification HTTP API

The app is built with a test record store, an in-memory storage backend and a
recording notifier. A small middleware attaches the principal named in the
X-Test-Principal header, the way the upstream authentication layer would.
"""

import asyncio
import time
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import httpx
import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from auth.principal import Principal
from auth.roles import AdminRole, UserRole
from config import Settings
from conftest import DBS, INSURANCE, PDF_BYTES, POLICY, InMemoryStorage, RecordingNotifier
from main import create_app
from models import PrincipalActivity


@pytest.fixture
def api_settings(database):
    return Settings(
        _env_file=None,
        DATABASE_URL=database.url,
        LOG_JSON=False,
        LOG_LEVEL="WARNING",
        MANDATORY_DOCUMENTS={
            "STANDARD": [POLICY, INSURANCE],
            "ENHANCED": [POLICY, INSURANCE, DBS],
            "PREMIUM": [POLICY, INSURANCE, DBS],
        },
    )


@pytest.fixture
def api_storage():
    return InMemoryStorage()


@pytest.fixture
def api_notifier():
    return RecordingNotifier()


@pytest.fixture
def client(api_settings, database, api_storage, api_notifier):
    app = create_app(api_settings, database=database, storage=api_storage, notifier=api_notifier)
    principals = {}

    @app.middleware("http")
    async def attach_principal(request: Request, call_next):
        key = request.headers.get("X-Test-Principal")
        if key in principals:
            request.state.principal = principals[key]
        return await call_next(request)

    with TestClient(app) as test_client:
        test_client.principals = principals
        yield test_client


@pytest.fixture
def api_club(client):
    """Register two clubs and the principals that act on them."""
    service = client.app.state.verification_service
    club = service.register_club("owner-a", "Riverside Juniors FC", "secretary@riverside.example")
    other = service.register_club("owner-b", "Hilltop Swimming Club", "admin@hilltop.example")

    client.principals.update({
        "owner": Principal("owner-a", UserRole.CLUB, owned_profile_id=str(club.id)),
        "stranger": Principal("owner-b", UserRole.CLUB, owned_profile_id=str(other.id)),
        "admin": Principal("admin-1", UserRole.ADMIN, admin_sub_role=AdminRole.MODERATOR),
        "parent": Principal("parent-1", UserRole.PARENT),
    })
    return club


def as_(key):
    return {"X-Test-Principal": key}


def post_document(client, club_id, document_type, who="owner", filename="evidence.pdf",
                  content_type="application/pdf", expiry_date=None):
    data = {"document_type": document_type.value if hasattr(document_type, "value") else document_type}
    if expiry_date is not None:
        data["expiry_date"] = expiry_date.isoformat()
    return client.post(
        f"/api/v1/clubs/{club_id}/documents",
        headers=as_(who),
        data=data,
        files={"file": (filename, PDF_BYTES, content_type)},
    )


class TestUpload:
    def test_upload_created(self, client, api_club, api_storage):
        expiry = datetime.now(timezone.utc) + timedelta(days=90)

        response = post_document(client, api_club.id, INSURANCE, expiry_date=expiry)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["document_type"] == "INSURANCE"
        assert body["size_bytes"] == len(PDF_BYTES)
        assert "storage_handle" not in body
        assert len(api_storage.objects) == 1

    def test_disguised_executable_rejected(self, client, api_club, api_storage):
        response = post_document(client, api_club.id, POLICY, filename="policy.pdf.exe")

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"
        assert api_storage.calls == []

    def test_unknown_document_type(self, client, api_club):
        response = post_document(client, api_club.id, "PASSPORT")
        assert response.status_code == 400
        assert response.json()["field"] == "document_type"

    def test_foreign_club_forbidden(self, client, api_club, api_storage):
        response = post_document(client, api_club.id, POLICY, who="stranger")

        assert response.status_code == 403
        assert response.json() == {"error": "FORBIDDEN", "message": "Access denied"}
        assert api_storage.calls == []

    def test_storage_unavailable(self, client, api_club, api_storage):
        api_storage.fail_put = True

        response = post_document(client, api_club.id, POLICY)

        assert response.status_code == 503
        assert response.json()["error"] == "STORAGE_UNAVAILABLE"
        assert "timed out" not in response.json()["message"]

    def test_unauthenticated(self, client, api_club):
        response = client.post(
            f"/api/v1/clubs/{api_club.id}/documents",
            data={"document_type": "INSURANCE"},
            files={"file": ("evidence.pdf", PDF_BYTES, "application/pdf")},
        )
        assert response.status_code == 401


class TestDecision:
    def test_approve_then_conflict(self, client, api_club, api_notifier):
        document_id = post_document(client, api_club.id, POLICY).json()["id"]

        approved = client.post(
            f"/api/v1/documents/{document_id}/decision",
            headers=as_("admin"),
            json={"outcome": "APPROVED", "notes": "Signed and dated"},
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "APPROVED"
        assert approved.json()["reviewer_id"] == "admin-1"

        again = client.post(
            f"/api/v1/documents/{document_id}/decision",
            headers=as_("admin"),
            json={"outcome": "REJECTED"},
        )
        assert again.status_code == 409
        assert again.json()["current_status"] == "APPROVED"

    def test_owner_cannot_decide(self, client, api_club):
        document_id = post_document(client, api_club.id, POLICY).json()["id"]

        response = client.post(
            f"/api/v1/documents/{document_id}/decision",
            headers=as_("owner"),
            json={"outcome": "APPROVED"},
        )
        assert response.status_code == 403

    def test_unknown_document(self, client, api_club):
        response = client.post(
            f"/api/v1/documents/{uuid4()}/decision",
            headers=as_("admin"),
            json={"outcome": "APPROVED"},
        )
        assert response.status_code == 404

    def test_missing_outcome(self, client, api_club):
        response = client.post(
            f"/api/v1/documents/{uuid4()}/decision", headers=as_("admin"), json={}
        )
        assert response.status_code == 422


class TestReadAndWithdraw:
    def test_list_and_download(self, client, api_club):
        first = post_document(client, api_club.id, POLICY).json()
        post_document(client, api_club.id, INSURANCE)

        listing = client.get(f"/api/v1/clubs/{api_club.id}/documents", headers=as_("owner"))
        assert listing.status_code == 200
        assert listing.json()["total"] == 2

        url = client.get(
            f"/api/v1/documents/{first['id']}/download-url",
            headers=as_("admin"),
            params={"expires_in": 300},
        )
        assert url.status_code == 200
        assert url.json()["expires_in_seconds"] == 300
        assert url.json()["url"].startswith("https://storage.test/safeguarding/")

    def test_parent_cannot_list(self, client, api_club):
        response = client.get(f"/api/v1/clubs/{api_club.id}/documents", headers=as_("parent"))
        assert response.status_code == 403

    def test_withdraw(self, client, api_club, api_storage):
        document_id = post_document(client, api_club.id, POLICY).json()["id"]

        response = client.delete(f"/api/v1/documents/{document_id}", headers=as_("owner"))

        assert response.status_code == 204
        assert api_storage.objects == {}
        listing = client.get(f"/api/v1/clubs/{api_club.id}/documents", headers=as_("owner"))
        assert listing.json()["total"] == 0

    def test_stranger_cannot_withdraw(self, client, api_club, api_storage):
        document_id = post_document(client, api_club.id, POLICY).json()["id"]

        response = client.delete(f"/api/v1/documents/{document_id}", headers=as_("stranger"))

        assert response.status_code == 403
        assert len(api_storage.objects) == 1


class TestVerificationApi:
    def _approve(self, client, club_id, *document_types):
        for document_type in document_types:
            document_id = post_document(client, club_id, document_type).json()["id"]
            client.post(
                f"/api/v1/documents/{document_id}/decision",
                headers=as_("admin"),
                json={"outcome": "APPROVED"},
            )

    def test_status_follows_decisions(self, client, api_club):
        url = f"/api/v1/clubs/{api_club.id}/verification"
        assert client.get(url, headers=as_("owner")).json()["verification_status"] == "PENDING"

        self._approve(client, api_club.id, POLICY)
        assert client.get(url, headers=as_("owner")).json()["verification_status"] == "IN_REVIEW"

        self._approve(client, api_club.id, INSURANCE)
        body = client.get(url, headers=as_("owner")).json()
        assert body["verification_status"] == "APPROVED"
        assert body["safeguarding_tier"] == "STANDARD"

    def test_suspend_and_lift(self, client, api_club):
        url = f"/api/v1/clubs/{api_club.id}/verification"

        suspended = client.post(f"{url}/suspend", headers=as_("admin"), json={"notes": "Complaint"})
        assert suspended.status_code == 200
        assert suspended.json()["verification_status"] == "SUSPENDED"

        again = client.post(f"{url}/suspend", headers=as_("admin"), json={})
        assert again.status_code == 409

        lifted = client.post(f"{url}/lift-suspension", headers=as_("admin"), json={})
        assert lifted.json()["verification_status"] == "PENDING"

    def test_tier_requires_approval(self, client, api_club):
        url = f"/api/v1/clubs/{api_club.id}/verification/tier"

        response = client.post(url, headers=as_("admin"), json={"tier": "PREMIUM"})
        assert response.status_code == 409

        self._approve(client, api_club.id, POLICY, INSURANCE, DBS)
        expiry = (datetime.now(timezone.utc) + timedelta(days=365)).isoformat()
        response = client.post(
            url, headers=as_("admin"), json={"tier": "PREMIUM", "tier_expiry_date": expiry}
        )
        assert response.status_code == 200
        assert response.json()["safeguarding_tier"] == "PREMIUM"

    def test_recompute_admin_only(self, client, api_club):
        url = f"/api/v1/clubs/{api_club.id}/verification/recompute"
        assert client.post(url, headers=as_("owner")).status_code == 403
        assert client.post(url, headers=as_("admin")).status_code == 200

    def test_unknown_club_for_admin(self, client, api_club):
        response = client.get(f"/api/v1/clubs/{uuid4()}/verification", headers=as_("admin"))
        assert response.status_code == 404


class TestPlumbing:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["components"]["database"]["status"] == "healthy"

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_last_active_recorded(self, client, api_club, database):
        client.get(f"/api/v1/clubs/{api_club.id}/documents", headers=as_("owner"))

        with database.session() as session:
            activity = session.get(PrincipalActivity, "owner-a")
        assert activity is not None
        assert activity.role == "CLUB"


class SlowNotifier(RecordingNotifier):
    """Notifier whose delivery blocks like a slow SMTP server."""

    delay_seconds = 0.5

    def notify(self, recipient_id, kind, payload):
        time.sleep(self.delay_seconds)
        super().notify(recipient_id, kind, payload)


class TestEventLoop:
    """Blocking record store and mail work stays off the event loop"""

    @pytest.mark.asyncio
    async def test_health_answers_during_slow_upload(self, api_settings, database, api_storage):
        notifier = SlowNotifier()
        app = create_app(api_settings, database=database, storage=api_storage, notifier=notifier)
        principals = {}

        @app.middleware("http")
        async def attach_principal(request: Request, call_next):
            key = request.headers.get("X-Test-Principal")
            if key in principals:
                request.state.principal = principals[key]
            return await call_next(request)

        async with app.router.lifespan_context(app):
            club = app.state.verification_service.register_club(
                "owner-a", "Riverside Juniors FC", "secretary@riverside.example"
            )
            principals["owner"] = Principal("owner-a", UserRole.CLUB, owned_profile_id=str(club.id))

            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
                # The first upload moves the club PENDING -> IN_REVIEW and notifies
                upload_task = asyncio.create_task(http.post(
                    f"/api/v1/clubs/{club.id}/documents",
                    headers=as_("owner"),
                    data={"document_type": INSURANCE.value},
                    files={"file": ("evidence.pdf", PDF_BYTES, "application/pdf")},
                ))
                await asyncio.sleep(0.05)

                started = time.monotonic()
                health = await http.get("/health")
                elapsed = time.monotonic() - started

                uploaded = await upload_task

        assert health.status_code == 200
        assert uploaded.status_code == 201
        assert elapsed < 0.4
        assert len(notifier.sent) == 1
