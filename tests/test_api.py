"""HTTP surface tests: camelCase bodies, rejection shapes and status codes."""

from __future__ import annotations

import base64

import httpx
import pytest

from flowboard.api.app import create_app
from flowboard.auth import totp
from flowboard.auth.challenges import ChallengeStore
from flowboard.auth.passwords import PasswordHasher
from flowboard.auth.recovery import RecoveryCodeManager
from flowboard.auth.service import AdminAuthService
from flowboard.store.base import StorageUnavailable
from flowboard.store.memory import InMemoryAdminStore

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD

PREFIX = "/api/admin/auth"
CREDS = {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}


def _client(service) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=create_app(service=service))
    return httpx.AsyncClient(transport=transport, base_url="http://testserver")


@pytest.fixture
async def client(service, admin):
    async with _client(service) as c:
        yield c


async def _enable(client, clock) -> dict:
    setup = (await client.post(f"{PREFIX}/2fa/setup", json=CREDS)).json()
    code = totp.get_code(setup["secret"], clock.now())
    resp = await client.post(f"{PREFIX}/2fa/confirm", json={**CREDS, "code": code})
    assert resp.json() == {"success": True}
    return setup


async def test_login_without_2fa(client, admin):
    resp = await client.post(f"{PREFIX}/login", json=CREDS)
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "id": str(admin.id),
        "email": ADMIN_EMAIL,
        "name": "Admin User",
        "role": "admin",
        "twoFactorEnabled": False,
    }


async def test_login_rejection_is_http_200(client):
    resp = await client.post(f"{PREFIX}/login", json={"email": ADMIN_EMAIL, "password": "nope"})
    assert resp.status_code == 200
    assert resp.json() == {"success": False, "error": "Invalid credentials"}


async def test_login_missing_field_is_422(client):
    resp = await client.post(f"{PREFIX}/login", json={"email": ADMIN_EMAIL})
    assert resp.status_code == 422


async def test_setup_response_shape(client):
    resp = await client.post(f"{PREFIX}/2fa/setup", json=CREDS)
    body = resp.json()
    assert set(body) == {"secret", "recoveryCodes", "otpauthUri", "qrDataUrl"}
    assert len(body["secret"]) == 32
    assert len(body["recoveryCodes"]) == 8
    assert body["otpauthUri"].startswith("otpauth://totp/")


async def test_setup_returns_qr_as_data_url(client):
    body = (await client.post(f"{PREFIX}/2fa/setup", json=CREDS)).json()
    prefix = "data:image/svg+xml;base64,"
    assert body["qrDataUrl"].startswith(prefix)
    assert b"<svg" in base64.b64decode(body["qrDataUrl"][len(prefix):])


async def test_secret_never_travels_in_a_url(client):
    uri = totp.get_provisioning_uri("JBSWY3DPEHPK3PXP", ADMIN_EMAIL)
    resp = await client.get(f"{PREFIX}/2fa/qr", params={"uri": uri})
    assert resp.status_code == 404


async def test_setup_with_bad_password(client):
    resp = await client.post(f"{PREFIX}/2fa/setup", json={**CREDS, "password": "nope"})
    assert resp.status_code == 200
    assert resp.json() == {"error": "Invalid credentials"}


async def test_two_step_login(client, clock):
    setup = await _enable(client, clock)

    first = (await client.post(f"{PREFIX}/login", json=CREDS)).json()
    assert first["success"] is False
    assert first["requiresOtp"] is True
    challenge_id = first["challengeId"]

    bad = await client.post(f"{PREFIX}/verify", json={"challengeId": challenge_id, "code": "000000"})
    assert bad.json() == {"success": False, "error": "Invalid authentication code"}

    code = totp.get_code(setup["secret"], clock.now())
    ok = (await client.post(f"{PREFIX}/verify", json={"challengeId": challenge_id, "code": code})).json()
    assert ok["success"] is True
    assert ok["email"] == ADMIN_EMAIL
    assert ok["twoFactorEnabled"] is True

    replay = await client.post(f"{PREFIX}/verify", json={"challengeId": challenge_id, "code": code})
    assert replay.json() == {"success": False, "error": "Challenge expired or invalid"}


async def test_verify_unknown_challenge(client):
    resp = await client.post(f"{PREFIX}/verify", json={"challengeId": "not-a-uuid", "code": "123456"})
    assert resp.status_code == 200
    assert resp.json() == {"success": False, "error": "Challenge expired or invalid"}


async def test_confirm_without_setup(client):
    resp = await client.post(f"{PREFIX}/2fa/confirm", json={**CREDS, "code": "123456"})
    assert resp.json() == {"success": False, "error": "No pending setup found"}


async def test_disable_with_recovery_code(client, clock):
    setup = await _enable(client, clock)
    resp = await client.post(f"{PREFIX}/2fa/disable", json={**CREDS, "code": setup["recoveryCodes"][0]})
    assert resp.json() == {"success": True}

    login = (await client.post(f"{PREFIX}/login", json=CREDS)).json()
    assert login["success"] is True
    assert login["twoFactorEnabled"] is False


async def test_disable_when_not_enabled(client):
    resp = await client.post(f"{PREFIX}/2fa/disable", json={**CREDS, "code": "123456"})
    assert resp.json() == {"success": False, "error": "Two-factor authentication is not enabled"}


async def test_healthz(client):
    resp = await client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


class DownStore(InMemoryAdminStore):
    async def get_account_by_email(self, email):
        raise StorageUnavailable("down")

    async def ping(self):
        raise StorageUnavailable("down")


async def test_storage_outage_is_503(clock, rng, crypt_context):
    store = DownStore()
    service = AdminAuthService(
        store,
        passwords=PasswordHasher(crypt_context),
        recovery=RecoveryCodeManager(store, rng, crypt_context),
        challenges=ChallengeStore(store, clock, rng),
        clock=clock,
    )
    async with _client(service) as client:
        resp = await client.post(f"{PREFIX}/login", json=CREDS)
        assert resp.status_code == 503
        assert resp.json() == {"success": False, "error": "Service temporarily unavailable"}

        health = await client.get("/healthz")
        assert health.status_code == 503
        assert health.json() == {"ok": False}
