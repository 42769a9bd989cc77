"""
HTTP-level tests for the customer auth, trusted-IP and admin endpoints.

Run with: python -m pytest tests/test_routes.py -v
"""

import asyncio
from datetime import datetime

from app.core.admin_security import hash_password
from app.core.config import settings
from app.services.account_service import AccountService
from app.services.admin_service import AdminService
from conftest import insert_account

HOME_IP = {"x-forwarded-for": "203.0.113.5"}
OTHER_IP = {"x-forwarded-for": "198.51.100.77"}


def _sign_in(client, db, email="user@example.com", headers=HOME_IP):
    response = client.post("/api/v1/auth/login", json={"email": email}, headers=headers)
    assert response.json()["magicLinkSent"] is True

    account = asyncio.run(AccountService.get_by_email(db, email))
    return client.post(
        "/api/v1/auth/verify-magic-link",
        json={"magicKey": account.magic_key},
        headers=headers,
    )


# -----------------------------
# LOGIN / MAGIC LINK
# -----------------------------
def test_login_new_email_sends_magic_link(client, outbox):
    response = client.post("/api/v1/auth/login", json={"email": "Someone@Example.com"}, headers=HOME_IP)

    assert response.status_code == 200
    body = response.json()
    assert body["magicLinkSent"] is True
    assert body["email"] == "someone@example.com"
    assert len(outbox) == 1


def test_login_requires_email(client):
    response = client.post("/api/v1/auth/login", json={}, headers=HOME_IP)
    assert response.status_code == 400
    assert response.json() == {"error": "Email required"}


def test_login_rejects_malformed_email(client):
    response = client.post("/api/v1/auth/login", json={"email": "nope"}, headers=HOME_IP)
    assert response.status_code == 400
    assert response.json()["error"] == "Valid email is required."


def test_send_magic_link_endpoint(client, outbox):
    response = client.post("/api/v1/auth/send-magic-link", json={"email": "user@example.com"})
    assert response.status_code == 200
    assert response.json()["email"] == "user@example.com"
    assert len(outbox) == 1


def test_verify_sets_session_cookie_and_trusts_ip(client, db):
    response = _sign_in(client, db)

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "user@example.com"
    assert body["newTrustedIP"] == "203.0.113.5"
    assert body["autoLoginEnabled"] is True
    assert settings.SESSION_COOKIE_NAME in response.cookies

    set_cookie = response.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "samesite=lax" in set_cookie
    assert "path=/" in set_cookie
    assert "max-age=2592000" in set_cookie
    assert "; secure" not in set_cookie

    session = client.get("/api/v1/auth/session")
    assert session.status_code == 200
    assert session.json()["authenticated"] is True


def test_session_cookie_is_secure_in_production(client, db, monkeypatch):
    monkeypatch.setattr("app.core.security.settings.ENV", "production")

    response = _sign_in(client, db)

    assert response.status_code == 200
    set_cookie = response.headers["set-cookie"].lower()
    assert "; secure" in set_cookie
    assert "httponly" in set_cookie


def test_verify_invalid_key(client):
    response = client.post("/api/v1/auth/verify-magic-link", json={"magicKey": "0" * 64}, headers=HOME_IP)
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired magic link"}


def test_verify_missing_key(client):
    response = client.post("/api/v1/auth/verify-magic-link", json={}, headers=HOME_IP)
    assert response.status_code == 400


def test_second_login_from_trusted_ip_is_automatic(client, db, outbox):
    _sign_in(client, db)
    client.cookies.clear()

    response = client.post("/api/v1/auth/login", json={"email": "user@example.com"}, headers=HOME_IP)

    assert response.status_code == 200
    body = response.json()
    assert body["autoLoggedIn"] is True
    assert body["matchType"] == "exact"
    assert settings.SESSION_COOKIE_NAME in response.cookies
    assert len(outbox) == 1


def test_login_from_new_ip_needs_magic_link(client, db, outbox):
    _sign_in(client, db)

    response = client.post("/api/v1/auth/login", json={"email": "user@example.com"}, headers=OTHER_IP)

    assert response.json()["magicLinkSent"] is True
    assert len(outbox) == 2


def test_rate_limited_login(client, db):
    asyncio.run(insert_account(db, login_attempts=5, last_login_attempt=datetime.utcnow()))

    response = client.post("/api/v1/auth/login", json={"email": "user@example.com"}, headers=HOME_IP)

    assert response.status_code == 429
    body = response.json()
    assert body["reason"] == "rate_limited"
    assert body["resetTime"]
    assert body["resetTimeText"].endswith("UTC")


def test_session_without_cookie(client):
    response = client.get("/api/v1/auth/session")
    assert response.status_code == 401
    assert "error" in response.json()


def test_logout_revokes_session(client, db):
    _sign_in(client, db)
    assert client.get("/api/v1/auth/session").status_code == 200

    response = client.post("/api/v1/auth/logout")

    assert response.status_code == 200
    assert client.get("/api/v1/auth/session").status_code == 401


# -----------------------------
# TRUSTED IP MANAGEMENT
# -----------------------------
def test_list_trusted_ips(client, db):
    _sign_in(client, db)

    response = client.get("/api/v1/trusted-ips", headers=HOME_IP)

    assert response.status_code == 200
    body = response.json()
    assert body["autoLoginEnabled"] is True
    assert body["currentIP"] == "203.0.113.5"
    assert body["lastLoginIP"] == "203.0.113.5"
    assert body["totalTrustedIPs"] == 1
    assert body["trustedIPs"][0]["isCurrent"] is True


def test_trusted_ips_require_session(client):
    assert client.get("/api/v1/trusted-ips").status_code == 401
    assert client.post("/api/v1/trusted-ips", json={"action": "clear_all_ips"}).status_code == 401


def test_toggle_auto_login(client, db, outbox):
    _sign_in(client, db)

    response = client.post("/api/v1/trusted-ips", json={"action": "toggle_auto_login", "autoLoginEnabled": False})
    assert response.status_code == 200
    assert response.json() == {"message": "Auto-login disabled", "autoLoginEnabled": False}

    client.cookies.clear()
    login = client.post("/api/v1/auth/login", json={"email": "user@example.com"}, headers=HOME_IP)
    assert login.json()["magicLinkSent"] is True


def test_toggle_requires_boolean(client, db):
    _sign_in(client, db)
    response = client.post("/api/v1/trusted-ips", json={"action": "toggle_auto_login"})
    assert response.status_code == 400


def test_remove_ip(client, db):
    _sign_in(client, db)
    record_id = client.get("/api/v1/trusted-ips").json()["trustedIPs"][0]["id"]

    assert client.post("/api/v1/trusted-ips", json={"action": "remove_ip"}).status_code == 400

    missing = client.post("/api/v1/trusted-ips", json={"action": "remove_ip", "ipId": "000000000000000000000000"})
    assert missing.status_code == 404
    assert missing.json() == {"error": "Trusted IP not found"}

    removed = client.post("/api/v1/trusted-ips", json={"action": "remove_ip", "ipId": record_id})
    assert removed.status_code == 200
    assert removed.json()["remainingCount"] == 0


def test_clear_all_ips(client, db):
    _sign_in(client, db)
    response = client.post("/api/v1/trusted-ips", json={"action": "clear_all_ips"})
    assert response.json() == {"message": "All 1 trusted IPs cleared", "removedCount": 1}


def test_regenerate_magic_key_invalidates_old_links(client, db, outbox):
    _sign_in(client, db)
    # a link requested from an untrusted IP, still unused
    client.post("/api/v1/auth/login", json={"email": "user@example.com"}, headers=OTHER_IP)
    old_key = asyncio.run(AccountService.get_by_email(db, "user@example.com")).magic_key
    assert old_key

    response = client.post("/api/v1/trusted-ips", json={"action": "regenerate_magic_key"})
    assert response.status_code == 200
    assert response.json()["message"] == "Magic key regenerated. All existing magic links are now invalid."

    stale = client.post("/api/v1/auth/verify-magic-link", json={"magicKey": old_key}, headers=HOME_IP)
    assert stale.status_code == 401


def test_unknown_action(client, db):
    _sign_in(client, db)
    response = client.post("/api/v1/trusted-ips", json={"action": "explode"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid action"}


# -----------------------------
# ADMIN
# -----------------------------
ADMIN_EMAIL = "ops@dinarexchange.co.nz"
ADMIN_PASSWORD = "S3cure-Admin-Pass"


def _create_admin(db, role="admin"):
    return asyncio.run(AdminService.create_admin(
        db,
        email=ADMIN_EMAIL,
        password_hash=hash_password(ADMIN_PASSWORD),
        first_name="Ops",
        last_name="Team",
        role=role,
    ))


def _admin_token(client):
    response = client.post("/api/v1/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return response.json()["access_token"]


def test_admin_login_and_profile(client, db):
    _create_admin(db)

    token = _admin_token(client)
    response = client.get("/api/v1/admin/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    body = response.json()
    assert body["email"] == ADMIN_EMAIL
    assert body["role"] == "admin"
    assert body["permissions"]["canManageAdmins"] is True


def test_admin_failures_share_one_message(client, db):
    _create_admin(db)

    wrong_password = client.post("/api/v1/admin/login", json={"email": ADMIN_EMAIL, "password": "wrong"})
    unknown_email = client.post("/api/v1/admin/login", json={"email": "nobody@dinarexchange.co.nz", "password": "x"})

    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()

    failures = asyncio.run(db.audit_logs.count_documents({"action": "failed_login"}))
    assert failures == 2


def test_admin_locked_after_five_failures(client, db):
    _create_admin(db)
    for _ in range(5):
        client.post("/api/v1/admin/login", json={"email": ADMIN_EMAIL, "password": "wrong"})

    response = client.post("/api/v1/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})

    assert response.status_code == 401
    admin = asyncio.run(AdminService.get_by_email(db, ADMIN_EMAIL))
    assert admin.lock_until is not None


def test_admin_me_requires_token(client):
    assert client.get("/api/v1/admin/me").status_code == 401
    assert client.get("/api/v1/admin/me", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_audit_logs_list_login_events(client, db):
    _create_admin(db)
    token = _admin_token(client)

    response = client.get("/api/v1/admin/audit-logs", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    entry = body["logs"][0]
    assert entry["action"] == "login"
    assert entry["category"] == "authentication"


def test_audit_summary_is_for_admins_and_managers(client, db):
    _create_admin(db, role="support")
    token = _admin_token(client)

    response = client.get("/api/v1/admin/audit-logs/summary", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


def test_admin_logout_is_audited(client, db):
    _create_admin(db)
    token = _admin_token(client)

    response = client.post("/api/v1/admin/logout", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert asyncio.run(db.audit_logs.count_documents({"action": "logout"})) == 1
