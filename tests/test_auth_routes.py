from chatauth.db.models import Role

PHONE = "13800138000"


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def _login(client, phone=PHONE, single_device=False):
    assert client.post("/api/auth/send-code", json={"phone": phone}).status_code == 200
    resp = client.post("/api/auth/login-with-code", json={"phone": phone, "code": "123456", "singleDeviceMode": single_device})
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_full_code_login_scenario(client, sms):
    resp = client.post("/api/auth/send-code", json={"phone": PHONE})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Verification code sent successfully"}
    assert sms.sent == [(PHONE, "123456")]

    resp = client.post("/api/auth/login-with-code", json={"phone": PHONE, "code": "123456"})
    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"accessToken", "refreshToken", "user"}
    assert body["user"]["phone"] == PHONE
    assert body["user"]["role"] == "USER"
    assert body["user"]["isAdmin"] is False
    assert set(body["user"]) == {"id", "phone", "name", "role", "isAdmin"}

    # Reusing the code fails
    resp = client.post("/api/auth/login-with-code", json={"phone": PHONE, "code": "123456"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid or expired verification code"
    assert resp.json()["code"] == "INVALID_OR_EXPIRED_CODE"

    me = client.get("/api/users/me", headers=bearer(body["accessToken"]))
    assert me.status_code == 200
    assert me.json()["id"] == body["user"]["id"]


def test_send_code_validates_phone(client):
    resp = client.post("/api/auth/send-code", json={"phone": "12345"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid phone number format"


def test_send_code_hourly_limit_is_400(client):
    for _ in range(10):
        assert client.post("/api/auth/send-code", json={"phone": PHONE}).status_code == 200
    resp = client.post("/api/auth/send-code", json={"phone": PHONE})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Too many verification codes requested. Please try again later."


def test_login_with_code_validates_code_length(client):
    resp = client.post("/api/auth/login-with-code", json={"phone": PHONE, "code": "123"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Verification code must be 6 digits"


def test_password_flow(client):
    _login(client)

    resp = client.post("/api/auth/login-with-password", json={"phone": PHONE, "password": "secret123"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Password not set. Please use SMS verification to login"

    client.post("/api/auth/send-code", json={"phone": PHONE})
    resp = client.post("/api/auth/set-password", json={"phone": PHONE, "code": "123456", "password": "secret123"})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Password set successfully"}

    resp = client.post("/api/auth/login-with-password", json={"phone": PHONE, "password": "secret123"})
    assert resp.status_code == 200
    assert resp.json()["user"]["phone"] == PHONE

    resp = client.post("/api/auth/login-with-password", json={"phone": PHONE, "password": "nope-nope"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid phone number or password"


def test_set_password_rejects_short_password_without_consuming_code(client):
    _login(client)
    client.post("/api/auth/send-code", json={"phone": PHONE})
    resp = client.post("/api/auth/set-password", json={"phone": PHONE, "code": "123456", "password": "12345"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Password must be between 6 and 255 characters"

    resp = client.post("/api/auth/set-password", json={"phone": PHONE, "code": "123456", "password": "123456"})
    assert resp.status_code == 200


def test_refresh_and_logout(client):
    tokens = _login(client)

    resp = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 200
    assert set(resp.json()) == {"accessToken", "user"}

    assert client.post("/api/auth/logout", json={"refreshToken": tokens["refreshToken"]}).json() == {"message": "Logged out successfully"}
    assert client.post("/api/auth/logout", json={"refreshToken": tokens["refreshToken"]}).status_code == 200

    resp = client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Refresh token not found or has been revoked"

    resp = client.post("/api/auth/refresh", json={"refreshToken": "garbage"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid or expired refresh token"


def test_logout_with_malformed_body(client):
    assert client.post("/api/auth/logout", json={}).status_code == 400


def test_single_device_mode_over_http(client):
    first = _login(client)
    second = _login(client, single_device=True)

    assert client.post("/api/auth/refresh", json={"refreshToken": first["refreshToken"]}).status_code == 401
    assert client.post("/api/auth/refresh", json={"refreshToken": second["refreshToken"]}).status_code == 200


def test_protected_route_errors(client):
    resp = client.get("/api/users/me")
    assert resp.status_code == 401
    assert resp.json()["code"] == "NO_TOKEN"

    resp = client.get("/api/users/me", headers={"Authorization": "Basic abc"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_FORMAT"

    resp = client.get("/api/users/me", headers=bearer("not-a-jwt"))
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_TOKEN"


def test_admin_routes_and_forced_reauthentication(client, make_user, token_issuer, user_repo):
    admin = make_user("13800000001", role=Role.ADMIN)
    admin_token = token_issuer.issue_access_token(user_repo.get_by_id(admin.id)).token
    member = _login(client)
    member_id = member["user"]["id"]

    # Plain users cannot reach admin routes
    resp = client.put(f"/api/users/{admin.id}/role", json={"role": "USER"}, headers=bearer(member["accessToken"]))
    assert resp.status_code == 403
    assert resp.json()["error"] == "Access denied. Required roles: ADMIN"

    resp = client.put(f"/api/users/{member_id}/role", json={"role": "MODERATOR"}, headers=bearer(admin_token))
    assert resp.status_code == 200
    assert resp.json()["role"] == "MODERATOR"
    # Role change revoked the member's refresh token
    assert client.post("/api/auth/refresh", json={"refreshToken": member["refreshToken"]}).status_code == 401

    resp = client.put(f"/api/users/{admin.id}/role", json={"role": "USER"}, headers=bearer(admin_token))
    assert resp.status_code == 403
    assert resp.json()["error"] == "Cannot change your own role"

    resp = client.put(f"/api/users/{member_id}/role", json={"role": "SUPERUSER"}, headers=bearer(admin_token))
    assert resp.status_code == 400


def test_suspension_blocks_existing_access_token(client, make_user, token_issuer, user_repo):
    moderator = make_user("13800000009", role=Role.MODERATOR)
    mod_token = token_issuer.issue_access_token(user_repo.get_by_id(moderator.id)).token
    member = _login(client)

    resp = client.post(f"/api/users/{member['user']['id']}/suspend", json={"reason": "spam"}, headers=bearer(mod_token))
    assert resp.status_code == 200
    assert resp.json()["isSuspended"] is True

    resp = client.get("/api/users/me", headers=bearer(member["accessToken"]))
    assert resp.status_code == 403
    assert resp.json()["code"] == "ACCOUNT_SUSPENDED"

    resp = client.post(f"/api/users/{member['user']['id']}/unsuspend", headers=bearer(mod_token))
    assert resp.status_code == 200
    assert client.get("/api/users/me", headers=bearer(member["accessToken"])).status_code == 200


def test_admin_creates_and_deletes_user(client, make_user, token_issuer, user_repo):
    admin = make_user("13800000001", role=Role.ADMIN)
    token = token_issuer.issue_access_token(user_repo.get_by_id(admin.id)).token

    resp = client.post("/api/users", json={"phone": "13900139000", "name": "Bob"}, headers=bearer(token))
    assert resp.status_code == 201
    created = resp.json()
    assert created["role"] == "USER"

    assert client.post("/api/users", json={"phone": "13900139000"}, headers=bearer(token)).status_code == 409

    resp = client.delete(f"/api/users/{created['id']}", headers=bearer(token))
    assert resp.status_code == 200
    assert client.delete(f"/api/users/{created['id']}", headers=bearer(token)).status_code == 404
    assert client.delete(f"/api/users/{admin.id}", headers=bearer(token)).json()["error"] == "Cannot delete yourself"


def test_chat_requires_auth_and_sets_rate_limit_headers(client, chat_provider):
    assert client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]}).status_code == 401

    tokens = _login(client)
    resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]}, headers=bearer(tokens["accessToken"]))
    assert resp.status_code == 200
    assert resp.json() == {"reply": "echo: hi"}
    assert resp.headers["X-RateLimit-Limit-Minute"] == "10"
    assert resp.headers["X-RateLimit-Remaining-Minute"] == "9"
    assert resp.headers["X-RateLimit-Limit-Hour"] == "100"
    assert resp.headers["X-RateLimit-Remaining-Hour"] == "99"


def test_chat_minute_limit_returns_429(client):
    tokens = _login(client)
    payload = {"messages": [{"role": "user", "content": "hi"}]}
    for _ in range(10):
        assert client.post("/api/chat", json=payload, headers=bearer(tokens["accessToken"])).status_code == 200
    resp = client.post("/api/chat", json=payload, headers=bearer(tokens["accessToken"]))
    assert resp.status_code == 429
    assert int(resp.headers["Retry-After"]) > 0


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_audit_logs_are_admin_only_and_filterable(client, make_user, token_issuer, user_repo):
    admin = make_user("13800000001", role=Role.ADMIN)
    admin_token = token_issuer.issue_access_token(user_repo.get_by_id(admin.id)).token
    member = _login(client)
    member_id = member["user"]["id"]

    resp = client.get("/api/users/audit-logs", headers=bearer(member["accessToken"]))
    assert resp.status_code == 403
    assert client.get("/api/users/audit-logs").status_code == 401

    assert client.put(f"/api/users/{member_id}/role", json={"role": "MODERATOR"}, headers=bearer(admin_token)).status_code == 200

    resp = client.get("/api/users/audit-logs", params={"targetId": member_id}, headers=bearer(admin_token))
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert body["limit"] == 50 and body["offset"] == 0
    actions = {log["action"] for log in body["logs"]}
    assert actions == {"user.role.changed", "session.invalidated"}
    changed = next(log for log in body["logs"] if log["action"] == "user.role.changed")
    assert changed["actorId"] == admin.id
    assert changed["details"] == {"old_role": "USER", "new_role": "MODERATOR"}

    resp = client.get("/api/users/audit-logs", params={"limit": 500}, headers=bearer(admin_token))
    assert resp.status_code == 400
