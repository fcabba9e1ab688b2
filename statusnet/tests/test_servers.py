#!/usr/bin/env python3
"""
statusnet HTTP tests

All four services run as FastAPI apps behind TestClients and talk to each
other through the real httpx clients, so these cover the full request path:
routing, error rendering, status-code mapping between services.
"""

from statusnet.tokens import Permission


def _sign_on(user_http, user_id="alice", secret="pw1"):
    r = user_http.post(f"/sign-on/{user_id}", json={"secret": secret})
    assert r.status_code == 200, r.text
    return r


# =============================================================================
# END-TO-END SCENARIOS
# =============================================================================

class TestScenarios:
    def test_sign_on_and_add_friend(self, user_http):
        r = _sign_on(user_http)
        assert r.json()["user_id"] == "alice"

        r = user_http.put("/add-friend/alice/CA/bob")
        assert r.status_code == 200
        assert r.json() == {"friends": "CA;bob"}

        r = user_http.get("/friends/alice")
        assert r.status_code == 200
        assert r.json() == {"friends": "CA;bob"}

    def test_sign_off_then_read_is_forbidden(self, user_http):
        _sign_on(user_http)
        assert user_http.post("/sign-off/alice").status_code == 200

        r = user_http.get("/friends/alice")
        assert r.status_code == 403

    def test_status_reaches_friends(self, user_http, records_http):
        _sign_on(user_http)
        user_http.put("/add-friend/alice/CA/bob")

        r = user_http.put("/update-status/alice/hi")
        assert r.status_code == 200

        bob = records_http.get("/admin/profiles/CA/bob").json()
        assert bob["updates"] == "hi\n"
        alice = records_http.get("/admin/profiles/US/alice").json()
        assert alice["status"] == "hi"

    def test_notifier_down_status_still_saved(self, user_http_push_down, records_http):
        _sign_on(user_http_push_down)
        user_http_push_down.put("/add-friend/alice/CA/bob")

        r = user_http_push_down.put("/update-status/alice/hi")
        assert r.status_code == 503

        alice = records_http.get("/admin/profiles/US/alice").json()
        assert alice["status"] == "hi"
        bob = records_http.get("/admin/profiles/CA/bob").json()
        assert bob["updates"] == ""


# =============================================================================
# USER SERVER
# =============================================================================

class TestUserServer:
    def test_bad_credentials(self, user_http):
        r = user_http.post("/sign-on/alice", json={"secret": "wrong"})
        assert r.status_code == 404
        assert "detail" in r.json()

        r = user_http.post("/sign-on/mallory", json={"secret": "pw1"})
        assert r.status_code == 404

    def test_malformed_sign_on(self, user_http):
        assert user_http.post("/sign-on/alice", json={}).status_code == 400
        assert user_http.post("/sign-on/alice", json={"secret": ""}).status_code == 400

    def test_sign_off_when_not_signed_on(self, user_http):
        assert user_http.post("/sign-off/alice").status_code == 404

    def test_unfriend(self, user_http):
        _sign_on(user_http)
        user_http.put("/add-friend/alice/CA/bob")
        user_http.put("/add-friend/alice/US/carol")

        r = user_http.put("/unfriend/alice/CA/bob")
        assert r.json() == {"friends": "US;carol"}

    def test_reserved_character_in_friend(self, user_http):
        _sign_on(user_http)
        assert user_http.put("/add-friend/alice/CA/b;ob").status_code == 400

    def test_missing_status_changes_nothing(self, user_http, records_http):
        _sign_on(user_http)
        user_http.put("/add-friend/alice/CA/bob")
        assert user_http.put("/update-status/alice/hi").status_code == 200

        for path in ("/update-status/alice", "/update-status/alice/"):
            assert user_http.put(path).status_code == 400, path

        assert records_http.get("/admin/profiles/US/alice").json()["status"] == "hi"
        assert records_http.get("/admin/profiles/CA/bob").json()["updates"] == "hi\n"

    def test_missing_path_segments(self, user_http):
        _sign_on(user_http)
        assert user_http.get("/friends").status_code == 400
        assert user_http.get("/friends/").status_code == 400
        assert user_http.put("/add-friend/alice/CA").status_code == 400
        assert user_http.put("/unfriend/alice").status_code == 400
        assert user_http.post("/sign-off/").status_code == 400
        assert user_http.get("/nowhere").status_code == 404

    def test_status_with_spaces(self, user_http, records_http):
        _sign_on(user_http)
        r = user_http.put("/update-status/alice/out to lunch")
        assert r.status_code == 200
        assert records_http.get("/admin/profiles/US/alice").json()["status"] == "out to lunch"

    def test_signed_off_operations(self, user_http):
        assert user_http.put("/add-friend/alice/CA/bob").status_code == 403
        assert user_http.put("/update-status/alice/hi").status_code == 403

    def test_health_counts_sessions(self, user_http):
        _sign_on(user_http)
        body = user_http.get("/health").json()
        assert body["status"] == "healthy"
        assert body["sessions"] == 1


# =============================================================================
# AUTH SERVER
# =============================================================================

class TestAuthServer:
    def test_update_token(self, seeded, auth_http, signer):
        r = auth_http.post("/tokens/update/alice", json={"secret": "pw1"})
        assert r.status_code == 200
        body = r.json()
        assert (body["partition"], body["row"], body["permission"]) == ("US", "alice", "read+update")
        assert signer.verifier().decode(body["token"]) is not None

    def test_read_token(self, seeded, auth_http):
        r = auth_http.post("/tokens/read/bob", json={"secret": "pw2"})
        assert r.status_code == 200
        assert r.json()["permission"] == "read"

    def test_bad_credentials(self, seeded, auth_http):
        assert auth_http.post("/tokens/read/alice", json={"secret": "x"}).status_code == 404
        assert auth_http.post("/tokens/read/nobody", json={"secret": "x"}).status_code == 404

    def test_missing_secret(self, seeded, auth_http):
        assert auth_http.post("/tokens/read/alice", json={}).status_code == 400


# =============================================================================
# RECORD SERVER
# =============================================================================

class TestRecordServer:
    def test_admin_crud(self, records_http):
        r = records_http.put("/admin/profiles/UK/dave", json={"status": "x"})
        assert r.status_code == 200
        assert r.json() == {"status": "x"}

        r = records_http.put("/admin/profiles/UK/dave", json={"friends": ""})
        assert r.json() == {"status": "x", "friends": ""}

        assert records_http.delete("/admin/profiles/UK/dave").json() == {"deleted": True}
        r = records_http.get("/admin/profiles/UK/dave")
        assert r.status_code == 404
        assert r.json() == {"detail": "Not found"}

    def test_non_scalar_rejected(self, records_http):
        r = records_http.put("/admin/profiles/UK/dave", json={"friends": ["CA", "bob"]})
        assert r.status_code == 400

    def test_scans(self, seeded, records_http):
        r = records_http.get("/admin/profiles/US")
        assert [rec["row"] for rec in r.json()] == ["alice", "carol"]

        r = records_http.get("/admin/profiles", params={"has": "friends"})
        assert len(r.json()) == 3

        assert records_http.get("/admin/nothing").status_code == 404

    def test_token_read_and_update(self, seeded, records_http, signer):
        token = signer.issue("profiles", "US", "alice", Permission.READ_UPDATE)

        r = records_http.put(f"/auth/profiles/{token}/US/alice", json={"status": "hi"})
        assert r.status_code == 200

        r = records_http.get(f"/auth/profiles/{token}/US/alice")
        assert r.json()["status"] == "hi"

    def test_token_outcomes(self, seeded, records_http, signer):
        read_token = signer.issue("profiles", "US", "alice", Permission.READ)

        r = records_http.put(f"/auth/profiles/{read_token}/US/alice", json={"status": "hi"})
        assert r.status_code == 403
        assert records_http.get(f"/auth/profiles/{read_token}/CA/bob").status_code == 404
        assert records_http.get("/auth/profiles/garbage/US/alice").status_code == 404

    def test_health(self, records_http):
        assert records_http.get("/health").json()["service"] == "records"


# =============================================================================
# PUSH SERVER
# =============================================================================

class TestPushServer:
    def test_push(self, seeded, push_http, records_http):
        r = push_http.post("/push-status/alice",
                           json={"friends": "CA;bob|UK;ghost", "status": "hi"})
        assert r.status_code == 200
        assert r.json() == {"delivered": 1, "skipped": 1}
        assert records_http.get("/admin/profiles/CA/bob").json()["updates"] == "hi\n"

    def test_multiline_rejected(self, seeded, push_http):
        r = push_http.post("/push-status/alice", json={"friends": "CA;bob", "status": "a\nb"})
        assert r.status_code == 400
