from fastapi.testclient import TestClient

from ledgervote.main import (
    ALLOWED_ORIGINS,
    SECURITY_HEADERS,
    STRICT_TRANSPORT_SECURITY,
    app,
)

client = TestClient(app)

def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_security_headers_present():
    response = client.get("/health")
    for header, value in SECURITY_HEADERS.items():
        assert response.headers.get(header) == value
    assert response.headers.get("Strict-Transport-Security") == STRICT_TRANSPORT_SECURITY


def test_security_headers_on_error_responses(api):
    response = client.get("/sessions/42")
    assert response.status_code == 422
    assert response.headers.get("X-Frame-Options") == "DENY"


def test_cors_preflight_allows_known_origin():
    origin = ALLOWED_ORIGINS[0]
    response = client.options(
        "/sessions",
        headers={
            "origin": origin,
            "access-control-request-method": "GET",
            "access-control-request-headers": "authorization",
        },
    )

    assert response.status_code == 200
    assert response.headers.get("access-control-allow-origin") == origin
    assert response.headers.get("access-control-allow-credentials") == "true"


def test_put_and_delete_are_refused(api):
    r = client.put("/sessions/0", json={})
    assert r.status_code == 405
    assert r.headers.get("Allow") == "GET, POST, OPTIONS"

    r = client.delete("/admin/whitelist")
    assert r.status_code == 405


def test_post_requires_json_body(api):
    r = client.post(
        "/sessions/0/vote",
        content="candidate_id=1",
        headers={"content-type": "application/x-www-form-urlencoded"},
    )
    assert r.status_code == 415
