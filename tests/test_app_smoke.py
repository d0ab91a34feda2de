import pytest


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.get_json() == {"ok": True}


@pytest.mark.parametrize("method,path", [
    ("get", "/me"),
    ("get", "/projects"),
    ("post", "/projects"),
    ("get", "/projects/1/dailies"),
    ("get", "/dailies"),
    ("post", "/dailies"),
    ("post", "/dailies/1/toggle"),
    ("patch", "/dailies/1"),
    ("delete", "/dailies/1"),
])
def test_protected_routes_require_a_token(client, method, path):
    r = getattr(client, method)(path, headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401
    assert r.get_json()["error"] == "unauthenticated"

    r = getattr(client, method)(path)
    assert r.status_code == 401
