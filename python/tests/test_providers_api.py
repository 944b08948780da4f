"""Route tests for /providers.

Tests cover:
- POST /providers[.json]: signature, manage_providers, flag validation
- DELETE /providers/{name}[.json]: signature over the path name, permissions
- Unknown routes and methods
"""

from tests.helpers import signed


def create_body(root, name, flags=None):
    params = {"provider": root.name, "name": name}
    if flags is not None:
        params["flags"] = flags
    return signed(params, root)


class TestCreateProviderRoute:
    def test_create(self, client, root_provider):
        response = client.post(
            "/providers.json",
            json=create_body(root_provider, "acme_films", {"check_sign": True}),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "acme_films"
        assert data["flags"] == {
            "check_sign": True,
            "check_token": False,
            "manage_providers": False,
        }
        assert len(data["sign_iv"]) == 32
        assert len(data["sign_key"]) == 64
        assert "crypto_key" not in data
        assert "crypto_iv" not in data

    def test_created_provider_can_sign(self, client, server, root_provider):
        data = client.post(
            "/providers.json", json=create_body(root_provider, "acme_films")
        ).json()
        provider = server.providers.get(data["name"])

        body = signed({"provider": "acme_films", "content_id": 1}, provider)
        response = client.post("/licenses.json", json=body)

        assert response.status_code == 200

    def test_flags_accept_numeric_truthiness(self, client, root_provider):
        response = client.post(
            "/providers.json",
            json=create_body(root_provider, "acme_films", {"check_token": 1, "check_sign": 0}),
        )
        assert response.json()["flags"]["check_token"] is True
        assert response.json()["flags"]["check_sign"] is False

    def test_unknown_flag_rejected(self, client, server, root_provider):
        response = client.post(
            "/providers.json",
            json=create_body(root_provider, "acme_films", {"launch_rockets": True}),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid flags"

    def test_missing_signature(self, client, root_provider):
        response = client.post(
            "/providers.json", json={"provider": root_provider.name, "name": "acme_films"}
        )
        assert response.status_code == 401

    def test_forbidden_without_manage_providers(self, client, plain_provider):
        body = signed({"provider": plain_provider.name, "name": "acme_films"}, plain_provider)
        response = client.post("/providers.json", json=body)

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Forbidden"

    def test_signature_checked_before_permission(self, client, plain_provider):
        response = client.post(
            "/providers.json", json={"provider": plain_provider.name, "name": "acme_films"}
        )
        assert response.status_code == 401

    def test_name_missing(self, client, root_provider):
        body = signed({"provider": root_provider.name}, root_provider)
        response = client.post("/providers", json=body)
        assert response.status_code == 400
        assert response.text == "Name missing"

    def test_invalid_name(self, client, root_provider):
        response = client.post("/providers", json=create_body(root_provider, "no"))
        assert response.status_code == 400
        assert response.text == "Invalid name"

    def test_name_exists(self, client, root_provider):
        response = client.post("/providers.json", json=create_body(root_provider, "root_provider"))
        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Name exists"


class TestDestroyProviderRoute:
    def test_destroy(self, client, server, root_provider):
        created = server.providers.create("acme_films", {"check_sign": True})
        body = signed({"provider": root_provider.name}, root_provider, name="acme_films")

        response = client.request("DELETE", "/providers/acme_films.json", json=body)

        assert response.status_code == 200
        assert response.json() == created.model_dump()
        assert client.get("/licenses/1", params={"provider": "acme_films"}).status_code == 404

    def test_destroy_plain(self, client, server, root_provider):
        server.providers.create("acme_films", {})
        body = signed({"provider": root_provider.name}, root_provider, name="acme_films")

        response = client.request("DELETE", "/providers/acme_films", json=body)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert '"name":"acme_films"' in response.text

    def test_signature_must_cover_path_name(self, client, server, root_provider):
        server.providers.create("acme_films", {})
        server.providers.create("other_films", {})
        body = signed({"provider": root_provider.name}, root_provider, name="acme_films")

        response = client.request("DELETE", "/providers/other_films.json", json=body)

        assert response.status_code == 401

    def test_forbidden(self, client, server, plain_provider):
        server.providers.create("acme_films", {})
        body = signed({"provider": plain_provider.name}, plain_provider, name="acme_films")

        response = client.request("DELETE", "/providers/acme_films.json", json=body)

        assert response.status_code == 403

    def test_unknown_target(self, client, root_provider):
        body = signed({"provider": root_provider.name}, root_provider, name="nobody_here")
        response = client.request("DELETE", "/providers/nobody_here.json", json=body)
        assert response.status_code == 404


class TestRouting:
    def test_unknown_path_plain(self, client):
        response = client.get("/nothing")
        assert response.status_code == 404
        assert response.text == "Not Found"

    def test_unknown_path_json(self, client):
        response = client.get("/nothing.json")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == 404

    def test_wrong_method_is_not_found(self, client):
        response = client.put("/licenses.json", json={})
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Not Found"

    def test_get_on_collection_is_not_found(self, client, plain_provider):
        response = client.get("/providers", params={"provider": plain_provider.name})
        assert response.status_code == 404

    def test_cors_echoes_origin(self, client, plain_provider):
        response = client.get(
            "/licenses/1",
            params={"provider": plain_provider.name},
            headers={"Origin": "https://player.example.com"},
        )
        assert response.headers["access-control-allow-origin"] == "https://player.example.com"
        assert response.headers["access-control-allow-credentials"] == "true"
