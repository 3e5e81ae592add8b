"""
Tests for the FastAPI host: authentication, SCIM endpoints and error shaping.

Uses FastAPI's TestClient against a SQLite database.
"""

import base64
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from scim_sql_bridge.config import SQLBridgeSettings
from scim_sql_bridge.main import create_app
from scim_sql_bridge.models import UserQueryResult

TOKEN = "test-token-123"
AUTH = {"Authorization": f"Bearer {TOKEN}"}
SCIM_HEADERS = {**AUTH, "Content-Type": "application/scim+json"}


@pytest.fixture
def settings(connection_settings):
    return SQLBridgeSettings(
        _env_file=None,
        scim_bearer_token=TOKEN,
        connection=connection_settings,
    )


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))


@pytest.fixture
def sample_scim_user():
    """Sample SCIM user as a provisioning client sends it"""
    return {
        "schemas": ["urn:ietf:params:scim:schemas:core:2.0:User"],
        "userName": "jdoe",
        "externalId": "jdoe",
        "active": True,
        "name": {"givenName": "Jane", "familyName": "Doe"},
        "emails": [{"type": "other", "value": "j@x.com", "primary": True}],
    }


class TestAuthentication:

    def test_health_is_open(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_token(self, client):
        response = client.get("/scim/v2/Users")

        assert response.status_code == 401
        assert response.json()["detail"] == "Bearer token missing"
        assert response.headers["content-type"] == "application/scim+json"

    def test_wrong_token(self, client):
        response = client.get("/scim/v2/Users", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["schemas"] == ["urn:ietf:params:scim:api:messages:2.0:Error"]

    def test_token_not_configured(self, connection_settings):
        with pytest.raises(ValidationError, match="SCIM_BEARER_TOKEN is required"):
            SQLBridgeSettings(_env_file=None, connection=connection_settings)


class TestUserEndpoints:

    def test_create_and_get(self, client, sample_scim_user):
        response = client.post("/scim/v2/Users", json=sample_scim_user, headers=SCIM_HEADERS)

        assert response.status_code == 201
        created = response.json()
        assert created["id"] == "jdoe"
        assert created["userName"] == "jdoe"
        assert created["emails"] == [{"type": "other", "value": "j@x.com"}]
        assert created["meta"]["resourceType"] == "User"

        response = client.get("/scim/v2/Users/jdoe", headers=AUTH)
        assert response.status_code == 200
        assert response.json()["name"] == {"givenName": "Jane", "familyName": "Doe"}

    def test_location_resolves_for_ids_with_slash(self, client, db, sample_scim_user):
        sample_scim_user["externalId"] = "a b/c"
        created = client.post("/scim/v2/Users", json=sample_scim_user, headers=SCIM_HEADERS).json()

        location = created["meta"]["location"]
        assert location.endswith("/scim/v2/Users/a%20b%2Fc")

        response = client.get(location, headers=AUTH)
        assert response.status_code == 200
        assert response.json()["id"] == "a b/c"

        response = client.patch(
            location,
            json={"Operations": [{"op": "replace", "path": "active", "value": False}]},
            headers=SCIM_HEADERS,
        )
        assert response.json()["active"] is False

        assert client.delete(location, headers=AUTH).status_code == 204
        assert db.user_ids() == []

    def test_create_without_external_id(self, client, sample_scim_user):
        del sample_scim_user["externalId"]
        response = client.post("/scim/v2/Users", json=sample_scim_user, headers=SCIM_HEADERS)

        assert response.status_code == 400
        assert response.json()["scimType"] == "invalidValue"

    def test_create_duplicate(self, client, sample_scim_user):
        client.post("/scim/v2/Users", json=sample_scim_user, headers=SCIM_HEADERS)
        response = client.post("/scim/v2/Users", json=sample_scim_user, headers=SCIM_HEADERS)

        assert response.status_code == 409
        assert response.json()["scimType"] == "uniqueness"

    def test_get_unknown_user(self, client):
        response = client.get("/scim/v2/Users/ghost", headers=AUTH)
        assert response.status_code == 404

    def test_list_with_paging_and_filter(self, client, db):
        for user_id in ("u1", "u2", "u3"):
            db.insert_user(UserID=user_id, Enabled="true")

        response = client.get("/scim/v2/Users", params={"startIndex": 2, "count": 1}, headers=AUTH)
        body = response.json()
        assert response.status_code == 200
        assert body["totalResults"] == 3
        assert body["startIndex"] == 2
        assert body["itemsPerPage"] == 1

        response = client.get("/scim/v2/Users", params={"filter": 'userName eq "u2"'}, headers=AUTH)
        body = response.json()
        assert body["totalResults"] == 1
        assert body["Resources"][0]["id"] == "u2"

    def test_filter_attribute_is_case_insensitive(self, client, db):
        db.insert_user(UserID="jdoe", Enabled="true")

        response = client.get("/scim/v2/Users", params={"filter": 'username eq "jdoe"'}, headers=AUTH)

        assert response.status_code == 200
        assert [r["id"] for r in response.json()["Resources"]] == ["jdoe"]

    def test_list_attribute_projection(self, client, db):
        db.insert_user(UserID="u1", Enabled="true", FirstName="Una", LastName="One")

        response = client.get(
            "/scim/v2/Users",
            params={"attributes": "name.givenName"},
            headers=AUTH,
        )
        resource = response.json()["Resources"][0]
        assert resource["id"] == "u1"
        assert resource["name"] == {"givenName": "Una"}
        assert "active" not in resource

    def test_unsupported_filter(self, client):
        response = client.get("/scim/v2/Users", params={"filter": 'displayName eq "x"'}, headers=AUTH)

        assert response.status_code == 400
        body = response.json()
        assert body["scimType"] == "invalidFilter"
        assert body["detail"].startswith("getUsers error: not supporting simple filtering")

    def test_patch_user(self, client, db):
        db.insert_user(UserID="jdoe", Enabled="true", FirstName="Jane", Email="j@x.com")

        response = client.patch(
            "/scim/v2/Users/jdoe",
            json={
                "schemas": ["urn:ietf:params:scim:api:messages:2.0:PatchOp"],
                "Operations": [
                    {"op": "replace", "path": "active", "value": False},
                    {"op": "remove", "path": 'emails[type eq "other"].value'},
                ],
            },
            headers=SCIM_HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["active"] is False
        assert "emails" not in body
        assert db.user_row("jdoe")["FirstName"] == "Jane"

    def test_patch_unknown_user(self, client):
        response = client.patch(
            "/scim/v2/Users/ghost",
            json={"Operations": [{"op": "replace", "path": "active", "value": False}]},
            headers=SCIM_HEADERS,
        )
        assert response.status_code == 404

    def test_delete_user(self, client, db):
        db.insert_user(UserID="jdoe", Enabled="true")

        response = client.delete("/scim/v2/Users/jdoe", headers=AUTH)

        assert response.status_code == 204
        assert db.user_ids() == []

    def test_base_entity_path(self, settings):
        app = create_app(settings)
        app.state.plugin.get_users = AsyncMock(return_value=UserQueryResult())
        client = TestClient(app)

        response = client.get("/tenant-a/scim/v2/Users", headers=AUTH)

        assert response.status_code == 200
        assert app.state.plugin.get_users.call_args.args[0] == "tenant-a"


class TestGroupEndpoints:

    def test_list_groups_is_empty(self, client):
        response = client.get("/scim/v2/Groups", params={"filter": 'members.value eq "jdoe"'}, headers=AUTH)

        assert response.status_code == 200
        assert response.json()["totalResults"] == 0
        assert response.json()["Resources"] == []

    def test_create_group(self, client):
        response = client.post(
            "/scim/v2/Groups",
            json={"externalId": "admins", "displayName": "Admins", "members": [{"value": "jdoe"}]},
            headers=SCIM_HEADERS,
        )
        assert response.status_code == 201
        assert response.json()["id"] == "admins"

    def test_modify_group_not_supported(self, client):
        response = client.patch(
            "/scim/v2/Groups/admins",
            json={"Operations": [{"op": "add", "path": "members", "value": [{"value": "jdoe"}]}]},
            headers=SCIM_HEADERS,
        )
        assert response.status_code == 501
        assert response.json()["detail"] == "modifyGroup error: modifyGroup is not supported"

    def test_delete_group_not_supported(self, client):
        response = client.delete("/scim/v2/Groups/admins", headers=AUTH)
        assert response.status_code == 501


class TestPassThrough:

    @pytest.fixture
    def app(self, connection_settings):
        settings = SQLBridgeSettings(
            _env_file=None,
            auth_pass_through=True,
            connection=connection_settings,
        )
        return create_app(settings)

    def test_authorization_forwarded_to_plugin(self, app):
        app.state.plugin.get_users = AsyncMock(return_value=UserQueryResult())
        header = "Basic " + base64.b64encode(b"dbuser:dbpass").decode()

        response = TestClient(app).get("/scim/v2/Users", headers={"Authorization": header})

        assert response.status_code == 200
        ctx = app.state.plugin.get_users.call_args.args[3]
        assert ctx.authorization == header

    def test_authorization_required(self, app):
        response = TestClient(app).get("/scim/v2/Users")
        assert response.status_code == 401

    def test_database_rejects_credentials(self, app):
        # sqlite accepts no credentials, so the connection fails
        response = TestClient(app).get("/scim/v2/Users", headers={"Authorization": "Bearer abc"})

        assert response.status_code == 503
        assert "connect error" in response.json()["detail"]
