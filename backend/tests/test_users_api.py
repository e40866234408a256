from app.models.user import UserRole
from conftest import PASSWORD, auth_headers

USERS = "/api/v1/users"


class TestListing:
    def test_editor_lists_users(self, client, editor, reader, author):
        body = client.get(USERS, headers=auth_headers(editor)).json()
        assert body["total"] == 3
        assert {u["username"] for u in body["items"]} == {"editor", "reader", "author"}

    def test_filter_by_role_and_search(self, client, editor, reader, author):
        headers = auth_headers(editor)
        by_role = client.get(USERS, params={"role": "author"}, headers=headers).json()
        assert [u["username"] for u in by_role["items"]] == ["author"]
        by_name = client.get(USERS, params={"search": "ada"}, headers=headers).json()
        assert [u["username"] for u in by_name["items"]] == ["author"]

    def test_search_treats_underscore_literally(self, client, make_user, editor, reader):
        make_user(username="jo_doe")
        body = client.get(USERS, params={"search": "_"}, headers=auth_headers(editor)).json()
        assert [u["username"] for u in body["items"]] == ["jo_doe"]

    def test_authors_cannot_list(self, client, author):
        assert client.get(USERS, headers=auth_headers(author)).status_code == 403

    def test_anonymous_cannot_list(self, client):
        response = client.get(USERS)
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"


class TestProfileUpdate:
    def test_update_own_profile(self, client, reader):
        response = client.put(f"{USERS}/{reader.id}", json={"bio": "Hello"}, headers=auth_headers(reader))
        assert response.status_code == 200
        assert response.json()["bio"] == "Hello"

    def test_cannot_update_someone_else(self, client, reader, author):
        response = client.put(f"{USERS}/{author.id}", json={"bio": "Hacked"}, headers=auth_headers(reader))
        assert response.status_code == 403

    def test_admin_updates_anyone(self, client, admin, reader):
        response = client.put(f"{USERS}/{reader.id}", json={"first_name": "Rita"}, headers=auth_headers(admin))
        assert response.json()["first_name"] == "Rita"


class TestAdministration:
    def test_promote_takes_effect_immediately(self, client, admin, reader):
        response = client.patch(f"{USERS}/{reader.id}/admin", json={"role": "author"}, headers=auth_headers(admin))
        assert response.json()["role"] == "author"
        # the old token still carries "reader"; the role is read from the database
        created = client.post(
            "/api/v1/articles", json={"title": "Promoted", "content": "Body"}, headers=auth_headers(reader)
        )
        assert created.status_code == 201

    def test_editor_cannot_change_roles(self, client, editor, reader):
        response = client.patch(f"{USERS}/{reader.id}/admin", json={"role": "admin"}, headers=auth_headers(editor))
        assert response.status_code == 403

    def test_admin_cannot_demote_self(self, client, admin):
        headers = auth_headers(admin)
        assert client.patch(f"{USERS}/{admin.id}/admin", json={"role": "editor"}, headers=headers).status_code == 400
        assert client.patch(f"{USERS}/{admin.id}/admin", json={"is_active": False}, headers=headers).status_code == 400

    def test_deactivated_user_is_locked_out(self, client, admin, reader):
        client.patch(f"{USERS}/{reader.id}/admin", json={"is_active": False}, headers=auth_headers(admin))
        response = client.get("/api/v1/auth/me", headers=auth_headers(reader))
        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_INACTIVE"
        login = client.post("/api/v1/auth/login", json={"email": reader.email, "password": PASSWORD})
        assert login.status_code in (401, 403)

    def test_delete_user(self, client, admin, reader):
        headers = auth_headers(admin)
        assert client.delete(f"{USERS}/{reader.id}", headers=headers).status_code == 204
        assert client.get(f"{USERS}/{reader.id}").status_code == 404
        assert client.get("/api/v1/auth/me", headers=auth_headers(reader)).status_code == 401
        assert client.get(USERS, headers=headers).json()["total"] == 1

    def test_admin_cannot_delete_self(self, client, admin):
        assert client.delete(f"{USERS}/{admin.id}", headers=auth_headers(admin)).status_code == 400

    def test_role_filter_rejects_unknown_role(self, client, admin):
        assert client.get(USERS, params={"role": "owner"}, headers=auth_headers(admin)).status_code == 422


