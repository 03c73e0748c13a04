"""API tests for login, admin-managed registration, roles and passwords."""

import bcrypt

from modules.meeting import models as meeting_models
from modules.security.model import User, UserRole
from modules.security.passwords import verify_password

PASSWORD = "secret123"


class TestLogin:
    """POST /auth/login"""

    def test_valid_credentials_return_token(self, client, organizer):
        r = client.post("/auth/login", json={"email": organizer.email, "password": PASSWORD})
        assert r.status_code == 200
        body = r.json()
        assert body["token_type"] == "bearer"
        assert body["user_id"] == organizer.id
        assert body["roles"] == ["Employee"]

        me = client.get("/users/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == organizer.email

    def test_email_is_case_insensitive(self, client, organizer):
        r = client.post("/auth/login", json={"email": organizer.email.upper(), "password": PASSWORD})
        assert r.status_code == 200

    def test_wrong_password(self, client, organizer):
        r = client.post("/auth/login", json={"email": organizer.email, "password": "nope"})
        assert r.status_code == 401

    def test_legacy_bcrypt_hash_is_upgraded(self, client, organizer, db):
        organizer.password_hash = bcrypt.hashpw(PASSWORD.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
        db.commit()

        assert client.post("/auth/login", json={"email": organizer.email, "password": PASSWORD}).status_code == 200
        db.refresh(organizer)
        assert organizer.password_hash.startswith("pbkdf2:sha256")

    def test_unknown_email(self, client):
        r = client.post("/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
        assert r.status_code == 401


class TestTokens:
    """Bearer handling on protected routes."""

    def test_missing_token(self, client, db):
        assert client.get("/meetings").status_code == 401

    def test_garbage_token(self, client, db):
        r = client.get("/meetings", headers={"Authorization": "Bearer not-a-jwt"})
        assert r.status_code == 401

    def test_token_of_deleted_user(self, client, auth_headers, make_user, db):
        gone = make_user("gone@example.com")
        headers = auth_headers(gone)
        db.delete(gone)
        db.commit()
        assert client.get("/meetings", headers=headers).status_code == 401


class TestRegister:
    """POST /auth/register is admin only."""

    body = {
        "first_name": "New",
        "last_name": "Hire",
        "email": "new.hire@example.com",
        "password": "welcome1",
        "role": "Guest",
    }

    def test_employee_cannot_register(self, client, auth_headers, organizer):
        r = client.post("/auth/register", json=self.body, headers=auth_headers(organizer))
        assert r.status_code == 403

    def test_admin_registers_user(self, client, auth_headers, admin, db):
        r = client.post("/auth/register", json=self.body, headers=auth_headers(admin))
        assert r.status_code == 201
        assert r.json()["roles"] == ["Guest"]

        user = db.query(User).filter_by(email="new.hire@example.com").one()
        assert verify_password("welcome1", user.password_hash)

    def test_duplicate_email_conflicts(self, client, auth_headers, admin, organizer):
        body = dict(self.body, email=organizer.email.upper())
        r = client.post("/auth/register", json=body, headers=auth_headers(admin))
        assert r.status_code == 409

    def test_admin_role_cannot_be_registered(self, client, auth_headers, admin):
        body = dict(self.body, role="Admin")
        r = client.post("/auth/register", json=body, headers=auth_headers(admin))
        assert r.status_code == 422


class TestRoles:
    """PUT /auth/role/{id}"""

    def test_admin_promotes_user(self, client, auth_headers, admin, organizer, db):
        r = client.put(f"/auth/role/{organizer.id}", json={"role": "Admin"}, headers=auth_headers(admin))
        assert r.status_code == 200
        assert r.json()["roles"] == ["Admin"]
        db.refresh(organizer)
        assert organizer.roles == [UserRole.ADMIN.value]

    def test_same_role_is_bad_input(self, client, auth_headers, admin, organizer):
        r = client.put(f"/auth/role/{organizer.id}", json={"role": "Employee"}, headers=auth_headers(admin))
        assert r.status_code == 400

    def test_non_admin_forbidden(self, client, auth_headers, organizer, invitee):
        r = client.put(f"/auth/role/{invitee.id}", json={"role": "Admin"}, headers=auth_headers(organizer))
        assert r.status_code == 403

    def test_unknown_user(self, client, auth_headers, admin):
        r = client.put("/auth/role/99999", json={"role": "Guest"}, headers=auth_headers(admin))
        assert r.status_code == 404


class TestChangePassword:
    """POST /auth/change-password"""

    def test_change_and_login_with_new_password(self, client, auth_headers, organizer):
        r = client.post(
            "/auth/change-password",
            json={"current_password": PASSWORD, "new_password": "brandnew1", "confirm_password": "brandnew1"},
            headers=auth_headers(organizer),
        )
        assert r.status_code == 200
        assert client.post("/auth/login", json={"email": organizer.email, "password": "brandnew1"}).status_code == 200
        assert client.post("/auth/login", json={"email": organizer.email, "password": PASSWORD}).status_code == 401

    def test_mismatched_confirmation(self, client, auth_headers, organizer):
        r = client.post(
            "/auth/change-password",
            json={"current_password": PASSWORD, "new_password": "brandnew1", "confirm_password": "brandnew2"},
            headers=auth_headers(organizer),
        )
        assert r.status_code == 400

    def test_wrong_current_password(self, client, auth_headers, organizer):
        r = client.post(
            "/auth/change-password",
            json={"current_password": "wrong", "new_password": "brandnew1", "confirm_password": "brandnew1"},
            headers=auth_headers(organizer),
        )
        assert r.status_code == 400


class TestDeleteUser:
    """DELETE /auth/{id}"""

    def test_admin_deletes_organizer_and_their_meetings(self, client, auth_headers, admin, organizer, meeting, db):
        meeting_id = meeting.id
        r = client.delete(f"/auth/{organizer.id}", headers=auth_headers(admin))
        assert r.status_code == 204
        db.expire_all()
        assert db.get(User, organizer.id) is None
        assert db.get(meeting_models.Meeting, meeting_id) is None

    def test_admin_cannot_delete_self(self, client, auth_headers, admin):
        assert client.delete(f"/auth/{admin.id}", headers=auth_headers(admin)).status_code == 400

    def test_employee_cannot_delete(self, client, auth_headers, organizer, invitee):
        assert client.delete(f"/auth/{invitee.id}", headers=auth_headers(organizer)).status_code == 403
