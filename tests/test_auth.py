from __future__ import annotations
import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from extensions import db
from models import User

@pytest.fixture()
def client_app():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        db.session.add_all([
            User(email="admin@example.com", password_hash=generate_password_hash("adminpass"), role="ADMIN", is_active=True),
            User(email="off@example.com", password_hash=generate_password_hash("offpass"), role="ADMIN", is_active=False),
        ])
        db.session.commit()
        yield app
        db.drop_all()

@pytest.fixture()
def client(client_app):
    return client_app.test_client()

def test_unauthorized_401(client):
    r = client.get("/api/v1/admin/elective-groups")
    assert r.status_code == 401
    assert r.get_json() == {"error": "unauthorized"}

def test_missing_credentials(client):
    r = client.post("/api/v1/auth/login", json={"email": "admin@example.com"})
    assert r.status_code == 400
    assert r.get_json()["error"] == "missing_credentials"

def test_wrong_password(client):
    r = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.get_json()["error"] == "invalid_credentials"

def test_inactive_user(client):
    r = client.post("/api/v1/auth/login", json={"email": "off@example.com", "password": "offpass"})
    assert r.status_code == 403

def test_login_then_logout(client):
    r = client.post("/api/v1/auth/login", json={"email": "ADMIN@example.com ", "password": "adminpass"})
    assert r.status_code == 200
    js = r.get_json()
    assert js["ok"] is True and js["user"]["role"] == "ADMIN"

    assert client.get("/api/v1/admin/elective-groups").status_code == 200

    assert client.post("/api/v1/auth/logout").status_code == 200
    assert client.get("/api/v1/admin/elective-groups").status_code == 401

def test_csrf_enforced_when_enabled():
    app = create_app("test")
    app.config["WTF_CSRF_ENABLED"] = True
    with app.app_context():
        db.create_all()
        db.session.add(User(email="admin@example.com", password_hash=generate_password_hash("adminpass"), role="ADMIN"))
        db.session.commit()
        c = app.test_client()
        r = c.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "adminpass"})
        assert r.status_code == 400
        assert r.get_json()["error"] == "csrf_failed"

        token = c.get("/api/v1/csrf").get_json()["csrf"]
        r = c.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "adminpass"},
                   headers={"X-CSRF-Token": token})
        assert r.status_code == 200
        db.drop_all()
