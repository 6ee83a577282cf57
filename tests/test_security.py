from datetime import timedelta

from config import get_settings
from security import (
    bootstrap_super_admin, can_modify, create_access_token, hash_password, verify_password, with_hashed_password,
)


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)
    assert not verify_password("secret123", None)


def test_with_hashed_password_replaces_or_drops_plaintext():
    fields = {"name": "Abebe", "password": "secret123"}
    hashed = with_hashed_password(fields)
    assert fields["password"] == "secret123"
    assert hashed["name"] == "Abebe"
    assert verify_password("secret123", hashed["password"])
    assert with_hashed_password({"name": "Abebe", "password": ""}) == {"name": "Abebe"}
    assert with_hashed_password({"name": "Abebe", "password": None}) == {"name": "Abebe"}


def test_stored_passwords_are_never_plaintext(client, auth, db, super_admin):
    client.post("/users/register", json={"name": "Abebe", "password": "secret123"})
    body = {"username": "seller2", "name": "Seller Two", "email": "s2@example.com", "password": "secret123"}
    client.post("/admin-users", json=body, headers=auth(super_admin))
    for stored in (db["user"].find_one({"name": "Abebe"}), db["adminuser"].find_one({"username": "seller2"})):
        assert stored["password"] != "secret123"
        assert verify_password("secret123", stored["password"])


def test_can_modify(make_admin):
    owner = make_admin("owner")
    other = make_admin("other")
    boss = make_admin("boss", clearance_level="super_admin")
    doc = {"createdBy": owner["_id"]}
    assert can_modify(owner, doc)
    assert not can_modify(other, doc)
    assert can_modify(boss, doc)


def test_bootstrap_runs_once(db):
    first = bootstrap_super_admin(db, get_settings())
    assert first["clearanceLevel"] == "super_admin"
    assert verify_password("admin123", first["password"])
    assert bootstrap_super_admin(db, get_settings()) is None
    assert db["adminuser"].count_documents({}) == 1


def test_missing_and_malformed_tokens(client):
    assert client.get("/admin-users/profile").status_code == 401
    res = client.get("/admin-users/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.headers["www-authenticate"] == "Bearer"


def test_expired_token(client, super_admin):
    token = create_access_token(str(super_admin["_id"]), "admin", get_settings(), expires_delta=timedelta(minutes=-1))
    res = client.get("/admin-users/profile", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid or expired token."


def test_token_for_deleted_admin(client, auth, db, make_admin):
    admin = make_admin("gone")
    headers = auth(admin)
    db["adminuser"].delete_one({"_id": admin["_id"]})
    assert client.get("/admin-users/profile", headers=headers).status_code == 401


def test_regular_admin_is_not_super_admin(client, auth, make_admin):
    res = client.get("/admin-users", headers=auth(make_admin("seller1")))
    assert res.status_code == 403
    assert res.json()["message"] == "Access denied. Super admin privileges required."
