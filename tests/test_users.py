def register(client, **body):
    payload = {"name": "Abebe", "password": "secret123", "email": "abebe@example.com"}
    payload.update(body)
    return client.post("/users/register", json=payload)


def test_register_twice_with_same_email_conflicts(client):
    res = register(client)
    assert res.status_code == 200
    assert res.json()["data"]["token"]
    assert "password" not in res.json()["data"]

    res = register(client, name="Someone else")
    assert res.status_code == 400
    assert res.json()["message"] == "Email already exists."


def test_register_duplicate_phone_conflicts(client):
    register(client, email=None, phone="0911000000")
    res = register(client, email=None, phone="0911000000")
    assert res.status_code == 400
    assert res.json()["message"] == "Phone already exists."


def test_register_without_email_twice_is_fine(client):
    assert register(client, email=None, name="One").status_code == 200
    assert register(client, email=None, name="Two").status_code == 200


def test_register_picks_up_confirmed_email(client, db):
    db["emailverification"].insert_one({"email": "abebe@example.com", "verified": True})
    assert register(client).json()["data"]["emailVerified"] is True


def test_login_by_email_or_name(client):
    register(client)
    assert client.post("/users/login", json={"email": "ABEBE@example.com", "password": "secret123"}).status_code == 200
    assert client.post("/users/login", json={"name": "Abebe", "password": "secret123"}).status_code == 200
    assert client.post("/users/login", json={"name": "Abebe", "password": "nope"}).status_code == 401
    assert client.post("/users/login", json={"password": "secret123"}).status_code == 400


def test_customer_updates_own_account_only(client, auth, make_customer):
    me = make_customer("Me")
    other = make_customer("Other")

    res = client.put(f"/users/{other['_id']}", json={"name": "Hacked"}, headers=auth(me, "customer"))
    assert res.status_code == 403

    res = client.put(f"/users/{me['_id']}", json={"name": "Me Renamed"}, headers=auth(me, "customer"))
    assert res.json()["data"]["name"] == "Me Renamed"

    res = client.put(f"/users/{me['_id']}", json={"name": "Me", "password": "newpass1"}, headers=auth(me, "customer"))
    assert res.status_code == 400


def test_admin_token_is_not_a_customer_token(client, auth, make_customer, make_admin):
    me = make_customer("Me")
    res = client.put(f"/users/{me['_id']}", json={"name": "X"}, headers=auth(make_admin("seller1")))
    assert res.status_code == 401


def test_list_and_delete_are_admin_only(client, auth, make_customer, super_admin):
    user = make_customer()
    assert client.get("/users").status_code == 401
    assert len(client.get("/users", headers=auth(super_admin)).json()["data"]) == 1
    assert client.delete(f"/users/{user['_id']}", headers=auth(user, "customer")).status_code == 401
    assert client.delete(f"/users/{user['_id']}", headers=auth(super_admin)).status_code == 200
    assert client.get(f"/users/{user['_id']}").status_code == 404
