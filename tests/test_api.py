from leadmarket import models


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_register_business_creates_linked_business(client, db_session):
    r = client.post("/api/auth/register", json={
        "name": "Acme", "email": "a@x.com", "password": "pw", "role": "business", "category": "Food",
    })
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Business registered"

    user = db_session.query(models.User).filter_by(email="a@x.com").one()
    assert user.business_id == body["businessId"]
    business = db_session.get(models.Business, user.business_id)
    assert business.owner == user.id
    assert business.category == "Food"
    # business-only fields went to the Business, not the user
    assert user.legacy_business_fields() == {}


def test_register_defaults_to_business_role(client, db_session):
    r = client.post("/api/auth/register", json={"name": "Bob", "email": "b@x.com", "password": "pw"})
    assert r.status_code == 200
    assert "businessId" in r.json()

    user = db_session.query(models.User).filter_by(email="b@x.com").one()
    assert user.role == "business"
    assert db_session.query(models.Business).filter_by(owner=user.id).count() == 1


def test_register_customer_creates_no_business(client, db_session):
    r = client.post("/api/auth/register", json={
        "name": "Cara", "email": "c@x.com", "password": "pw", "role": "customer",
        "category": "Food", "location": "Paris", "description": "hi",
    })
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "User registered"

    user = db_session.get(models.User, body["userId"])
    assert user.role == "customer"
    assert user.business_id is None
    assert (user.category, user.location, user.description) == (None, None, None)
    assert db_session.query(models.Business).count() == 0


def test_register_cannot_create_admin(client, db_session):
    r = client.post("/api/auth/register", json={"email": "sneaky@x.com", "password": "pw", "role": "admin"})
    assert r.status_code == 200
    user = db_session.query(models.User).filter_by(email="sneaky@x.com").one()
    assert user.role == "business"
    # no name given: business is named after the email
    assert db_session.get(models.Business, user.business_id).name == "sneaky@x.com"


def test_register_duplicate_email(client):
    client.post("/api/auth/register", json={"email": "dup@x.com", "password": "pw"})
    r = client.post("/api/auth/register", json={"email": "dup@x.com", "password": "pw"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Email already exists"


def test_login(client):
    client.post("/api/auth/register", json={"name": "Acme", "email": "a@x.com", "password": "pw"})

    r = client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong"})
    assert r.status_code == 401
    r = client.post("/api/auth/login", json={"email": "ghost@x.com", "password": "pw"})
    assert r.status_code == 401

    r = client.post("/api/auth/login", json={"email": "a@x.com", "password": "pw"})
    assert r.status_code == 200
    data = r.json()
    assert data["token"]
    assert data["user"]["email"] == "a@x.com"
    assert data["user"]["role"] == "business"
    assert data["user"]["businessId"]
    assert "passwordHash" not in data["user"]


def test_profile_update_only_touches_allowed_fields(client, signup, db_session):
    headers = signup("cust@x.com", role="customer")
    r = client.put("/api/auth/profile", headers=headers, json={
        "name": "New Name", "phone": "555", "bio": "<b>hello</b>", "role": "admin", "businessId": "x",
    })
    assert r.status_code == 200
    user = r.json()["user"]
    assert user["name"] == "New Name"
    assert user["phone"] == "555"
    assert user["bio"] == "hello"
    assert user["role"] == "customer"
    assert user["businessId"] is None
    assert user["address"] is None


def test_profile_requires_token(client):
    r = client.put("/api/auth/profile", json={"name": "x"})
    assert r.status_code == 401
    r = client.put("/api/auth/profile", json={"name": "x"}, headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_public_business_reads(client, signup):
    signup("a@x.com", name="Acme", category="Food", location="Lyon")
    r = client.get("/api/businesses")
    assert r.status_code == 200
    listed = r.json()
    assert len(listed) == 1
    assert listed[0]["name"] == "Acme"
    assert listed[0]["category"] == "Food"
    assert "owner" not in listed[0]

    bid = listed[0]["id"]
    assert client.get(f"/api/businesses/{bid}").json()["location"] == "Lyon"
    assert client.get(f"/api/businesses/{bid}/products").json() == []
    assert client.get("/api/businesses/does-not-exist").status_code == 404


def test_register_stores_free_text_as_typed(client, db_session):
    r = client.post("/api/auth/register", json={
        "name": "Ben & Jerry", "email": "bj@x.com", "password": "pw", "description": "cones < 5 EUR",
    })
    assert r.status_code == 200
    business = db_session.get(models.Business, r.json()["businessId"])
    assert business.name == "Ben & Jerry"
    assert business.description == "cones < 5 EUR"
