import os
import tempfile

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="marketplace-uploads-"))

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import get_settings
from database import create_document, ensure_indexes, get_db
from dispatch import get_dispatcher
from errors import UpstreamError
from main import app
from security import bootstrap_super_admin, create_access_token, hash_password

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeDispatcher:
    """Records outbound mail and push instead of calling the providers."""

    def __init__(self):
        self.emails = []
        self.pushes = []
        self.fail_email = False

    def _mail(self, kind, to, code):
        if self.fail_email:
            raise UpstreamError("Failed to send email.")
        self.emails.append({"kind": kind, "to": to, "code": code})

    def send_verification_code(self, to, code):
        self._mail("verify", to, code)

    def send_reset_code(self, to, code, name=None):
        self._mail("reset", to, code)

    def send_push(self, title, description, image_url=None):
        self.pushes.append({"title": title, "description": description, "imageUrl": image_url})
        return f"push-{len(self.pushes)}"

    def track_push(self, notification_id):
        return {"platform": "Android", "success_delivery": 3, "failed_delivery": 0, "errored_delivery": 0, "opened_notification": 1}


@pytest.fixture
def db():
    database = mongomock.MongoClient()["marketplace_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def client(db, dispatcher):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(doc, kind="admin"):
    token = create_access_token(str(doc["_id"]), kind, get_settings())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def super_admin(db):
    return bootstrap_super_admin(db, get_settings())


@pytest.fixture
def make_admin(db):
    def _make(username, clearance_level="admin", active=True):
        doc = {
            "username": username,
            "name": username.title(),
            "email": f"{username}@example.com",
            "password": hash_password("secret123"),
            "clearanceLevel": clearance_level,
            "createdBy": None,
            "isActive": active,
        }
        doc["_id"] = create_document(db, "adminuser", doc)
        return doc
    return _make


@pytest.fixture
def make_customer(db):
    def _make(name="Abebe", email=None):
        doc = {"name": name, "password": hash_password("secret123"), "emailVerified": False}
        if email:
            doc["email"] = email
        doc["_id"] = create_document(db, "user", doc)
        return doc
    return _make


@pytest.fixture
def catalog(client):
    """Builds catalog documents through the API on behalf of a given admin."""

    class Catalog:
        def category(self, admin, name="Shoes"):
            res = client.post("/categories", data={"name": name, "image": "https://img.test/c.png"}, headers=auth_header(admin))
            assert res.status_code == 200, res.text
            return res.json()["data"]["_id"]

        def sub_category(self, admin, category_id, name="Sneakers"):
            res = client.post("/subCategories", json={"name": name, "categoryId": category_id}, headers=auth_header(admin))
            assert res.status_code == 200, res.text
            return res.json()["data"]["_id"]

        def brand(self, admin, sub_category_id, name="Stride"):
            res = client.post("/brands", json={"name": name, "subCategoryId": sub_category_id}, headers=auth_header(admin))
            assert res.status_code == 200, res.text
            return res.json()["data"]["_id"]

        def variant_type(self, admin, name="Size"):
            res = client.post("/variantTypes", json={"name": name, "type": name}, headers=auth_header(admin))
            assert res.status_code == 200, res.text
            return res.json()["data"]["_id"]

        def variant(self, admin, variant_type_id, name="42"):
            res = client.post("/variants", json={"name": name, "variantTypeId": variant_type_id}, headers=auth_header(admin))
            assert res.status_code == 200, res.text
            return res.json()["data"]["_id"]

        def product(self, admin, category_id, sub_category_id, **extra):
            data = {"name": "Runner", "quantity": "10", "price": "120", "categoryId": category_id, "subCategoryId": sub_category_id}
            data.update(extra)
            files = {"image1": ("runner.png", PNG_BYTES, "image/png")}
            res = client.post("/products", data=data, files=files, headers=auth_header(admin))
            assert res.status_code == 200, res.text
            return res.json()["data"]["_id"]

    return Catalog()


@pytest.fixture
def auth():
    return auth_header
