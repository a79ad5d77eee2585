import shutil
import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from travel_backend.app import create_app
from travel_backend.db import USERS, InMemoryDocumentStore
from travel_backend.dependencies import (
    get_document_store,
    get_image_host,
    get_local_image_store,
)
from travel_backend.media import InMemoryImageHost, LocalImageStore
from travel_backend.security import (
    Identity,
    Role,
    create_access_token,
    get_password_hash,
)


class ApiTestCase(unittest.TestCase):
    """Runs the app against in-memory backends and a temporary upload dir."""

    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.image_host = InMemoryImageHost()
        self.upload_root = Path(tempfile.mkdtemp())
        self.local_images = LocalImageStore(root=self.upload_root)

        self.app = create_app()
        self.app.dependency_overrides[get_document_store] = lambda: self.store
        self.app.dependency_overrides[get_image_host] = lambda: self.image_host
        self.app.dependency_overrides[get_local_image_store] = lambda: self.local_images
        self.client = TestClient(self.app)

    def tearDown(self):
        shutil.rmtree(self.upload_root, ignore_errors=True)

    def create_user(self, username="traveller", password="secret123", role=Role.USER, **extra):
        doc = {
            "username": username,
            "password": get_password_hash(password),
            "role": role.value,
            **extra,
        }
        return self.store.insert(USERS, doc)

    def auth_headers(self, user: dict) -> dict:
        token = create_access_token(Identity.from_user(user))
        return {"Authorization": f"Bearer {token}"}

    def admin_headers(self) -> dict:
        admin = self.create_user(username="admin", role=Role.ADMIN)
        return self.auth_headers(admin)
