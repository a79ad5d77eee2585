import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import cloudinary.exceptions
from fastapi.testclient import TestClient

from travel_backend.app import create_app
from travel_backend.config import get_settings
from travel_backend.dependencies import get_image_host
from travel_backend.errors import UpstreamFailure, ValidationError
from travel_backend.media import (
    MAX_ADMIN_IMAGE_BYTES,
    MAX_STORY_IMAGE_BYTES,
    CloudinaryImageHost,
    LocalImageStore,
    delete_image_quietly,
    public_id_from_url,
    validate_image,
)
from travel_backend.tests.support import ApiTestCase


class AdminUploadTests(ApiTestCase):
    def test_upload_returns_hosted_url(self):
        response = self.client.post(
            "/api/upload",
            headers=self.admin_headers(),
            files={"file": ("cover.png", b"\x89PNG data", "image/png")},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["url"], body["path"])
        self.assertIn(body["url"], self.image_host.uploads)

    def test_rejects_non_images(self):
        response = self.client.post(
            "/api/upload",
            headers=self.admin_headers(),
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "File must be an image")

    def test_oversize_rejected_before_host_call(self):
        host = mock.Mock()
        self.app.dependency_overrides[get_image_host] = lambda: host
        response = self.client.post(
            "/api/upload",
            headers=self.admin_headers(),
            files={"file": ("big.jpg", b"0" * (MAX_ADMIN_IMAGE_BYTES + 1), "image/jpeg")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "File size must be less than 10MB")
        host.upload.assert_not_called()

    def test_missing_file(self):
        response = self.client.post("/api/upload", headers=self.admin_headers())
        self.assertEqual(response.status_code, 400)

    def test_upstream_failure_is_reported(self):
        host = mock.Mock()
        host.upload.side_effect = UpstreamFailure("Failed to upload image")
        self.app.dependency_overrides[get_image_host] = lambda: host
        response = self.client.post(
            "/api/upload",
            headers=self.admin_headers(),
            files={"file": ("cover.png", b"png", "image/png")},
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Failed to upload image")


class StoryUploadTests(ApiTestCase):
    def test_requires_identity(self):
        response = self.client.post(
            "/api/user/upload-story", files={"file": ("a.png", b"png", "image/png")}
        )
        self.assertEqual(response.status_code, 401)

    def test_writes_file_under_stories(self):
        user = self.create_user()
        response = self.client.post(
            "/api/user/upload-story",
            headers=self.auth_headers(user),
            files={"file": ("a.png", b"png-bytes", "image/png")},
        )
        self.assertEqual(response.status_code, 200)
        path = response.json()["path"]
        self.assertTrue(path.startswith("/uploads/stories/"))
        self.assertTrue(path.endswith(".png"))

        written = self.upload_root / "stories" / path.rsplit("/", 1)[1]
        self.assertEqual(written.read_bytes(), b"png-bytes")

    def test_story_ceiling_is_five_megabytes(self):
        user = self.create_user()
        response = self.client.post(
            "/api/user/upload-story",
            headers=self.auth_headers(user),
            files={"file": ("a.jpg", b"0" * (MAX_STORY_IMAGE_BYTES + 1), "image/jpeg")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "File size must be less than 5MB")
        self.assertFalse((self.upload_root / "stories").exists())


class ImageHelperTests(unittest.TestCase):
    def test_validate_image_boundaries(self):
        validate_image("image/webp", MAX_STORY_IMAGE_BYTES, MAX_STORY_IMAGE_BYTES)
        with self.assertRaises(ValidationError):
            validate_image(None, 1, MAX_STORY_IMAGE_BYTES)
        with self.assertRaises(ValidationError):
            validate_image("image/png", MAX_STORY_IMAGE_BYTES + 1, MAX_STORY_IMAGE_BYTES)

    def test_public_id_from_url(self):
        self.assertEqual(
            public_id_from_url(
                "https://res.cloudinary.com/demo/image/upload/v1712/travel-website/abc.jpg"
            ),
            "travel-website/abc",
        )
        self.assertEqual(
            public_id_from_url("https://res.cloudinary.com/demo/image/upload/folder/x.png"),
            "folder/x",
        )
        with self.assertRaises(ValueError):
            public_id_from_url("https://example.com/x.png")

    def test_delete_quietly_swallows_failures(self):
        host = mock.Mock()
        host.delete.side_effect = RuntimeError("boom")
        self.assertFalse(delete_image_quietly(host, "https://x/y.png"))


class UploadMountTests(unittest.TestCase):
    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.upload_dir = self.tmp / "fresh" / "uploads"
        env = mock.patch.dict(os.environ, {"UPLOAD_DIR": str(self.upload_dir)})
        env.start()
        self.addCleanup(env.stop)
        get_settings.cache_clear()
        self.addCleanup(get_settings.cache_clear)
        self.addCleanup(shutil.rmtree, self.tmp, True)

    def test_missing_upload_dir_is_created_and_serves_404(self):
        client = TestClient(create_app())

        self.assertTrue(self.upload_dir.is_dir())
        response = client.get("/uploads/stories/nothing.png")
        self.assertEqual(response.status_code, 404)

    def test_saved_story_image_is_served(self):
        client = TestClient(create_app())
        path = LocalImageStore(root=self.upload_dir).save(b"\x89PNG", "image/png")

        response = client.get(path)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"\x89PNG")


class CloudinaryImageHostTests(unittest.TestCase):
    def setUp(self):
        config_patch = mock.patch("travel_backend.media.cloudinary.config")
        self.config = config_patch.start()
        self.addCleanup(config_patch.stop)
        self.host = CloudinaryImageHost(
            cloud_name="demo", api_key="key", api_secret="shh", folder="travel-website"
        )

    def test_credentials_configure_the_sdk(self):
        self.config.assert_called_once_with(
            cloud_name="demo", api_key="key", api_secret="shh", secure=True
        )

    @mock.patch("travel_backend.media.cloudinary.uploader.upload")
    def test_upload_sends_data_uri_with_auto_transformations(self, upload):
        upload.return_value = {"secure_url": "https://res/x.jpg"}

        url = self.host.upload(b"abc", "image/jpeg")

        self.assertEqual(url, "https://res/x.jpg")
        self.assertEqual(upload.call_args.args[0], "data:image/jpeg;base64,YWJj")
        options = upload.call_args.kwargs
        self.assertEqual(options["folder"], "travel-website")
        self.assertEqual(options["resource_type"], "image")
        self.assertEqual(
            options["transformation"], [{"quality": "auto"}, {"fetch_format": "auto"}]
        )
        self.assertRegex(options["public_id"], r"^\d+-[0-9a-f]{13}$")

    @mock.patch("travel_backend.media.cloudinary.uploader.upload")
    def test_upload_failure_is_upstream_failure(self, upload):
        upload.side_effect = cloudinary.exceptions.Error("down")
        with self.assertRaises(UpstreamFailure):
            self.host.upload(b"abc", "image/png")

    @mock.patch("travel_backend.media.cloudinary.uploader.upload")
    def test_upload_without_secure_url_is_upstream_failure(self, upload):
        upload.return_value = {}
        with self.assertRaises(UpstreamFailure):
            self.host.upload(b"abc", "image/png")

    @mock.patch("travel_backend.media.cloudinary.uploader.destroy")
    def test_delete_targets_public_id(self, destroy):
        destroy.return_value = {"result": "ok"}
        self.host.delete("https://res.cloudinary.com/demo/image/upload/v3/travel-website/a.jpg")
        self.assertEqual(destroy.call_args.args[0], "travel-website/a")

    @mock.patch("travel_backend.media.cloudinary.uploader.destroy")
    def test_delete_error_result_raises(self, destroy):
        destroy.return_value = {"result": "error"}
        with self.assertRaises(UpstreamFailure):
            self.host.delete("https://res.cloudinary.com/demo/image/upload/travel-website/a.jpg")


if __name__ == "__main__":
    unittest.main()
