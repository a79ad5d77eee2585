"""
Image ingestion: validation, hosted uploads (Cloudinary) and local disk storage.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
import re
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from travel_backend.errors import UpstreamFailure, ValidationError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds

MAX_ADMIN_IMAGE_BYTES = 10 * 1024 * 1024
MAX_STORY_IMAGE_BYTES = 5 * 1024 * 1024


def validate_image(content_type: Optional[str], size: int, max_bytes: int) -> None:
    """Reject non-images and oversized payloads before any I/O happens."""
    if not content_type or not content_type.startswith("image/"):
        raise ValidationError("File must be an image")
    if size > max_bytes:
        raise ValidationError(
            f"File size must be less than {max_bytes // (1024 * 1024)}MB"
        )


def _extension_for(content_type: str) -> str:
    return mimetypes.guess_extension(content_type.split(";")[0].strip()) or ".jpg"


def _unique_name() -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:13]}"


class ImageHost(Protocol):
    """Defines the operations the API needs from the image host."""

    def upload(self, data: bytes, content_type: str) -> str:
        ...

    def delete(self, url: str) -> None:
        ...


def delete_image_quietly(host: ImageHost, url: str) -> bool:
    """Best-effort remote delete. Never raises."""
    try:
        host.delete(url)
        return True
    except Exception:
        logger.warning("Failed to delete hosted image %s", url, exc_info=True)
        return False


@dataclass
class InMemoryImageHost:
    """Test double for the image host."""

    base_url: str = "https://images.example.test"
    folder: str = "travel-website"
    uploads: dict = field(default_factory=dict)

    def upload(self, data: bytes, content_type: str) -> str:
        url = f"{self.base_url}/{self.folder}/{_unique_name()}{_extension_for(content_type)}"
        self.uploads[url] = data
        return url

    def delete(self, url: str) -> None:
        if url not in self.uploads:
            raise KeyError(url)
        del self.uploads[url]


_VERSION_SEGMENT = re.compile(r"^v\d+$")


def public_id_from_url(url: str) -> str:
    """
    Extract the public id from a delivery URL:
    https://res.cloudinary.com/<cloud>/image/upload/[v<version>/]<folder>/<name>.<ext>
    """
    parts = url.split("/")
    if "upload" not in parts:
        raise ValueError(f"Not a hosted image URL: {url}")
    tail = parts[parts.index("upload") + 1 :]
    if tail and _VERSION_SEGMENT.match(tail[0]):
        tail = tail[1:]
    if not tail:
        raise ValueError(f"Not a hosted image URL: {url}")
    return re.sub(r"\.[^/.]+$", "", "/".join(tail))


@dataclass
class CloudinaryImageHost:
    """
    Uploads through the Cloudinary SDK. Credentials are applied to the
    process-wide SDK config when the host is built.
    """

    cloud_name: str
    api_key: str
    api_secret: str
    folder: str = "travel-website"

    def __post_init__(self) -> None:
        cloudinary.config(
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
            secure=True,
        )

    def upload(self, data: bytes, content_type: str) -> str:
        encoded = base64.b64encode(data).decode("ascii")
        data_uri = f"data:{content_type or 'image/jpeg'};base64,{encoded}"
        try:
            result = cloudinary.uploader.upload(
                data_uri,
                folder=self.folder,
                public_id=_unique_name(),
                resource_type="image",
                transformation=[{"quality": "auto"}, {"fetch_format": "auto"}],
                timeout=REQUEST_TIMEOUT,
            )
        except cloudinary.exceptions.Error as exc:
            logger.error("Image upload failed: %s", exc)
            raise UpstreamFailure("Failed to upload image") from exc
        secure_url = (result or {}).get("secure_url")
        if not secure_url:
            raise UpstreamFailure("Failed to upload image")
        return secure_url

    def delete(self, url: str) -> None:
        result = cloudinary.uploader.destroy(public_id_from_url(url), resource_type="image")
        if (result or {}).get("result") not in ("ok", "not found"):
            raise UpstreamFailure(f"Failed to delete image {url}")


@dataclass
class LocalImageStore:
    """Writes uploads under `root/<folder>/` and returns their public path."""

    root: Path
    public_prefix: str = "/uploads"

    def save(self, data: bytes, content_type: str, folder: str = "stories") -> str:
        target_dir = Path(self.root) / folder
        target_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{int(time.time() * 1000)}-{uuid.uuid4().hex}{_extension_for(content_type)}"
        (target_dir / filename).write_bytes(data)
        return f"{self.public_prefix.rstrip('/')}/{folder}/{filename}"
