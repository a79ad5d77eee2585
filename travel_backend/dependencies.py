"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from travel_backend.config import get_settings
from travel_backend.db import DocumentStore, InMemoryDocumentStore, SqlDocumentStore
from travel_backend.media import (
    CloudinaryImageHost,
    ImageHost,
    InMemoryImageHost,
    LocalImageStore,
)

logger = logging.getLogger(__name__)

_store: DocumentStore | None = None
_store_lock = threading.Lock()
_image_host: ImageHost | None = None
_local_images: LocalImageStore | None = None


def get_document_store() -> DocumentStore:
    """
    Return the process-wide document store, connecting on first use.
    """
    global _store
    if _store is not None:
        return _store

    with _store_lock:
        if _store is None:
            settings = get_settings()
            if settings.use_in_memory_backends or not settings.database_url:
                logger.info("Using in-memory document store")
                _store = InMemoryDocumentStore()
            else:
                logger.info("Connecting document store")
                _store = SqlDocumentStore(settings.database_url)
    return _store


def get_image_host() -> ImageHost:
    global _image_host
    if _image_host:
        return _image_host

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.cloudinary_cloud_name:
        _image_host = InMemoryImageHost()
    else:
        _image_host = CloudinaryImageHost(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key or "",
            api_secret=settings.cloudinary_api_secret or "",
            folder=settings.cloudinary_folder,
        )
    return _image_host


def get_local_image_store() -> LocalImageStore:
    global _local_images
    if _local_images:
        return _local_images

    settings = get_settings()
    _local_images = LocalImageStore(
        root=Path(settings.upload_dir),
        public_prefix=settings.upload_public_prefix,
    )
    return _local_images
