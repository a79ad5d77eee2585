"""
URL slug helpers shared by the admin and story handlers.
"""

from __future__ import annotations

import re
import time
from typing import Optional

from travel_backend.db import DocumentStore
from travel_backend.query import Query

_NON_SLUG = re.compile(r"[^a-z0-9]+")

MAX_NUMBERED_SUFFIX = 50


def slugify(value: str) -> str:
    return _NON_SLUG.sub("-", (value or "").lower().strip()).strip("-")


def _taken(
    store: DocumentStore, collection: str, slug: str, exclude_id: Optional[str]
) -> bool:
    existing = store.find_one(collection, Query(equals={"slug": slug}))
    return existing is not None and existing["id"] != exclude_id


def unique_slug(
    store: DocumentStore,
    collection: str,
    base: str,
    exclude_id: Optional[str] = None,
) -> str:
    """
    Slugify `base` and pick the first free candidate: `base`, `base-2` ...
    `base-50`, then `base-<epoch millis>`. Returns "" when `base` has no
    slug-able characters.
    """
    cleaned = slugify(base)
    if not cleaned or not _taken(store, collection, cleaned, exclude_id):
        return cleaned
    for suffix in range(2, MAX_NUMBERED_SUFFIX + 1):
        candidate = f"{cleaned}-{suffix}"
        if not _taken(store, collection, candidate, exclude_id):
            return candidate
    return f"{cleaned}-{int(time.time() * 1000)}"
