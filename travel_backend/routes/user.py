"""
Signed-in user endpoints: profile, own stories and story image uploads.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from travel_backend.auth import require_user
from travel_backend.db import STORIES, USERS, DocumentStore
from travel_backend.dependencies import get_document_store, get_local_image_store
from travel_backend.errors import (
    Conflict,
    DuplicateKeyError,
    Forbidden,
    NotFound,
    ValidationError,
    conflict_from_duplicate,
)
from travel_backend.media import MAX_STORY_IMAGE_BYTES, LocalImageStore, validate_image
from travel_backend.ordering import sort_by_date
from travel_backend.query import Query
from travel_backend.schemas import (
    ProfileOut,
    ProfileUpdate,
    StoryRequest,
    StorySummary,
    envelope,
)
from travel_backend.security import Identity
from travel_backend.slugs import unique_slug

logger = logging.getLogger(__name__)

router = APIRouter()

EXCERPT_LENGTH = 140
WORDS_PER_MINUTE = 200
DUPLICATE_STORY_MESSAGE = "Story title already exists. Try a different title."


def read_time_minutes(content: str) -> int:
    return max(1, math.ceil(len(content.split()) / WORDS_PER_MINUTE))


def make_excerpt(content: str) -> str:
    if len(content) > EXCERPT_LENGTH:
        return f"{content[:EXCERPT_LENGTH]}..."
    return content


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ""


def _story_images(payload: StoryRequest, existing: Optional[dict] = None) -> list[str]:
    images = [img.strip() for img in payload.images or [] if img and img.strip()]
    if images:
        return images
    if _clean(payload.image):
        return [_clean(payload.image)]
    if existing is not None:
        if existing.get("images"):
            return list(existing["images"])
        if existing.get("image"):
            return [existing["image"]]
    return []


def _load_owned_story(store: DocumentStore, story_id: str, identity: Identity) -> dict:
    story = store.get(STORIES, story_id)
    if story is None:
        raise NotFound("Story not found")
    if not identity.is_admin and story.get("authorId") != identity.id:
        raise Forbidden("Unauthorized")
    return story


@router.get("/profile")
def get_profile(
    identity: Identity = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
):
    user = store.get(USERS, identity.id)
    if user is None:
        raise NotFound("User not found")
    return envelope(data=ProfileOut.from_document(user))


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    identity: Identity = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
):
    changes = payload.model_dump(exclude_unset=True)
    try:
        user = store.update(USERS, identity.id, changes)
    except DuplicateKeyError as exc:
        raise conflict_from_duplicate(exc, {"username": "Username already exists"})
    if user is None:
        raise NotFound("User not found")
    return envelope(
        data=ProfileOut.from_document(user), message="Profile updated successfully"
    )


@router.get("/stories")
def list_my_stories(
    identity: Identity = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
):
    stories = store.find(STORIES, Query(equals={"authorId": identity.id}))
    return envelope(
        data=[StorySummary.from_document(doc) for doc in sort_by_date(stories)]
    )


@router.post("/stories")
def create_story(
    payload: StoryRequest,
    identity: Identity = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
):
    title = _clean(payload.title)
    content = _clean(payload.content)
    if not title:
        raise ValidationError("Title is required")
    if not content:
        raise ValidationError("Story content is required")

    author = store.get(USERS, identity.id)
    if author is None:
        raise NotFound("User not found")

    slug = unique_slug(store, STORIES, title)
    if not slug:
        raise ValidationError("Slug could not be generated")

    images = _story_images(payload)
    doc = {
        "title": title,
        "slug": slug,
        "excerpt": _clean(payload.excerpt) or make_excerpt(content),
        "content": content,
        "image": images[0] if images else "",
        "images": images,
        "category": _clean(payload.category) or "Travel",
        "readTimeMinutes": read_time_minutes(content),
        "authorId": identity.id,
        "authorName": author.get("name")
        or author.get("username")
        or author.get("email")
        or "Anonymous",
        "authorImage": author.get("image") or "",
    }
    try:
        created = store.insert(STORIES, doc)
    except DuplicateKeyError:
        raise Conflict(DUPLICATE_STORY_MESSAGE)
    return envelope(
        data={"id": created["id"], "slug": slug}, message="Story published"
    )


@router.put("/stories/{story_id}")
def update_story(
    story_id: str,
    payload: StoryRequest,
    identity: Identity = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
):
    existing = _load_owned_story(store, story_id, identity)
    provided = payload.model_fields_set

    title = _clean(payload.title) or existing.get("title", "")
    slug = existing.get("slug", "")
    if title != existing.get("title"):
        slug = unique_slug(store, STORIES, title, exclude_id=story_id)

    content = _clean(payload.content) or existing.get("content", "")
    if "excerpt" in provided:
        excerpt = _clean(payload.excerpt) or make_excerpt(content)
    else:
        excerpt = existing.get("excerpt") or ""

    if "category" in provided:
        category = _clean(payload.category) or "Travel"
    else:
        category = existing.get("category") or "Travel"

    images = _story_images(payload, existing)
    changes = {
        "title": title,
        "slug": slug,
        "excerpt": excerpt,
        "content": content,
        "image": images[0] if images else "",
        "images": images,
        "category": category,
        "readTimeMinutes": read_time_minutes(content),
    }
    if _clean(payload.authorName):
        changes["authorName"] = _clean(payload.authorName)

    try:
        store.update(STORIES, story_id, changes)
    except DuplicateKeyError:
        raise Conflict(DUPLICATE_STORY_MESSAGE)
    return envelope(
        data={"id": story_id, "slug": slug}, message="Story updated successfully"
    )


@router.delete("/stories/{story_id}")
def delete_story(
    story_id: str,
    identity: Identity = Depends(require_user),
    store: DocumentStore = Depends(get_document_store),
):
    _load_owned_story(store, story_id, identity)
    store.delete(STORIES, story_id)
    return envelope(message="Story deleted successfully")


@router.post("/upload-story")
async def upload_story_image(
    file: UploadFile = File(None),
    identity: Identity = Depends(require_user),
    images: LocalImageStore = Depends(get_local_image_store),
):
    if file is None:
        raise ValidationError("No file provided")
    data = await file.read()
    validate_image(file.content_type, len(data), MAX_STORY_IMAGE_BYTES)

    path = images.save(data, file.content_type, folder="stories")
    logger.info("User %s uploaded story image %s", identity.id, path)
    return envelope(path=path, url=path, message="File uploaded successfully")
