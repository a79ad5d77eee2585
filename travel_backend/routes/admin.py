"""
Admin endpoints: user roles and CRUD over the curated catalog collections.

Every route here depends on `require_admin`. The five content collections share
one router factory driven by a `ContentResource` description.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Type

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from travel_backend.auth import require_admin
from travel_backend.db import (
    DESTINATION_TRIPS,
    DESTINATIONS,
    PACKAGES,
    TESTIMONIALS,
    TRIPS,
    USERS,
    DocumentStore,
)
from travel_backend.dependencies import get_document_store, get_image_host
from travel_backend.errors import (
    Conflict,
    DuplicateKeyError,
    NotFound,
    ValidationError,
    validation_message,
)
from travel_backend.media import ImageHost, delete_image_quietly
from travel_backend.ordering import sort_by_date, sort_by_order_and_date
from travel_backend.schemas import (
    PLACEHOLDER_IMAGE,
    DestinationOut,
    DestinationPayload,
    DestinationTripOut,
    DestinationTripPayload,
    PackageDetail,
    PackagePayload,
    RoleUpdate,
    TestimonialOut,
    TestimonialPayload,
    TripOut,
    TripPayload,
    UserOut,
    envelope,
)
from travel_backend.security import Identity, Role
from travel_backend.slugs import slugify, unique_slug

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/users")
def list_users(store: DocumentStore = Depends(get_document_store)):
    users = sort_by_date(store.find(USERS))
    return envelope(data=[UserOut.from_document(user) for user in users])


@router.put("/users")
def update_user_role(
    payload: RoleUpdate,
    admin: Identity = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store),
):
    valid_roles = {role.value for role in Role}
    if not payload.userId or payload.role not in valid_roles:
        raise ValidationError("Invalid userId or role")

    user = store.update(USERS, payload.userId, {"role": payload.role})
    if user is None:
        raise NotFound("User not found")
    logger.info("Admin %s set role of %s to %s", admin.id, user["id"], payload.role)
    return envelope(
        data=UserOut.from_document(user), message="User role updated successfully"
    )


# ---------------------------------------------------------------------------
# Catalog content
# ---------------------------------------------------------------------------


@dataclass
class ContentResource:
    """How one catalog collection is validated, defaulted and shaped."""

    path: str
    collection: str
    label: str
    payload_model: Type[BaseModel]
    shape: Callable[[dict], BaseModel]
    required: dict[str, str] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)
    slug_source: Optional[str] = "title"
    gallery: bool = True
    requires_image: bool = False
    ordered: bool = True


_TEXT_DEFAULTS = {"order": 0}

RESOURCES = (
    ContentResource(
        path="/packages",
        collection=PACKAGES,
        label="Package",
        payload_model=PackagePayload,
        shape=PackageDetail.from_document,
        required={
            "title": "Title is required",
            "location": "Location is required",
            "country": "Country is required",
            "duration": "Duration is required",
            "price": "Price is required",
            "overview": "Overview is required",
        },
        defaults={
            **_TEXT_DEFAULTS,
            "rating": 4.5,
            "reviewCount": 0,
            "type": "domestic",
            "highlights": [],
            "activities": [],
            "itinerary": [],
            "inclusions": [],
            "exclusions": [],
            "whyChoose": [],
        },
    ),
    ContentResource(
        path="/trips",
        collection=TRIPS,
        label="Trip",
        payload_model=TripPayload,
        shape=TripOut.from_document,
        required={
            "title": "Title is required",
            "activity": "Activity is required",
            "location": "Location is required",
            "duration": "Duration is required",
            "price": "Price is required",
        },
        defaults={
            **_TEXT_DEFAULTS,
            "rating": 4.5,
            "reviewCount": 0,
            "type": "domestic",
            "highlights": [],
        },
        requires_image=True,
    ),
    ContentResource(
        path="/destinations",
        collection=DESTINATIONS,
        label="Destination",
        payload_model=DestinationPayload,
        shape=DestinationOut.from_document,
        required={"name": "Name is required", "country": "Country is required"},
        defaults={
            **_TEXT_DEFAULTS,
            "trips": 0,
            "isPopular": True,
            "image": PLACEHOLDER_IMAGE,
        },
        slug_source="name",
        gallery=False,
    ),
    ContentResource(
        path="/destination-trips",
        collection=DESTINATION_TRIPS,
        label="Destination trip",
        payload_model=DestinationTripPayload,
        shape=DestinationTripOut.from_document,
        required={
            "destinationSlug": "Destination is required",
            "destinationName": "Destination name is required",
            "title": "Title is required",
            "location": "Location is required",
            "duration": "Duration is required",
            "price": "Price is required",
        },
        defaults={
            **_TEXT_DEFAULTS,
            "rating": 4.8,
            "type": "international",
            "highlights": [],
            "inclusions": [],
            "exclusions": [],
            "activities": [],
        },
        requires_image=True,
    ),
    ContentResource(
        path="/testimonials",
        collection=TESTIMONIALS,
        label="Testimonial",
        payload_model=TestimonialPayload,
        shape=TestimonialOut.from_document,
        required={"name": "Name is required", "text": "Text is required"},
        defaults={"rating": 5},
        slug_source=None,
        gallery=False,
        ordered=False,
    ),
)


def _parse_payload(resource: ContentResource, body: dict) -> BaseModel:
    try:
        return resource.payload_model.model_validate(body)
    except PydanticValidationError as exc:
        raise ValidationError(validation_message(exc.errors()))


def _clean_changes(payload: BaseModel) -> dict:
    changes = payload.model_dump(exclude_unset=True)
    changes.pop("slug", None)
    changes.pop("images", None)
    for key, value in list(changes.items()):
        if isinstance(value, str):
            changes[key] = value.strip()
    return changes


def _images(payload: BaseModel, existing: Optional[dict]) -> list[str]:
    images = [img for img in getattr(payload, "images", None) or [] if img]
    if images:
        return images
    image = (getattr(payload, "image", None) or "").strip()
    if image:
        return [image]
    if existing is not None:
        kept = [img for img in existing.get("images") or [] if img]
        if kept:
            return kept
        if existing.get("image"):
            return [existing["image"]]
    return []


def _slug_for(
    resource: ContentResource,
    store: DocumentStore,
    payload: BaseModel,
    merged: dict,
    existing: Optional[dict],
) -> Optional[str]:
    explicit = (getattr(payload, "slug", None) or "").strip()
    if explicit:
        return slugify(explicit)
    source = merged.get(resource.slug_source) or ""
    if existing is not None and source == existing.get(resource.slug_source):
        return existing.get("slug")
    return unique_slug(
        store,
        resource.collection,
        source,
        exclude_id=existing["id"] if existing else None,
    )


def _prepare(
    resource: ContentResource,
    store: DocumentStore,
    body: dict,
    existing: Optional[dict] = None,
) -> dict:
    """Validate a create/update body and return the fields to write."""
    payload = _parse_payload(resource, body)
    changes = _clean_changes(payload)
    base = existing if existing is not None else resource.defaults
    merged = {**base, **changes}

    for name, message in resource.required.items():
        value = merged.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(message)

    if resource.gallery:
        images = _images(payload, existing)
        if resource.requires_image and not images:
            raise ValidationError("At least one image is required")
        changes["images"] = images
        changes["image"] = images[0] if images else ""

    if resource.slug_source:
        slug = _slug_for(resource, store, payload, merged, existing)
        if not slug:
            raise ValidationError("Slug could not be generated")
        changes["slug"] = slug

    if existing is None:
        return {**resource.defaults, **changes}
    return changes


def _hosted_images(doc: dict) -> list[str]:
    urls = list(doc.get("images") or [])
    if doc.get("image") and doc["image"] not in urls:
        urls.append(doc["image"])
    return [url for url in urls if isinstance(url, str) and url.startswith("http")]


def build_content_router(resource: ContentResource) -> APIRouter:
    content = APIRouter()
    duplicate_message = (
        f"{resource.label} slug already exists. Please use a different title/slug."
    )

    @content.get(resource.path)
    def list_items(store: DocumentStore = Depends(get_document_store)):
        docs = store.find(resource.collection)
        docs = sort_by_order_and_date(docs) if resource.ordered else sort_by_date(docs)
        return envelope(data=[resource.shape(doc) for doc in docs])

    @content.post(resource.path)
    def create_item(
        body: dict = Body(...),
        store: DocumentStore = Depends(get_document_store),
    ):
        doc = _prepare(resource, store, body)
        try:
            created = store.insert(resource.collection, doc)
        except DuplicateKeyError:
            raise Conflict(duplicate_message)
        logger.info("Created %s %s", resource.collection, created["id"])
        return envelope(
            data=resource.shape(created),
            message=f"{resource.label} created successfully",
            id=created["id"],
        )

    @content.put(resource.path + "/{item_id}")
    def update_item(
        item_id: str,
        body: dict = Body(...),
        store: DocumentStore = Depends(get_document_store),
    ):
        existing = store.get(resource.collection, item_id)
        if existing is None:
            raise NotFound(f"{resource.label} not found")
        changes = _prepare(resource, store, body, existing)
        try:
            updated = store.update(resource.collection, item_id, changes)
        except DuplicateKeyError:
            raise Conflict(duplicate_message)
        if updated is None:
            raise NotFound(f"{resource.label} not found")
        return envelope(
            data=resource.shape(updated),
            message=f"{resource.label} updated successfully",
        )

    @content.delete(resource.path + "/{item_id}")
    def delete_item(
        item_id: str,
        store: DocumentStore = Depends(get_document_store),
        images: ImageHost = Depends(get_image_host),
    ):
        existing = store.get(resource.collection, item_id)
        if existing is None or not store.delete(resource.collection, item_id):
            raise NotFound(f"{resource.label} not found")
        for url in _hosted_images(existing):
            delete_image_quietly(images, url)
        logger.info("Deleted %s %s", resource.collection, item_id)
        return envelope(message=f"{resource.label} deleted successfully")

    return content


for _resource in RESOURCES:
    router.include_router(build_content_router(_resource))
