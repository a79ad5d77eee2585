"""
Pydantic schemas for the travel site API.

Request payloads come first; the public response shapes follow. Each response
model builds itself from a stored document through `from_document`, which is
the single place optional fields get their defaults.
"""

from __future__ import annotations

import json
from typing import Any, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

PLACEHOLDER_IMAGE = "/placeholder.svg"

TRIP_ACTIVITIES = (
    "hiking",
    "camping",
    "water-sports",
    "paragliding",
    "skiing",
    "cycling",
    "cruises",
    "photography-tours",
)
TRIP_TYPES = ("domestic", "international")

TripType = Literal["domestic", "international"]


def envelope(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict:
    body: dict = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    body.update(extra)
    return body


def normalize_string_list(value: Any) -> list[str]:
    """Coerce lists, JSON strings, comma-separated strings and nested dicts to a list of strings."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(parsed, (list, dict)):
            return normalize_string_list(parsed)
        return [str(parsed).strip()] if str(parsed).strip() else []
    if isinstance(value, dict):
        for nested in value.values():
            if isinstance(nested, list):
                return normalize_string_list(nested)
        return []
    if isinstance(value, (list, tuple)):
        items: list[str] = []
        for item in value:
            if isinstance(item, (dict, list)):
                items.extend(normalize_string_list(item))
            elif item is not None:
                text = str(item).strip()
                if text:
                    items.append(text)
        return items
    return [str(value).strip()]


def image_list(doc: dict) -> list[str]:
    images = [
        img for img in (doc.get("images") or []) if isinstance(img, str) and img.strip()
    ]
    if images:
        return images
    image = doc.get("image")
    if isinstance(image, str) and image.strip():
        return [image]
    return []


def _text(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) and value else default


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value:
        return default
    return value


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    username: Optional[str] = None
    image: Optional[str] = None


class RoleUpdate(BaseModel):
    userId: Optional[str] = None
    role: Optional[str] = None


class PreferencesRequest(BaseModel):
    currency: Optional[str] = None
    theme: Optional[str] = None
    language: Optional[str] = None


class StoryRequest(BaseModel):
    title: Optional[str] = None
    category: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None
    images: Optional[list[str]] = None
    authorName: Optional[str] = None


class ItineraryDay(BaseModel):
    day: int = 0
    title: str = ""
    description: str = ""
    activities: list[str] = Field(default_factory=list)
    meals: list[str] = Field(default_factory=list)


class _ContentPayload(BaseModel):
    """Shared coercion for admin content payloads; every field is optional so
    the same model serves create (checked for required fields) and update."""

    slug: Optional[str] = None
    image: Optional[str] = None
    images: Optional[list[str]] = None
    order: Optional[int] = None

    @field_validator("order", mode="before")
    @classmethod
    def _coerce_order(cls, value):
        if value is None or value == "":
            return None
        try:
            return int(str(value).strip())
        except ValueError:
            raise ValueError("Order must be a number")

    @field_validator("images", mode="before")
    @classmethod
    def _coerce_images(cls, value):
        if value is None:
            return None
        return normalize_string_list(value)


class PackagePayload(_ContentPayload):
    title: Optional[str] = None
    location: Optional[str] = None
    country: Optional[str] = None
    duration: Optional[str] = None
    price: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    reviewCount: Optional[int] = Field(default=None, ge=0)
    highlights: Optional[list[str]] = None
    activities: Optional[list[str]] = None
    type: Optional[TripType] = None
    overview: Optional[str] = None
    itinerary: Optional[list[ItineraryDay]] = None
    inclusions: Optional[list[str]] = None
    exclusions: Optional[list[str]] = None
    whyChoose: Optional[list[str]] = None
    whatsappMessage: Optional[str] = None
    metaDescription: Optional[str] = None

    @field_validator(
        "highlights", "activities", "inclusions", "exclusions", "whyChoose", mode="before"
    )
    @classmethod
    def _coerce_lists(cls, value):
        return None if value is None else normalize_string_list(value)


class TripPayload(_ContentPayload):
    title: Optional[str] = None
    activity: Optional[str] = None
    location: Optional[str] = None
    country: Optional[str] = None
    duration: Optional[str] = None
    price: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    reviewCount: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None
    highlights: Optional[list[str]] = None
    difficulty: Optional[str] = None
    groupSize: Optional[str] = None
    type: Optional[TripType] = None

    @field_validator("activity")
    @classmethod
    def _check_activity(cls, value):
        if value is not None and value not in TRIP_ACTIVITIES:
            raise ValueError("Invalid activity")
        return value

    @field_validator("highlights", mode="before")
    @classmethod
    def _coerce_lists(cls, value):
        return None if value is None else normalize_string_list(value)


class DestinationPayload(_ContentPayload):
    name: Optional[str] = None
    country: Optional[str] = None
    trips: Optional[int] = Field(default=None, ge=0)
    isPopular: Optional[bool] = None


class DestinationTripPayload(_ContentPayload):
    destinationSlug: Optional[str] = None
    destinationName: Optional[str] = None
    title: Optional[str] = None
    location: Optional[str] = None
    duration: Optional[str] = None
    price: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    description: Optional[str] = None
    highlights: Optional[list[str]] = None
    inclusions: Optional[list[str]] = None
    exclusions: Optional[list[str]] = None
    mood: Optional[str] = None
    activities: Optional[list[str]] = None
    type: Optional[TripType] = None

    @field_validator(
        "highlights", "inclusions", "exclusions", "activities", mode="before"
    )
    @classmethod
    def _coerce_lists(cls, value):
        return None if value is None else normalize_string_list(value)


class TestimonialPayload(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    image: Optional[str] = None
    text: Optional[str] = None
    packageName: Optional[str] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PackageCard(BaseModel):
    id: str
    slug: str
    title: str
    location: str = ""
    country: str = ""
    duration: str = ""
    price: str = ""
    rating: float = 4.5
    reviewCount: int = 0
    image: str = PLACEHOLDER_IMAGE
    highlights: list[str] = Field(default_factory=list)
    activities: list[str] = Field(default_factory=list)
    type: str = "domestic"

    @classmethod
    def _fields_from(cls, doc: dict) -> dict:
        images = image_list(doc)
        return {
            "id": doc["id"],
            "slug": _text(doc.get("slug")),
            "title": _text(doc.get("title"), "Unnamed Package"),
            "location": _text(doc.get("location")),
            "country": _text(doc.get("country")),
            "duration": _text(doc.get("duration")),
            "price": _text(doc.get("price")),
            "rating": _number(doc.get("rating"), 4.5),
            "reviewCount": _int(doc.get("reviewCount")),
            "image": images[0] if images else PLACEHOLDER_IMAGE,
            "highlights": doc.get("highlights") or [],
            "activities": doc.get("activities") or [],
            "type": doc.get("type") if doc.get("type") in TRIP_TYPES else "domestic",
        }

    @classmethod
    def from_document(cls, doc: dict) -> "PackageCard":
        return cls(**cls._fields_from(doc))


class PackageDetail(PackageCard):
    images: list[str] = Field(default_factory=list)
    overview: str = ""
    itinerary: list[ItineraryDay] = Field(default_factory=list)
    inclusions: list[str] = Field(default_factory=list)
    exclusions: list[str] = Field(default_factory=list)
    whyChoose: list[str] = Field(default_factory=list)
    whatsappMessage: str = ""
    metaDescription: str = ""
    order: int = 0

    @classmethod
    def from_document(cls, doc: dict) -> "PackageDetail":
        fields = cls._fields_from(doc)
        images = image_list(doc) or [PLACEHOLDER_IMAGE]
        return cls(
            **fields,
            images=images,
            overview=_text(doc.get("overview")),
            itinerary=[ItineraryDay(**day) for day in doc.get("itinerary") or []],
            inclusions=doc.get("inclusions") or [],
            exclusions=doc.get("exclusions") or [],
            whyChoose=doc.get("whyChoose") or [],
            whatsappMessage=_text(
                doc.get("whatsappMessage"),
                f"Hi, I am interested in the {fields['title']}",
            ),
            metaDescription=_text(doc.get("metaDescription")),
            order=_int(doc.get("order")),
        )


class TripOut(BaseModel):
    id: str
    slug: str
    title: str
    activity: str
    location: str = ""
    country: str = ""
    duration: str = ""
    price: str = ""
    rating: float = 4.5
    reviewCount: int = 0
    image: str = PLACEHOLDER_IMAGE
    images: list[str] = Field(default_factory=list)
    description: str = ""
    highlights: list[str] = Field(default_factory=list)
    difficulty: str = ""
    groupSize: str = ""
    type: str = "domestic"
    order: int = 0

    @classmethod
    def from_document(cls, doc: dict) -> "TripOut":
        images = image_list(doc)
        rating = doc.get("rating")
        return cls(
            id=doc["id"],
            slug=_text(doc.get("slug")),
            title=_text(doc.get("title")),
            activity=_text(doc.get("activity")),
            location=_text(doc.get("location")),
            country=_text(doc.get("country")),
            duration=_text(doc.get("duration")),
            price=_text(doc.get("price")),
            rating=rating if isinstance(rating, (int, float)) else 4.5,
            reviewCount=_int(doc.get("reviewCount")),
            image=images[0] if images else PLACEHOLDER_IMAGE,
            images=images,
            description=_text(doc.get("description")),
            highlights=doc.get("highlights") or [],
            difficulty=_text(doc.get("difficulty")),
            groupSize=_text(doc.get("groupSize")),
            type=doc.get("type") if doc.get("type") in TRIP_TYPES else "domestic",
            order=_int(doc.get("order")),
        )


class DestinationOut(BaseModel):
    id: str
    name: str
    country: str = ""
    trips: int = 0
    image: str = PLACEHOLDER_IMAGE
    slug: str
    isPopular: bool = True
    order: int = 0

    @classmethod
    def from_document(
        cls, doc: dict, live_count: Optional[int] = None
    ) -> "DestinationOut":
        return cls(
            id=doc["id"],
            name=_text(doc.get("name")),
            country=_text(doc.get("country")),
            trips=live_count if live_count is not None else _int(doc.get("trips")),
            image=_text(doc.get("image"), PLACEHOLDER_IMAGE),
            slug=_text(doc.get("slug")),
            isPopular=doc.get("isPopular", True) is not False,
            order=_int(doc.get("order")),
        )


class DestinationTripOut(BaseModel):
    id: str
    slug: str
    destinationSlug: str
    destinationName: str = ""
    title: str
    location: str = ""
    duration: str = ""
    price: str = ""
    rating: float = 4.8
    image: str = PLACEHOLDER_IMAGE
    images: list[str] = Field(default_factory=list)
    description: str = ""
    highlights: list[str] = Field(default_factory=list)
    inclusions: list[str] = Field(default_factory=list)
    exclusions: list[str] = Field(default_factory=list)
    mood: str = ""
    activities: list[str] = Field(default_factory=list)
    type: str = "international"
    order: int = 0

    @classmethod
    def from_document(cls, doc: dict) -> "DestinationTripOut":
        images = image_list(doc)
        rating = doc.get("rating")
        return cls(
            id=doc["id"],
            slug=_text(doc.get("slug")),
            destinationSlug=_text(doc.get("destinationSlug")),
            destinationName=_text(doc.get("destinationName")),
            title=_text(doc.get("title")),
            location=_text(doc.get("location")),
            duration=_text(doc.get("duration")),
            price=_text(doc.get("price")),
            rating=rating if isinstance(rating, (int, float)) else 4.8,
            image=images[0] if images else PLACEHOLDER_IMAGE,
            images=images,
            description=_text(doc.get("description")),
            highlights=doc.get("highlights") or [],
            inclusions=doc.get("inclusions") or [],
            exclusions=doc.get("exclusions") or [],
            mood=_text(doc.get("mood")),
            activities=doc.get("activities") or [],
            type=doc.get("type") if doc.get("type") in TRIP_TYPES else "international",
            order=_int(doc.get("order")),
        )


class StorySummary(BaseModel):
    id: str
    title: str
    slug: str
    excerpt: str = ""
    image: str = PLACEHOLDER_IMAGE
    category: str = "Travel"
    readTimeMinutes: int = 5
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @classmethod
    def _fields_from(cls, doc: dict) -> dict:
        images = image_list(doc)
        read_time = doc.get("readTimeMinutes")
        return {
            "id": doc["id"],
            "title": _text(doc.get("title")),
            "slug": _text(doc.get("slug")),
            "excerpt": _text(doc.get("excerpt")),
            "image": images[0] if images else PLACEHOLDER_IMAGE,
            "category": _text(doc.get("category"), "Travel"),
            "readTimeMinutes": read_time if isinstance(read_time, int) else 5,
            "createdAt": doc.get("createdAt"),
            "updatedAt": doc.get("updatedAt"),
        }

    @classmethod
    def from_document(cls, doc: dict) -> "StorySummary":
        return cls(**cls._fields_from(doc))


class StoryOut(StorySummary):
    content: str = ""
    images: list[str] = Field(default_factory=list)
    authorName: str = "Anonymous"
    authorImage: str = ""

    @classmethod
    def from_document(cls, doc: dict) -> "StoryOut":
        return cls(
            **cls._fields_from(doc),
            content=_text(doc.get("content")),
            images=image_list(doc),
            authorName=_text(doc.get("authorName"), "Anonymous"),
            authorImage=_text(doc.get("authorImage")),
        )


class TestimonialOut(BaseModel):
    id: str
    name: str
    location: str = ""
    rating: int = 5
    image: str = ""
    text: str = ""
    package: str = ""

    @classmethod
    def from_document(cls, doc: dict) -> "TestimonialOut":
        return cls(
            id=doc["id"],
            name=_text(doc.get("name")),
            location=_text(doc.get("location")),
            rating=_int(doc.get("rating"), 5) or 5,
            image=_text(doc.get("image")),
            text=_text(doc.get("text")),
            package=_text(doc.get("packageName")),
        )


class UserOut(BaseModel):
    """User shape for admin views. Never carries the password hash."""

    id: str
    email: Optional[str] = None
    username: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    role: str = "user"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> "UserOut":
        return cls(
            id=doc["id"],
            email=doc.get("email") or None,
            username=doc.get("username") or None,
            name=doc.get("name") or None,
            image=doc.get("image") or None,
            role=doc.get("role") or "user",
            created_at=doc.get("createdAt"),
            updated_at=doc.get("updatedAt"),
        )


class ProfileOut(BaseModel):
    id: str
    email: Optional[str] = None
    name: str = ""
    username: str = ""
    image: str = ""
    role: str = "user"
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> "ProfileOut":
        return cls(
            id=doc["id"],
            email=doc.get("email") or None,
            name=_text(doc.get("name")),
            username=_text(doc.get("username")),
            image=_text(doc.get("image")),
            role=doc.get("role") or "user",
            createdAt=doc.get("createdAt"),
            updatedAt=doc.get("updatedAt"),
        )


class SearchHit(BaseModel):
    id: str
    title: str
    location: str = ""
    country: str = ""
    type: str = "domestic"
    category: Literal["package", "trip"]
    url: str
    image: str = PLACEHOLDER_IMAGE
