"""
Public, read-only catalog endpoints.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from travel_backend.db import (
    DESTINATION_TRIPS,
    DESTINATIONS,
    PACKAGES,
    STORIES,
    TESTIMONIALS,
    TRIPS,
    DocumentStore,
)
from travel_backend.dependencies import get_document_store
from travel_backend.errors import NotFound, ValidationError
from travel_backend.ordering import (
    clamp_limit,
    sort_by_date,
    sort_by_order_and_date,
    sort_by_score_and_date,
)
from travel_backend.query import Query
from travel_backend.schemas import (
    PLACEHOLDER_IMAGE,
    DestinationOut,
    DestinationTripOut,
    PackageCard,
    PackageDetail,
    SearchHit,
    StoryOut,
    TestimonialOut,
    TripOut,
    envelope,
    image_list,
)

logger = logging.getLogger(__name__)

router = APIRouter()

TRIP_SEARCH_FIELDS = ("title", "location", "country", "description", "highlights")
DESTINATION_TRIP_SEARCH_FIELDS = ("title", "location", "mood", "highlights")
STORY_TEXT_FIELDS = ("title", "excerpt", "content", "category", "authorName")

DEFAULT_TRIP_LIMIT = 50
MAX_TRIP_LIMIT = 200
DEFAULT_STORY_LIMIT = 20
MAX_STORY_LIMIT = 50
TESTIMONIAL_LIMIT = 20

SEARCH_LIMIT_PER_KIND = 10
SEARCH_LIMIT_TOTAL = 12


def _pattern(q: Optional[str]) -> Optional[str]:
    return q.strip() if q and q.strip() else None


@router.get("/packages")
def list_packages(
    type: Optional[str] = None,
    store: DocumentStore = Depends(get_document_store),
):
    equals = {"type": type} if type else {}
    packages = sort_by_order_and_date(store.find(PACKAGES, Query(equals=equals)))
    return envelope(data=[PackageCard.from_document(doc) for doc in packages])


@router.get("/packages/{slug}")
def get_package(slug: str, store: DocumentStore = Depends(get_document_store)):
    package = store.find_one(PACKAGES, Query(equals={"slug": slug}))
    if package is None:
        raise NotFound("Package not found")
    return envelope(data=PackageDetail.from_document(package))


@router.get("/trips")
def list_trips(
    activity: Optional[str] = None,
    type: Optional[str] = None,
    q: Optional[str] = None,
    limit: Optional[str] = None,
    store: DocumentStore = Depends(get_document_store),
):
    equals = {}
    if activity:
        equals["activity"] = activity
    if type:
        equals["type"] = type
    query = Query(equals=equals, pattern=_pattern(q), pattern_fields=TRIP_SEARCH_FIELDS)
    cap = clamp_limit(limit, DEFAULT_TRIP_LIMIT, maximum=MAX_TRIP_LIMIT)
    trips = sort_by_order_and_date(store.find(TRIPS, query))[:cap]
    return envelope(data=[TripOut.from_document(doc) for doc in trips])


def _live_trip_counts(store: DocumentStore, slugs: list[str]) -> dict:
    if not slugs:
        return {}
    try:
        return store.count_by(DESTINATION_TRIPS, "destinationSlug", slugs)
    except Exception:
        logger.warning("Destination trip count failed; using stored counters", exc_info=True)
        return {}


@router.get("/destinations")
def list_destinations(
    popular: Optional[str] = None,
    store: DocumentStore = Depends(get_document_store),
):
    equals = {}
    if popular is not None:
        equals["isPopular"] = popular == "true"
    destinations = sort_by_order_and_date(store.find(DESTINATIONS, Query(equals=equals)))
    counts = _live_trip_counts(
        store, [doc["slug"] for doc in destinations if doc.get("slug")]
    )
    return envelope(
        data=[
            DestinationOut.from_document(doc, counts.get(doc.get("slug")))
            for doc in destinations
        ]
    )


@router.get("/destination-trips")
def list_destination_trips(
    destination: Optional[str] = None,
    type: Optional[str] = None,
    q: Optional[str] = None,
    store: DocumentStore = Depends(get_document_store),
):
    if not destination or not destination.strip():
        raise ValidationError("destination is required")
    equals = {"destinationSlug": destination.strip()}
    if type:
        equals["type"] = type
    query = Query(
        equals=equals, pattern=_pattern(q), pattern_fields=DESTINATION_TRIP_SEARCH_FIELDS
    )
    items = sort_by_order_and_date(store.find(DESTINATION_TRIPS, query))
    return envelope(data=[DestinationTripOut.from_document(doc) for doc in items])


@router.get("/destination-trips/{slug}")
def get_destination_trip(slug: str, store: DocumentStore = Depends(get_document_store)):
    trip = store.find_one(DESTINATION_TRIPS, Query(equals={"slug": slug}))
    if trip is None:
        raise NotFound("Trip not found")
    return envelope(data=DestinationTripOut.from_document(trip))


@router.get("/stories")
def list_stories(
    q: Optional[str] = None,
    limit: Optional[str] = None,
    store: DocumentStore = Depends(get_document_store),
):
    cap = clamp_limit(limit, DEFAULT_STORY_LIMIT, maximum=MAX_STORY_LIMIT)
    term = _pattern(q)
    if term:
        query = Query(text=term, text_fields=STORY_TEXT_FIELDS)
        stories = sort_by_score_and_date(store.find(STORIES, query), query.text_score)
    else:
        stories = sort_by_date(store.find(STORIES))
    return envelope(data=[StoryOut.from_document(doc) for doc in stories[:cap]])


@router.get("/stories/{slug}")
def get_story(slug: str, store: DocumentStore = Depends(get_document_store)):
    story = store.find_one(STORIES, Query(equals={"slug": slug}))
    if story is None:
        raise NotFound("Story not found")
    return envelope(data=StoryOut.from_document(story))


@router.get("/testimonials")
def list_testimonials(store: DocumentStore = Depends(get_document_store)):
    items = sort_by_date(store.find(TESTIMONIALS))[:TESTIMONIAL_LIMIT]
    return envelope(data=[TestimonialOut.from_document(doc) for doc in items])


def _search_hit(doc: dict, category: str, url: str) -> SearchHit:
    images = image_list(doc)
    return SearchHit(
        id=f"{category}-{doc['id']}",
        title=doc.get("title") or "",
        location=doc.get("location") or "",
        country=doc.get("country") or "",
        type=doc.get("type") or "domestic",
        category=category,
        url=url,
        image=images[0] if images else PLACEHOLDER_IMAGE,
    )


@router.get("/search")
def search(q: Optional[str] = None, store: DocumentStore = Depends(get_document_store)):
    term = _pattern(q)
    if not term:
        return envelope(data={"packages": [], "trips": [], "all": [], "total": 0})

    packages = store.find(
        PACKAGES,
        Query(
            pattern=term,
            pattern_fields=(
                "title",
                "location",
                "country",
                "overview",
                "slug",
                "highlights",
                "activities",
            ),
        ),
    )[:SEARCH_LIMIT_PER_KIND]
    trips = store.find(
        TRIPS,
        Query(
            pattern=term,
            pattern_fields=TRIP_SEARCH_FIELDS + ("slug", "activity"),
        ),
    )[:SEARCH_LIMIT_PER_KIND]

    package_hits = [
        _search_hit(doc, "package", f"/packages/{doc.get('slug', '')}")
        for doc in packages
    ]
    trip_hits = [
        _search_hit(doc, "trip", f"/activities/{doc.get('activity', '')}")
        for doc in trips
    ]
    combined = (package_hits + trip_hits)[:SEARCH_LIMIT_TOTAL]
    return envelope(
        data={
            "packages": package_hits,
            "trips": trip_hits,
            "all": combined,
            "total": len(combined),
        }
    )
