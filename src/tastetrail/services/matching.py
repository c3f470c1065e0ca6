"""Restaurant matching, delivery filtering and voice-query adaptation."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

from loguru import logger

from tastetrail.models import (
    Location,
    PalateProfile,
    Restaurant,
    TasteProfile,
    User,
)

if TYPE_CHECKING:
    from tastetrail.services.gemini import TasteTrailAI

DELIVERY_KEYWORDS = ("order", "delivery", "online")


async def match_restaurants(
    searcher: "TasteTrailAI",
    profile: TasteProfile,
    palate: Optional[PalateProfile],
    location: Optional[Location],
    photo: Optional[bytes],
    user: User,
) -> List[Restaurant]:
    """Ask the search collaborator for matches; its order is the ranking."""
    result = await searcher.find_restaurants(profile, palate, location, photo, user)
    restaurants = list(result.restaurants)
    logger.debug(
        "search returned {} restaurants palate={} location={} photo={}",
        len(restaurants),
        palate is not None,
        location is not None,
        photo is not None,
    )
    return restaurants


def is_delivery_capable(restaurant: Restaurant) -> bool:
    return bool(restaurant.delivery_links)


def filter_delivery_only(restaurants: Sequence[Restaurant], enabled: bool) -> List[Restaurant]:
    if not enabled:
        return list(restaurants)
    return [r for r in restaurants if is_delivery_capable(r)]


def voice_profile(utterance: str) -> TasteProfile:
    """Adapt a spoken request to a default-filled search profile."""
    lowered = utterance.lower()
    return TasteProfile(
        custom_notes=utterance,
        online_ordering_only=any(token in lowered for token in DELIVERY_KEYWORDS),
    )
