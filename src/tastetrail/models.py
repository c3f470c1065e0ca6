"""Data models for the TasteTrail session core."""

from __future__ import annotations

import copy
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

# Delivery/ordering platforms a restaurant can link to.
DELIVERY_LINK_FIELDS = ("swiggy_url", "zomato_url", "order_url", "eatsure_url", "magicpin_url")


def _str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    return [str(x).strip() for x in value if str(x).strip()]


def _opt_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None and value != "" else None
    except (TypeError, ValueError):
        return None


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


@dataclass(frozen=True)
class User:
    name: str
    id: str
    email: Optional[str] = None
    avatar: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            name=str(data.get("name") or ""),
            id=str(data.get("id") or ""),
            email=_opt_str(data.get("email")),
            avatar=_opt_str(data.get("avatar")),
        )


def _names(value: Any) -> list[str]:
    # affinities may come back as a list of names or as a {name: weight} map
    if isinstance(value, dict):
        return _str_list(list(value))
    return _str_list(value)


@dataclass
class PalateProfile:
    """Palate analysis exactly as the collaborator returned it.

    ``raw`` is the source of truth and is what gets persisted; the properties
    are read-only views for logging and reports.
    """

    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return str(self.raw.get("title") or "")

    @property
    def description(self) -> str:
        return str(self.raw.get("description") or "")

    @property
    def flavor_affinities(self) -> list[str]:
        return _names(self.raw.get("flavorAffinities"))

    @property
    def texture_affinities(self) -> list[str]:
        return _names(self.raw.get("textureAffinities"))

    @property
    def avoid(self) -> list[str]:
        return _names(self.raw.get("avoid"))

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self.raw)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PalateProfile":
        return cls(raw=copy.deepcopy(dict(data)))


@dataclass
class TasteProfile:
    dietary_preferences: list[str] = field(default_factory=list)
    favorite_flavors: list[str] = field(default_factory=list)
    preferred_textures: list[str] = field(default_factory=list)
    preferred_cuisines: list[str] = field(default_factory=list)
    features: list[str] = field(default_factory=list)
    atmosphere: str = "Lively"
    dining_theme: str = "Casual"
    budget: str = "₹₹"
    custom_notes: str = ""
    occasion: str = "Solo"
    max_distance: str = "5km"
    age_group: str = "Adult"
    comfort_preference: str = "Casual"
    health_goal: str = "Balanced"
    spice_tolerance: str = "Medium"
    is_healthy_scout: bool = False
    online_ordering_only: bool = False

    def to_prompt_dict(self) -> dict[str, Any]:
        return {
            "dietaryPreferences": self.dietary_preferences,
            "favoriteFlavors": self.favorite_flavors,
            "preferredTextures": self.preferred_textures,
            "preferredCuisines": self.preferred_cuisines,
            "features": self.features,
            "atmosphere": self.atmosphere,
            "diningTheme": self.dining_theme,
            "budget": self.budget,
            "customNotes": self.custom_notes,
            "occasion": self.occasion,
            "maxDistance": self.max_distance,
            "ageGroup": self.age_group,
            "comfortPreference": self.comfort_preference,
            "healthGoal": self.health_goal,
            "spiceTolerance": self.spice_tolerance,
            "isHealthyScout": self.is_healthy_scout,
            "onlineOrderingOnly": self.online_ordering_only,
        }


@dataclass(frozen=True)
class Restaurant:
    name: str
    id: Optional[str] = None
    cuisine: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    price_level: Optional[str] = None
    description: Optional[str] = None
    match_reason: Optional[str] = None
    signature_dishes: tuple[str, ...] = ()
    lat: Optional[float] = None
    lng: Optional[float] = None
    nutrition: Optional[str] = None
    swiggy_url: Optional[str] = None
    zomato_url: Optional[str] = None
    order_url: Optional[str] = None
    eatsure_url: Optional[str] = None
    magicpin_url: Optional[str] = None

    @property
    def delivery_links(self) -> dict[str, str]:
        links: dict[str, str] = {}
        for name in DELIVERY_LINK_FIELDS:
            value = getattr(self, name)
            if value and str(value).strip():
                links[name] = value
        return links

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["signature_dishes"] = list(self.signature_dishes)
        return data

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "Restaurant":
        """Build from a search payload entry (camelCase keys, snake_case accepted too)."""

        def pick(*keys: str) -> Any:
            for k in keys:
                if data.get(k) not in (None, ""):
                    return data[k]
            return None

        return cls(
            name=str(pick("name") or "Restaurant"),
            id=_opt_str(pick("id")),
            cuisine=_opt_str(pick("cuisine", "cuisineType")),
            address=_opt_str(pick("address")),
            rating=_opt_float(pick("rating")),
            price_level=_opt_str(pick("priceLevel", "price_level", "priceRange")),
            description=_opt_str(pick("description")),
            match_reason=_opt_str(pick("matchReason", "match_reason", "whyMatched")),
            signature_dishes=tuple(_str_list(pick("signatureDishes", "signature_dishes"))),
            lat=_opt_float(pick("lat", "latitude")),
            lng=_opt_float(pick("lng", "lon", "longitude")),
            nutrition=_opt_str(pick("nutritionalInfo", "nutrition")),
            swiggy_url=_opt_str(pick("swiggyUrl", "swiggy_url")),
            zomato_url=_opt_str(pick("zomatoUrl", "zomato_url")),
            order_url=_opt_str(pick("orderUrl", "order_url")),
            eatsure_url=_opt_str(pick("eatsureUrl", "eatsure_url")),
            magicpin_url=_opt_str(pick("magicpinUrl", "magicpin_url")),
        )


@dataclass
class SearchResult:
    restaurants: list[Restaurant] = field(default_factory=list)


@dataclass(frozen=True)
class Booking:
    restaurant_name: str
    date: str
    time: str
    guests: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}
