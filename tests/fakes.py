"""Stand-in collaborators for orchestrator and API tests."""

from __future__ import annotations

import asyncio
from typing import List, Optional

from tastetrail.models import Location, PalateProfile, Restaurant, SearchResult, User
from tastetrail.services.session import SessionOrchestrator

ALICE = User(name="Alice Rao", id="u-1")


class FakeAI:
    """Records calls and answers immediately."""

    def __init__(self, restaurants: Optional[List[Restaurant]] = None) -> None:
        self.restaurants = list(restaurants or [])
        self.palate = PalateProfile.from_dict(
            {
                "title": "Fire Chaser",
                "description": "Loves heat and char.",
                "flavorAffinities": ["spicy", "smoky"],
                "textureAffinities": ["grilled"],
                "avoid": ["bland"],
                "score": 7,
            }
        )
        self.palate_calls: list[tuple[list[str], list[str]]] = []
        self.search_calls: list[dict] = []
        self.spoken: list[str] = []
        self.fail_search = False
        self.fail_speech = False

    async def analyze_taste_personality(self, likes, dislikes) -> PalateProfile:
        self.palate_calls.append((list(likes), list(dislikes)))
        return self.palate

    async def find_restaurants(self, profile, palate, location, photo, user) -> SearchResult:
        self.search_calls.append(
            {"profile": profile, "palate": palate, "location": location, "photo": photo, "user": user}
        )
        if self.fail_search:
            raise RuntimeError("search backend down")
        return SearchResult(restaurants=list(self.restaurants))

    async def generate_speech(self, text: str) -> None:
        if self.fail_speech:
            raise RuntimeError("tts down")
        self.spoken.append(text)


class GatedAI(FakeAI):
    """Each search waits for its own gate so tests control resolution order."""

    def __init__(self) -> None:
        super().__init__()
        self.gates: list[asyncio.Event] = []
        self.answers: list[List[Restaurant]] = []

    async def find_restaurants(self, profile, palate, location, photo, user) -> SearchResult:
        gate = asyncio.Event()
        self.gates.append(gate)
        answer = self.answers[len(self.gates) - 1]
        await gate.wait()
        return SearchResult(restaurants=list(answer))


class GatedPalateAI(FakeAI):
    """Palate analysis waits on a gate keyed by the first liked trait."""

    def __init__(self) -> None:
        super().__init__()
        self.palate_gates: dict[str, asyncio.Event] = {}

    async def analyze_taste_personality(self, likes, dislikes) -> PalateProfile:
        gate = asyncio.Event()
        self.palate_gates[likes[0]] = gate
        await gate.wait()
        return PalateProfile.from_dict({"title": likes[0]})


class FakeLocator:
    def __init__(self, location: Optional[Location] = None, fail: bool = False) -> None:
        self.location = location or Location(lat=12.97, lng=77.59)
        self.fail = fail

    async def get_current_position(self) -> Location:
        if self.fail:
            raise RuntimeError("permission denied")
        return self.location


class FakeCityLookup:
    def __init__(self, city: str = "Bengaluru", fail: bool = False) -> None:
        self.city = city
        self.fail = fail
        self.calls: list[tuple[float, float]] = []

    async def get_city_name(self, lat: float, lng: float) -> str:
        self.calls.append((lat, lng))
        if self.fail:
            raise RuntimeError("lookup failed")
        return self.city


def three_restaurants() -> List[Restaurant]:
    return [
        Restaurant(name="Item 1", swiggy_url="https://swiggy.example/1"),
        Restaurant(name="Item 2"),
        Restaurant(name="Item 3", magicpin_url="https://magicpin.example/3"),
    ]


def reach_ready(orch: SessionOrchestrator, likes=("spicy", "grilled"), dislikes=("bland",)) -> None:
    orch.login(ALICE)
    orch.accept_rules()
    orch.start_game()
    asyncio.run(orch.finish_game(list(likes), list(dislikes)))


