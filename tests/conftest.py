from __future__ import annotations

import pytest

from fakes import FakeAI, three_restaurants
from tastetrail.models import TasteProfile
from tastetrail.services.session import SessionOrchestrator
from tastetrail.services.store import MemoryStore, SessionStore


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(MemoryStore())


@pytest.fixture
def ai() -> FakeAI:
    return FakeAI(three_restaurants())


@pytest.fixture
def orch(store: SessionStore, ai: FakeAI) -> SessionOrchestrator:
    return SessionOrchestrator(store, ai)


@pytest.fixture
def profile() -> TasteProfile:
    return TasteProfile(favorite_flavors=["spicy"], preferred_cuisines=["Andhra"])
