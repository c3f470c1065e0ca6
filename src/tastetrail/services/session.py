"""Session orchestration: the user's journey from login to results and bookings."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, Set

from loguru import logger

from tastetrail.errors import TransitionError
from tastetrail.models import Booking, Location, PalateProfile, Restaurant, TasteProfile, User
from tastetrail.services.game import SwipeGame
from tastetrail.services.matching import filter_delivery_only, match_restaurants, voice_profile
from tastetrail.services.navigation import (
    NAV_SCREENS,
    BackTarget,
    Screen,
    ViewMode,
    resolve_back,
    screen_after_back,
)
from tastetrail.services.palate import derive_palate
from tastetrail.services.report import loading_message, success_announcement
from tastetrail.services.store import SessionStore

if TYPE_CHECKING:
    from tastetrail.services.geoapify import GeoapifyClient
    from tastetrail.services.geolocation import IpLocator
    from tastetrail.services.gemini import TasteTrailAI

SEARCHABLE_SCREENS = frozenset({Screen.READY, Screen.SEARCHING, Screen.RESULTS})

# seconds each loading message stays up while a search runs
LOADING_ROTATE_SECONDS = 2.0


@dataclass(frozen=True)
class SessionSnapshot:
    screen: Screen
    view_mode: ViewMode
    user: Optional[User]
    palate: Optional[PalateProfile]
    tour_visible: bool
    is_loading: bool
    active_profile: Optional[TasteProfile]
    restaurants: List[Restaurant]
    total_results: int
    delivery_only: bool
    selected_index: Optional[int]
    bookings: List[Booking]
    location: Optional[Location]
    city_name: Optional[str]
    last_announcement: Optional[str]
    game_card: Optional[str]
    loading_message: Optional[str] = None


class SessionOrchestrator:
    """Finite-state controller over one device's session.

    Each event method runs to completion before the next is processed; only
    the awaited collaborator calls suspend. Searches and palate derivations
    carry a token and only the latest issued one is ever committed.
    """

    def __init__(
        self,
        store: SessionStore,
        ai: "TasteTrailAI",
        *,
        city_lookup: Optional["GeoapifyClient"] = None,
        locator: Optional["IpLocator"] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.ai = ai
        self.city_lookup = city_lookup
        self.locator = locator
        self.clock = clock

        self.screen = Screen.LOGGED_OUT
        self.view_mode = ViewMode.LIST
        self.user: Optional[User] = None
        self.palate: Optional[PalateProfile] = None
        self.tour_visible = False
        self.game: Optional[SwipeGame] = None

        self.active_profile: Optional[TasteProfile] = None
        self.restaurants: List[Restaurant] = []
        self.delivery_only = False
        self.selected_index: Optional[int] = None
        self.bookings: List[Booking] = []

        self.location: Optional[Location] = None
        self.city_name: Optional[str] = None
        self.last_announcement: Optional[str] = None

        self._search_token = 0
        self._palate_token = 0
        self._search_started: Optional[float] = None
        self._background: Set[asyncio.Task] = set()

    # -- lifecycle -------------------------------------------------------

    def hydrate(self) -> None:
        """Restore user, palate and tour state from the store. Call once at startup."""
        self.user = self.store.load_user()
        self.palate = self.store.load_palate()
        if self.user is None:
            self.screen = Screen.LOGGED_OUT
        elif self.palate is None:
            self.screen = Screen.RULES
        else:
            self.screen = Screen.READY
            self._maybe_show_tour()
        logger.info(
            "session hydrated screen={} user={} palate={}",
            self.screen.value,
            bool(self.user),
            bool(self.palate),
        )

    def start(self) -> None:
        """Hydrate and kick off location acquisition in the background."""
        self.hydrate()
        self._spawn(self.locate())

    async def wait_background(self) -> None:
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _require(self, *screens: Screen) -> None:
        if self.screen not in screens:
            allowed = ", ".join(s.value for s in screens)
            raise TransitionError(f"not allowed from {self.screen.value} (expected {allowed})")

    def _maybe_show_tour(self) -> None:
        if not self.store.tour_seen():
            self.tour_visible = True

    # -- onboarding ------------------------------------------------------

    def login(self, user: User) -> None:
        self._require(Screen.LOGGED_OUT)
        self.user = user
        self.store.save_user(user)
        self.screen = Screen.RULES
        if self.palate is not None:
            self._maybe_show_tour()
        logger.info("login user_id={}", user.id)

    def accept_rules(self) -> None:
        self._require(Screen.RULES)
        self.screen = Screen.TUTORIAL

    def start_game(self) -> None:
        self._require(Screen.TUTORIAL)
        self.game = SwipeGame()
        self.screen = Screen.GAME

    def swipe(self, liked: bool) -> Optional[str]:
        self._require(Screen.GAME)
        if self.game is None:
            self.game = SwipeGame()
        return self.game.swipe(liked)

    async def finish_game(
        self, likes: Optional[List[str]] = None, dislikes: Optional[List[str]] = None
    ) -> Optional[PalateProfile]:
        """Leave the game and derive the palate from its outcome.

        Without explicit lists the swipes recorded on the current deck are used.
        Returns None when a later game superseded this one before it resolved.
        """
        self._require(Screen.GAME)
        if likes is None and dislikes is None and self.game is not None:
            likes, dislikes = self.game.results()
        self.game = None
        self.screen = Screen.READY
        self._palate_token += 1
        token = self._palate_token

        try:
            palate = await derive_palate(self.ai, likes or [], dislikes or [])
        except Exception as exc:
            if token != self._palate_token:
                logger.debug("stale palate token={} failed: {}", token, exc)
                return None
            logger.exception("palate derivation failed: {}", exc)
            raise

        if token != self._palate_token:
            logger.debug("discarding stale palate token={} latest={}", token, self._palate_token)
            return None
        self.palate = palate
        self.store.save_palate(palate)
        self._maybe_show_tour()
        logger.info("palate saved title={!r}", palate.title)
        return palate

    def complete_tour(self) -> None:
        self.tour_visible = False
        self.store.mark_tour_seen()

    # -- search ----------------------------------------------------------

    async def submit_search(self, profile: TasteProfile, photo: Optional[bytes] = None) -> bool:
        """Run a search; returns False when the result was stale or the call failed."""
        if self.user is None:
            raise TransitionError("login required before searching")
        self._require(*SEARCHABLE_SCREENS)

        self._search_token += 1
        token = self._search_token
        self.active_profile = profile
        self.restaurants = []
        self.selected_index = None
        self.view_mode = ViewMode.LIST
        self.delivery_only = profile.online_ordering_only
        self.screen = Screen.SEARCHING
        self._search_started = self.clock()
        logger.info("search issued token={} healthy={} delivery={}", token, profile.is_healthy_scout, self.delivery_only)

        try:
            restaurants = await match_restaurants(
                self.ai, profile, self.palate, self.location, photo, self.user
            )
        except Exception as exc:
            if token != self._search_token:
                logger.debug("stale search token={} failed: {}", token, exc)
                return False
            logger.exception("search failed token={}: {}", token, exc)
            self.restaurants = []
            self.screen = Screen.RESULTS
            return False

        if token != self._search_token:
            logger.debug("discarding stale search token={} latest={}", token, self._search_token)
            return False

        self.restaurants = restaurants
        self.screen = Screen.RESULTS
        logger.info("search committed token={} results={}", token, len(restaurants))
        if restaurants:
            self._announce(success_announcement(profile, len(restaurants)))
        return True

    async def voice_search(self, utterance: str) -> bool:
        return await self.submit_search(voice_profile(utterance))

    def _announce(self, text: str) -> None:
        self.last_announcement = text
        self._spawn(self._speak(text))

    async def _speak(self, text: str) -> None:
        try:
            await self.ai.generate_speech(text)
        except Exception as exc:
            logger.warning("speech failed: {}", exc)

    @property
    def visible_restaurants(self) -> List[Restaurant]:
        return filter_delivery_only(self.restaurants, self.delivery_only)

    def set_delivery_filter(self, enabled: bool) -> None:
        self._require(*NAV_SCREENS)
        self.delivery_only = enabled
        self.selected_index = None

    def toggle_delivery_filter(self) -> bool:
        self.set_delivery_filter(not self.delivery_only)
        return self.delivery_only

    def select_restaurant(self, index: Optional[int]) -> None:
        if index is not None and not 0 <= index < len(self.visible_restaurants):
            raise TransitionError(f"no restaurant at index {index}")
        self.selected_index = index

    # -- navigation ------------------------------------------------------

    def back(self) -> BackTarget:
        target = resolve_back(self.screen)
        if target is None:
            raise TransitionError("nothing to go back to")

        if target is BackTarget.DISCARD_RESULTS:
            # a search still in flight resolves into a token nobody waits for
            self._search_token += 1
            self.restaurants = []
            self.active_profile = None
            self.selected_index = None
            self.delivery_only = False
            self.view_mode = ViewMode.LIST
        elif target is BackTarget.TUTORIAL:
            self.game = None
        elif target is BackTarget.LOG_OUT:
            self.user = None
            self.store.clear_user()
        elif target is BackTarget.GAME:
            # a derivation still in flight must not overwrite the replay's palate
            self._palate_token += 1
            self.game = SwipeGame()

        previous = self.screen
        self.screen = screen_after_back(target)
        logger.info("back {} -> {}", previous.value, self.screen.value)
        return target

    def set_view_mode(self, mode: ViewMode) -> None:
        self._require(*NAV_SCREENS)
        self.view_mode = mode

    # -- bookings --------------------------------------------------------

    def book(self, restaurant_name: str, date: str, time: str, guests: int) -> Booking:
        if self.user is None:
            raise TransitionError("login required before booking")
        booking = Booking(restaurant_name=restaurant_name, date=date, time=time, guests=guests)
        self.bookings.insert(0, booking)
        logger.info("booking {} at {} {} for {}", restaurant_name, date, time, guests)
        return booking

    # -- location --------------------------------------------------------

    async def locate(self) -> None:
        if self.locator is None:
            return
        try:
            self.location = await self.locator.get_current_position()
        except Exception as exc:
            logger.warning("geolocation unavailable: {}", exc)
            return
        if self.city_lookup is None:
            return
        try:
            self.city_name = await self.city_lookup.get_city_name(self.location.lat, self.location.lng)
        except Exception as exc:
            logger.warning("city lookup failed: {}", exc)

    # -- views -----------------------------------------------------------

    def current_loading_message(self) -> Optional[str]:
        if self.screen is not Screen.SEARCHING:
            return None
        healthy = self.active_profile is not None and self.active_profile.is_healthy_scout
        started = self._search_started if self._search_started is not None else self.clock()
        tick = int(max(self.clock() - started, 0.0) // LOADING_ROTATE_SECONDS)
        return loading_message(healthy, tick)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            screen=self.screen,
            view_mode=self.view_mode,
            user=self.user,
            palate=self.palate,
            tour_visible=self.tour_visible,
            is_loading=self.screen is Screen.SEARCHING,
            active_profile=self.active_profile,
            restaurants=self.visible_restaurants,
            total_results=len(self.restaurants),
            delivery_only=self.delivery_only,
            selected_index=self.selected_index,
            bookings=list(self.bookings),
            location=self.location,
            city_name=self.city_name,
            last_announcement=self.last_announcement,
            game_card=self.game.current if self.game is not None else None,
            loading_message=self.current_loading_message(),
        )
