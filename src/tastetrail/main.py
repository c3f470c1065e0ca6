from __future__ import annotations

import base64
import binascii
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger
from pydantic import BaseModel, Field

from tastetrail.config import Configuration, configure_logging
from tastetrail.errors import CollaboratorError, TransitionError
from tastetrail.models import TasteProfile, User
from tastetrail.services.geoapify import GeoapifyClient
from tastetrail.services.gemini import TasteTrailAI
from tastetrail.services.geolocation import IpLocator
from tastetrail.services.navigation import ViewMode
from tastetrail.services.report import build_report
from tastetrail.services.session import SessionOrchestrator, SessionSnapshot
from tastetrail.services.store import build_store


app = FastAPI(title="TasteTrail")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_orchestrator: Optional[SessionOrchestrator] = None


def build_orchestrator(cfg: Configuration) -> SessionOrchestrator:
    return SessionOrchestrator(
        build_store(cfg.store_dir),
        TasteTrailAI(cfg),
        city_lookup=GeoapifyClient(cfg) if cfg.geoapify_api_key else None,
        locator=IpLocator(cfg),
    )


async def get_orchestrator() -> SessionOrchestrator:
    """One orchestrator per process; the process stands for one device."""
    global _orchestrator
    if _orchestrator is None:
        cfg = Configuration.from_env(env_file=".env")
        configure_logging(cfg)
        logger.info("cfg: {}", cfg.log_summary())
        _orchestrator = build_orchestrator(cfg)
        _orchestrator.start()
    return _orchestrator


@app.exception_handler(TransitionError)
async def transition_error_handler(request: Request, exc: TransitionError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(CollaboratorError)
async def collaborator_error_handler(request: Request, exc: CollaboratorError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc)})


class UserPayload(BaseModel):
    name: str
    id: str
    email: Optional[str] = None
    avatar: Optional[str] = None


class TasteProfilePayload(BaseModel):
    dietary_preferences: List[str] = []
    favorite_flavors: List[str] = []
    preferred_textures: List[str] = []
    preferred_cuisines: List[str] = []
    features: List[str] = []
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


class SearchRequest(BaseModel):
    profile: TasteProfilePayload
    photo_base64: Optional[str] = Field(None, description="Optional JPEG of a dish to match")


class VoiceSearchRequest(BaseModel):
    query: str = Field(..., description="Transcribed voice request")


class SwipeRequest(BaseModel):
    liked: bool


class GameCompleteRequest(BaseModel):
    likes: Optional[List[str]] = None
    dislikes: Optional[List[str]] = None


class ViewRequest(BaseModel):
    mode: ViewMode


class DeliveryFilterRequest(BaseModel):
    enabled: Optional[bool] = Field(None, description="Omit to toggle")


class SelectRequest(BaseModel):
    index: Optional[int] = None


class BookingRequest(BaseModel):
    restaurant_name: str
    date: str
    time: str
    guests: int = Field(2, ge=1)


class SessionPayload(BaseModel):
    screen: str
    view_mode: str
    user: Optional[Dict[str, Any]] = None
    palate: Optional[Dict[str, Any]] = None
    tour_visible: bool
    is_loading: bool
    active_profile: Optional[Dict[str, Any]] = None
    restaurants: List[Dict[str, Any]] = []
    total_results: int = 0
    delivery_only: bool = False
    selected_index: Optional[int] = None
    bookings: List[Dict[str, Any]] = []
    location: Optional[Dict[str, float]] = None
    city_name: Optional[str] = None
    last_announcement: Optional[str] = None
    game_card: Optional[str] = None
    loading_message: Optional[str] = None


def to_payload(snap: SessionSnapshot) -> SessionPayload:
    return SessionPayload(
        screen=snap.screen.value,
        view_mode=snap.view_mode.value,
        user=snap.user.to_dict() if snap.user else None,
        palate=snap.palate.to_dict() if snap.palate else None,
        tour_visible=snap.tour_visible,
        is_loading=snap.is_loading,
        active_profile=asdict(snap.active_profile) if snap.active_profile else None,
        restaurants=[r.to_dict() for r in snap.restaurants],
        total_results=snap.total_results,
        delivery_only=snap.delivery_only,
        selected_index=snap.selected_index,
        bookings=[asdict(b) for b in snap.bookings],
        location=snap.location.to_dict() if snap.location else None,
        city_name=snap.city_name,
        last_announcement=snap.last_announcement,
        game_card=snap.game_card,
        loading_message=snap.loading_message,
    )


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


@app.get("/session", response_model=SessionPayload)
async def session(orch: SessionOrchestrator = Depends(get_orchestrator)) -> SessionPayload:
    return to_payload(orch.snapshot())


@app.post("/login", response_model=SessionPayload)
async def login(req: UserPayload, orch: SessionOrchestrator = Depends(get_orchestrator)) -> SessionPayload:
    orch.login(User(name=req.name, id=req.id, email=req.email, avatar=req.avatar))
    return to_payload(orch.snapshot())


@app.post("/rules/accept", response_model=SessionPayload)
async def accept_rules(orch: SessionOrchestrator = Depends(get_orchestrator)) -> SessionPayload:
    orch.accept_rules()
    return to_payload(orch.snapshot())


@app.post("/game/start", response_model=SessionPayload)
async def start_game(orch: SessionOrchestrator = Depends(get_orchestrator)) -> SessionPayload:
    orch.start_game()
    return to_payload(orch.snapshot())


@app.post("/game/swipe", response_model=SessionPayload)
async def swipe(req: SwipeRequest, orch: SessionOrchestrator = Depends(get_orchestrator)) -> SessionPayload:
    try:
        orch.swipe(req.liked)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return to_payload(orch.snapshot())


@app.post("/game/complete", response_model=SessionPayload)
async def complete_game(
    req: GameCompleteRequest, orch: SessionOrchestrator = Depends(get_orchestrator)
) -> SessionPayload:
    await orch.finish_game(req.likes, req.dislikes)
    return to_payload(orch.snapshot())


@app.post("/search", response_model=SessionPayload)
async def search(req: SearchRequest, orch: SessionOrchestrator = Depends(get_orchestrator)) -> SessionPayload:
    photo: Optional[bytes] = None
    if req.photo_base64:
        try:
            photo = base64.b64decode(req.photo_base64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail="photo_base64 is not valid base64")
    await orch.submit_search(TasteProfile(**req.profile.model_dump()), photo)
    return to_payload(orch.snapshot())


@app.post("/voice-search", response_model=SessionPayload)
async def voice_search(
    req: VoiceSearchRequest, orch: SessionOrchestrator = Depends(get_orchestrator)
) -> SessionPayload:
    await orch.voice_search(req.query)
    return to_payload(orch.snapshot())


@app.post("/back", response_model=SessionPayload)
async def back(orch: SessionOrchestrator = Depends(get_orchestrator)) -> SessionPayload:
    orch.back()
    return to_payload(orch.snapshot())


@app.post("/view", response_model=SessionPayload)
async def view(req: ViewRequest, orch: SessionOrchestrator = Depends(get_orchestrator)) -> SessionPayload:
    orch.set_view_mode(req.mode)
    return to_payload(orch.snapshot())


@app.post("/delivery-filter", response_model=SessionPayload)
async def delivery_filter(
    req: DeliveryFilterRequest, orch: SessionOrchestrator = Depends(get_orchestrator)
) -> SessionPayload:
    if req.enabled is None:
        orch.toggle_delivery_filter()
    else:
        orch.set_delivery_filter(req.enabled)
    return to_payload(orch.snapshot())


@app.post("/select", response_model=SessionPayload)
async def select(req: SelectRequest, orch: SessionOrchestrator = Depends(get_orchestrator)) -> SessionPayload:
    orch.select_restaurant(req.index)
    return to_payload(orch.snapshot())


@app.post("/bookings", response_model=SessionPayload)
async def create_booking(
    req: BookingRequest, orch: SessionOrchestrator = Depends(get_orchestrator)
) -> SessionPayload:
    orch.book(req.restaurant_name, req.date, req.time, req.guests)
    return to_payload(orch.snapshot())


@app.post("/tour/complete", response_model=SessionPayload)
async def complete_tour(orch: SessionOrchestrator = Depends(get_orchestrator)) -> SessionPayload:
    orch.complete_tour()
    return to_payload(orch.snapshot())


@app.get("/report", response_class=PlainTextResponse)
async def report(orch: SessionOrchestrator = Depends(get_orchestrator)) -> str:
    snap = orch.snapshot()
    return build_report(
        snap.active_profile,
        snap.restaurants,
        snap.bookings,
        delivery_only=snap.delivery_only,
        city=snap.city_name,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("tastetrail.main:app", host="0.0.0.0", port=8010, reload=True)
