from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types
from hello_agents import HelloAgentsLLM, ToolAwareSimpleAgent
from loguru import logger

from tastetrail.config import Configuration
from tastetrail.errors import CollaboratorError
from tastetrail.models import (
    Location,
    PalateProfile,
    Restaurant,
    SearchResult,
    TasteProfile,
    User,
)
from tastetrail.utils import extract_json_object


PALATE_PROMPT = (
    "You are a food psychologist. A diner swiped through food traits: LIKES are the ones they"
    " enjoyed, DISLIKES the ones they rejected. Describe their palate.\n"
    "Return a JSON object only, using the keys: title (a playful 2-4 word persona), description"
    " (one or two sentences), flavorAffinities (array), textureAffinities (array), avoid (array)."
)

SEARCH_PROMPT = (
    "You are Chef Gully, a restaurant scout. Using the SEARCH PROFILE, the diner's PALATE (may be"
    " null) and LOCATION (may be null), recommend up to 8 real restaurants, best match first.\n"
    "Return a JSON object only: {\"restaurants\": [ {name, cuisine, address, rating, priceLevel,"
    " description, matchReason, signatureDishes, lat, lng, nutritionalInfo, swiggyUrl, zomatoUrl,"
    " orderUrl, eatsureUrl, magicpinUrl} ]}. Leave a link empty when the venue is not on that"
    " platform; never invent links. Include nutritionalInfo only when isHealthyScout is true."
)


def _init_fallback_llm(cfg: Configuration) -> HelloAgentsLLM:
    kw: Dict[str, Any] = {"temperature": 0.2}
    if cfg.llm_model_id or cfg.local_llm:
        kw["model"] = cfg.llm_model_id or cfg.local_llm
    if cfg.llm_provider:
        kw["provider"] = cfg.llm_provider
    if cfg.llm_base_url:
        kw["base_url"] = cfg.llm_base_url
    elif (cfg.llm_provider or "").lower() == "ollama":
        kw["base_url"] = cfg.sanitized_ollama_url()
    if cfg.llm_api_key:
        kw["api_key"] = cfg.llm_api_key
    return HelloAgentsLLM(**kw)


class TasteTrailAI:
    """Analysis, search and speech calls.

    Text calls go to Gemini when a key is configured, otherwise to the
    hello-agents LLM. Speech is Gemini only.
    """

    def __init__(self, cfg: Configuration) -> None:
        self.cfg = cfg
        self._client: Optional[genai.Client] = None
        self._fallback: Optional[HelloAgentsLLM] = None

    def _gemini(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.cfg.gemini_api_key)
        return self._client

    def _generate_text(self, system_prompt: str, prompt: str, photo: Optional[bytes] = None) -> str:
        if self.cfg.has_gemini():
            contents: List[Any] = [prompt]
            if photo:
                contents.append(types.Part.from_bytes(data=photo, mime_type="image/jpeg"))
            response = self._gemini().models.generate_content(
                model=self.cfg.gemini_model_id,
                contents=contents,
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    response_mime_type="application/json",
                ),
            )
            return response.text or ""

        if self.cfg.has_fallback_llm():
            if photo:
                logger.debug("fallback LLM ignores the attached photo")
            if self._fallback is None:
                self._fallback = _init_fallback_llm(self.cfg)
            agent = ToolAwareSimpleAgent(
                name="TasteTrail",
                llm=self._fallback,
                system_prompt=system_prompt,
                enable_tool_calling=False,
            )
            raw = agent.run(prompt)
            agent.clear_history()
            return raw

        raise CollaboratorError("no LLM configured (set GEMINI_API_KEY or LLM_PROVIDER)")

    async def _ask_json(self, system_prompt: str, prompt: str, photo: Optional[bytes] = None) -> dict:
        try:
            raw = await asyncio.to_thread(self._generate_text, system_prompt, prompt, photo)
        except CollaboratorError:
            raise
        except Exception as exc:
            raise CollaboratorError(f"LLM call failed: {exc}") from exc
        data = extract_json_object(raw)
        if data is None:
            raise CollaboratorError("LLM returned no JSON object")
        return data

    async def analyze_taste_personality(self, likes: List[str], dislikes: List[str]) -> PalateProfile:
        prompt = (
            "LIKES: " + json.dumps(likes, ensure_ascii=False) + "\n"
            "DISLIKES: " + json.dumps(dislikes, ensure_ascii=False) + "\n"
            "Return JSON object only."
        )
        data = await self._ask_json(PALATE_PROMPT, prompt)
        return PalateProfile.from_dict(data)

    async def find_restaurants(
        self,
        profile: TasteProfile,
        palate: Optional[PalateProfile],
        location: Optional[Location],
        photo: Optional[bytes],
        user: User,
    ) -> SearchResult:
        prompt = (
            "SEARCH PROFILE: " + json.dumps(profile.to_prompt_dict(), ensure_ascii=False) + "\n"
            "PALATE: " + json.dumps(palate.to_dict() if palate else None, ensure_ascii=False) + "\n"
            "LOCATION: " + json.dumps(location.to_dict() if location else None) + "\n"
            f"DINER: {user.name}\n"
            + ("A photo of a dish is attached; find places serving something similar.\n" if photo else "")
            + "Return JSON object only."
        )
        data = await self._ask_json(SEARCH_PROMPT, prompt, photo)
        items = data.get("restaurants") or []
        if not isinstance(items, list):
            raise CollaboratorError("restaurants must be a list")
        return SearchResult(
            restaurants=[Restaurant.from_payload(it) for it in items if isinstance(it, dict)]
        )

    def _speak(self, text: str) -> Optional[bytes]:
        response = self._gemini().models.generate_content(
            model=self.cfg.gemini_tts_model_id,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.cfg.gemini_voice)
                    )
                ),
            ),
        )
        candidates = response.candidates or []
        if not candidates or not candidates[0].content or not candidates[0].content.parts:
            return None
        inline = candidates[0].content.parts[0].inline_data
        return inline.data if inline else None

    async def generate_speech(self, text: str) -> Optional[bytes]:
        if not (self.cfg.speech_enabled and self.cfg.has_gemini()):
            return None
        return await asyncio.to_thread(self._speak, text)
