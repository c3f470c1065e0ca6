from __future__ import annotations

import os
import sys
from typing import Any, Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field

from tastetrail.utils import mask_secret


class Configuration(BaseModel):
    # Gemini
    gemini_api_key: Optional[str] = Field(default=None)
    gemini_model_id: str = Field(default="gemini-2.5-flash")
    gemini_tts_model_id: str = Field(default="gemini-2.5-flash-preview-tts")
    gemini_voice: str = Field(default="Kore")

    # LLM fallback (hello-agents; same semantics as the restaurant recommender)
    local_llm: Optional[str] = Field(default=None)
    llm_provider: Optional[str] = Field(default=None)
    llm_api_key: Optional[str] = Field(default=None)
    llm_base_url: Optional[str] = Field(default=None)
    llm_model_id: Optional[str] = Field(default=None)
    # native ollama base (without /v1)
    ollama_base_url: str = Field(default="http://localhost:11434")

    # Geoapify (reverse geocoding for the city name)
    geoapify_api_key: Optional[str] = Field(default=None)
    geoapify_base_url: str = Field(default="https://api.geoapify.com")
    geoapify_timeout: int = Field(default=15)

    # Position sensor
    geolocation_url: str = Field(default="https://ipapi.co/json/")
    geolocation_timeout: int = Field(default=5)

    # Session store; unset keeps everything in memory
    store_dir: Optional[str] = Field(default=None)

    speech_enabled: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    @classmethod
    def from_env(
        cls, overrides: Optional[dict[str, Any]] = None, *, env_file: Optional[str] = None
    ) -> "Configuration":
        if env_file:
            load_dotenv(env_file)
        raw: dict[str, Any] = {}

        env_map = {
            "gemini_api_key": os.getenv("GEMINI_API_KEY"),
            "gemini_model_id": os.getenv("GEMINI_MODEL_ID"),
            "gemini_tts_model_id": os.getenv("GEMINI_TTS_MODEL_ID"),
            "gemini_voice": os.getenv("GEMINI_VOICE"),
            # LLM
            "local_llm": os.getenv("LOCAL_LLM"),
            "llm_provider": os.getenv("LLM_PROVIDER"),
            "llm_api_key": os.getenv("LLM_API_KEY"),
            "llm_base_url": os.getenv("LLM_BASE_URL"),
            "llm_model_id": os.getenv("LLM_MODEL_ID"),
            "ollama_base_url": os.getenv("OLLAMA_BASE_URL"),
            "geoapify_api_key": os.getenv("GEOAPIFY_API_KEY"),
            "geoapify_base_url": os.getenv("GEOAPIFY_BASE_URL"),
            "geoapify_timeout": os.getenv("GEOAPIFY_TIMEOUT"),
            "geolocation_url": os.getenv("GEOLOCATION_URL"),
            "geolocation_timeout": os.getenv("GEOLOCATION_TIMEOUT"),
            "store_dir": os.getenv("STORE_DIR"),
            "speech_enabled": os.getenv("SPEECH_ENABLED"),
            "log_level": os.getenv("LOG_LEVEL"),
        }

        bool_fields = {"speech_enabled"}

        for k, v in env_map.items():
            if v is None:
                continue
            if k in bool_fields:
                raw[k] = str(v).lower() in {"1", "true", "yes", "on"}
            else:
                raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    def has_gemini(self) -> bool:
        return bool(self.gemini_api_key)

    def has_fallback_llm(self) -> bool:
        return bool(self.llm_provider or self.llm_base_url or self.local_llm)

    def log_summary(self) -> str:
        return (
            "gemini=%s model=%s fallback_llm=%s geoapify=%s store_dir=%s speech=%s api_key=%s"
            % (
                self.has_gemini(),
                self.gemini_model_id,
                self.llm_provider or "unset",
                bool(self.geoapify_api_key),
                self.store_dir or "memory",
                self.speech_enabled,
                mask_secret(self.gemini_api_key),
            )
        )

    def sanitized_ollama_url(self) -> str:
        base = (self.ollama_base_url or "http://localhost:11434").rstrip("/")
        if not base.endswith("/v1"):
            base = f"{base}/v1"
        return base


def configure_logging(cfg: Configuration) -> None:
    """Route loguru to stderr at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=cfg.log_level.upper())
