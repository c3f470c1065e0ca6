from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, Tuple

import requests

from tastetrail.config import Configuration
from tastetrail.errors import GeoapifyError


@dataclass
class _RetryPolicy:
    retries: int = 3
    base_delay: float = 0.5


class GeoapifyClient:
    """Reverse geocoding used to label the user's position with a city name."""

    def __init__(self, cfg: Configuration) -> None:
        self.cfg = cfg
        self.base = cfg.geoapify_base_url.rstrip("/")
        self.session = requests.Session()
        self._cache_ttl = 60 * 30  # 30 minutes
        self._cache_max = 128
        self._reverse_cache: OrderedDict[str, Tuple[float, str]] = OrderedDict()

    def _cache_get(self, key: str) -> Optional[str]:
        entry = self._reverse_cache.get(key)
        if not entry:
            return None
        ts, value = entry
        if time.time() - ts > self._cache_ttl:
            self._reverse_cache.pop(key, None)
            return None
        self._reverse_cache.move_to_end(key)
        return value

    def _cache_set(self, key: str, value: str) -> None:
        if len(self._reverse_cache) >= self._cache_max:
            self._reverse_cache.popitem(last=False)
        self._reverse_cache[key] = (time.time(), value)

    def _get(self, path: str, params: dict) -> dict:
        if not self.cfg.geoapify_api_key:
            raise GeoapifyError("GEOAPIFY_API_KEY is required")
        url = f"{self.base}{path}"
        headers = {"Accept": "application/json"}
        params = {**params, "apiKey": self.cfg.geoapify_api_key}
        policy = _RetryPolicy()
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = self.session.get(url, headers=headers, params=params, timeout=self.cfg.geoapify_timeout)
            except requests.RequestException as exc:  # network error
                if attempt <= policy.retries:
                    time.sleep(policy.base_delay * attempt)
                    continue
                raise GeoapifyError(f"request error: {exc}")

            if resp.status_code in (429, 500, 502, 503, 504):
                if attempt <= policy.retries:
                    time.sleep(policy.base_delay * attempt)
                    continue
                raise GeoapifyError(f"upstream {resp.status_code}: {resp.text[:300]}")

            if not resp.ok:
                raise GeoapifyError(f"upstream {resp.status_code}: {resp.text[:300]}")

            try:
                return resp.json()
            except ValueError:
                raise GeoapifyError("invalid json response")

    def city_name(self, lat: float, lng: float, *, lang: str = "en") -> str:
        key = f"reverse:{lang}:{lat:.3f},{lng:.3f}"
        cached = self._cache_get(key)
        if cached is not None:
            return cached
        payload = self._get("/v1/geocode/reverse", {"lat": lat, "lon": lng, "lang": lang, "limit": 1})
        features = payload.get("features") or []
        if not features:
            raise GeoapifyError("no place found for coordinates")
        props = features[0].get("properties") or {}
        city = props.get("city") or props.get("town") or props.get("village") or props.get("county")
        if not city:
            raise GeoapifyError("no city in reverse geocode result")
        self._cache_set(key, str(city))
        return str(city)

    async def get_city_name(self, lat: float, lng: float) -> str:
        return await asyncio.to_thread(self.city_name, lat, lng)
