from __future__ import annotations

import asyncio

import requests

from tastetrail.config import Configuration
from tastetrail.errors import GeolocationError
from tastetrail.models import Location


class IpLocator:
    """One-shot position sensor backed by an IP geolocation endpoint."""

    def __init__(self, cfg: Configuration) -> None:
        self.cfg = cfg
        self.session = requests.Session()

    def current_position(self) -> Location:
        try:
            resp = self.session.get(
                self.cfg.geolocation_url,
                headers={"Accept": "application/json"},
                timeout=self.cfg.geolocation_timeout,
            )
        except requests.RequestException as exc:
            raise GeolocationError(f"request error: {exc}")
        if not resp.ok:
            raise GeolocationError(f"upstream {resp.status_code}")
        try:
            data = resp.json()
        except ValueError:
            raise GeolocationError("invalid json response")
        lat = data.get("latitude", data.get("lat"))
        lng = data.get("longitude", data.get("lon", data.get("lng")))
        try:
            return Location(lat=float(lat), lng=float(lng))
        except (TypeError, ValueError):
            raise GeolocationError("position unavailable")

    async def get_current_position(self) -> Location:
        return await asyncio.to_thread(self.current_position)
