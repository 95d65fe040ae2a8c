# app/services/location_service.py
from __future__ import annotations
import logging
from typing import Any, Optional
from urllib.parse import quote

import requests
from fastapi.concurrency import run_in_threadpool

from app.core.errors import ExternalServiceError, ValidationError
from app.database.profile_repository import ProfileRepository
from app.schemas.data import Location, Route
from app.schemas.payloads import LocationCreate
from app.services.geo import meters_to_miles

logger = logging.getLogger(__name__)

class MapboxClient:
    """Geocoding e percorsi stradali tramite le API HTTP di Mapbox."""

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = "https://api.mapbox.com",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def _get_json(self, path: str, params: dict[str, Any]) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.get(
                url,
                params={"access_token": self.access_token, **params},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as exc:
            logger.error("Mapbox HTTP error", extra={"path": path, "status": exc.response.status_code if exc.response is not None else None})
            raise ExternalServiceError(f"Mapbox request failed: {exc}") from exc
        except requests.exceptions.RequestException as exc:
            logger.error("Mapbox request failed", extra={"path": path, "error": str(exc)})
            raise ExternalServiceError(f"Mapbox request failed: {exc}") from exc
        except ValueError as exc:
            raise ExternalServiceError("Mapbox returned an invalid JSON body") from exc

    def _geocode(self, address: str) -> tuple[float, float]:
        # un solo risultato, indirizzi USA
        data = self._get_json(
            f"/geocoding/v5/mapbox.places/{quote(address)}.json",
            {"limit": 1, "types": "address", "country": "us"},
        )
        features = data.get("features") or []
        if not features:
            raise ExternalServiceError("No coordinates found for the given address.")
        center = features[0].get("center") or []
        if len(center) != 2 or not all(isinstance(c, (int, float)) for c in center):
            raise ExternalServiceError("Invalid geocode response.")
        longitude, latitude = center
        return float(latitude), float(longitude)

    def _route(self, lat1: float, lon1: float, lat2: float, lon2: float) -> Route:
        data = self._get_json(
            f"/directions/v5/mapbox/driving/{lon1},{lat1};{lon2},{lat2}",
            {"overview": "false", "annotations": "distance,duration"},
        )
        routes = data.get("routes") or []
        if not routes:
            raise ExternalServiceError("No route found")
        route = routes[0]
        return Route(
            distanceMiles=meters_to_miles(route["distance"]),
            durationMinutes=route["duration"] / 60,
        )

    async def geocode(self, address: str) -> tuple[float, float]:
        """Ritorna (latitude, longitude)."""
        return await run_in_threadpool(self._geocode, address)

    async def route(self, lat1: float, lon1: float, lat2: float, lon2: float) -> Route:
        return await run_in_threadpool(self._route, lat1, lon1, lat2, lon2)


def format_address(data: LocationCreate) -> str:
    ext = f" {data.optionalExt}" if data.optionalExt else ""
    return f"{data.address}{ext}, {data.city}, {data.state} {data.zipcode}"


class LocationService:
    def __init__(self, repo: ProfileRepository, geocoder: MapboxClient) -> None:
        self.repo = repo
        self.geocoder = geocoder

    async def create_location(self, data: LocationCreate) -> Location:
        if not data.address or not data.city or not data.state or not data.zipcode:
            raise ValidationError("Address, city, state, and zipcode are required.")

        full_address = format_address(data)
        # se il geocoding fallisce non si crea nessuna location
        latitude, longitude = await self.geocoder.geocode(full_address)

        location = await self.repo.insert_location({
            "address": data.address,
            "optional_address_ext": data.optionalExt,
            "city": data.city,
            "state": data.state,
            "zipcode": data.zipcode,
            "latitude": latitude,
            "longitude": longitude,
        })
        logger.info("Location created", extra={"location_id": location.id, "city": location.city})
        return location

    async def route_to(self, origin_lat: float, origin_lon: float, location: Location) -> Route:
        return await self.geocoder.route(origin_lat, origin_lon, location.latitude, location.longitude)
