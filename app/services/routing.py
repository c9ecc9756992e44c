"""Routing collaborator: resolves the driving distance between two addresses."""
import json
import logging
from typing import Optional, Protocol, Tuple
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.core.errors import RouteUnresolved
from app.core.metrics import route_cache_hits, route_cache_misses, track_collaborator
from app.models.booking import Address, normalize_label
from app.storage.base import KeyValueCache
from app.utils.hashing import payload_hash

logger = logging.getLogger(__name__)


class RoutingClient(Protocol):
    async def resolve_distance(self, pickup: Address, destination: Address) -> float: ...


class MapboxRoutingClient:
    """Mapbox Geocoding + Directions (driving profile)."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        country: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token if token is not None else settings.MAPBOX_TOKEN
        self.country = country if country is not None else settings.MAPBOX_COUNTRY
        self.client = httpx.AsyncClient(
            base_url=base_url or settings.MAPBOX_API_URL,
            timeout=timeout or settings.ROUTING_TIMEOUT,
            transport=transport,
        )

    async def aclose(self):
        await self.client.aclose()

    async def _get_json(self, path: str, params: dict) -> dict:
        try:
            response = await self.client.get(path, params={**params, "access_token": self.token})
        except httpx.TimeoutException:
            raise RouteUnresolved("Routing provider timed out")
        except httpx.HTTPError as e:
            logger.warning(f"Routing request failed: {e}")
            raise RouteUnresolved("Routing provider is unreachable")
        if response.status_code != 200:
            logger.warning(f"Routing provider returned {response.status_code} for {path}")
            raise RouteUnresolved(f"Routing provider returned status {response.status_code}")
        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Routing provider returned a non-JSON body for {path}")
            raise RouteUnresolved("Routing provider returned an unreadable response")
        if not isinstance(data, dict):
            raise RouteUnresolved("Routing provider returned an unexpected response")
        return data

    async def geocode(self, address: Address) -> Tuple[float, float]:
        if address.has_coordinates:
            return address.lng, address.lat
        params = {"limit": 1}
        if self.country:
            params["country"] = self.country
        data = await self._get_json(
            f"/geocoding/v5/mapbox.places/{quote(normalize_label(address.label))}.json", params
        )
        features = data.get("features") or []
        if not features:
            raise RouteUnresolved(f"Address not found: {address.label}", address=address.label)
        try:
            lng, lat = features[0]["center"]
            return float(lng), float(lat)
        except (KeyError, IndexError, TypeError, ValueError):
            raise RouteUnresolved(f"Unexpected geocoding result for {address.label}", address=address.label)

    @track_collaborator("routing", "resolve_distance")
    async def resolve_distance(self, pickup: Address, destination: Address) -> float:
        if not self.token:
            raise RouteUnresolved("Routing provider is not configured")
        start = await self.geocode(pickup)
        end = await self.geocode(destination)
        coords = f"{start[0]},{start[1]};{end[0]},{end[1]}"
        data = await self._get_json(f"/directions/v5/mapbox/driving/{coords}", {"geometries": "geojson"})
        routes = data.get("routes") or []
        if not routes:
            raise RouteUnresolved(f"No route between {pickup.label} and {destination.label}")
        try:
            distance_km = float(routes[0]["distance"]) / 1000
        except (KeyError, IndexError, TypeError, ValueError):
            raise RouteUnresolved(f"Unexpected directions result between {pickup.label} and {destination.label}")
        logger.info(f"Route distance: {distance_km:.2f} km")
        return distance_km


class CachedRoutingClient:
    """Caches resolved distances per route in the key-value cache."""

    def __init__(self, inner: RoutingClient, cache: KeyValueCache, ttl: Optional[int] = None):
        self.inner = inner
        self.cache = cache
        self.ttl = ttl if ttl is not None else settings.ROUTE_CACHE_TTL

    @staticmethod
    def cache_key(pickup: Address, destination: Address) -> str:
        return "route:" + payload_hash({
            "pickup": [normalize_label(pickup.label).lower(), pickup.lat, pickup.lng],
            "destination": [normalize_label(destination.label).lower(), destination.lat, destination.lng],
        })

    async def resolve_distance(self, pickup: Address, destination: Address) -> float:
        key = self.cache_key(pickup, destination)
        try:
            cached = await self.cache.get(key)
            if cached is not None:
                route_cache_hits.inc()
                return json.loads(cached)["distance_km"]
        except Exception as e:
            logger.warning(f"Route cache retrieval failed: {e}")

        route_cache_misses.inc()
        distance_km = await self.inner.resolve_distance(pickup, destination)

        try:
            await self.cache.set(key, json.dumps({"distance_km": distance_km}), ex=self.ttl)
        except Exception as e:
            logger.warning(f"Route cache write failed: {e}")
        return distance_km
