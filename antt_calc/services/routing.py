"""Road distance between two cities.

The pricing formula only depends on the ``DistanceResolver`` protocol; the
OpenRouteService implementation below is what the API injects in production.
"""
import asyncio
import json
import logging
import math
import time
from typing import List, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict

from antt_calc.core.config import settings
from antt_calc.core.errors import InvalidInput, RouteNotResolved
from antt_calc.core.metrics import cache_hits, cache_misses, route_duration, route_resolutions
from antt_calc.core.redis import get_redis
from antt_calc.utils.cities import CityRef, parse_city
from antt_calc.utils.hashing import cache_key

logger = logging.getLogger(__name__)

HGV_PROFILE = "driving-hgv"
RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


class RouteInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    distance_km: float
    route_description: str


class DistanceResolver(Protocol):
    async def resolve(self, origin_city: str, destination_city: str) -> RouteInfo:
        ...


def describe_route(origin: CityRef, destination: CityRef) -> str:
    return f"{origin.label} → {destination.label}"


class _RetryableError(Exception):
    pass


class OrsDistanceResolver:
    """Resolve truck route distances through OpenRouteService.

    Each city is geocoded within Brazil, then a ``driving-hgv`` route is
    requested between the two points. Timeouts, transport errors and
    429/5xx responses are retried with exponential backoff; any other
    failure surfaces at once as ``RouteNotResolved``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
        backoff: float = 0.5,
        cache_ttl: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.ORS_BASE_URL).rstrip("/")
        self.api_key = settings.ORS_API_KEY if api_key is None else api_key
        self.timeout = settings.ROUTE_TIMEOUT if timeout is None else timeout
        self.retries = max(1, settings.ROUTE_RETRIES if retries is None else retries)
        self.backoff = backoff
        self.cache_ttl = settings.ROUTE_CACHE_TTL if cache_ttl is None else cache_ttl
        self._transport = transport

    async def resolve(self, origin_city: str, destination_city: str) -> RouteInfo:
        try:
            origin = parse_city(origin_city)
            destination = parse_city(destination_city)
        except ValueError as e:
            raise InvalidInput(f"Cidade inválida: {e}") from e

        description = describe_route(origin, destination)

        if origin.key == destination.key:
            route_resolutions.labels(outcome="same_city").inc()
            return RouteInfo(distance_km=0.0, route_description=description)

        key = cache_key("route", {"origin": origin.key, "destination": destination.key})
        cached = await self._cache_get(key)
        if cached is not None:
            route_resolutions.labels(outcome="cached").inc()
            return RouteInfo(distance_km=cached, route_description=description)

        start_time = time.time()
        try:
            async with self._client() as client:
                start = await self._geocode(client, origin)
                end = await self._geocode(client, destination)
                distance_km = await self._route_distance(client, start, end)
        except RouteNotResolved:
            route_resolutions.labels(outcome="failed").inc()
            route_duration.labels(outcome="failed").observe(time.time() - start_time)
            logger.warning(f"Route not resolved: {description}")
            raise

        route_resolutions.labels(outcome="resolved").inc()
        route_duration.labels(outcome="resolved").observe(time.time() - start_time)
        logger.info(f"Resolved route {description}: {distance_km:.1f} km")

        await self._cache_set(key, distance_km)
        return RouteInfo(distance_km=distance_km, route_description=description)

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = self.api_key
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
            transport=self._transport,
        )

    async def _request(self, client: httpx.AsyncClient, method: str, path: str, **kwargs) -> dict:
        backoff = self.backoff

        for attempt in range(1, self.retries + 1):
            try:
                response = await client.request(method, path, **kwargs)
                if response.status_code in RETRY_STATUSES:
                    raise _RetryableError(f"status {response.status_code}")
                if response.status_code >= 400:
                    logger.warning(
                        f"Route provider rejected {method} {path}: status {response.status_code}"
                    )
                    raise RouteNotResolved()
                return response.json()
            except (httpx.TimeoutException, httpx.TransportError, _RetryableError) as e:
                logger.warning(
                    f"Route provider call failed (attempt {attempt}/{self.retries}): "
                    f"{method} {path}: {e!r}"
                )
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(f"Route provider returned invalid JSON for {method} {path}: {e}")
                raise RouteNotResolved() from e

            if attempt < self.retries:
                await asyncio.sleep(backoff)
                backoff *= 2.0

        raise RouteNotResolved()

    async def _geocode(self, client: httpx.AsyncClient, city: CityRef) -> List[float]:
        data = await self._request(
            client,
            "GET",
            "/geocode/search",
            params={
                "text": f"{city.name}, {city.uf}, Brasil",
                "boundary.country": "BR",
                "layers": "locality,localadmin,county",
                "size": 1,
            },
        )
        try:
            features = data.get("features") or []
            coordinates = features[0]["geometry"]["coordinates"] if features else None
            if not coordinates:
                raise RouteNotResolved(f"Cidade não encontrada: {city.label}")
            point = [float(coordinates[0]), float(coordinates[1])]
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Route provider returned a malformed geocode for {city.label}: {e!r}")
            raise RouteNotResolved(f"Cidade não encontrada: {city.label}") from e
        if not all(math.isfinite(c) for c in point):
            raise RouteNotResolved(f"Cidade não encontrada: {city.label}")
        return point

    async def _route_distance(self, client: httpx.AsyncClient, start: List[float], end: List[float]) -> float:
        data = await self._request(
            client,
            "POST",
            f"/v2/directions/{HGV_PROFILE}",
            json={"coordinates": [start, end], "units": "m"},
        )
        try:
            routes = data.get("routes") or []
            if not routes:
                raise RouteNotResolved()
            summary = routes[0].get("summary") or {}
            # ORS omits "distance" for zero-length routes
            distance_m = float(summary.get("distance", 0.0))
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Route provider returned a malformed route: {e!r}")
            raise RouteNotResolved() from e
        if not math.isfinite(distance_m) or distance_m < 0:
            raise RouteNotResolved()
        return distance_m / 1000.0

    async def _cache_get(self, key: str) -> Optional[float]:
        redis = get_redis()
        if redis is None:
            return None
        try:
            cached = await redis.get(key)
            if cached is None:
                cache_misses.labels(cache="route").inc()
                return None
            distance_km = float(json.loads(cached)["distance_km"])
        except Exception as e:
            logger.warning(f"Route cache retrieval failed: {e}")
            return None
        cache_hits.labels(cache="route").inc()
        return distance_km

    async def _cache_set(self, key: str, distance_km: float) -> None:
        redis = get_redis()
        if redis is None or not self.cache_ttl:
            return
        try:
            await redis.set(key, json.dumps({"distance_km": distance_km}), ex=self.cache_ttl)
        except Exception as e:
            logger.warning(f"Route cache write failed: {e}")


def get_distance_resolver() -> DistanceResolver:
    return OrsDistanceResolver()
