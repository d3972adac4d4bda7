import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from antt_calc.core.enums import CargoType
from antt_calc.main import app
from antt_calc.services.rate_table import get_rate_table
from antt_calc.services.routing import RouteInfo, get_distance_resolver


class FakeResolver:
    """Distance resolver returning canned distances, recording every call."""

    def __init__(self, distance_km: float = 500.0, route: str | None = None, error: Exception | None = None):
        self.distance_km = distance_km
        self.route = route
        self.error = error
        self.calls = []

    async def resolve(self, origin_city: str, destination_city: str) -> RouteInfo:
        self.calls.append((origin_city, destination_city))
        if self.error is not None:
            raise self.error
        return RouteInfo(
            distance_km=self.distance_km,
            route_description=self.route or f"{origin_city} → {destination_city}",
        )


class FakeRedis:
    """In-memory stand-in for the handful of async Redis calls the service makes."""

    def __init__(self, data=None, fail: bool = False):
        self.data = dict(data or {})
        self.fail = fail
        self.expiry = {}

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unavailable")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.expiry[key] = ex

    async def incr(self, key):
        self._check()
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])


@pytest.fixture
def rate_table():
    return get_rate_table()


@pytest.fixture
def resolver_factory():
    return FakeResolver


@pytest.fixture
def redis_factory():
    return FakeRedis


@pytest.fixture
def override_resolver():
    def _override(resolver):
        app.dependency_overrides[get_distance_resolver] = lambda: resolver
        return resolver

    yield _override
    app.dependency_overrides.pop(get_distance_resolver, None)


@pytest.fixture
async def test_client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def valid_calculation_data():
    return {
        "cargoType": "CARGA_GERAL",
        "axles": "5",
        "originCity": "São Paulo-SP",
        "destinationCity": "Belo Horizonte-MG",
        "isComposition": False,
        "isHighPerformance": False,
        "emptyReturn": False,
    }


@pytest.fixture
def valid_direct_data():
    return {
        "cargoType": "CARGA_GERAL",
        "axles": "5",
        "distance": 500,
        "isComposition": False,
        "isHighPerformance": False,
        "emptyReturn": False,
    }


@pytest.fixture
def general_cargo_5_axles(rate_table):
    return rate_table.lookup(CargoType.CARGA_GERAL, 5)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "pricing: marks tests related to pricing"
    )
    config.addinivalue_line(
        "markers", "routing: marks tests related to route resolution"
    )
    config.addinivalue_line(
        "markers", "api: marks tests that go through the HTTP layer"
    )
    config.addinivalue_line(
        "markers", "rate_limit: marks tests related to rate limiting"
    )


def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to handle asyncio tests
    """
    for item in items:
        if asyncio.iscoroutinefunction(item.function):
            item.add_marker(pytest.mark.asyncio)
