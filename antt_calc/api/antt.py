"""ANTT freight calculation endpoints with Redis caching"""
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from antt_calc.core.config import settings
from antt_calc.core.enums import CargoType, TransportCategory
from antt_calc.core.errors import CalculationError
from antt_calc.core.metrics import cache_hits, cache_misses, calculations
from antt_calc.core.rate_limit import check_rate_limit
from antt_calc.core.redis import get_redis
from antt_calc.core.response_builders import (
    build_calculation_response,
    build_cargo_type_list,
    build_rate_entry_response,
    build_table_list,
)
from antt_calc.schemas.antt import (
    CalculationRequest,
    CalculationResponse,
    CargoTypeOut,
    DirectCalculationRequest,
    ErrorOut,
    RateEntryOut,
    RateTableOut,
)
from antt_calc.services.pricing import calculate, calculate_for_distance, select_rate_table
from antt_calc.services.rate_table import RateTable, get_rate_catalog
from antt_calc.services.routing import DistanceResolver, get_distance_resolver
from antt_calc.utils.hashing import cache_key

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/antt", tags=["antt"])

ERROR_RESPONSES = {
    400: {"model": ErrorOut},
    422: {"model": ErrorOut},
    429: {"model": ErrorOut},
}


def _client_id(request: Request) -> str:
    return request.client.host if request.client else "anonymous"


def _generate_cache_key(kind: str, req, table: RateTable) -> str:
    payload = req.model_dump(mode="json")
    # Keyed on the table actually used, so an omitted and an explicit default share entries
    payload["resolution"] = table.resolution
    payload["transport_category"] = str(table.transport_category)
    return cache_key(f"antt:{kind}", payload)


async def _cached_response(key: str) -> Optional[CalculationResponse]:
    redis = get_redis()
    if redis is None:
        return None
    try:
        cached = await redis.get(key)
        if cached:
            cache_hits.labels(cache="calculation").inc()
            return CalculationResponse.model_validate(json.loads(cached))
        cache_misses.labels(cache="calculation").inc()
    except Exception as e:
        logger.warning(f"Cache retrieval failed: {e}")
    return None


async def _store_response(key: str, response: CalculationResponse) -> None:
    redis = get_redis()
    if redis is None:
        return
    try:
        await redis.set(key, response.model_dump_json(by_alias=True), ex=settings.PRICE_CACHE_TTL)
    except Exception as e:
        logger.warning(f"Cache write failed: {e}")


@router.post(
    "/calculate",
    response_model=CalculationResponse,
    responses={**ERROR_RESPONSES, 502: {"model": ErrorOut}},
)
async def calculate_freight(
    req: CalculationRequest,
    request: Request,
    resolver: DistanceResolver = Depends(get_distance_resolver),
):
    await check_rate_limit(_client_id(request))

    try:
        table = select_rate_table(req)
        key = _generate_cache_key("route", req, table)
        cached = await _cached_response(key)
        if cached is not None:
            return cached

        result = await calculate(req, resolver, table)
    except CalculationError as e:
        calculations.labels(endpoint="calculate", outcome=type(e).__name__).inc()
        raise
    calculations.labels(endpoint="calculate", outcome="ok").inc()

    response = build_calculation_response(result)
    await _store_response(key, response)
    return response


@router.post("/calculate-direct", response_model=CalculationResponse, responses=ERROR_RESPONSES)
async def calculate_freight_direct(req: DirectCalculationRequest, request: Request):
    await check_rate_limit(_client_id(request))

    try:
        result = calculate_for_distance(req, req.distance)
    except CalculationError as e:
        calculations.labels(endpoint="calculate_direct", outcome=type(e).__name__).inc()
        raise
    calculations.labels(endpoint="calculate_direct", outcome="ok").inc()

    return build_calculation_response(result)


@router.get("/tables", response_model=List[RateTableOut])
async def list_rate_tables():
    return build_table_list(get_rate_catalog())


@router.get("/cargo-types", response_model=List[CargoTypeOut], responses=ERROR_RESPONSES)
async def list_cargo_types(
    resolution: Optional[str] = None,
    transport_category: Optional[TransportCategory] = Query(None, alias="transportCategory"),
):
    return build_cargo_type_list(get_rate_catalog().select(resolution, transport_category))


@router.get("/rates/{cargo_type}/{axles}", response_model=RateEntryOut, responses=ERROR_RESPONSES)
async def get_rate(
    cargo_type: CargoType,
    axles: int,
    resolution: Optional[str] = None,
    transport_category: Optional[TransportCategory] = Query(None, alias="transportCategory"),
):
    table = get_rate_catalog().select(resolution, transport_category)
    return build_rate_entry_response(table.lookup(cargo_type, axles), table)
