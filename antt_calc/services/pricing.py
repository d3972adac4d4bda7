"""ANTT minimum freight pricing.

    freight = CC + CCD * distance
    freight = freight * composition * high_performance * (1 + empty_return)
    toll    = toll_per_axle_km * axles * distance
    total   = freight + toll

Values stay unrounded Decimals here; cents rounding happens when the result
is shaped for the response.
"""
import logging
import math
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from antt_calc.core.enums import AdjustmentName, TransportCategory
from antt_calc.core.errors import InvalidInput, RouteNotResolved
from antt_calc.schemas.antt import CalculationRequest, FreightParameters
from antt_calc.services.rate_table import RateEntry, RateModifiers, RateTable, get_rate_catalog
from antt_calc.services.routing import DistanceResolver

logger = logging.getLogger(__name__)

DIRECT_ROUTE_DESCRIPTION = "Distância informada"


class Adjustment(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: AdjustmentName
    multiplier: Decimal

    def apply(self, value: Decimal) -> Decimal:
        return value * self.multiplier


class CalculationBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_rate: Decimal
    load_unload_allowance: Decimal
    distance_component: Decimal
    adjustments: Tuple[Adjustment, ...] = ()


class CalculationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    freight_value: Decimal
    toll_value: Decimal
    total_value: Decimal
    distance_km: float
    route_description: str
    resolution: str
    transport_category: TransportCategory
    breakdown: CalculationBreakdown


# Applied in this order; multiplication commutes, the order only fixes how
# the audit list reads.
ADJUSTMENT_RULES: Tuple[Tuple[AdjustmentName, Callable[[FreightParameters], bool], Callable[[RateModifiers], Decimal]], ...] = (
    (
        AdjustmentName.COMPOSITION,
        lambda params: params.is_composition,
        lambda modifiers: modifiers.composition_multiplier,
    ),
    (
        AdjustmentName.HIGH_PERFORMANCE,
        lambda params: params.is_high_performance,
        lambda modifiers: modifiers.high_performance_multiplier,
    ),
    (
        AdjustmentName.EMPTY_RETURN,
        lambda params: params.empty_return,
        lambda modifiers: Decimal(1) + modifiers.empty_return_fraction,
    ),
)


def select_adjustments(params: FreightParameters, modifiers: RateModifiers) -> List[Adjustment]:
    return [
        Adjustment(name=name, multiplier=multiplier(modifiers))
        for name, enabled, multiplier in ADJUSTMENT_RULES
        if enabled(params)
    ]


def _to_decimal_km(distance_km: float) -> Decimal:
    if distance_km is None or isinstance(distance_km, bool):
        raise RouteNotResolved()
    try:
        value = float(distance_km)
    except (TypeError, ValueError):
        raise RouteNotResolved() from None
    if not math.isfinite(value) or value < 0:
        raise RouteNotResolved()
    return Decimal(str(value))


def price_freight(
    rate: RateEntry,
    params: FreightParameters,
    distance_km: float,
    route_description: str,
    table: RateTable,
) -> CalculationResult:
    km = _to_decimal_km(distance_km)

    distance_component = rate.base_coefficient * km
    freight_value = rate.load_unload_allowance + distance_component

    adjustments = select_adjustments(params, table.modifiers)
    for adjustment in adjustments:
        freight_value = adjustment.apply(freight_value)

    toll_value = table.toll_per_axle_km * Decimal(rate.axles) * km

    return CalculationResult(
        freight_value=freight_value,
        toll_value=toll_value,
        total_value=freight_value + toll_value,
        distance_km=float(distance_km),
        route_description=route_description,
        resolution=table.resolution,
        transport_category=table.transport_category,
        breakdown=CalculationBreakdown(
            base_rate=rate.base_coefficient,
            load_unload_allowance=rate.load_unload_allowance,
            distance_component=distance_component,
            adjustments=tuple(adjustments),
        ),
    )


def _check_params(params: FreightParameters) -> None:
    if params.cargo_type is None:
        raise InvalidInput("Selecione o tipo de carga")
    if params.axles is None:
        raise InvalidInput("Selecione o número de eixos")


def select_rate_table(params: FreightParameters) -> RateTable:
    return get_rate_catalog().select(params.resolution, params.transport_category)


def calculate_for_distance(
    params: FreightParameters,
    distance_km: float,
    route_description: str = DIRECT_ROUTE_DESCRIPTION,
    table: Optional[RateTable] = None,
) -> CalculationResult:
    _check_params(params)
    if table is None:
        table = select_rate_table(params)
    rate = table.lookup(params.cargo_type, params.axles)
    return price_freight(rate, params, distance_km, route_description, table)


async def calculate(
    request: CalculationRequest,
    resolver: DistanceResolver,
    table: Optional[RateTable] = None,
) -> CalculationResult:
    """Price a trip between two cities.

    The rate is looked up before the route is resolved so an undefined
    cargo/axle combination never costs a call to the route provider.
    """
    _check_params(request)
    if table is None:
        table = select_rate_table(request)
    rate = table.lookup(request.cargo_type, request.axles)

    route = await resolver.resolve(request.origin_city, request.destination_city)

    result = price_freight(rate, request, route.distance_km, route.route_description, table)
    logger.debug(
        f"Priced {request.cargo_type}/{request.axles} over {route.distance_km} km: "
        f"freight={result.freight_value} toll={result.toll_value}"
    )
    return result
