from decimal import Decimal, ROUND_HALF_UP
from typing import List

from antt_calc.core.enums import CargoType
from antt_calc.schemas.antt import (
    AdjustmentOut,
    CalculationBreakdownOut,
    CalculationResponse,
    CargoTypeOut,
    RateEntryOut,
    RateTableOut,
)
from antt_calc.services.pricing import CalculationResult
from antt_calc.services.rate_table import RateCatalog, RateEntry, RateTable

CENTS = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")


def cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_money(value: Decimal) -> float:
    return float(cents(value))


def to_rate(value: Decimal) -> float:
    return float(value.quantize(RATE_PLACES, rounding=ROUND_HALF_UP))


def build_calculation_response(result: CalculationResult) -> CalculationResponse:
    breakdown = result.breakdown
    freight_value = cents(result.freight_value)
    toll_value = cents(result.toll_value)
    # The total shown must be the sum of the two amounts shown
    return CalculationResponse(
        freight_value=float(freight_value),
        toll_value=float(toll_value),
        total_value=float(freight_value + toll_value),
        distance=round(result.distance_km, 2),
        route=result.route_description,
        resolution=result.resolution,
        transport_category=result.transport_category,
        calculation=CalculationBreakdownOut(
            base_rate=to_rate(breakdown.base_rate),
            load_unload_coefficient=to_money(breakdown.load_unload_allowance),
            distance_coefficient=to_money(breakdown.distance_component),
            adjustments=[
                AdjustmentOut(name=str(adjustment.name), value=to_rate(adjustment.multiplier))
                for adjustment in breakdown.adjustments
            ],
        ),
    )


def build_rate_entry_response(entry: RateEntry, table: RateTable) -> RateEntryOut:
    return RateEntryOut(
        cargo_type=entry.cargo_type,
        axles=entry.axles,
        base_rate=to_rate(entry.base_coefficient),
        load_unload_coefficient=to_money(entry.load_unload_allowance),
        resolution=table.resolution,
        transport_category=table.transport_category,
    )


def build_cargo_type_list(table: RateTable) -> List[CargoTypeOut]:
    return [
        CargoTypeOut(value=cargo_type, label=cargo_type.label, axles=table.axles_for(cargo_type))
        for cargo_type in CargoType
    ]


def build_table_list(catalog: RateCatalog) -> List[RateTableOut]:
    default = catalog.default
    return [
        RateTableOut(
            resolution=resolution,
            transport_category=category,
            table=category.table,
            description=table.description,
            entries=len(table),
            default=table is default,
        )
        for (resolution, category), table in sorted(
            catalog.tables.items(), key=lambda item: (item[0][0], item[0][1].table)
        )
    ]
