from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from antt_calc.core.enums import CargoType, TransportCategory
from antt_calc.utils.cities import parse_city


class FreightParameters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cargo_type: CargoType = Field(alias="cargoType")
    axles: int
    is_composition: bool = Field(False, alias="isComposition")
    is_high_performance: bool = Field(False, alias="isHighPerformance")
    empty_return: bool = Field(False, alias="emptyReturn")
    # Omitted means the configured default table
    resolution: Optional[str] = None
    transport_category: Optional[TransportCategory] = Field(None, alias="transportCategory")

    @field_validator("axles", mode="before")
    @classmethod
    def _axles_from_string(cls, value):
        # The form posts axle classes as strings ("2".."9").
        if isinstance(value, bool):
            raise ValueError("axles must be a whole number")
        if isinstance(value, str):
            value = value.strip()
            if not value.isdigit():
                raise ValueError("axles must be a whole number")
            return int(value)
        if isinstance(value, int):
            return value
        raise ValueError("axles must be a whole number")

    @field_validator("resolution")
    @classmethod
    def _blank_resolution_is_default(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class CalculationRequest(FreightParameters):
    origin_city: str = Field(alias="originCity")
    destination_city: str = Field(alias="destinationCity")

    @field_validator("origin_city", "destination_city")
    @classmethod
    def _city_identifier(cls, value: str) -> str:
        parse_city(value)
        return value.strip()


class DirectCalculationRequest(FreightParameters):
    distance: float = Field(ge=0, allow_inf_nan=False)


class AdjustmentOut(BaseModel):
    name: str
    value: float


class CalculationBreakdownOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base_rate: float = Field(alias="baseRate")
    load_unload_coefficient: float = Field(alias="loadUnloadCoefficient")
    distance_coefficient: float = Field(alias="distanceCoefficient")
    adjustments: List[AdjustmentOut] = []


class CalculationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    freight_value: float = Field(alias="freightValue")
    toll_value: float = Field(alias="tollValue")
    total_value: float = Field(alias="totalValue")
    distance: float
    route: str
    calculation: CalculationBreakdownOut
    resolution: str
    transport_category: TransportCategory = Field(alias="transportCategory")


class CargoTypeOut(BaseModel):
    value: CargoType
    label: str
    axles: List[int]


class RateEntryOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cargo_type: CargoType = Field(alias="cargoType")
    axles: int
    base_rate: float = Field(alias="baseRate")
    load_unload_coefficient: float = Field(alias="loadUnloadCoefficient")
    resolution: str
    transport_category: TransportCategory = Field(alias="transportCategory")


class RateTableOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    resolution: str
    transport_category: TransportCategory = Field(alias="transportCategory")
    table: str
    description: str
    entries: int
    default: bool


class ErrorOut(BaseModel):
    error: str
