"""ANTT minimum freight rate table.

A table is reference data for one resolution and transport category: one
(CCD, CC) pair per cargo type and axle class, plus the table-wide modifier
multipliers and toll rate. Every table file is loaded and validated once into
a catalog, then only read.
"""
import json
import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from antt_calc.core.config import settings
from antt_calc.core.enums import AXLE_CLASSES, CargoType, TransportCategory
from antt_calc.core.errors import RateNotFound, RateTableError, TableNotFound

logger = logging.getLogger(__name__)

RateKey = Tuple[CargoType, int]
TableKey = Tuple[str, TransportCategory]


class RateEntry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    cargo_type: CargoType
    axles: int
    base_coefficient: Decimal = Field(alias="ccd", gt=0)
    load_unload_allowance: Decimal = Field(alias="cc", ge=0)

    @field_validator("axles")
    @classmethod
    def _legal_axle_class(cls, value: int) -> int:
        if value not in AXLE_CLASSES:
            raise ValueError(f"{value} is not an ANTT axle class")
        return value


class RateModifiers(BaseModel):
    model_config = ConfigDict(frozen=True)

    composition_multiplier: Decimal = Field(gt=0)
    high_performance_multiplier: Decimal = Field(gt=0)
    empty_return_fraction: Decimal = Field(ge=0)


class _RateFile(BaseModel):
    resolution: str
    transport_category: TransportCategory = TransportCategory.CARGA_LOTACAO
    description: str = ""
    modifiers: RateModifiers
    toll_per_axle_km: Decimal = Field(ge=0)
    rates: List[RateEntry]


class RateTable:
    """Read-only view over a validated rate file."""

    def __init__(
        self,
        resolution: str,
        entries: Mapping[RateKey, RateEntry],
        modifiers: RateModifiers,
        toll_per_axle_km: Decimal,
        description: str = "",
        transport_category: TransportCategory = TransportCategory.CARGA_LOTACAO,
    ):
        self.resolution = resolution
        self.transport_category = transport_category
        self.description = description
        self.modifiers = modifiers
        self.toll_per_axle_km = toll_per_axle_km
        self._entries = MappingProxyType(dict(entries))

    @property
    def entries(self) -> Mapping[RateKey, RateEntry]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries

    def lookup(self, cargo_type: CargoType, axles: int) -> RateEntry:
        entry = self._entries.get((cargo_type, axles))
        if entry is None:
            raise RateNotFound(cargo_type, axles)
        return entry

    def axles_for(self, cargo_type: CargoType) -> List[int]:
        return sorted(axles for (ct, axles) in self._entries if ct == cargo_type)


def parse_rate_table(raw: dict) -> RateTable:
    """Validate a decoded rate file and build the lookup table.

    Duplicate (cargo type, axles) rows are rejected rather than letting the
    last one win.
    """
    try:
        parsed = _RateFile.model_validate(raw)
    except ValidationError as e:
        raise RateTableError(f"Invalid rate table: {e}") from e

    entries = {}
    for entry in parsed.rates:
        key = (entry.cargo_type, entry.axles)
        if key in entries:
            raise RateTableError(
                f"Duplicate rate for {entry.cargo_type} with {entry.axles} axles"
            )
        entries[key] = entry

    if not entries:
        raise RateTableError("Rate table has no entries")

    return RateTable(
        resolution=parsed.resolution,
        entries=entries,
        modifiers=parsed.modifiers,
        toll_per_axle_km=parsed.toll_per_axle_km,
        description=parsed.description,
        transport_category=parsed.transport_category,
    )


def load_rate_table(path: str | Path) -> RateTable:
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise RateTableError(f"Cannot read rate table {path}: {e}") from e

    table = parse_rate_table(raw)
    logger.info(f"Loaded ANTT rate table {table.resolution} {table.transport_category.table} with {len(table)} entries from {path}")
    return table


class RateCatalog:
    """Every loaded table, keyed by (resolution, transport category).

    Requests that name neither pick the configured default table.
    """

    def __init__(
        self,
        tables: Mapping[TableKey, RateTable],
        default_resolution: str,
        default_category: TransportCategory,
    ):
        self._tables = MappingProxyType(dict(tables))
        self.default_resolution = default_resolution
        self.default_category = TransportCategory(default_category)
        if (self.default_resolution, self.default_category) not in self._tables:
            raise RateTableError(
                f"Default rate table {default_resolution} {self.default_category.table} is not loaded"
            )

    @property
    def tables(self) -> Mapping[TableKey, RateTable]:
        return self._tables

    @property
    def default(self) -> RateTable:
        return self._tables[(self.default_resolution, self.default_category)]

    def __len__(self) -> int:
        return len(self._tables)

    def select(
        self,
        resolution: Optional[str] = None,
        transport_category: Optional[TransportCategory] = None,
    ) -> RateTable:
        key = (resolution or self.default_resolution, transport_category or self.default_category)
        table = self._tables.get(key)
        if table is None:
            raise TableNotFound(*key)
        return table


def load_rate_catalog(
    directory: str | Path,
    default_resolution: Optional[str] = None,
    default_category: Optional[str] = None,
) -> RateCatalog:
    directory = Path(directory)
    tables = {}
    for path in sorted(directory.glob("*.json")):
        table = load_rate_table(path)
        key = (table.resolution, table.transport_category)
        if key in tables:
            raise RateTableError(
                f"Duplicate rate table {table.resolution} {table.transport_category.table} in {path}"
            )
        tables[key] = table

    if not tables:
        raise RateTableError(f"No rate tables found in {directory}")

    try:
        category = TransportCategory(default_category or settings.DEFAULT_TRANSPORT_CATEGORY)
    except ValueError as e:
        raise RateTableError(f"Unknown default transport category: {e}") from e

    return RateCatalog(tables, default_resolution or settings.DEFAULT_RESOLUTION, category)


@lru_cache(maxsize=1)
def get_rate_catalog() -> RateCatalog:
    return load_rate_catalog(settings.RATE_TABLE_DIR)


def get_rate_table() -> RateTable:
    return get_rate_catalog().default


def lookup_rate(cargo_type: CargoType, axles: int) -> RateEntry:
    return get_rate_table().lookup(cargo_type, axles)
