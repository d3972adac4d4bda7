import copy
import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from antt_calc.core.config import settings
from antt_calc.core.enums import AXLE_CLASSES, CargoType, TransportCategory
from antt_calc.core.errors import RateNotFound, RateTableError, TableNotFound
from antt_calc.services.rate_table import (
    RateEntry,
    get_rate_catalog,
    get_rate_table,
    load_rate_catalog,
    load_rate_table,
    lookup_rate,
    parse_rate_table,
)

MINIMAL_TABLE = {
    "resolution": "test",
    "modifiers": {
        "composition_multiplier": "1.10",
        "high_performance_multiplier": "0.85",
        "empty_return_fraction": "0.50",
    },
    "toll_per_axle_km": "0.01",
    "rates": [
        {"cargo_type": "CARGA_GERAL", "axles": 2, "ccd": "2.0000", "cc": "100.00"},
        {"cargo_type": "CARGA_GERAL", "axles": 3, "ccd": "3.0000", "cc": "150.00"},
    ],
}


def table_with(**changes):
    raw = copy.deepcopy(MINIMAL_TABLE)
    raw.update(changes)
    return raw


class TestBundledTable:

    def test_loaded_once(self):
        assert get_rate_table() is get_rate_table()

    def test_entry_count(self, rate_table):
        # 9 cargo types with all 7 classes, two without 2 axles, one without 2 and 3
        assert len(rate_table) == 9 * 7 + 2 * 6 + 5

    def test_every_cargo_type_has_rates(self, rate_table):
        for cargo_type in CargoType:
            assert rate_table.axles_for(cargo_type), cargo_type

    def test_axle_classes_per_cargo_type(self, rate_table):
        assert rate_table.axles_for(CargoType.CARGA_GERAL) == list(AXLE_CLASSES)
        assert rate_table.axles_for(CargoType.CONTEINERIZADA) == [3, 4, 5, 6, 7, 9]
        assert rate_table.axles_for(CargoType.PERIGOSA_CONTEINERIZADA) == [3, 4, 5, 6, 7, 9]
        assert rate_table.axles_for(CargoType.GRANEL_PRESSURIZADA) == [4, 5, 6, 7, 9]

    def test_lookup_returns_matching_entry(self, rate_table):
        for (cargo_type, axles), entry in rate_table.entries.items():
            found = lookup_rate(cargo_type, axles)
            assert found is entry
            assert found.cargo_type == cargo_type
            assert found.axles == axles

    def test_published_general_cargo_rate(self):
        entry = lookup_rate(CargoType.CARGA_GERAL, 5)
        assert entry.base_coefficient == Decimal("5.8540")
        assert entry.load_unload_allowance == Decimal("588.23")

    def test_coefficients_grow_with_axles(self, rate_table):
        for cargo_type in CargoType:
            entries = [rate_table.lookup(cargo_type, a) for a in rate_table.axles_for(cargo_type)]
            ccds = [e.base_coefficient for e in entries]
            assert ccds == sorted(ccds), cargo_type

    @pytest.mark.parametrize("axles", [0, 1, 8, 10])
    def test_illegal_axle_class_not_found(self, axles):
        with pytest.raises(RateNotFound):
            lookup_rate(CargoType.CARGA_GERAL, axles)

    def test_undefined_pair_not_found(self):
        with pytest.raises(RateNotFound) as exc_info:
            lookup_rate(CargoType.GRANEL_PRESSURIZADA, 2)
        assert "GRANEL_PRESSURIZADA" in exc_info.value.message

    def test_table_is_read_only(self, rate_table):
        with pytest.raises(TypeError):
            rate_table.entries[(CargoType.CARGA_GERAL, 8)] = rate_table.lookup(CargoType.CARGA_GERAL, 9)

    def test_entries_are_frozen(self, rate_table):
        entry = rate_table.lookup(CargoType.CARGA_GERAL, 5)
        with pytest.raises(ValidationError):
            entry.base_coefficient = Decimal("0")

    def test_default_table_settings(self, rate_table):
        assert settings.DEFAULT_RESOLUTION == "6067_2025"
        assert settings.DEFAULT_TRANSPORT_CATEGORY == "CARGA_LOTACAO"
        assert rate_table.resolution == "6067_2025"
        assert rate_table.transport_category == TransportCategory.CARGA_LOTACAO


class TestTableValidation:

    def test_minimal_table(self):
        table = parse_rate_table(MINIMAL_TABLE)

        assert table.resolution == "test"
        assert len(table) == 2
        assert table.toll_per_axle_km == Decimal("0.01")
        assert table.modifiers.composition_multiplier == Decimal("1.10")

    def test_rejects_duplicate_pairs(self):
        rates = MINIMAL_TABLE["rates"] + [
            {"cargo_type": "CARGA_GERAL", "axles": 2, "ccd": "9.0000", "cc": "1.00"},
        ]
        with pytest.raises(RateTableError, match="Duplicate"):
            parse_rate_table(table_with(rates=rates))

    @pytest.mark.parametrize("row", [
        {"cargo_type": "MUDANCA", "axles": 2, "ccd": "1.0", "cc": "1.0"},
        {"cargo_type": "CARGA_GERAL", "axles": 8, "ccd": "1.0", "cc": "1.0"},
        {"cargo_type": "CARGA_GERAL", "axles": 2, "ccd": "-1.0", "cc": "1.0"},
        {"cargo_type": "CARGA_GERAL", "axles": 2, "ccd": "0", "cc": "1.0"},
        {"cargo_type": "CARGA_GERAL", "axles": 2, "ccd": "abc", "cc": "1.0"},
        {"cargo_type": "CARGA_GERAL", "axles": 2, "ccd": "1.0"},
    ])
    def test_rejects_bad_rows(self, row):
        with pytest.raises(RateTableError):
            parse_rate_table(table_with(rates=[row]))

    def test_rejects_empty_table(self):
        with pytest.raises(RateTableError):
            parse_rate_table(table_with(rates=[]))

    def test_rejects_non_positive_multiplier(self):
        modifiers = dict(MINIMAL_TABLE["modifiers"], high_performance_multiplier="0")
        with pytest.raises(RateTableError):
            parse_rate_table(table_with(modifiers=modifiers))

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "rates.json"
        path.write_text(json.dumps(MINIMAL_TABLE), encoding="utf-8")

        table = load_rate_table(path)
        assert table.lookup(CargoType.CARGA_GERAL, 3).load_unload_allowance == Decimal("150.00")

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(RateTableError):
            load_rate_table(tmp_path / "missing.json")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "rates.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(RateTableError):
            load_rate_table(path)

    def test_entry_accepts_field_names(self):
        entry = RateEntry(
            cargo_type=CargoType.NEOGRANEL,
            axles=4,
            base_coefficient=Decimal("1.5"),
            load_unload_allowance=Decimal("10"),
        )
        assert entry.base_coefficient == Decimal("1.5")

    def test_transport_category_defaults_to_table_a(self):
        assert parse_rate_table(MINIMAL_TABLE).transport_category == TransportCategory.CARGA_LOTACAO

    def test_rejects_unknown_transport_category(self):
        with pytest.raises(RateTableError):
            parse_rate_table(table_with(transport_category="TABELA_E"))


class TestBundledCatalog:

    def test_loaded_once(self):
        assert get_rate_catalog() is get_rate_catalog()

    def test_one_table_per_transport_category(self):
        catalog = get_rate_catalog()

        assert len(catalog) == 4
        assert set(catalog.tables) == {("6067_2025", category) for category in TransportCategory}

    def test_default_is_table_a(self, rate_table):
        assert get_rate_catalog().default is rate_table
        assert get_rate_catalog().select() is rate_table

    def test_tables_share_axle_classes(self):
        for table in get_rate_catalog().tables.values():
            assert len(table) == 80
            assert table.axles_for(CargoType.GRANEL_PRESSURIZADA) == [4, 5, 6, 7, 9]

    def test_coefficients_grow_with_axles_in_every_table(self):
        for key, table in get_rate_catalog().tables.items():
            for cargo_type in CargoType:
                ccds = [table.lookup(cargo_type, a).base_coefficient for a in table.axles_for(cargo_type)]
                assert ccds == sorted(ccds), (key, cargo_type)

    def test_select_by_category(self):
        table = get_rate_catalog().select("6067_2025", TransportCategory.VEICULO_AUTOMOTOR)

        assert table.transport_category == TransportCategory.VEICULO_AUTOMOTOR
        entry = table.lookup(CargoType.CARGA_GERAL, 5)
        assert entry.base_coefficient == Decimal("5.1691")
        assert entry.load_unload_allowance == Decimal("467.05")

    def test_category_alone_uses_default_resolution(self):
        table = get_rate_catalog().select(transport_category=TransportCategory.ALTO_DESEMPENHO)
        assert (table.resolution, table.transport_category) == ("6067_2025", TransportCategory.ALTO_DESEMPENHO)

    def test_unloaded_resolution_not_found(self):
        with pytest.raises(TableNotFound) as exc_info:
            get_rate_catalog().select("6046_2024", TransportCategory.CARGA_LOTACAO)

        assert isinstance(exc_info.value, RateNotFound)
        assert exc_info.value.status_code == 422
        assert "6046_2024" in exc_info.value.message
        assert "Tabela A" in exc_info.value.message


class TestCatalogLoading:

    def write_table(self, directory, name, **changes):
        (directory / name).write_text(json.dumps(table_with(**changes)), encoding="utf-8")

    def test_loads_every_file(self, tmp_path):
        self.write_table(tmp_path, "a.json")
        self.write_table(tmp_path, "b.json", transport_category="VEICULO_AUTOMOTOR")
        self.write_table(tmp_path, "old.json", resolution="older")

        catalog = load_rate_catalog(tmp_path, default_resolution="test", default_category="CARGA_LOTACAO")

        assert len(catalog) == 3
        assert catalog.default.resolution == "test"
        assert catalog.select("older").resolution == "older"

    def test_rejects_duplicate_tables(self, tmp_path):
        self.write_table(tmp_path, "a.json")
        self.write_table(tmp_path, "copy.json")

        with pytest.raises(RateTableError, match="Duplicate"):
            load_rate_catalog(tmp_path, default_resolution="test", default_category="CARGA_LOTACAO")

    def test_rejects_empty_directory(self, tmp_path):
        with pytest.raises(RateTableError):
            load_rate_catalog(tmp_path, default_resolution="test", default_category="CARGA_LOTACAO")

    def test_rejects_missing_default(self, tmp_path):
        self.write_table(tmp_path, "a.json")

        with pytest.raises(RateTableError, match="Default"):
            load_rate_catalog(tmp_path, default_resolution="test", default_category="ALTO_DESEMPENHO")

    def test_rejects_unknown_default_category(self, tmp_path):
        self.write_table(tmp_path, "a.json")

        with pytest.raises(RateTableError):
            load_rate_catalog(tmp_path, default_resolution="test", default_category="TABELA_E")
