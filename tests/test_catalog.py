"""Tests for equipment and named rack unit resolution."""

import pytest

from rackled.common.exceptions import (
    ConfigurationError,
    UnknownEquipmentError,
    ValidationError,
)
from rackled.core.catalog import (
    Catalog,
    normalize_sides,
    normalize_unit_list,
    normalize_vertical_spec,
)
from rackled.core.config import RackConfig


class TestNormalizers:
    """Test parsing of equipment settings"""

    @pytest.mark.parametrize(
        "side_prop, expected",
        [
            ("left", ("left",)),
            ("RIGHT", ("right",)),
            ("both", ("left", "right")),
            (["right", "left"], ("left", "right")),
            (["top"], ("left", "right")),
            (None, ("left", "right")),
            ("front", ("left", "right")),
        ],
    )
    def test_sides(self, side_prop, expected):
        assert normalize_sides(side_prop) == expected

    def test_one_based_units(self):
        assert normalize_unit_list([1, "2", "x", 50, 2.5], 42) == (1, 2)

    def test_zero_based_units(self):
        assert normalize_unit_list([0, 1, 41], 42) == (1, 2, 42)

    def test_vertical_spec_in_units(self):
        rows = normalize_vertical_spec({"start": 40, "length": 1}, 3)
        assert (rows.v_start, rows.v_length) == (120, 3)

    def test_vertical_spec_in_leds(self):
        rows = normalize_vertical_spec({"start": 5, "length": 4, "unit": "leds"}, 3)
        assert (rows.v_start, rows.v_length) == (5, 4)

    def test_invalid_vertical_spec(self):
        with pytest.raises(ConfigurationError):
            normalize_vertical_spec({"start": "top"}, 3)


class TestCatalog:
    """Test lookups"""

    def test_equipment(self, rack_config):
        eq = Catalog(rack_config).equipment("srv-db01")
        assert eq.units == (10, 11)
        assert eq.sides == ("left",)
        assert eq.to_dict()["rack_units"] == [10, 11]

    @pytest.mark.parametrize("equipment_id", ["spare", "missing"])
    def test_unknown_or_empty_equipment(self, rack_config, equipment_id):
        with pytest.raises(UnknownEquipmentError, match=equipment_id):
            Catalog(rack_config).equipment(equipment_id)

    def test_unknown_equipment_is_a_client_error(self):
        assert issubclass(UnknownEquipmentError, ValidationError)

    def test_rack_unit_segments(self, rack_config):
        catalog = Catalog(rack_config)
        panel = catalog.rack_unit("patch-panel")
        assert [(s.kind, s.side, s.start, s.length) for s in panel.segments] == [
            ("vertical", "left", 120, 3),
            ("vertical", "right", 120, 3),
        ]
        strip = catalog.rack_unit("top-strip")
        assert [(s.kind, s.side) for s in strip.segments] == [("local", "top")]

    def test_unknown_rack_unit(self, rack_config):
        with pytest.raises(ValidationError, match="Unknown rack unit"):
            Catalog(rack_config).rack_unit("nope")

    def test_rack_unit_exceeding_side(self, rack_config_dict):
        rack_config_dict["rack_units"].append(
            {"id": "too-long", "bottom": {"start": 10, "length": 11}}
        )
        with pytest.raises(ConfigurationError, match="too-long"):
            Catalog(RackConfig.from_dict(rack_config_dict))

    def test_rack_unit_exceeding_ruler(self, rack_config_dict):
        rack_config_dict["rack_units"].append(
            {"id": "above", "vertical": {"start": 42, "length": 1}}
        )
        with pytest.raises(ConfigurationError, match="above"):
            Catalog(RackConfig.from_dict(rack_config_dict))
