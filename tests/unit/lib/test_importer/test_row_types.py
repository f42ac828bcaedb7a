"""Unit tests for mapped voter rows."""

from canvass_api.lib.importer.types import MappedVoterRow, VoterField


class TestVoterField:
    """Tests for the canonical field vocabulary."""

    def test_values_match_row_attributes(self) -> None:
        for field in VoterField:
            assert hasattr(MappedVoterRow(), field.value)


class TestFromMapping:
    """Tests for building rows from inline JSON."""

    def test_snake_case_keys(self) -> None:
        row = MappedVoterRow.from_mapping({"external_id": "E1", "first_name": "Ada", "city": "Metairie"})
        assert row.external_id == "E1"
        assert row.first_name == "Ada"
        assert row.city == "Metairie"

    def test_camel_case_keys(self) -> None:
        row = MappedVoterRow.from_mapping({"externalId": "E2", "lastName": "Hopper", "geomLat": 30.45})
        assert row.external_id == "E2"
        assert row.last_name == "Hopper"
        assert row.geom_lat == "30.45"

    def test_first_non_empty_variant_wins(self) -> None:
        row = MappedVoterRow.from_mapping({"external_id": "", "externalId": "E3"})
        assert row.external_id == "E3"

    def test_non_strings_are_stringified(self) -> None:
        row = MappedVoterRow.from_mapping({"age": 42, "zip": 70112})
        assert row.age == "42"
        assert row.zip == "70112"

    def test_unknown_keys_ignored(self) -> None:
        row = MappedVoterRow.from_mapping({"favorite_color": "blue"})
        assert row == MappedVoterRow()


class TestComposedAddress:
    """Tests for joining split address components."""

    def test_joins_non_empty_parts(self) -> None:
        row = MappedVoterRow(
            res_house_number="12",
            res_house_fraction=" ",
            res_street_direction="N",
            res_street_name="Elm St",
        )
        assert row.composed_address() == "12 N Elm St"

    def test_no_parts(self) -> None:
        assert MappedVoterRow().composed_address() == ""
