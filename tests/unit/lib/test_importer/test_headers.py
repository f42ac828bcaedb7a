"""Unit tests for voter file header normalization."""

import pytest

from canvass_api.lib.importer.headers import build_field_map, clean_header, map_header_to_field, normalize_header
from canvass_api.lib.importer.types import VoterField


class TestCleanHeader:
    """Tests for raw header cleanup."""

    def test_keeps_text_before_first_comma(self) -> None:
        assert clean_header("Residential Address, Line 1") == "RESIDENTIAL ADDRESS"

    def test_strips_quotes_and_whitespace(self) -> None:
        assert clean_header('  "Voter ID" ') == "VOTER ID"

    def test_none_is_empty(self) -> None:
        assert clean_header(None) == ""


class TestMapHeaderToField:
    """Tests for synonym lookup."""

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("REGISTRATION NUMBER", VoterField.EXTERNAL_ID),
            ("Voter_ID", VoterField.EXTERNAL_ID),
            ("id", VoterField.EXTERNAL_ID),
            ("LALISTID", VoterField.EXTERNAL_ID),
            ("First Name", VoterField.FIRST_NAME),
            ("NAME_LAST", VoterField.LAST_NAME),
            ("MI", VoterField.MIDDLE_NAME),
            ("Personal Name Suffix", VoterField.SUFFIX),
            ("Birth Year", VoterField.AGE),
            ("Sex", VoterField.GENDER),
            ("Ethnicity", VoterField.RACE),
            ("Registration Political Party Code", VoterField.PARTY),
            ("Residence House Number", VoterField.RES_HOUSE_NUMBER),
            ("Residence Street Name", VoterField.RES_STREET_NAME),
            ("Street Address", VoterField.ADDRESS),
            ("Residence Apartment Number", VoterField.UNIT),
            ("Residence City", VoterField.CITY),
            ("ST", VoterField.STATE),
            ("Residence Zip Code 5", VoterField.ZIP),
        ],
    )
    def test_synonyms(self, header: str, expected: VoterField) -> None:
        assert map_header_to_field(header) == expected

    @pytest.mark.parametrize("header", ["PHONE NUMBER", "Home Phone", "MOBILE", "Cell #", "cellphone"])
    def test_any_phone_marker_maps_to_phone(self, header: str) -> None:
        assert map_header_to_field(header) == VoterField.PHONE

    def test_party_checked_before_phone(self) -> None:
        assert map_header_to_field("PARTY") == VoterField.PARTY

    def test_unknown_header(self) -> None:
        assert map_header_to_field("RANDOM UNKNOWN COLUMN") is None

    def test_empty_header(self) -> None:
        assert map_header_to_field("") is None


class TestNormalizeHeader:
    """Tests for clean-then-map."""

    def test_comma_suffix_is_ignored(self) -> None:
        assert normalize_header("RESIDENTIAL ADDRESS, LINE 1") == VoterField.ADDRESS

    def test_quoted_header(self) -> None:
        assert normalize_header('"Phone Number"') == VoterField.PHONE


class TestBuildFieldMap:
    """Tests for positional header mapping."""

    def test_preserves_positions(self) -> None:
        field_map = build_field_map(["Voter ID", "Junk", "Last Name"])
        assert field_map == [VoterField.EXTERNAL_ID, None, VoterField.LAST_NAME]

    def test_empty_header_row(self) -> None:
        assert build_field_map([]) == []
