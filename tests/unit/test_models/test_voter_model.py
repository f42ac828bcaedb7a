"""Unit tests for the Voter table definition."""

import pytest
from sqlalchemy import String, Text

from canvass_api.models import Voter

SOURCE_FILLED_COLUMNS = [
    "external_id",
    "first_name",
    "middle_name",
    "last_name",
    "suffix",
    "gender",
    "race",
    "party",
    "phone",
    "address",
    "unit",
    "city",
    "state",
    "zip",
]


class TestVoterColumns:
    """Tests for voter column types."""

    @pytest.mark.parametrize("column", SOURCE_FILLED_COLUMNS)
    def test_imported_text_is_unbounded(self, column: str) -> None:
        column_type = Voter.__table__.c[column].type
        assert isinstance(column_type, Text)
        assert column_type.length is None

    def test_source_is_short_enum_string(self) -> None:
        column_type = Voter.__table__.c["source"].type
        assert isinstance(column_type, String)
        assert column_type.length == 20
