"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from canvass_api.core.config import Settings

_REQUIRED = {"database_url": "sqlite+aiosqlite://", "jwt_secret_key": "k" * 32}


class TestSettings:
    """Tests for Settings."""

    def test_import_defaults(self) -> None:
        settings = Settings(**_REQUIRED)
        assert settings.import_progress_interval == 250
        assert settings.xlsx_convert_timeout == 60.0
        assert settings.max_import_file_size_mb == 100
        assert settings.default_state == "LA"
        assert settings.api_v1_prefix == "/api/v1"

    def test_short_jwt_secret_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(database_url="sqlite+aiosqlite://", jwt_secret_key="short")

    def test_progress_interval_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(**_REQUIRED, import_progress_interval=0)

    def test_cors_origin_list(self) -> None:
        settings = Settings(**_REQUIRED, cors_origins="https://a.example, https://b.example,")
        assert settings.cors_origin_list == ["https://a.example", "https://b.example"]

    def test_cors_origin_list_empty(self) -> None:
        assert Settings(**_REQUIRED).cors_origin_list == []

    def test_storage_enabled_requires_all_settings(self) -> None:
        assert Settings(**_REQUIRED, s3_bucket="b", s3_access_key_id="k").storage_enabled is False
        assert Settings(**_REQUIRED, s3_bucket="b", s3_access_key_id="k", s3_secret_access_key="s").storage_enabled

    @pytest.mark.parametrize("schema", ["pr_42", "_tmp"])
    def test_valid_schema(self, schema: str) -> None:
        assert Settings(**_REQUIRED, database_schema=schema).database_schema == schema

    @pytest.mark.parametrize("schema", ["PR42", "1abc", "drop table;"])
    def test_invalid_schema(self, schema: str) -> None:
        with pytest.raises(ValidationError):
            Settings(**_REQUIRED, database_schema=schema)
