"""Typed row records produced by the voter file importer.

Source columns are mapped onto a closed vocabulary of canonical voter
fields; anything that maps to nothing is discarded before a row is built.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import StrEnum
from typing import Any


class VoterField(StrEnum):
    """Canonical voter fields a source column can map onto."""

    EXTERNAL_ID = "external_id"
    FIRST_NAME = "first_name"
    MIDDLE_NAME = "middle_name"
    LAST_NAME = "last_name"
    SUFFIX = "suffix"
    AGE = "age"
    GENDER = "gender"
    RACE = "race"
    PARTY = "party"
    PHONE = "phone"
    RES_HOUSE_NUMBER = "res_house_number"
    RES_HOUSE_FRACTION = "res_house_fraction"
    RES_STREET_DIRECTION = "res_street_direction"
    RES_STREET_NAME = "res_street_name"
    ADDRESS = "address"
    UNIT = "unit"
    CITY = "city"
    STATE = "state"
    ZIP = "zip"


# Inline JSON payloads may use camelCase keys for these fields
_CAMEL_CASE_ALIASES: dict[str, tuple[str, ...]] = {
    "external_id": ("externalId",),
    "first_name": ("firstName",),
    "middle_name": ("middleName",),
    "last_name": ("lastName",),
    "geom_lat": ("geomLat",),
    "geom_lng": ("geomLng",),
}

# Split residence address components, in composition order
_ADDRESS_PARTS = ("res_house_number", "res_house_fraction", "res_street_direction", "res_street_name")


@dataclass(frozen=True)
class MappedVoterRow:
    """One source row with every recognised column bound to its canonical field.

    All values are the raw source text (``None`` when the column is absent).
    ``geom_lat``/``geom_lng`` can only arrive through inline JSON payloads;
    no file header maps onto them.
    """

    external_id: str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    suffix: str | None = None
    age: str | None = None
    gender: str | None = None
    race: str | None = None
    party: str | None = None
    phone: str | None = None
    res_house_number: str | None = None
    res_house_fraction: str | None = None
    res_street_direction: str | None = None
    res_street_name: str | None = None
    address: str | None = None
    unit: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    geom_lat: str | None = None
    geom_lng: str | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> MappedVoterRow:
        """Build a row from an inline JSON payload dict.

        Accepts both snake_case and camelCase keys for the identity, name and
        geocoordinate fields; the first non-empty variant wins. Non-string
        scalars are stringified and unknown keys are ignored.
        """
        values: dict[str, str] = {}
        for f in fields(cls):
            for key in (f.name, *_CAMEL_CASE_ALIASES.get(f.name, ())):
                raw = data.get(key)
                if raw is None or raw == "":
                    continue
                values[f.name] = raw if isinstance(raw, str) else str(raw)
                break
        return cls(**values)

    def composed_address(self) -> str:
        """Join the non-empty split address components with single spaces."""
        parts = (getattr(self, name) for name in _ADDRESS_PARTS)
        return " ".join(p.strip() for p in parts if p and p.strip())
