"""Source column header normalization.

Voter file exports label the same column in many ways (``REGISTRATION
NUMBER``, ``VOTER ID``, ``RESIDENCE CITY``...). Headers are reduced to an
upper-case alphanumeric token and looked up in closed synonym tables.
"""

import re

from loguru import logger

from canvass_api.lib.importer.types import VoterField

_NON_ALNUM = re.compile(r"[^A-Z0-9]")

# Checked in order; the first table containing the token wins.
_SYNONYMS_BEFORE_PHONE: tuple[tuple[VoterField, frozenset[str]], ...] = (
    (
        VoterField.EXTERNAL_ID,
        frozenset(
            {
                "REGISTRATIONNUMBER",
                "REGISTRATIONNUM",
                "REGNUMBER",
                "VOTERID",
                "STATEVOTERID",
                "STATEID",
                "VANID",
                "EXTERNALID",
                "ID",
                "LALISTID",
            }
        ),
    ),
    (VoterField.FIRST_NAME, frozenset({"FIRSTNAME", "NAMEFIRST", "FNAME", "FIRST"})),
    (VoterField.LAST_NAME, frozenset({"LASTNAME", "NAMELAST", "LNAME", "LAST"})),
    (VoterField.MIDDLE_NAME, frozenset({"MIDDLENAME", "NAMEMID", "MNAME", "MID", "MI"})),
    (VoterField.SUFFIX, frozenset({"SUFFIX", "NAMESUFFIX", "PERSONALNAMESUFFIX", "SFX"})),
    (VoterField.AGE, frozenset({"AGE", "BIRTHYEAR", "DOB"})),
    (VoterField.GENDER, frozenset({"GENDER", "SEX", "PERSONALSEX"})),
    (VoterField.RACE, frozenset({"RACE", "ETHNICITY", "PERSONALRACE"})),
    (
        VoterField.PARTY,
        frozenset({"PARTY", "PARTYID", "POLITICALPARTY", "PARTYAFFILIATION", "REGISTRATIONPOLITICALPARTYCODE"}),
    ),
)

# Any token containing one of these is a phone column (HOMEPHONE, CELLNUMBER, ...)
_PHONE_MARKERS = ("PHONE", "MOBILE", "CELL")

_SYNONYMS_AFTER_PHONE: tuple[tuple[VoterField, frozenset[str]], ...] = (
    (VoterField.RES_HOUSE_NUMBER, frozenset({"RESIDENCEHOUSENUMBER"})),
    (VoterField.RES_HOUSE_FRACTION, frozenset({"RESIDENCEHOUSEFRACTION"})),
    (VoterField.RES_STREET_DIRECTION, frozenset({"RESIDENCESTREETDIRECTION"})),
    (VoterField.RES_STREET_NAME, frozenset({"RESIDENCESTREETNAME"})),
    (
        VoterField.ADDRESS,
        frozenset(
            {
                "ADDRESS",
                "RESADDRESS1",
                "STREETADDRESS",
                "ADDR1",
                "RESIDENCEADDRESS",
                "RESIDENTIALADDRESS",
                "STREET",
                "ADDRESS1",
                "RESIDENCEADDRESSLINE1",
            }
        ),
    ),
    (
        VoterField.UNIT,
        frozenset(
            {
                "UNIT",
                "APT",
                "APARTMENT",
                "SUITE",
                "ADDRESS2",
                "RESADDRESS2",
                "ADDR2",
                "RESADDRESSLINE2",
                "RESIDENCEAPARTMENTNUMBER",
            }
        ),
    ),
    (VoterField.CITY, frozenset({"CITY", "RESCITY", "RESIDENCECITY", "RESIDENCECITYNAME"})),
    (VoterField.STATE, frozenset({"STATE", "RESSTATE", "ST", "RESIDENCESTATE"})),
    (VoterField.ZIP, frozenset({"ZIP", "ZIPCODE", "RESZIP", "POSTALCODE", "ZIP5", "RESIDENCEZIPCODE5"})),
)


def clean_header(raw: str | None) -> str:
    """Reduce a raw header label to its significant upper-case prefix.

    Some exports embed a comma inside the label (``"RESIDENTIAL ADDRESS,
    LINE 1"``); only the part before the first comma is kept. Quote
    characters are removed and surrounding whitespace trimmed.

    Args:
        raw: Header text as read from the file (``None`` is treated as empty).

    Returns:
        The cleaned, upper-cased header.
    """
    prefix = str(raw or "").split(",", 1)[0]
    return prefix.replace('"', "").strip().upper()


def map_header_to_field(header: str) -> VoterField | None:
    """Look up a cleaned header in the synonym tables.

    Args:
        header: Header text; case and punctuation are ignored.

    Returns:
        The canonical field, or None when the column is not recognised.
    """
    token = _NON_ALNUM.sub("", header.upper())
    for field, synonyms in _SYNONYMS_BEFORE_PHONE:
        if token in synonyms:
            return field
    if any(marker in token for marker in _PHONE_MARKERS):
        return VoterField.PHONE
    for field, synonyms in _SYNONYMS_AFTER_PHONE:
        if token in synonyms:
            return field
    return None


def normalize_header(raw: str | None) -> VoterField | None:
    """Clean a raw header and map it to a canonical field."""
    return map_header_to_field(clean_header(raw))


def build_field_map(headers: list[str]) -> list[VoterField | None]:
    """Map every header of a file to its canonical field, by position.

    Args:
        headers: Raw header row values in column order.

    Returns:
        A list the same length as ``headers``; ``None`` marks ignored columns.
    """
    field_map = [normalize_header(h) for h in headers]
    ignored = [h for h, f in zip(headers, field_map, strict=True) if f is None]
    if ignored:
        logger.debug(f"Ignoring {len(ignored)} unrecognised columns: {ignored}")
    return field_map
