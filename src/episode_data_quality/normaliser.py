# (c) Crown Copyright GCHQ \n
"""
Normalisation of raw episode fields before any scoring.

Raw extracts use several spellings for the same thing: blank strings for missing values,
'M'/'F' for the mother's sex, 'X' for a birth order that is not known. Normalisation
maps these onto the codes the checks expect. It never fails, values it does not
recognise are passed through for the checks to score. The only cast is of the year,
which is held as an int so that 2016 and "2016" are the same year when grouping.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

import pandas as pd

from episode_data_quality.reference import BABY_SLOTS, EPISODE_FIELDS
from episode_data_quality.rules.utils.rules_utils import coerce_scalar_to_integer

logger = logging.getLogger(__name__)

SEX_CODES = {"M": "1", "F": "2", "U": "0"}
# episode order when the episode is not part of a spell
EPISODE_ORDER_NOT_APPLICABLE = "98"
BIRTH_ORDER_NOT_KNOWN = "9"

BIRTH_ORDER_FIELDS = [f"birorder{slot}" for slot in BABY_SLOTS]


def _clean_value(value: object) -> object:
    """Trim strings and turn blank strings into None."""
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None
        return value
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    return value


def normalise_year(value: object) -> object:
    """A whole-number year as an int, e.g. "2016" or 2016.0 -> 2016. Other values pass through."""
    year = coerce_scalar_to_integer(value)
    return value if year is None else year


def normalise_sex(value: object) -> object:
    """Map the mother's sex to its code, e.g. 'F' -> '2'. Other values pass through."""
    if isinstance(value, str):
        return SEX_CODES.get(value, value)
    return value


def normalise_episode_order(value: object) -> object:
    """A blank episode order means not applicable, '98'."""
    if value is None:
        return EPISODE_ORDER_NOT_APPLICABLE
    return value


def normalise_birth_order(value: object) -> object:
    """'X' is the legacy spelling of a birth order that is not known, '9'."""
    if value == "X":
        return BIRTH_ORDER_NOT_KNOWN
    return value


def normalise_record(raw: Mapping) -> dict:
    """
    Normalise the fields of a single raw episode record.

    Args:
        raw (Mapping): Field name to raw value.

    Returns:
        dict: A new dict with the same keys and normalised values.

    Example:
        >>> normalise_record({"sex": "F", "epiorder": "  ", "birorder1": "X"})
        {'sex': '2', 'epiorder': '98', 'birorder1': '9'}
    """
    record = {field: _clean_value(value) for field, value in raw.items()}

    if "year" in record:
        record["year"] = normalise_year(record["year"])
    if "sex" in record:
        record["sex"] = normalise_sex(record["sex"])
    if "epiorder" in record:
        record["epiorder"] = normalise_episode_order(record["epiorder"])
    for field in BIRTH_ORDER_FIELDS:
        if field in record:
            record[field] = normalise_birth_order(record[field])

    return record


def normalise_episodes(records: pd.DataFrame | Sequence[Mapping]) -> pd.DataFrame:
    """
    Normalise a set of raw episode records into the episode DataFrame every check expects.

    As well as normalising each field (see normalise_record):
        - any episode column missing from the input is added, holding nulls
        - if there is no 'file_row' column, it is added as the 1-based row number of
          each record within its year, in input order
    Row order and the index are preserved.

    Args:
        records (pd.DataFrame | Sequence[Mapping]): Raw records.

    Returns:
        pd.DataFrame: Normalised episodes (a new object, the input is not modified).
    """
    if isinstance(records, pd.DataFrame):
        raw = records
    else:
        raw = pd.DataFrame(list(records))

    normalised = pd.DataFrame(
        [normalise_record(record) for record in raw.to_dict(orient="records")],
        columns=raw.columns,
        index=raw.index,
        dtype=object,
    )

    missing_fields = [field for field in EPISODE_FIELDS if field not in normalised.columns]
    if missing_fields:
        logger.debug("Adding missing episode columns as nulls: %s", missing_fields)
    for field in missing_fields:
        if field == "epiorder":
            normalised[field] = EPISODE_ORDER_NOT_APPLICABLE
        elif field != "file_row":
            normalised[field] = None

    if "file_row" not in normalised.columns:
        normalised["file_row"] = (
            normalised.groupby("year", dropna=False, sort=False).cumcount() + 1
        )

    logger.info("Normalised %d episode records", len(normalised))
    return normalised
