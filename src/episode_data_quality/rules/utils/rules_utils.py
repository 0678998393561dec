# (c) Crown Copyright GCHQ \n
"""
Utility functions for pandas-based check logic.

This module provides helpers for column discovery, value coercion and for mapping raw
values onto the scoring scale through an ordered list of score bands.

Note:
    These utilities are generally called from within check classes (e.g., Check.evaluate(df)).
    End users should not call them directly.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Literal
from warnings import warn

import numpy as np
import pandas as pd

from episode_data_quality.errors import UnclassifiableValueWarning
from episode_data_quality.models import ScoringScale

if TYPE_CHECKING:
    from episode_data_quality.rules.base import ScoreBand

# How many offending values are quoted in an UnclassifiableValueWarning
UNCLASSIFIABLE_SAMPLE_SIZE = 5


def ensure_columns_exist_pandas(df: pd.DataFrame, columns: list[str]) -> None:
    """Raise a ValueError if any requested fields are not present in the Pandas DataFrame columns.

    Args:
        df (pd.DataFrame): The input dataframe.
        columns (list[str]): List of column names to ensure presence.

    Raises:
        ValueError: If any requested column is not in the DataFrame.
    """
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ValueError(
            f"Field(s) {missing} not found in DataFrame columns: {df.columns.tolist()}"
        )


def coerce_to_integer(values: pd.Series) -> pd.Series:
    """Coerce raw values to whole numbers, held as floats so that NaN can mark failures.

    Strings such as '2' or ' 37 ' become 2.0 and 37.0. Anything that is not a whole
    number ('X', '2.5', 'abc') becomes NaN, as do nulls.

    Args:
        values (pd.Series): Raw values.

    Returns:
        pd.Series: float64 series with the same index.
    """
    if values.dtype == object:
        values = values.map(lambda v: v.strip() if isinstance(v, str) else v)
    numeric = pd.to_numeric(values, errors="coerce").astype("float64")
    return numeric.where(numeric == np.floor(numeric))


def coerce_scalar_to_integer(value: object) -> int | None:
    """Scalar version of coerce_to_integer, returning None if the value is not a whole number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if np.isnan(number) or not number.is_integer():
        return None
    return int(number)


def coerce_to_code(values: pd.Series) -> pd.Series:
    """Represent raw values as trimmed strings, preserving nulls.

    Whole-number floats are written without the decimal part, so a code of 9 read
    as 9.0 still matches '9'.
    """

    def _to_code(value: object) -> object:
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value).strip()

    return values.where(values.isnull(), values.map(_to_code))


def get_band_mask(
    values: pd.Series, band: ScoreBand, value_type: Literal["integer", "code"]
) -> pd.Series:
    """Boolean mask of the (already coerced) values that fall within a score band.

    A value matches when it is one of band.values (if given) and lies within
    [band.min_value, band.max_value] (for any bound given). Nulls never match.
    """
    mask = values.notnull()
    if band.values is not None:
        if value_type == "integer":
            allowed = [float(v) for v in band.values]
        else:
            allowed = [str(v) for v in band.values]
        mask = mask & values.isin(allowed)
    if band.min_value is not None:
        mask = mask & (values >= band.min_value)
    if band.max_value is not None:
        mask = mask & (values <= band.max_value)
    return mask.fillna(False).astype(bool)


def classify_by_bands(
    raw: pd.Series,
    bands: Sequence[ScoreBand],
    default_score: int,
    value_type: Literal["integer", "code"],
) -> tuple[np.ndarray, pd.Series]:
    """Map raw values onto the scoring scale, the first matching band wins.

    Integer fields that cannot be read as a whole number are scored as illegal
    regardless of default_score, as are values that match no band when default_score
    is itself illegal. Null values are returned with the default score; null handling
    is the caller's decision (blank may be good or bad depending on the check).

    Args:
        raw (pd.Series): Raw field values.
        bands (Sequence[ScoreBand]): Ordered score bands.
        default_score (int): Score for a non-null value that matches no band.
        value_type (Literal['integer', 'code']): How values are compared.

    Returns:
        tuple[np.ndarray, pd.Series]: The scores and a mask of unclassifiable values
        (present, but scored illegal because nothing recognised them).
    """
    if value_type == "integer":
        values = coerce_to_integer(raw)
    else:
        values = coerce_to_code(raw)

    present = raw.notnull()
    unparseable = present & values.isnull()

    band_masks = [get_band_mask(values, band, value_type) for band in bands]
    if band_masks:
        scores = np.select(
            [mask.to_numpy() for mask in band_masks],
            [int(band.score) for band in bands],
            default=default_score,
        )
    else:
        scores = np.full(len(raw), default_score)
    scores = np.where(unparseable.to_numpy(), int(ScoringScale.ILLEGAL), scores)

    matched_any = pd.Series(False, index=raw.index)
    for mask in band_masks:
        matched_any = matched_any | mask

    unclassifiable = unparseable
    if default_score == ScoringScale.ILLEGAL:
        unclassifiable = unclassifiable | (present & ~matched_any)

    return scores.astype("int64"), unclassifiable


def warn_if_unclassifiable(
    check_name: str, raw: pd.Series, unclassifiable_mask: pd.Series
) -> None:
    """Raise an UnclassifiableValueWarning naming the check, the column and a sample of values."""
    count = int(unclassifiable_mask.sum())
    if count == 0:
        return
    sample = (
        raw[unclassifiable_mask].drop_duplicates().head(UNCLASSIFIABLE_SAMPLE_SIZE).tolist()
    )
    warn(
        f"Check '{check_name}' found {count} unclassifiable value(s) in column '{raw.name}' "
        f"which are scored as illegal ({int(ScoringScale.ILLEGAL)}). Sample: {sample}",
        UnclassifiableValueWarning,
        stacklevel=3,
    )
