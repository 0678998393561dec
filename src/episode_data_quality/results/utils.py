# (c) Crown Copyright GCHQ \n
"""This module provides utility functions for serialising score frames within a
ScoringReport. It is intended for internal use by the report model.

Functions in this module are designed to operate independently of Pydantic models or
explicit schema knowledge, to avoid circular import dependencies.

Note:
    End users should not call these functions directly.
"""

from datetime import date, datetime

import numpy as np
import pandas as pd


def _to_json_value(value: object) -> object:
    """A JSON compatible version of a single frame value."""
    if value is None:
        return None
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, datetime | date):
        return value.isoformat()
    return value


def coerce_nan_to_none(records: list[dict]) -> list[dict]:
    """To avoid JSON serialisation errors, we need to remove pd.NaT and np.nan
    (and numpy scalar types) from the record values

    Such that [{"columnA" : nan}] -> [{"columnA" : None}]

    Args:
        records (list[dict]): Records, as produced by DataFrame.to_dict("records")

    Returns:
        list[dict]: The same list, modified in place
    """

    for _dict in records:
        for key, value in _dict.items():
            _dict[key] = _to_json_value(value)

    return records


def frame_to_records(df: pd.DataFrame | None) -> list[dict] | None:
    """A JSON compatible list of records for a DataFrame, the index is dropped."""
    if df is None:
        return None
    return coerce_nan_to_none(df.to_dict(orient="records"))


def summarise_totals(
    weighted_scores: pd.DataFrame,
    normalised_scores: pd.DataFrame,
    families: pd.DataFrame,
    total_field: str,
    family_fields: list[str],
) -> pd.DataFrame:
    """
    One row per record: the record key, both score totals and the family annotations.

    All three frames must be aligned row by row (as they are within a ScoringReport).
    """
    summary = weighted_scores[["year", "file_row"]].copy()
    summary[f"weighted_{total_field}"] = weighted_scores[total_field].to_numpy()
    summary[f"normalised_{total_field}"] = normalised_scores[total_field].to_numpy()
    for column in family_fields:
        summary[column] = families[column].to_numpy()
    return summary
