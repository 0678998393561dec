# (c) Crown Copyright GCHQ \n
"""
Date parsing utilities for episode data quality checks.

Episode dates arrive in whatever form the loader produced: date or datetime objects,
ISO strings ('2015-05-15') or day-first strings ('15/05/2015'). Parsing never raises,
values that cannot be read as a date become NaT, and the caller decides how to score
them (typically as an illegal value rather than a blank one).

Dates are compared as calendar dates, so any timezone information is dropped.
"""

from datetime import date, datetime

import numpy as np
import pandas as pd
from pandas._libs.tslibs.nattype import NaTType

# Tried in order, the first format that parses wins
DATE_FORMATS = ("ISO8601", "%d/%m/%Y", "%d-%m-%Y")


def to_timestamp(value: object) -> pd.Timestamp | NaTType:
    """Parse a single date value to a timezone-naive pandas Timestamp.

    Args:
        value: A date, datetime, pd.Timestamp, string or None.

    Returns:
        pd.Timestamp or pd.NaT if the value is null or not a recognisable date.

    Examples:
        >>> to_timestamp("15/05/2015")
        Timestamp('2015-05-15 00:00:00')
        >>> to_timestamp("not a date")
        NaT
    """
    if isinstance(value, datetime | date | np.datetime64):
        try:
            timestamp = pd.Timestamp(value)
        except (ValueError, OverflowError):
            # outside the range a Timestamp can hold
            return pd.NaT
        return _drop_timezone(timestamp)

    if not isinstance(value, str):
        return pd.NaT

    for date_format in DATE_FORMATS:
        timestamp = pd.to_datetime(value.strip(), format=date_format, errors="coerce")
        if not pd.isna(timestamp):
            return _drop_timezone(timestamp)
    return pd.NaT


def _drop_timezone(timestamp: pd.Timestamp | NaTType) -> pd.Timestamp | NaTType:
    if not pd.isna(timestamp) and timestamp.tzinfo is not None:
        return timestamp.tz_convert(None)
    return timestamp


def to_datetime_series(values: pd.Series) -> pd.Series:
    """Parse a column of raw date values, element by element, to datetime64 values.

    Each value is parsed on its own so a column mixing formats (or mixing strings and
    date objects) is handled consistently.

    Args:
        values (pd.Series): Raw date values.

    Returns:
        pd.Series: datetime64 series with the same index, NaT where a value is null
        or could not be parsed.
    """
    if pd.api.types.is_datetime64_any_dtype(values.dtype):
        if getattr(values.dt, "tz", None) is not None:
            return values.dt.tz_convert(None)
        return values

    parsed = values.map(to_timestamp)
    return pd.to_datetime(parsed, errors="coerce")


def get_unparseable_mask(raw: pd.Series, parsed: pd.Series) -> pd.Series:
    """True where a raw value was present but could not be parsed."""
    return raw.notnull() & parsed.isnull()
