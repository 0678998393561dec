# (c) Crown Copyright GCHQ \n
"""
Field-level checks: each scores one administrative field in isolation.

A blank field scores 3 (blank) in every field-level check. Values that cannot be
interpreted score 1 (illegal) and are reported through an UnclassifiableValueWarning,
scoring never raises on bad data.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Literal

import numpy as np
import pandas as pd
from pydantic import Field, model_validator

from episode_data_quality.models import CheckTier, CheckTierName, Score, ScoringScale
from episode_data_quality.rules.base import BaseCheck, ScoreBand
from episode_data_quality.rules.utils.datetime_utils import (
    get_unparseable_mask,
    to_datetime_series,
)
from episode_data_quality.rules.utils.rules_utils import (
    classify_by_bands,
    coerce_to_integer,
    warn_if_unclassifiable,
)


class PresenceCheck(BaseCheck):
    """
    Scores a field as valid (8) when populated and blank (3) otherwise.

    Used for fields with no domain of their own, such as year or the provider code.

    Example:
        ```python
        >>> check = PresenceCheck(field="procode")
        >>> check.name
        'dq_field_procode'
        ```
    """

    function: Literal["presence"] = "presence"
    tier: CheckTierName = Field(default=CheckTier.FIELD)

    def _get_scores_pandas(self, df: pd.DataFrame) -> np.ndarray:
        return self._score_presence(df[self.field])


class ClassificationCheck(BaseCheck):
    """
    Scores a field by looking its value up in an ordered table of score bands.

    Bands are tried in order and the first one that matches wins. A populated value that
    matches no band scores `default_score`, blank values score 3.

    With value_type 'integer' values are compared as whole numbers, so '2', 2 and 2.0
    are the same value and bands may use min_value/max_value ranges. A value that is not
    a whole number is always illegal. With value_type 'code' values are compared as
    trimmed strings and only explicit values may be listed.

    Attributes:
        field (str): Column to score.
        value_type (Literal['integer', 'code']): How values are compared.
        bands (list[ScoreBand]): Ordered classification table.
        default_score (int): Score for populated values that match no band (default 1).

    Example:
        ```python
        # sex of the mother: male is legal but medically infeasible
        >>> check = ClassificationCheck(
        ...     field="sex",
        ...     value_type="integer",
        ...     bands=[
        ...         ScoreBand(score=2, values=[1]),
        ...         ScoreBand(score=4, values=[0]),
        ...         ScoreBand(score=5, values=[9]),
        ...         ScoreBand(score=8, values=[2]),
        ...     ],
        ... )
        >>> check.evaluate(df)
        ```
    """

    function: Literal["classification"] = "classification"
    tier: CheckTierName = Field(default=CheckTier.FIELD)
    value_type: Literal["integer", "code"] = Field(
        default="integer", description="Compare values as whole numbers or as codes"
    )
    bands: list[ScoreBand] = Field(
        default_factory=list, description="Ordered classification table"
    )
    default_score: Score = Field(
        default=int(ScoringScale.ILLEGAL),
        description="Score of a populated value matching no band",
    )

    @model_validator(mode="after")
    def _check_codes_are_not_ranges(self) -> ClassificationCheck:
        if self.value_type == "code" and any(band.is_range for band in self.bands):
            raise ValueError(
                f"Check on '{self.field}' compares codes, so its bands cannot use "
                "min_value or max_value"
            )
        return self

    def _get_scores_pandas(self, df: pd.DataFrame) -> np.ndarray:
        values = df[self.field]
        scores, unclassifiable = classify_by_bands(
            values, self.bands, self.default_score, self.value_type
        )
        warn_if_unclassifiable(self.check_name, values, unclassifiable)

        return np.where(values.isnull().to_numpy(), int(ScoringScale.BLANK), scores)


class _DateAgainstYearCheck(BaseCheck):
    """Shared behaviour of date checks that compare a date with the record's year."""

    tier: CheckTierName = Field(default=CheckTier.FIELD)
    year_field: str = Field(default="year", description="Column holding the record year")

    def _get_columns_used_pandas(self) -> list[str]:
        return [self.field, self.year_field]

    @abstractmethod
    def _get_infeasible_mask(self, dates: pd.Series, years: pd.Series) -> pd.Series:
        """True where the date is legal but infeasible for the record year."""

        pass  # pragma: no cover

    def _get_scores_pandas(self, df: pd.DataFrame) -> np.ndarray:
        raw = df[self.field]
        dates = to_datetime_series(raw)
        years = coerce_to_integer(df[self.year_field])

        unparseable = get_unparseable_mask(raw, dates)
        warn_if_unclassifiable(self.check_name, raw, unparseable)

        # a missing year leaves nothing to compare against
        infeasible = self._get_infeasible_mask(dates, years).fillna(False).astype(bool)
        infeasible = infeasible & dates.notnull() & years.notnull()

        return np.select(
            [raw.isnull().to_numpy(), unparseable.to_numpy(), infeasible.to_numpy()],
            [
                int(ScoringScale.BLANK),
                int(ScoringScale.ILLEGAL),
                int(ScoringScale.MEDICALLY_INFEASIBLE),
            ],
            default=int(ScoringScale.VALID),
        )


class MaternalDateOfBirthCheck(_DateAgainstYearCheck):
    """
    Scores the mother's date of birth.

    Unparseable dates are illegal (1). A mother aged `max_age_years` or more in the
    record year (compared by calendar year only) is medically infeasible (2).

    Example:
        ```python
        >>> MaternalDateOfBirthCheck(field="dob", max_age_years=60).evaluate(df)
        ```
    """

    function: Literal["maternal_date_of_birth"] = "maternal_date_of_birth"
    max_age_years: int = Field(
        default=60, gt=0, description="Age in years at which a mother is infeasible"
    )

    def _get_infeasible_mask(self, dates: pd.Series, years: pd.Series) -> pd.Series:
        return (years - dates.dt.year) >= self.max_age_years


class DateInYearCheck(_DateAgainstYearCheck):
    """
    Scores a date that should fall within the record year, e.g. the admission date.

    Unparseable dates are illegal (1), dates in another calendar year are medically
    infeasible (2).
    """

    function: Literal["date_in_year"] = "date_in_year"

    def _get_infeasible_mask(self, dates: pd.Series, years: pd.Series) -> pd.Series:
        return dates.dt.year != years
