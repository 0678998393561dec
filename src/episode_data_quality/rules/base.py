# (c) Crown Copyright GCHQ \n
"""
Base classes and default behaviour for data quality checks.

This module provides the abstract BaseCheck class that every check in the registry
inherits from. Default behaviours, such as column selection, copying and the shape of
the scores returned, are defined here; each check only has to say which columns it
uses and how a record maps onto the scoring scale.

All check evaluation follows the same method:
1. Determine the columns used (by default just the 'field' column)
2. Subset and copy those columns, so no check can mutate the episode data
3. Score every record, vectorised over the subset (_get_scores_pandas)
4. Return one integer score per record, named after the check
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
import pandas as pd
from pydantic import Field, model_validator

from episode_data_quality.models import (
    CheckTier,
    CheckTierName,
    DataQualityBaseModel,
    Score,
    ScoringScale,
)
from episode_data_quality.rules.utils.rules_utils import ensure_columns_exist_pandas


class ScoreBand(DataQualityBaseModel):
    """
    One row of a classification table: values that map to a single score.

    A band matches a value when it is one of `values` (if given) and lies within
    [min_value, max_value] (for whichever bounds are given). Bands are tried in
    order and the first match wins.

    Attributes:
        score (int): Score on the scoring scale for matching values.
        values (list[int | str] | None): Explicit codes that match.
        min_value (float | None): Inclusive lower bound.
        max_value (float | None): Inclusive upper bound.
        label (str | None): Optional description, e.g. 'not known'.

    Example:
        ```python
        # 9 means 'not known'
        ScoreBand(score=ScoringScale.UNKNOWN, values=[9], label="not known")

        # any weight between 0g and 200g is medically infeasible
        ScoreBand(score=ScoringScale.MEDICALLY_INFEASIBLE, min_value=0, max_value=200)
        ```
    """

    score: Score = Field(..., description="Score awarded to matching values")
    values: list[int | str] | None = Field(
        default=None, description="Codes that belong to this band"
    )
    min_value: float | None = Field(
        default=None, description="Inclusive lower bound of the band"
    )
    max_value: float | None = Field(
        default=None, description="Inclusive upper bound of the band"
    )
    label: str | None = Field(default=None, description="What the band represents")

    @model_validator(mode="after")
    def _check_band_is_bounded(self) -> ScoreBand:
        if self.values is None and self.min_value is None and self.max_value is None:
            raise ValueError(
                "A ScoreBand needs at least one of 'values', 'min_value' or 'max_value'"
            )
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise ValueError(
                f"min_value ({self.min_value}) is greater than max_value ({self.max_value})"
            )
        return self

    @property
    def is_range(self) -> bool:
        return self.min_value is not None or self.max_value is not None


class BaseCheck(DataQualityBaseModel, ABC):
    """
    Abstract base class for data quality check definitions.

    Not intended for direct use. Use a subclass with a specific check type (e.g.
    ClassificationCheck, BabySlotCheck) for configuration or execution. BaseCheck handles
    the generic evaluation steps, with check-specific scoring implemented via subclass
    overrides.

    Attributes:
        field (str): The column the check scores.
        tier (CheckTier): Field-level, intra-record or inter-record, decides the weighting.
        name (str | None): Name of the score column, defaults to dq_<tier>_<field>.
        description (str | None): Optional summary of the check.

    Methods:
        evaluate(episodes: pd.DataFrame) -> pd.Series
            Scores every record and returns an integer series named after the check.
    """

    field: str = Field(..., description="Column the check scores")
    tier: CheckTierName = Field(..., description="Tier of the check")
    name: str | None = Field(
        default=None, description="Name of the check, defaults to dq_<tier>_<field>"
    )
    description: str | None = Field(default=None, description="Description of the check")

    @model_validator(mode="after")
    def _set_default_name(self) -> BaseCheck:
        if self.name is None:
            self.name = self._get_default_name()
        return self

    def _get_default_name(self) -> str:
        """Default check name, overridden by checks whose name is not derived from one field."""
        return f"dq_{CheckTier(self.tier).value}_{self.field}"

    @property
    def check_name(self) -> str:
        """The name of the check, falling back to the default name."""
        return self.name or self._get_default_name()

    def evaluate(self, episodes: pd.DataFrame) -> pd.Series:
        """
        Scores every record in the episode data.

        Args:
            episodes (pd.DataFrame): Normalised episode data (and, for inter-record checks,
                the family annotations).

        Returns:
            pd.Series: int64 scores on the scoring scale, aligned to episodes.index and
            named after the check.

        Raises:
            ValueError: If a column used by the check is missing.
        """
        columns_used = self._get_columns_used_pandas()
        ensure_columns_exist_pandas(episodes, columns_used)
        df = self._copy_and_subset_dataframe(episodes, columns_used)

        scores = np.asarray(self._get_scores_pandas(df), dtype="int64")
        return pd.Series(scores, index=episodes.index, name=self.check_name)

    @abstractmethod
    def _get_scores_pandas(self, df: pd.DataFrame) -> np.ndarray | pd.Series:
        """The score of every record, this is the main way a check is defined."""

        pass  # pragma: no cover

    def _get_columns_used_pandas(self) -> list[str]:
        """The columns used in scoring the check, defaults to just the field, but checks
        that compare fields will override this."""
        return [self.field]

    def _copy_and_subset_dataframe(
        self, df: pd.DataFrame, columns_used: list[str]
    ) -> pd.DataFrame:
        """Copies the columns used so that coercion within a check can never leak back
        into the episode data."""
        return df[list(dict.fromkeys(columns_used))].copy()

    def _score_presence(self, values: pd.Series) -> np.ndarray:
        """Blank (3) for nulls, valid (8) otherwise."""
        return np.where(
            values.isnull().to_numpy(),
            int(ScoringScale.BLANK),
            int(ScoringScale.VALID),
        )
