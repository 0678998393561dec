# (c) Crown Copyright GCHQ \n
"""
Defines models representing the results of a scoring run.

Major classes:
    - YearlyCheckAverage: The mean weighted score of one check in one year and the
      normalisation factor derived from it.
    - ScoringReport: Every table produced by a run, from the annotated episodes to the
      normalised scores.

Typical usage:
    config = ScoringConfig.from_yaml('my_config.yaml') # see config file
    report = config.execute(df)  # Returns ScoringReport
    df_summary = report.summary()
    json_results = report.to_json()
"""

from __future__ import annotations

from datetime import UTC, datetime

import pandas as pd
from pydantic import ConfigDict, Field, field_serializer, field_validator

from episode_data_quality.families import FAMILY_ANNOTATION_FIELDS
from episode_data_quality.models import (
    CheckTierName,
    DataQualityBaseModel,
    UTCDateTimeStrict,
    WeightingConstants,
)
from episode_data_quality.results.utils import frame_to_records, summarise_totals
from episode_data_quality.weighting import TOTAL_SCORE_FIELD


class YearlyCheckAverage(DataQualityBaseModel):
    """
    The average weighted score of a check over the records of one year.

    Attributes:
        year (int | str | None): Record year, None for records without a year.
        check_name (str): e.g. 'dq_field_sex'.
        tier (CheckTier): Tier of the check.
        average_weighted_score (float): Mean weighted score of the check in the year.
        normalisation_factor (float): average_weighted_score / (8 x tier multiplier),
            between 0 (exclusive) and 1 (inclusive).
    """

    year: int | str | None = Field(default=None)
    check_name: str
    tier: CheckTierName
    average_weighted_score: float = Field(..., gt=0)
    normalisation_factor: float = Field(..., gt=0, le=1)

    @field_validator("year", mode="before")
    @classmethod
    def _set_to_none_if_nan(cls, v: object) -> object:
        """groupby keeps a blank year as NaN"""
        if v is not None and pd.api.types.is_scalar(v) and pd.isna(v):
            return None
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v


class ScoringReport(DataQualityBaseModel):
    """
    The tables produced by a scoring run. This object is typically returned by executing a
    ScoringConfig object, rather than instantiated directly by the user.

    All score frames are aligned row by row with annotated_episodes and start with the
    record key (year, file_row).

    Attributes:
        dataset_name (str | None): Human readable name of the scored data set.
        measurement_time (datetime): UTC time of the run, defaults to now.
        weighting (WeightingConstants): Tier multipliers used for the run.
        annotated_episodes (pd.DataFrame): Normalised episodes plus family annotations.
        raw_scores (pd.DataFrame): One 1-8 score per check.
        weighted_scores (pd.DataFrame): Raw scores times tier multipliers, with
            total_record_score.
        yearly_averages (pd.DataFrame): Long table of YearlyCheckAverage rows.
        normalised_scores (pd.DataFrame): Weighted scores times yearly normalisation
            factors, with total_record_score.

    Example:
        ```python
        report = ScoringConfig().execute(episodes)
        report.summary().sort_values("normalised_total_record_score")
        report.to_json("scores.json")
        ```
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    dataset_name: str | None = Field(default=None)
    measurement_time: UTCDateTimeStrict = Field(
        description="UTC timestamp of the scoring run. Defaults to UTC now if not set or if None",
        default_factory=lambda: datetime.now(UTC),
    )
    weighting: WeightingConstants
    annotated_episodes: pd.DataFrame
    raw_scores: pd.DataFrame
    weighted_scores: pd.DataFrame
    yearly_averages: pd.DataFrame
    normalised_scores: pd.DataFrame

    @field_serializer(
        "annotated_episodes",
        "raw_scores",
        "weighted_scores",
        "yearly_averages",
        "normalised_scores",
    )
    def _serialize_frame(self, value: pd.DataFrame) -> list[dict] | None:
        """DataFrames are written as lists of records, with NaN and NaT as None"""
        return frame_to_records(value)

    @property
    def check_names(self) -> list[str]:
        """Names of the checks scored, in column order."""
        return [
            column
            for column in self.raw_scores.columns
            if column not in ("year", "file_row")
        ]

    def to_yearly_check_averages(self) -> list[YearlyCheckAverage]:
        """The yearly averages as validated models."""
        return [
            YearlyCheckAverage.model_validate(row)
            for row in self.yearly_averages.to_dict(orient="records")
        ]

    def summary(self) -> pd.DataFrame:
        """
        One row per record with its weighted and normalised totals and the family
        annotations, e.g. to pick the best of a set of duplicates.

        Returns:
            pd.DataFrame: year, file_row, weighted_total_record_score,
            normalised_total_record_score and the family annotation columns.
        """
        return summarise_totals(
            self.weighted_scores,
            self.normalised_scores,
            self.annotated_episodes,
            TOTAL_SCORE_FIELD,
            FAMILY_ANNOTATION_FIELDS,
        )
