# (c) Crown Copyright GCHQ \n
"""
Inter-record checks: records scored against other records in the data set.

These checks need the whole record set (and the family annotations from
episode_data_quality.families), so unlike field-level and intra-record checks they
cannot be scored one record at a time.
"""

from __future__ import annotations

import logging
from typing import Literal

import numpy as np
import pandas as pd
from pydantic import Field

from episode_data_quality.models import CheckTier, CheckTierName, ScoringScale
from episode_data_quality.reference import (
    ADMISSION_DATE_FIELD,
    BABY_SLOTS,
    LIVE_BIRTH_STATUS,
    NUMBER_OF_BABIES_FIELD,
    SUBJECT_ID_FIELD,
)
from episode_data_quality.rules.base import BaseCheck
from episode_data_quality.rules.utils.datetime_utils import to_datetime_series
from episode_data_quality.rules.utils.rules_utils import coerce_to_integer

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7


class DuplicateCheck(BaseCheck):
    """
    Scores a record 1 (illegal) when it belongs to a family of duplicate records and
    8 otherwise. Uses the 'is_duplicate' family annotation.
    """

    function: Literal["duplicate"] = "duplicate"
    field: str = Field(default="is_duplicate")
    tier: CheckTierName = Field(default=CheckTier.INTER)

    def _get_scores_pandas(self, df: pd.DataFrame) -> np.ndarray:
        is_duplicate = df[self.field].fillna(False).astype(bool)
        return np.where(
            is_duplicate.to_numpy(), int(ScoringScale.ILLEGAL), int(ScoringScale.VALID)
        )


def yielded_all_live_births(
    episodes: pd.DataFrame,
    number_of_babies_field: str = NUMBER_OF_BABIES_FIELD,
    birth_status_stem: str = "birstat",
) -> pd.Series:
    """
    True where every baby of the episode was born alive.

    The number of babies must be 1 to 3 and the birth status of each of the first
    numbaby slots must be a live birth (1). Any other number of babies, including the
    not-known code, is never 'all live'.

    Args:
        episodes (pd.DataFrame): Episode data with numbaby and birstat1..3.

    Returns:
        pd.Series: Boolean mask aligned to episodes.index.
    """
    number_of_babies = coerce_to_integer(episodes[number_of_babies_field])
    all_live = number_of_babies.between(min(BABY_SLOTS), max(BABY_SLOTS))

    for slot in BABY_SLOTS:
        birth_status = coerce_to_integer(episodes[f"{birth_status_stem}{slot}"])
        slot_not_used = number_of_babies < slot
        all_live = all_live & (slot_not_used | (birth_status == LIVE_BIRTH_STATUS))

    return all_live.fillna(False).astype(bool)


class BirthIntervalCheck(BaseCheck):
    """
    Scores how realistic the interval is between a mother's successive deliveries.

    Each subject's records are ordered by admission date (ties keep their input order)
    and each record is paired with the one before it. For a record where every baby
    was born alive, the whole weeks between the two admissions score:

        fewer than 23 weeks     2 (medically infeasible)
        23 to 25 weeks          7 (valid but doubtful)
        otherwise               8

    A record with no previous record, a blank subject id, an unreadable admission date,
    or not every baby born alive scores 8, there is nothing to compare.

    Note:
        Duplicate records of the same admission are 0 weeks apart, so a duplicated live
        birth also scores 2 here as well as scoring 1 in the duplicate check.

    Example:
        ```python
        >>> check = BirthIntervalCheck()
        >>> check.name
        'dq_inter_birth_interval'
        ```
    """

    function: Literal["birth_interval"] = "birth_interval"
    field: str = Field(default=ADMISSION_DATE_FIELD)
    tier: CheckTierName = Field(default=CheckTier.INTER)
    subject_id_field: str = Field(default=SUBJECT_ID_FIELD)
    number_of_babies_field: str = Field(default=NUMBER_OF_BABIES_FIELD)
    infeasible_below_weeks: int = Field(
        default=23, description="Intervals shorter than this are medically infeasible"
    )
    doubtful_up_to_weeks: int = Field(
        default=25, description="Intervals up to this many weeks are doubtful"
    )

    def _get_default_name(self) -> str:
        return f"dq_{CheckTier.INTER.value}_birth_interval"

    def _get_columns_used_pandas(self) -> list[str]:
        return [
            self.subject_id_field,
            self.field,
            self.number_of_babies_field,
        ] + [f"birstat{slot}" for slot in BABY_SLOTS]

    def get_weeks_since_previous(self, df: pd.DataFrame) -> pd.Series:
        """Whole weeks since the subject's previous admission, NaN where there is none."""
        admissions = to_datetime_series(df[self.field])
        # positional index, the episode index need not be unique
        ordering = pd.DataFrame(
            {
                "subject": df[self.subject_id_field].to_numpy(),
                "admission": admissions.to_numpy(),
            }
        )
        # mergesort is stable, so records admitted on the same day keep input order
        ordering = ordering.sort_values("admission", kind="mergesort", na_position="last")
        ordering["previous_admission"] = ordering.groupby("subject", sort=False)[
            "admission"
        ].shift()

        previous = pd.Series(
            ordering["previous_admission"].sort_index().to_numpy(), index=df.index
        )
        days = (admissions - previous).dt.days
        return np.floor(days / DAYS_PER_WEEK)

    def _get_scores_pandas(self, df: pd.DataFrame) -> np.ndarray:
        weeks = self.get_weeks_since_previous(df)
        all_live = yielded_all_live_births(df, self.number_of_babies_field)
        comparable = all_live & weeks.notnull()

        logger.debug(
            "%s: %d of %d records have a previous live birth to compare against",
            self.check_name,
            int(comparable.sum()),
            len(df),
        )

        return np.select(
            [
                (comparable & (weeks < self.infeasible_below_weeks)).to_numpy(),
                (comparable & (weeks <= self.doubtful_up_to_weeks)).to_numpy(),
            ],
            [int(ScoringScale.MEDICALLY_INFEASIBLE), int(ScoringScale.DOUBTFUL)],
            default=int(ScoringScale.VALID),
        )
