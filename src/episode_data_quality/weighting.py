# (c) Crown Copyright GCHQ \n
"""
Weighting and normalisation of check scores.

Scores are combined in three passes:
1. weight_scores: every check score is multiplied by the multiplier of its tier
   (WeightingConstants) and the weighted scores of a record are summed into
   total_record_score.
2. compute_yearly_averages: for each year and check, the mean weighted score and its
   normalisation factor, mean / (8 x tier multiplier), which lies in (0, 1].
3. apply_normalisation: every weighted score is multiplied by the normalisation factor
   of its year and check, and the totals are recomputed.

Pass 2 needs every record of a year, so it is the point at which the whole data set has
to be scored before anything can be normalised.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import pandas as pd

from episode_data_quality.errors import MissingWeightingConstantsError
from episode_data_quality.models import MAX_SCORE, CheckTier, WeightingConstants
from episode_data_quality.reference import RECORD_KEY_FIELDS

logger = logging.getLogger(__name__)

TOTAL_SCORE_FIELD = "total_record_score"
YEARLY_AVERAGE_FIELDS = [
    "year",
    "check_name",
    "tier",
    "average_weighted_score",
    "normalisation_factor",
]


def get_check_columns(scores: pd.DataFrame) -> list[str]:
    """The score columns of a score frame, i.e. everything but the record key and total."""
    return [
        column
        for column in scores.columns
        if column not in RECORD_KEY_FIELDS and column != TOTAL_SCORE_FIELD
    ]


def _get_tier(tiers: Mapping[str, CheckTier | str], check_name: str) -> CheckTier:
    try:
        return CheckTier(tiers[check_name])
    except KeyError:
        raise ValueError(
            f"No tier given for check '{check_name}', cannot weight its scores"
        ) from None


def _require_constants(constants: WeightingConstants | None) -> WeightingConstants:
    if constants is None:
        raise MissingWeightingConstantsError(
            "Weighting constants are required to weight scores, "
            "pass WeightingConstants() for the defaults"
        )
    return constants


def weight_scores(
    raw_scores: pd.DataFrame,
    tiers: Mapping[str, CheckTier | str],
    constants: WeightingConstants | None,
) -> pd.DataFrame:
    """
    Multiply each check score by the multiplier of its tier and total them per record.

    Args:
        raw_scores (pd.DataFrame): Score frame, year, file_row and one column per check.
        tiers (Mapping[str, CheckTier | str]): Tier of every check column.
        constants (WeightingConstants | None): Tier multipliers.

    Returns:
        pd.DataFrame: The weighted score frame with an added total_record_score column,
        an exact integer sum.

    Raises:
        MissingWeightingConstantsError: If constants is None.
        ValueError: If a check column has no tier.
    """
    constants = _require_constants(constants)

    weighted = raw_scores[RECORD_KEY_FIELDS].copy()
    check_columns = get_check_columns(raw_scores)
    for check_name in check_columns:
        multiplier = constants.multiplier_for(_get_tier(tiers, check_name))
        weighted[check_name] = raw_scores[check_name].astype("int64") * multiplier

    weighted[TOTAL_SCORE_FIELD] = (
        weighted[check_columns].sum(axis=1).astype("int64")
        if check_columns
        else 0
    )
    return weighted


def compute_yearly_averages(
    weighted_scores: pd.DataFrame,
    tiers: Mapping[str, CheckTier | str],
    constants: WeightingConstants | None,
) -> pd.DataFrame:
    """
    Mean weighted score and normalisation factor of every check in every year.

    Records with a blank year are averaged together as their own year.

    Returns:
        pd.DataFrame: Long format, one row per (year, check) with columns year,
        check_name, tier, average_weighted_score and normalisation_factor.
    """
    constants = _require_constants(constants)
    check_columns = get_check_columns(weighted_scores)

    if not check_columns or weighted_scores.empty:
        return pd.DataFrame(columns=YEARLY_AVERAGE_FIELDS)

    averages = (
        weighted_scores.groupby("year", dropna=False, sort=True)[check_columns]
        .mean()
        .reset_index()
        .melt(id_vars="year", var_name="check_name", value_name="average_weighted_score")
    )

    check_tiers = {name: _get_tier(tiers, name) for name in check_columns}
    max_weighted = {
        name: constants.max_weighted_score(tier) for name, tier in check_tiers.items()
    }
    averages["tier"] = averages["check_name"].map(
        {name: tier.value for name, tier in check_tiers.items()}
    )
    averages["normalisation_factor"] = averages["average_weighted_score"] / averages[
        "check_name"
    ].map(max_weighted)

    logger.debug(
        "Computed %d yearly check averages over %d year(s)",
        len(averages),
        averages["year"].nunique(dropna=False),
    )
    return averages[YEARLY_AVERAGE_FIELDS]


def apply_normalisation(
    weighted_scores: pd.DataFrame, yearly_averages: pd.DataFrame
) -> pd.DataFrame:
    """
    Multiply each weighted score by the normalisation factor of its year and check.

    A check in a year with no yearly average is left blank (NaN).

    Returns:
        pd.DataFrame: The normalised score frame with total_record_score recomputed.
    """
    normalised = weighted_scores[RECORD_KEY_FIELDS].copy()
    check_columns = get_check_columns(weighted_scores)
    years = weighted_scores[["year"]].reset_index(drop=True)

    for check_name in check_columns:
        factors = yearly_averages.loc[
            yearly_averages["check_name"] == check_name, ["year", "normalisation_factor"]
        ]
        # a left merge keeps the row order of the weighted scores
        matched = years.merge(factors, on="year", how="left")
        normalised[check_name] = (
            weighted_scores[check_name].to_numpy()
            * matched["normalisation_factor"].to_numpy()
        )

    normalised[TOTAL_SCORE_FIELD] = (
        normalised[check_columns].sum(axis=1, min_count=1) if check_columns else 0.0
    )
    return normalised
