# (c) Crown Copyright GCHQ \n
"""
Evaluation of checks against episode data, tier by tier.

Each function returns a score frame: the record key columns (year, file_row) followed
by one integer column per check, aligned to the index of the episodes. Field-level and
intra-record checks only need the normalised episodes; inter-record checks also need
the family annotations, which are detected here if not supplied.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import pandas as pd

from episode_data_quality.families import FAMILY_ANNOTATION_FIELDS, detect_families
from episode_data_quality.models import CheckTier
from episode_data_quality.reference import RECORD_KEY_FIELDS
from episode_data_quality.registry import (
    checks_for_tier,
    default_checks,
    field_checks,
    inter_record_checks,
    intra_record_checks,
)
from episode_data_quality.rules.base import BaseCheck

logger = logging.getLogger(__name__)


def score_checks(episodes: pd.DataFrame, checks: Sequence[BaseCheck]) -> pd.DataFrame:
    """
    Evaluate each check against the episodes.

    Args:
        episodes (pd.DataFrame): Normalised episode data, with family annotations if any
            inter-record check is included.
        checks (Sequence[BaseCheck]): Checks to evaluate, in column order.

    Returns:
        pd.DataFrame: year, file_row and one score column per check.

    Raises:
        ValueError: If two checks share a name or a check uses a missing column.
    """
    names = [check.check_name for check in checks]
    duplicated = sorted({name for name in names if names.count(name) > 1})
    if duplicated:
        raise ValueError(f"Check names must be unique, found duplicates: {duplicated}")

    scores = episodes[RECORD_KEY_FIELDS].copy()
    for check in checks:
        logger.debug("Evaluating %s", check.check_name)
        scores[check.check_name] = check.evaluate(episodes).to_numpy()
    return scores


def score_fields(
    episodes: pd.DataFrame, checks: Sequence[BaseCheck] | None = None
) -> pd.DataFrame:
    """Field-level scores, by default from the standard field checks."""
    if checks is None:
        checks = field_checks()
    return score_checks(episodes, checks_for_tier(list(checks), CheckTier.FIELD))


def score_intra_record(
    episodes: pd.DataFrame, checks: Sequence[BaseCheck] | None = None
) -> pd.DataFrame:
    """Intra-record scores, by default from the standard baby slot checks."""
    if checks is None:
        checks = intra_record_checks()
    return score_checks(episodes, checks_for_tier(list(checks), CheckTier.INTRA))


def score_inter_record(
    episodes: pd.DataFrame,
    families: pd.DataFrame | None = None,
    checks: Sequence[BaseCheck] | None = None,
) -> pd.DataFrame:
    """
    Inter-record scores.

    Args:
        episodes (pd.DataFrame): Normalised episode data.
        families (pd.DataFrame, optional): Output of detect_families for these episodes.
            Detected from the episodes when not given, unless the episodes already carry
            the annotations.
        checks (Sequence[BaseCheck], optional): Defaults to the standard inter-record
            checks.
    """
    if checks is None:
        checks = inter_record_checks()

    if families is None and not set(FAMILY_ANNOTATION_FIELDS).issubset(episodes.columns):
        families = detect_families(episodes)

    if families is not None:
        episodes = episodes.copy()
        for column in FAMILY_ANNOTATION_FIELDS:
            episodes[column] = families[column].to_numpy()

    return score_checks(episodes, checks_for_tier(list(checks), CheckTier.INTER))


def check_tiers(checks: Sequence[BaseCheck] | None = None) -> dict[str, CheckTier]:
    """Check name to tier, the lookup the weighting engine needs."""
    if checks is None:
        checks = default_checks()
    return {check.check_name: CheckTier(check.tier) for check in checks}
