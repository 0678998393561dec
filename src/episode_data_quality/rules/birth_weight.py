# (c) Crown Copyright GCHQ \n
"""
Plausibility of a baby's birth weight given its sex and gestational age.

Individually a gestation of 24 weeks and a weight of 950g are both valid, but a girl
born at 24 weeks weighing 950g is outside the centile range for that gestation. This
module holds the centile band model and the scalar scoring function used by
BirthWeightPlausibilityCheck.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import Field, model_validator

from episode_data_quality.models import DataQualityBaseModel, ScoringScale
from episode_data_quality.reference import (
    BIRTH_WEIGHT_CENTILE_BANDS,
    LIVE_BIRTH_STATUS,
)
from episode_data_quality.rules.utils.rules_utils import coerce_scalar_to_integer

# Weights above this are possible but doubtful
DOUBTFUL_WEIGHT_GRAMS = 7000
MAX_GESTATION_WEEKS = 49
BIRTH_STATUS_CODES = range(1, 5)
BABY_SEX_CODES = (1, 2)


class BirthWeightBand(DataQualityBaseModel):
    """The plausible birth weight range for a baby sex and gestational age in weeks."""

    sex: int = Field(..., description="Baby sex code, 1 male or 2 female")
    gestation_weeks: int = Field(..., ge=0, description="Completed weeks of gestation")
    min_weight: int = Field(..., ge=0, description="Lowest plausible weight in grams")
    max_weight: int = Field(..., ge=0, description="Highest plausible weight in grams")

    @model_validator(mode="after")
    def _check_weight_range(self) -> BirthWeightBand:
        if self.min_weight > self.max_weight:
            raise ValueError(
                f"min_weight ({self.min_weight}) is greater than max_weight "
                f"({self.max_weight}) for sex {self.sex} at {self.gestation_weeks} weeks"
            )
        return self

    def contains(self, weight: int) -> bool:
        return self.min_weight <= weight <= self.max_weight


def default_birth_weight_bands() -> list[BirthWeightBand]:
    """The reference centile bands as models, in reference order."""
    return [
        BirthWeightBand(
            sex=sex, gestation_weeks=weeks, min_weight=min_weight, max_weight=max_weight
        )
        for sex, weeks, min_weight, max_weight in BIRTH_WEIGHT_CENTILE_BANDS
    ]


def find_weight_band(
    bands: Sequence[BirthWeightBand], baby_sex: int, gestation_weeks: int
) -> BirthWeightBand | None:
    """The first band for the sex and gestation, or None when that week is not covered."""
    for band in bands:
        if band.sex == baby_sex and band.gestation_weeks == gestation_weeks:
            return band
    return None


def weight_plausibility(
    birth_status: object,
    gestation_weeks: object,
    baby_sex: object,
    birth_weight: object,
    bands: Sequence[BirthWeightBand] | None = None,
) -> int:
    """
    Scores how plausible a birth weight is for the baby's sex and gestational age.

    The score is:
        3 if any input is blank, not a whole number or outside its schema
            (birth status 1-4, sex 1-2, gestation up to 49 weeks)
        8 if the baby was not born alive, centiles only describe live births
        7 if the weight is above 7000g
        2 if the weight is outside the centile band for the sex and gestation
        8 otherwise, including gestations the centile table does not cover

    Args:
        birth_status: birstat code (1 is a live birth).
        gestation_weeks: gestat in completed weeks.
        baby_sex: sexbaby code.
        birth_weight: birweit in grams.
        bands (Sequence[BirthWeightBand], optional): Centile bands, defaults to the
            reference table.

    Returns:
        int: Score on the scoring scale.

    Example:
        >>> weight_plausibility(1, 24, 2, 950)
        2
        >>> weight_plausibility(1, 30, 2, 950)
        8
    """
    status = coerce_scalar_to_integer(birth_status)
    weeks = coerce_scalar_to_integer(gestation_weeks)
    sex = coerce_scalar_to_integer(baby_sex)
    weight = coerce_scalar_to_integer(birth_weight)

    if status is None or weeks is None or sex is None or weight is None:
        return int(ScoringScale.BLANK)

    if (
        status not in BIRTH_STATUS_CODES
        or sex not in BABY_SEX_CODES
        or weeks > MAX_GESTATION_WEEKS
    ):
        return int(ScoringScale.BLANK)

    if status != LIVE_BIRTH_STATUS:
        return int(ScoringScale.VALID)

    if weight > DOUBTFUL_WEIGHT_GRAMS:
        return int(ScoringScale.DOUBTFUL)

    if bands is None:
        bands = default_birth_weight_bands()

    band = find_weight_band(bands, sex, weeks)
    if band is not None and not band.contains(weight):
        return int(ScoringScale.MEDICALLY_INFEASIBLE)

    return int(ScoringScale.VALID)
