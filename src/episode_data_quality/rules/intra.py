# (c) Crown Copyright GCHQ \n
"""
Intra-record checks: fields scored against other fields of the same record.

Each baby slot k (1, 2 or 3) holds the fields of the k-th baby delivered in the episode.
Whether a slot should be filled in depends on the number of babies (numbaby, n):

    n < k       the slot should be empty: blank scores 8, anything else scores 1
    n >= k      the slot should be filled: blank scores 3, values are scored by domain
    n missing   (blank or not a whole number) every slot field scores 1

The not-known code 9 is at least k for every slot, so those slots should be filled.

This works like the if/then logic of a consistency check: the number of babies decides
which rule a slot field is held to.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Literal

import numpy as np
import pandas as pd
from pydantic import Field, model_validator

from episode_data_quality.models import CheckTier, CheckTierName, Score, ScoringScale
from episode_data_quality.reference import (
    ADMISSION_DATE_FIELD,
    BABY_SLOTS,
    NUMBER_OF_BABIES_FIELD,
)
from episode_data_quality.rules.base import BaseCheck, ScoreBand
from episode_data_quality.rules.birth_weight import (
    BirthWeightBand,
    default_birth_weight_bands,
    weight_plausibility,
)
from episode_data_quality.rules.utils.datetime_utils import (
    get_unparseable_mask,
    to_datetime_series,
)
from episode_data_quality.rules.utils.rules_utils import (
    classify_by_bands,
    coerce_to_integer,
    warn_if_unclassifiable,
)

def _set_slot_field(data: Any, default_stem: object) -> Any:
    """The scored field of a slot check is the stem plus the slot, e.g. birweit2."""
    if isinstance(data, dict) and data.get("field") is None:
        stem, slot = data.get("stem", default_stem), data.get("slot")
        if isinstance(stem, str) and slot is not None:
            data = {**data, "field": f"{stem}{slot}"}
    return data


class SlotGatedCheck(BaseCheck):
    """
    Base class for checks on a baby slot field whose applicability depends on numbaby.

    Subclasses implement _get_domain_scores, the score of a populated value when the
    slot should be filled in. Slot gating and blank handling are applied here.

    Attributes:
        stem (str): Field name without the slot number, e.g. 'birweit'.
        slot (int): Baby slot, 1 to 3.
        number_of_babies_field (str): Column holding the number of babies.
    """

    tier: CheckTierName = Field(default=CheckTier.INTRA)
    stem: str = Field(..., description="Slot field name without the slot number")
    slot: int = Field(
        ..., ge=min(BABY_SLOTS), le=max(BABY_SLOTS), description="Baby slot number"
    )
    number_of_babies_field: str = Field(default=NUMBER_OF_BABIES_FIELD)

    @model_validator(mode="before")
    @classmethod
    def _set_field_from_slot(cls, data: Any) -> Any:
        return _set_slot_field(data, cls.model_fields["stem"].default)

    def _get_columns_used_pandas(self) -> list[str]:
        return [self.field, self.number_of_babies_field]

    @abstractmethod
    def _get_domain_scores(self, df: pd.DataFrame) -> tuple[np.ndarray, pd.Series]:
        """Scores of populated values and a mask of the unclassifiable ones."""

        pass  # pragma: no cover

    def _get_scores_pandas(self, df: pd.DataFrame) -> np.ndarray:
        values = df[self.field]
        number_of_babies = coerce_to_integer(df[self.number_of_babies_field])

        is_null = values.isnull()
        is_unknown = number_of_babies.isnull()
        should_be_empty = ~is_unknown & (number_of_babies < self.slot)
        should_be_filled = ~is_unknown & ~should_be_empty

        domain_scores, unclassifiable = self._get_domain_scores(df)
        warn_if_unclassifiable(
            self.check_name, values, unclassifiable & ~is_null & should_be_filled
        )

        return np.select(
            [
                is_unknown.to_numpy(),
                (should_be_empty & is_null).to_numpy(),
                should_be_empty.to_numpy(),
                (should_be_filled & is_null).to_numpy(),
            ],
            [
                int(ScoringScale.ILLEGAL),
                int(ScoringScale.VALID),
                int(ScoringScale.ILLEGAL),
                int(ScoringScale.BLANK),
            ],
            default=domain_scores,
        )


class BabySlotCheck(SlotGatedCheck):
    """
    Scores a baby slot field against an ordered table of score bands.

    Populated values are classified like ClassificationCheck: bands are tried in order,
    the first match wins and anything unmatched scores `default_score`.

    Example:
        ```python
        # delivery status of the second baby
        >>> check = BabySlotCheck(
        ...     stem="delstat",
        ...     slot=2,
        ...     bands=[
        ...         ScoreBand(score=4, values=[9]),
        ...         ScoreBand(score=6, values=[8]),
        ...         ScoreBand(score=8, min_value=1, max_value=3),
        ...     ],
        ... )
        >>> check.name
        'dq_intra_delstat2'
        ```
    """

    function: Literal["baby_slot"] = "baby_slot"
    value_type: Literal["integer", "code"] = Field(default="integer")
    bands: list[ScoreBand] = Field(default_factory=list)
    default_score: Score = Field(default=int(ScoringScale.ILLEGAL))

    @model_validator(mode="after")
    def _check_codes_are_not_ranges(self) -> BabySlotCheck:
        if self.value_type == "code" and any(band.is_range for band in self.bands):
            raise ValueError(
                f"Check on '{self.field}' compares codes, so its bands cannot use "
                "min_value or max_value"
            )
        return self

    def _get_domain_scores(self, df: pd.DataFrame) -> tuple[np.ndarray, pd.Series]:
        return classify_by_bands(
            df[self.field], self.bands, self.default_score, self.value_type
        )


class BabyDateOfBirthCheck(SlotGatedCheck):
    """
    Scores a baby's date of birth, which cannot be before the mother's admission.

    Unparseable dates and dates before the admission date are illegal (1). Without a
    readable admission date there is nothing to compare, so any readable date is valid.
    """

    function: Literal["baby_date_of_birth"] = "baby_date_of_birth"
    stem: str = Field(default="dobbaby")
    admission_date_field: str = Field(default=ADMISSION_DATE_FIELD)

    def _get_columns_used_pandas(self) -> list[str]:
        return super()._get_columns_used_pandas() + [self.admission_date_field]

    def _get_domain_scores(self, df: pd.DataFrame) -> tuple[np.ndarray, pd.Series]:
        raw = df[self.field]
        birth_dates = to_datetime_series(raw)
        admission_dates = to_datetime_series(df[self.admission_date_field])

        unparseable = get_unparseable_mask(raw, birth_dates)
        born_before_admission = (birth_dates < admission_dates).fillna(False)

        scores = np.where(
            (unparseable | born_before_admission).to_numpy(),
            int(ScoringScale.ILLEGAL),
            int(ScoringScale.VALID),
        )
        return scores, unparseable


class BirthWeightPlausibilityCheck(BaseCheck):
    """
    Scores whether a baby's birth weight is plausible for its sex and gestation.

    Combines the birth status, gestation, sex and weight of one slot and applies
    weight_plausibility to each record. Blank inputs score 3 (blank) whatever the
    number of babies, so this check is not slot gated.

    Attributes:
        slot (int): Baby slot, 1 to 3.
        bands (list[BirthWeightBand]): Centile bands, defaults to the reference table.

    Example:
        ```python
        >>> check = BirthWeightPlausibilityCheck(slot=1)
        >>> check.name
        'dq_intra_realistic_baby_weight1'
        ```
    """

    function: Literal["birth_weight_plausibility"] = "birth_weight_plausibility"
    tier: CheckTierName = Field(default=CheckTier.INTRA)
    slot: int = Field(..., ge=min(BABY_SLOTS), le=max(BABY_SLOTS))
    stem: str = Field(default="birweit", description="Stem of the birth weight field")
    bands: list[BirthWeightBand] = Field(default_factory=default_birth_weight_bands)

    @model_validator(mode="before")
    @classmethod
    def _set_field_from_slot(cls, data: Any) -> Any:
        return _set_slot_field(data, cls.model_fields["stem"].default)

    def _get_default_name(self) -> str:
        return f"dq_{CheckTier.INTRA.value}_realistic_baby_weight{self.slot}"

    def _get_columns_used_pandas(self) -> list[str]:
        return [
            f"birstat{self.slot}",
            f"gestat{self.slot}",
            f"sexbaby{self.slot}",
            self.field,
        ]

    def _get_scores_pandas(self, df: pd.DataFrame) -> np.ndarray:
        status, gestation, sex, weight = self._get_columns_used_pandas()
        scores = [
            weight_plausibility(*row, bands=self.bands)
            for row in df[[status, gestation, sex, weight]].itertuples(
                index=False, name=None
            )
        ]
        return np.asarray(scores, dtype="int64")
