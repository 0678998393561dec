# (c) Crown Copyright GCHQ \n
"""Core models and types for the episode data quality package.

Defines:
    - The data quality scoring scale (ScoringScale) shared by every check.
    - The check tier enum (CheckTier) used to weight field-level, intra-record and inter-record checks.
    - WeightingConstants, the immutable tier multipliers for a scoring run.
    - Base model with JSON export behaviour for consistent serialisation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum, IntEnum
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    PositiveInt,
)


class ScoringScale(IntEnum):
    """
    The eight point scale every data quality check maps onto.

    For fields that should be filled in:

        ILLEGAL (1): an illegal value
        MEDICALLY_INFEASIBLE (2): a value that is legal but medically infeasible
        BLANK (3): a blank value
        UNKNOWN (4): an "unknown" code
        NOT_SPECIFIED (5): a "not specified" or "not applicable" code
        OTHER (6): an "other" code
        DOUBTFUL (7): medically valid but doubtful
        VALID (8): any other valid value

    For fields that should be empty, only two values are used: VALID (8) when the
    field is blank and ILLEGAL (1) when it is not.

    Note:
        Not every check uses every value on the scale.
    """

    ILLEGAL = 1
    MEDICALLY_INFEASIBLE = 2
    BLANK = 3
    UNKNOWN = 4
    NOT_SPECIFIED = 5
    OTHER = 6
    DOUBTFUL = 7
    VALID = 8


# A single check score, always on the scoring scale, held as a plain int
Score = Annotated[
    int, Field(ge=ScoringScale.ILLEGAL, le=ScoringScale.VALID), AfterValidator(int)
]

MAX_SCORE = int(ScoringScale.VALID)


class CheckTier(str, Enum):
    """
    How many fields or records a check inspects.

    Members:
        FIELD: Value is "field" - a single field in isolation.
        INTRA: Value is "intra" - several fields within the same record.
        INTER: Value is "inter" - the record compared with other records.

    Note:
        It will accept any string case, e.g. CheckTier("Intra") returns CheckTier.INTRA.
    """

    FIELD = "field"
    INTRA = "intra"
    INTER = "inter"

    @classmethod
    def _missing_(cls, value: object) -> CheckTier | None:
        if isinstance(value, str):
            lower_value = value.lower()
            for member in cls:
                if member.value == lower_value:
                    return member
        return None


CheckTierName = Annotated[CheckTier, PlainSerializer(lambda x: x.value)]


def _set_now_if_none(value: datetime | None) -> datetime:
    """The default measurement_time is UTC now if None is provided"""
    if value is None:
        return datetime.now(UTC)
    else:
        return value


UTCDateTimeStrict = Annotated[
    datetime,
    BeforeValidator(_set_now_if_none),
    PlainSerializer(lambda value: value.isoformat(), when_used="json"),
]


class DataQualityBaseModel(BaseModel):
    """
    Base model which applies common behaviours and methods for data quality classes.

    """

    def to_dict(self) -> dict:
        """
        Returns a JSON compatible dictionary serialisation of the model.

        Note:
            equivalent to the pydantic method: model_dump(mode="json")
        """
        return self.model_dump(mode="json")

    def to_json(self, path: str | None = None) -> str:
        """
        Serialises the model to a formatted JSON string, optionally saving to disk.

        Args:
            path (str, optional): File path to write the JSON if provided;
                if None, function just returns the string.

        Returns:
            str: JSON representation of the model.
        """

        json_string = self.model_dump_json(indent=2)
        if path:
            with open(path, "w") as f:
                f.write(json_string)
        return json_string


class WeightingConstants(DataQualityBaseModel):
    """
    Multipliers applied to each tier of check before scores are summed.

    The defaults (1, 10, 100) mean that whether a record is a duplicate carries far
    more weight than whether its date of birth is filled in correctly.

    Attributes:
        field (int): Multiplier for field-level checks.
        intra (int): Multiplier for intra-record checks.
        inter (int): Multiplier for inter-record checks.

    Example:
        ```python
        constants = WeightingConstants(field=1, intra=5, inter=10)
        constants.multiplier_for(CheckTier.INTRA)  # 5
        ```
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    field: PositiveInt = Field(default=1, description="Field-level check multiplier")
    intra: PositiveInt = Field(
        default=10, description="Intra-record check multiplier"
    )
    inter: PositiveInt = Field(
        default=100, description="Inter-record check multiplier"
    )

    def multiplier_for(self, tier: CheckTier | str) -> int:
        """Returns the multiplier configured for a check tier."""
        return getattr(self, CheckTier(tier).value)

    def max_weighted_score(self, tier: CheckTier | str) -> int:
        """The highest weighted score a check in this tier can achieve."""
        return MAX_SCORE * self.multiplier_for(tier)
