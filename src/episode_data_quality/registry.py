# (c) Crown Copyright GCHQ \n
"""
The default set of maternity episode data quality checks.

Every check is data: a check class plus its classification table. The tables follow
the HES data dictionary codes for each field, for example ethnos 'X' (not known) scores
4 and 'Z' (not stated) scores 5. To change the scoring of a field, edit its bands here
or supply your own list of checks to ScoringConfig.
"""

from __future__ import annotations

from episode_data_quality.models import CheckTier, ScoringScale
from episode_data_quality.reference import BABY_SLOTS
from episode_data_quality.rules import (
    BabyDateOfBirthCheck,
    BabySlotCheck,
    BirthIntervalCheck,
    BirthWeightPlausibilityCheck,
    ClassificationCheck,
    DateInYearCheck,
    DuplicateCheck,
    MaternalDateOfBirthCheck,
    PresenceCheck,
)
from episode_data_quality.rules.base import BaseCheck, ScoreBand

ILLEGAL = ScoringScale.ILLEGAL
INFEASIBLE = ScoringScale.MEDICALLY_INFEASIBLE
UNKNOWN = ScoringScale.UNKNOWN
NOT_SPECIFIED = ScoringScale.NOT_SPECIFIED
OTHER = ScoringScale.OTHER
VALID = ScoringScale.VALID

ETHNIC_CATEGORY_CODES = (
    [str(code) for code in range(1, 8)]
    + list("ABCDEFGH")
    + list("JKLMN")
    + ["P", "R"]
)


def field_checks() -> list[BaseCheck]:
    """Checks on single administrative fields."""
    return [
        PresenceCheck(field="year"),
        MaternalDateOfBirthCheck(field="dob", max_age_years=60),
        ClassificationCheck(
            field="ethnos",
            value_type="code",
            bands=[
                ScoreBand(score=UNKNOWN, values=["X"], label="not known"),
                ScoreBand(score=NOT_SPECIFIED, values=["9", "Z"], label="not stated"),
                ScoreBand(score=OTHER, values=["8", "S"], label="other"),
                ScoreBand(score=VALID, values=ETHNIC_CATEGORY_CODES),
            ],
        ),
        DateInYearCheck(field="admidate"),
        PresenceCheck(field="procode"),
        ClassificationCheck(
            field="sex",
            bands=[
                ScoreBand(score=INFEASIBLE, values=[1], label="male mother"),
                ScoreBand(score=UNKNOWN, values=[0], label="not known"),
                ScoreBand(score=NOT_SPECIFIED, values=[9], label="not specified"),
                ScoreBand(score=VALID, values=[2]),
            ],
        ),
        ClassificationCheck(
            field="epitype",
            bands=[ScoreBand(score=VALID, min_value=1, max_value=6)],
        ),
        PresenceCheck(field="epistart"),
        PresenceCheck(field="epiend"),
        ClassificationCheck(
            field="epiorder",
            bands=[
                ScoreBand(score=UNKNOWN, values=[99], label="not known"),
                ScoreBand(score=NOT_SPECIFIED, values=[98], label="not applicable"),
                ScoreBand(score=VALID, min_value=1, max_value=87),
            ],
        ),
        ClassificationCheck(
            field="matage",
            bands=[ScoreBand(score=ILLEGAL, values=[0, 110])],
            default_score=VALID,
        ),
        ClassificationCheck(
            field="numbaby",
            bands=[
                ScoreBand(score=UNKNOWN, values=[9], label="not known"),
                ScoreBand(score=INFEASIBLE, values=[6], label="six or more"),
                ScoreBand(score=VALID, min_value=1, max_value=5),
            ],
        ),
    ]


# Classification of a populated baby slot field, by field stem
BABY_SLOT_BANDS: dict[str, dict] = {
    "delstat": {
        "bands": [
            ScoreBand(score=UNKNOWN, values=[9], label="not known"),
            ScoreBand(score=OTHER, values=[8], label="other"),
            ScoreBand(score=VALID, min_value=1, max_value=3),
        ]
    },
    "biresus": {
        "bands": [
            ScoreBand(score=UNKNOWN, values=[9], label="not known"),
            ScoreBand(score=NOT_SPECIFIED, values=[8], label="not applicable"),
            ScoreBand(score=VALID, min_value=1, max_value=6),
        ]
    },
    "birorder": {
        "bands": [
            ScoreBand(score=UNKNOWN, values=[9], label="not known"),
            ScoreBand(score=NOT_SPECIFIED, values=[8], label="not applicable"),
            ScoreBand(score=VALID, min_value=1, max_value=7),
        ]
    },
    "birstat": {
        "bands": [
            ScoreBand(score=UNKNOWN, values=[9], label="not known"),
            ScoreBand(score=VALID, min_value=1, max_value=4),
        ]
    },
    "birweit": {
        "bands": [
            ScoreBand(score=ILLEGAL, max_value=-1, label="negative"),
            ScoreBand(score=INFEASIBLE, min_value=0, max_value=200),
            ScoreBand(score=INFEASIBLE, min_value=5000, max_value=7000),
            ScoreBand(score=UNKNOWN, values=[9999], label="not known"),
            ScoreBand(score=ILLEGAL, min_value=7001, max_value=9998),
        ],
        "default_score": VALID,
    },
    "delmeth": {
        "value_type": "code",
        "bands": [
            ScoreBand(score=UNKNOWN, values=["X"], label="not known"),
            ScoreBand(score=OTHER, values=["9"], label="other"),
            ScoreBand(score=VALID, values=[str(code) for code in range(0, 9)]),
        ],
    },
    "delplace": {
        "bands": [
            ScoreBand(score=UNKNOWN, values=[9], label="not known"),
            ScoreBand(score=OTHER, values=[8], label="other"),
            ScoreBand(score=VALID, min_value=0, max_value=7),
        ]
    },
    "gestat": {
        "bands": [
            ScoreBand(score=UNKNOWN, values=[99], label="not known"),
            ScoreBand(score=VALID, min_value=10, max_value=49),
        ]
    },
    "sexbaby": {
        "bands": [
            ScoreBand(score=UNKNOWN, values=[0], label="not known"),
            ScoreBand(score=NOT_SPECIFIED, values=[9], label="not specified"),
            ScoreBand(score=VALID, values=[1, 2]),
        ]
    },
}


def intra_record_checks() -> list[BaseCheck]:
    """Checks on baby slot fields, in slot order, then birth weight plausibility."""
    checks: list[BaseCheck] = []
    for slot in BABY_SLOTS:
        checks.append(BabyDateOfBirthCheck(slot=slot))
        for stem, table in BABY_SLOT_BANDS.items():
            checks.append(BabySlotCheck(stem=stem, slot=slot, **table))
    for slot in BABY_SLOTS:
        checks.append(BirthWeightPlausibilityCheck(slot=slot))
    return checks


def inter_record_checks() -> list[BaseCheck]:
    """Checks comparing records with each other, these need the family annotations."""
    return [BirthIntervalCheck(), DuplicateCheck()]


def default_checks() -> list[BaseCheck]:
    """Every check of a standard maternity episode scoring run."""
    return field_checks() + intra_record_checks() + inter_record_checks()


def checks_for_tier(checks: list[BaseCheck], tier: CheckTier | str) -> list[BaseCheck]:
    """The checks of one tier, in registry order."""
    tier = CheckTier(tier)
    return [check for check in checks if CheckTier(check.tier) == tier]
