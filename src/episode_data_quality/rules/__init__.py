# (c) Crown Copyright GCHQ \n
"""
Data quality check definitions for the episode_data_quality package.

Checks come in three tiers, each weighted differently when scores are combined:
- Field-level: one field in isolation (e.g. is the mother's sex a legal code)
- Intra-record: fields of the same record against each other (e.g. is a second baby
  recorded when numbaby is 1)
- Inter-record: a record against other records (e.g. is it a duplicate)

They inherit from a core BaseCheck class. All check evaluation is built on a consistent method:
1. Determine the columns the check uses and copy them
2. Map every record onto the eight point scoring scale (_get_scores_pandas)
3. Return one integer score per record, named after the check

Values a check cannot interpret are scored 1 (illegal) and reported through an
UnclassifiableValueWarning, so evaluation never fails part way through a data set.

Available check classes:
    - PresenceCheck
    - ClassificationCheck
    - MaternalDateOfBirthCheck
    - DateInYearCheck
    - BabySlotCheck
    - BabyDateOfBirthCheck
    - BirthWeightPlausibilityCheck
    - DuplicateCheck
    - BirthIntervalCheck

Whilst the user can call these checks and evaluate them against a dataframe

ClassificationCheck(field="sex", bands=...).evaluate(df)

The intention of the package is that the checks are wrapped up into a ScoringConfig class
and executed together against the episode data.

ScoringConfig(checks=my_checks_list).execute(df)
"""

from episode_data_quality.rules.field import (  # noqa
    ClassificationCheck,
    DateInYearCheck,
    MaternalDateOfBirthCheck,
    PresenceCheck,
)
from episode_data_quality.rules.intra import (  # noqa
    BabyDateOfBirthCheck,
    BabySlotCheck,
    BirthWeightPlausibilityCheck,
)
from episode_data_quality.rules.inter import (  # noqa
    BirthIntervalCheck,
    DuplicateCheck,
)

__all__ = [
    "PresenceCheck",
    "ClassificationCheck",
    "MaternalDateOfBirthCheck",
    "DateInYearCheck",
    "BabySlotCheck",
    "BabyDateOfBirthCheck",
    "BirthWeightPlausibilityCheck",
    "DuplicateCheck",
    "BirthIntervalCheck",
]
