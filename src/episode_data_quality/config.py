# (c) Crown Copyright GCHQ \n
"""
Scoring configuration model - this stores details about the scoring run (what data set,
which weighting) and contains the list of checks to evaluate against the episodes.

User-Facing Model:
    - ScoringConfig: Primary configuration class for scoring an episode data set, used for
      running the full pipeline and serialising to/from YAML.

Check classes (imported from episode_data_quality.rules) define specific data quality
checks. By default a ScoringConfig holds the standard maternity checks from
episode_data_quality.registry.

Usage Example:
    ```python
    from episode_data_quality.config import ScoringConfig
    from episode_data_quality.models import WeightingConstants

    config = ScoringConfig(
        dataset_name="maternity_2016",
        weighting=WeightingConstants(field=1, intra=10, inter=100),
    )
    report = config.execute(episodes)
    ```
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Annotated

import pandas as pd
import yaml
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from episode_data_quality.errors import MissingWeightingConstantsError
from episode_data_quality.evaluation import check_tiers, score_checks
from episode_data_quality.families import annotate_families
from episode_data_quality.models import WeightingConstants
from episode_data_quality.normaliser import normalise_episodes
from episode_data_quality.registry import default_checks
from episode_data_quality.results.models import ScoringReport
from episode_data_quality.rules.field import (
    ClassificationCheck,
    DateInYearCheck,
    MaternalDateOfBirthCheck,
    PresenceCheck,
)
from episode_data_quality.rules.inter import BirthIntervalCheck, DuplicateCheck
from episode_data_quality.rules.intra import (
    BabyDateOfBirthCheck,
    BabySlotCheck,
    BirthWeightPlausibilityCheck,
)
from episode_data_quality.weighting import (
    apply_normalisation,
    compute_yearly_averages,
    weight_scores,
)

logger = logging.getLogger(__name__)

# Union type for all possible checks
CheckType = Annotated[
    PresenceCheck
    | ClassificationCheck
    | MaternalDateOfBirthCheck
    | DateInYearCheck
    | BabySlotCheck
    | BabyDateOfBirthCheck
    | BirthWeightPlausibilityCheck
    | DuplicateCheck
    | BirthIntervalCheck,
    Field(discriminator="function"),
]

# allows validation of a dictionary into the correct check type based on the 'function' key
CheckAdapter = TypeAdapter(CheckType)


class ScoringConfig(BaseModel):
    """
    Configuration describing a scoring run over an episode data set.

    Typically constructed programmatically with the default checks, or by loading a YAML
    file listing the checks. Without a 'checks' entry the standard maternity checks are used.

    Attributes:
        dataset_name (str | None): Data set name or identifier.
        measurement_time (datetime | None): Time of the run, defaults to UTC now.
        weighting (WeightingConstants | None): Tier multipliers, defaults to (1, 10, 100).
            A run cannot be executed without them.
        checks (list[CheckType]): Checks to evaluate, names must be unique.

    Example:
        ```python
        # Loading from YAML
        config = ScoringConfig.from_yaml("scoring.yaml")

        # Running the full pipeline
        report = config.execute(episodes)

        # Or, only some checks with a different weighting
        config = ScoringConfig(
            weighting=WeightingConstants(field=1, intra=5, inter=50),
            checks=[PresenceCheck(field="procode"), DuplicateCheck()],
        )
        ```

    Methods:
        execute(episodes) -> ScoringReport:
            Normalise, detect families, score every check, weight and normalise.

        from_yaml(file_paths) -> ScoringConfig:
            Load a configuration instance from one or more YAML files.

        to_yaml(file_path, overwrite=False) -> None:
            Save as YAML file.
    """

    model_config = ConfigDict(
        extra="forbid"
    )  # Prevents typos in the YAML file from passing validation (.e.g weightings instead of weighting)

    dataset_name: str | None = Field(
        default=None, description="Name or identifier of the episode data set"
    )
    measurement_time: datetime | None = Field(
        default=None, description="Time of the scoring run"
    )
    weighting: WeightingConstants | None = Field(
        default_factory=WeightingConstants, description="Tier multipliers"
    )
    checks: list[CheckType] = Field(
        default_factory=default_checks, description="List of data quality checks"
    )

    @field_validator("checks")
    @classmethod
    def _check_names_are_unique(cls, checks: list) -> list:
        names = [check.name for check in checks]
        duplicated = sorted({name for name in names if names.count(name) > 1})
        if duplicated:
            raise ValueError(
                f"Check names must be unique, give each check a distinct 'name'. "
                f"Duplicates: {duplicated}"
            )
        return checks

    def execute(
        self, episodes: pd.DataFrame | Sequence[Mapping]
    ) -> ScoringReport:
        """
        Score every record of the episode data.

        Args:
            episodes (pd.DataFrame | Sequence[Mapping]): Raw episode records.

        Returns:
            ScoringReport: The annotated episodes and every score table.

        Raises:
            MissingWeightingConstantsError: If weighting is None, before any work is done.

        Example:
            ```python
            report = ScoringConfig().execute(df)
            report.summary()
            ```
        """
        if self.weighting is None:
            raise MissingWeightingConstantsError(
                "ScoringConfig.weighting is None, set WeightingConstants before executing"
            )

        logger.info(
            "Scoring %s with %d checks",
            self.dataset_name or "episode data",
            len(self.checks),
        )
        normalised = normalise_episodes(episodes)

        logger.info("Detecting record families")
        annotated = annotate_families(normalised)

        logger.info("Evaluating checks")
        raw_scores = score_checks(annotated, self.checks)
        tiers = check_tiers(self.checks)

        logger.info("Weighting and normalising scores")
        weighted_scores = weight_scores(raw_scores, tiers, self.weighting)
        yearly_averages = compute_yearly_averages(
            weighted_scores, tiers, self.weighting
        )
        normalised_scores = apply_normalisation(weighted_scores, yearly_averages)
        logger.debug(
            "Scored %d records, %d yearly averages",
            len(raw_scores),
            len(yearly_averages),
        )

        return ScoringReport(
            dataset_name=self.dataset_name,
            measurement_time=self.measurement_time,
            weighting=self.weighting,
            annotated_episodes=annotated,
            raw_scores=raw_scores,
            weighted_scores=weighted_scores,
            yearly_averages=yearly_averages,
            normalised_scores=normalised_scores,
        )

    @classmethod
    def from_yaml(cls, file_paths: str | Path | list[str] | list[Path]) -> ScoringConfig:
        """
        Loads scoring configuration files.

        Args:
            file_paths: Single path or list of paths to configuration file(s) to load.

        Returns:
            The loaded scoring configuration. If multiple files are provided, checks from all
            configurations are combined, while other parameters (such as 'dataset_name' and
            'weighting') are taken only from the first file.

        Raises:
            FileNotFoundError: If any specified configuration file does not exist.

        Warnings:
            If multiple configuration files are provided, only the 'checks' from subsequent
            files are merged.

        Example:
            ```yaml
            dataset_name: maternity
            weighting:
              field: 1
              intra: 10
              inter: 100
            checks:
              - function: classification
                field: sex
                bands:
                  - score: 2
                    values: [1]
                  - score: 8
                    values: [2]
              - function: duplicate
            ```
        """
        return _load_scoring_config_files(file_paths)

    def to_yaml(self, file_path: str | Path, overwrite: bool = False) -> None:
        """
        Save the ScoringConfig instance as a YAML file for reuse or sharing.

        Args:
            file_path (str | Path): The destination YAML file path.
            overwrite (bool): Whether to overwrite the file if it already exists.
            If False and the file exists, a FileExistsError is raised.
        """

        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if file_path.exists() and not overwrite:
            raise FileExistsError(f"File already exists: {file_path}")

        export_dict = self.model_dump(mode="json")

        # Replace checks with already serialisable versions
        export_dict["checks"] = [check.to_dict() for check in self.checks]

        with open(file_path, "w") as f:
            yaml.safe_dump(export_dict, f, sort_keys=False)


def _load_scoring_config_files(
    file_paths: str | Path | list[str] | list[Path],
) -> ScoringConfig:
    """
    Loads and validates scoring configuration files, merging the checks of several files.
    See ScoringConfig.from_yaml.
    """

    if isinstance(file_paths, str | Path):
        list_of_file_paths = [file_paths]
    else:
        list_of_file_paths = file_paths

    for fp in list_of_file_paths:
        if not Path(fp).exists():
            raise FileNotFoundError(f"Config file not found: {fp}")

    configs = []
    for fp in list_of_file_paths:
        with open(fp) as f:
            cfg = yaml.safe_load(f) or {}
            configs.append(ScoringConfig(**cfg))

    if len(configs) == 1:
        return configs[0]

    first_file_path = str(list_of_file_paths[0])
    warnings.warn(
        f"Multiple configuration files loaded. Only 'checks' from subsequent configs will be merged. "
        f"Items like 'dataset_name' and 'weighting' are only taken from the first file: {first_file_path}.",
        stacklevel=3,
    )

    # revalidate so that duplicate check names across files are caught
    first = configs[0]
    return ScoringConfig(
        dataset_name=first.dataset_name,
        measurement_time=first.measurement_time,
        weighting=first.weighting,
        checks=[check for cfg in configs for check in cfg.checks],
    )
