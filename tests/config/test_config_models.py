# (c) Crown Copyright GCHQ \n
import logging
from pathlib import Path

import pandas as pd
import pytest
from pydantic import ValidationError

from episode_data_quality.config import ScoringConfig
from episode_data_quality.errors import MissingWeightingConstantsError
from episode_data_quality.models import WeightingConstants
from episode_data_quality.results.models import ScoringReport
from episode_data_quality.rules import DuplicateCheck, PresenceCheck
from tests.conftest import row_of


# The end to end behaviour of execute is tested in test_results.py; here we test the
# configuration round trips, exceptions and warnings.
def test_default_config(default_config: ScoringConfig) -> None:
    assert default_config.weighting == WeightingConstants()
    assert len(default_config.checks) == 47
    assert default_config.measurement_time is None


def test_duplicate_check_names_rejected() -> None:
    with pytest.raises(ValidationError, match="dq_field_procode"):
        ScoringConfig(checks=[PresenceCheck(field="procode"), PresenceCheck(field="procode")])


def test_same_field_with_distinct_names_accepted() -> None:
    config = ScoringConfig(
        checks=[
            PresenceCheck(field="procode"),
            PresenceCheck(field="procode", name="provider_present"),
        ]
    )
    assert [check.name for check in config.checks] == ["dq_field_procode", "provider_present"]


def test_execute_without_weighting_raises(sample_episodes: list[dict]) -> None:
    config = ScoringConfig(weighting=None, checks=[DuplicateCheck()])
    with pytest.raises(MissingWeightingConstantsError):
        config.execute(sample_episodes)


def test_execute_with_missing_column_raises() -> None:
    config = ScoringConfig(checks=[PresenceCheck(field="not_an_episode_field")])
    with pytest.raises(ValueError, match="not_an_episode_field"):
        config.execute([{"year": 2016, "procode": "RJZ"}])


def test_execute_logs_each_stage(
    sample_episodes: list[dict], caplog: pytest.LogCaptureFixture
) -> None:
    config = ScoringConfig(dataset_name="sample", checks=[DuplicateCheck()])
    with caplog.at_level(logging.INFO, logger="episode_data_quality"):
        config.execute(sample_episodes)

    messages = [record.getMessage() for record in caplog.records]
    assert "Scoring sample with 1 checks" in messages
    assert "Detecting record families" in messages


def test_execute_subset_of_checks(test_config_file: Path, sample_episodes: list[dict]) -> None:
    config = ScoringConfig.from_yaml(test_config_file)
    report = config.execute(pd.DataFrame(sample_episodes))

    assert isinstance(report, ScoringReport)
    assert report.check_names == [check.name for check in config.checks]
    assert report.weighting == WeightingConstants(field=1, intra=5, inter=50)

    # a 55 year age limit leaves the 1950 mother infeasible
    dob = report.raw_scores["dq_field_dob"]
    assert dob.iloc[row_of(report.annotated_episodes, "unrealistic_maternal_age")] == 2

    duplicates = report.weighted_scores["dq_inter_is_duplicate"]
    assert set(duplicates.unique()) == {50, 400}


def test_to_yaml_round_trip(test_config_file: Path, tmp_path: Path) -> None:
    config = ScoringConfig.from_yaml(test_config_file)
    out_path = tmp_path / "nested" / "config.yaml"

    config.to_yaml(out_path)
    reloaded = ScoringConfig.from_yaml(out_path)

    assert reloaded == config


def test_default_config_round_trip(default_config: ScoringConfig, tmp_path: Path) -> None:
    out_path = tmp_path / "defaults.yaml"
    default_config.to_yaml(out_path)

    assert ScoringConfig.from_yaml(out_path) == default_config


def test_to_yaml_will_not_overwrite(default_config: ScoringConfig, tmp_path: Path) -> None:
    out_path = tmp_path / "config.yaml"
    default_config.to_yaml(out_path)

    with pytest.raises(FileExistsError, match="File already exists"):
        default_config.to_yaml(out_path)

    default_config.to_yaml(out_path, overwrite=True)
    assert out_path.exists()
