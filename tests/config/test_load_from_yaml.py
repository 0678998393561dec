# (c) Crown Copyright GCHQ \n
from pathlib import Path
from typing import Any

import pytest
import yaml
from pydantic import ValidationError

from episode_data_quality.config import ScoringConfig
from episode_data_quality.models import WeightingConstants
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

ARTIFACTS_DIR = Path(__file__).parents[1] / "artifacts"
EXTRA_CHECKS_FILE = ARTIFACTS_DIR / "test_config_extra_checks.yaml"


def _write_yaml(file_path: str | Path, obj: Any) -> None:  # noqa ANN401
    with open(file_path, "w") as f:
        yaml.dump(obj, f)


def test_load_scoring_config_file_single(test_config_file: Path) -> None:
    config = ScoringConfig.from_yaml(test_config_file)

    assert isinstance(config, ScoringConfig)
    assert config.dataset_name == "maternity_sample"
    assert config.weighting == WeightingConstants(field=1, intra=5, inter=50)
    assert [type(check) for check in config.checks] == [
        PresenceCheck,
        ClassificationCheck,
        MaternalDateOfBirthCheck,
        BabySlotCheck,
        BirthWeightPlausibilityCheck,
        DuplicateCheck,
        BirthIntervalCheck,
    ]


def test_loaded_checks_are_fully_configured(test_config_file: Path) -> None:
    config = ScoringConfig.from_yaml(test_config_file)
    sex, dob, gestat = config.checks[1], config.checks[2], config.checks[3]

    assert isinstance(sex, ClassificationCheck)
    assert [band.score for band in sex.bands] == [2, 4, 5, 8]
    assert sex.bands[0].label == "male mother"

    assert isinstance(dob, MaternalDateOfBirthCheck)
    assert dob.max_age_years == 55

    assert isinstance(gestat, BabySlotCheck)
    assert gestat.field == "gestat2"
    assert gestat.name == "dq_intra_gestat2"


def test_load_multiple_files_merges_checks_and_warns(test_config_file: Path) -> None:
    files = [test_config_file, EXTRA_CHECKS_FILE]
    with pytest.warns(UserWarning, match="Multiple configuration files loaded"):
        config = ScoringConfig.from_yaml(files)

    # top level values come from the first file, checks from both (7 + 2)
    assert config.dataset_name == "maternity_sample"
    assert config.weighting == WeightingConstants(field=1, intra=5, inter=50)
    assert len(config.checks) == 9
    assert isinstance(config.checks[-2], DateInYearCheck)
    assert isinstance(config.checks[-1], BabyDateOfBirthCheck)


def test_load_multiple_files_rejects_repeated_checks(test_config_file: Path) -> None:
    with pytest.warns(UserWarning, match="Multiple configuration files loaded"):
        with pytest.raises(ValidationError, match="Check names must be unique"):
            ScoringConfig.from_yaml([test_config_file, test_config_file])


def test_load_scoring_config_file_not_found() -> None:
    missing_file = ARTIFACTS_DIR / "DOES_NOT_EXIST.yaml"
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        ScoringConfig.from_yaml(missing_file)


def test_config_without_checks_uses_default_checks(tmp_path: Path) -> None:
    path = tmp_path / "weighting_only.yaml"
    _write_yaml(path, {"dataset_name": "defaults", "weighting": {"intra": 20}})

    config = ScoringConfig.from_yaml(path)

    assert config.weighting == WeightingConstants(intra=20)
    assert len(config.checks) == 47


def test_empty_config_file(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")

    config = ScoringConfig.from_yaml(str(path))

    assert config.dataset_name is None
    assert config.weighting == WeightingConstants()


def test_config_rejects_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "typo.yaml"
    _write_yaml(path, {"weightings": {"field": 1}})

    with pytest.raises(ValidationError, match="weightings"):
        ScoringConfig.from_yaml(path)


def test_config_rejects_unknown_check_function(tmp_path: Path) -> None:
    path = tmp_path / "bad_check.yaml"
    _write_yaml(path, {"checks": [{"function": "spelling", "field": "sex"}]})

    with pytest.raises(ValidationError):
        ScoringConfig.from_yaml(path)


def test_config_rejects_bad_bands(tmp_path: Path) -> None:
    path = tmp_path / "bad_band.yaml"
    _write_yaml(
        path,
        {
            "checks": [
                {
                    "function": "classification",
                    "field": "sex",
                    "bands": [{"score": 9, "values": [2]}],
                }
            ]
        },
    )

    with pytest.raises(ValidationError):
        ScoringConfig.from_yaml(path)
