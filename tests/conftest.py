# (c) Crown Copyright GCHQ \n
"""We dynamically generate test cases from YAML files in the tests/data directory

a file called classification.yaml will resolve to a series of test cases within a
pytest fixture called classification_case

Three top level keys are used when handling these cases.
1. inputs (key-value pairs for function input) **case['inputs']
2. description - used by pytest as the id of the test
3. expected - the expected value of the test (dictionary of key-value pairs)"""

from pathlib import Path

import pandas as pd
import pytest
import yaml

from episode_data_quality.config import ScoringConfig
from episode_data_quality.errors import MissingWeightingConstantsError
from episode_data_quality.families import annotate_families
from episode_data_quality.normaliser import normalise_episodes

DATA_DIR = Path(__file__).parent / "data"
ARTIFACTS_DIR = Path(__file__).parent / "artifacts"

# so we can test for exceptions in our test files by passing in strings
EXCEPTION_MAP = {
    "ValueError": ValueError,
    "KeyError": KeyError,
    "TypeError": TypeError,
    "MissingWeightingConstantsError": MissingWeightingConstantsError,
}


def process_test_data_inputs_for_pandas(input_dict: dict) -> tuple[dict, pd.DataFrame]:
    """Handle input test cases for pandas evaluation, where we pull out any dataframe
    to pass into the evaluate function"""

    df_data = input_dict["inputs"].pop("df", None)

    if df_data is None:
        df = pd.DataFrame()
    else:
        df = pd.DataFrame(df_data)

    return input_dict, df


def assert_scores_match_expected(scores: pd.Series, expected: list[int]) -> None:
    """Scores are compared as plain ints, record by record"""
    assert scores.dtype == "int64"
    assert scores.tolist() == expected


def load_yaml_test_data(yaml_path: Path) -> list:
    """Load and validate a YAML test data file.

    Converts {col_name : [1,2,3,4]} dictionaries to dataframes assuming they have a 'df' key
    Checks some high level formatting in the YAML file
    """
    with open(yaml_path) as f:
        cases = yaml.safe_load(f)

    if not isinstance(cases, list):
        raise ValueError(f"{yaml_path.name} must contain a list of test cases.")

    validated_cases = []
    for i, case in enumerate(cases, start=1):
        # Check required keys
        for key in ("description", "inputs", "expected"):
            if key not in case:
                raise ValueError(f"Missing '{key}' in case #{i} of {yaml_path.name}")
        # Check types
        if not isinstance(case["inputs"], dict):
            raise ValueError(
                f"'inputs' must be a dict in case #{i} of {yaml_path.name}"
            )
        if not isinstance(case["expected"], dict | list):
            raise ValueError(
                f"'expected' must be a dict or list in case #{i} of {yaml_path.name}"
            )

        # Only a key exactly called 'df' holds columns for a DataFrame
        if "df" in case["inputs"] and not isinstance(case["inputs"]["df"], dict):
            raise ValueError(
                f"'df' in case #{i} of {yaml_path.name} must be a dict of columns → values."
            )

        validated_cases.append(case)

    return validated_cases


def pytest_generate_tests(metafunc: pytest.Metafunc) -> None:
    """
    Auto-parametrise tests from YAML files in /tests/data.
    A YAML file named e.g. `classification.yaml` creates a fixture `classification_case`.

    The YAML file contains:
    1. description - an explanation of the unit test that is printed at runtime by pytest
    2. inputs - the parameters to the function as key-value pairs that get expanded **case['inputs'] in the function call
    3. expected - the expected outputs which we map one-to-one in each unit test
    """
    for yaml_file in DATA_DIR.glob("*.yaml"):
        fixture_name = yaml_file.stem + "_case"  # classification.yaml -> classification_case
        if fixture_name in metafunc.fixturenames:
            cases = load_yaml_test_data(yaml_file)
            metafunc.parametrize(
                fixture_name, cases, ids=[case["description"] for case in cases]
            )


@pytest.fixture
def sample_episodes() -> list[dict]:
    """Demonstration maternity episodes, one or more per data quality problem.
    The extract_hes_id names the problem each record demonstrates."""
    with open(ARTIFACTS_DIR / "sample_episodes.yaml") as f:
        return yaml.safe_load(f)


@pytest.fixture
def normalised_episodes(sample_episodes: list[dict]) -> pd.DataFrame:
    return normalise_episodes(sample_episodes)


@pytest.fixture
def annotated_episodes(normalised_episodes: pd.DataFrame) -> pd.DataFrame:
    return annotate_families(normalised_episodes)


@pytest.fixture
def test_config_file() -> Path:
    test_yaml_path = ARTIFACTS_DIR / "test_config.yaml"
    return test_yaml_path


@pytest.fixture
def default_config() -> ScoringConfig:
    return ScoringConfig(dataset_name="sample maternity episodes")


def row_of(episodes: pd.DataFrame, subject_id: str, occurrence: int = 1) -> int:
    """Positional row of the n-th record of a subject in the sample episodes"""
    rows = [
        i for i, value in enumerate(episodes["extract_hes_id"]) if value == subject_id
    ]
    return rows[occurrence - 1]
