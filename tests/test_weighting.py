# (c) Crown Copyright GCHQ \n
import numpy as np
import pandas as pd
import pytest

from episode_data_quality.errors import MissingWeightingConstantsError
from episode_data_quality.evaluation import check_tiers, score_checks
from episode_data_quality.models import CheckTier, WeightingConstants
from episode_data_quality.registry import default_checks
from episode_data_quality.weighting import (
    TOTAL_SCORE_FIELD,
    YEARLY_AVERAGE_FIELDS,
    apply_normalisation,
    compute_yearly_averages,
    get_check_columns,
    weight_scores,
)

TIERS = {
    "dq_field_sex": CheckTier.FIELD,
    "dq_intra_gestat1": CheckTier.INTRA,
    "dq_inter_is_duplicate": CheckTier.INTER,
}


@pytest.fixture
def raw_scores() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "year": [2015, 2015, 2016, 2016],
            "file_row": [1, 2, 1, 2],
            "dq_field_sex": [8, 2, 8, 8],
            "dq_intra_gestat1": [8, 3, 8, 1],
            "dq_inter_is_duplicate": [8, 8, 1, 1],
        }
    )


def test_get_check_columns(raw_scores: pd.DataFrame) -> None:
    assert get_check_columns(raw_scores) == list(TIERS)


def test_weight_scores(raw_scores: pd.DataFrame) -> None:
    weighted = weight_scores(raw_scores, TIERS, WeightingConstants())

    assert weighted["dq_field_sex"].tolist() == [8, 2, 8, 8]
    assert weighted["dq_intra_gestat1"].tolist() == [80, 30, 80, 10]
    assert weighted["dq_inter_is_duplicate"].tolist() == [800, 800, 100, 100]
    assert weighted[TOTAL_SCORE_FIELD].tolist() == [888, 832, 188, 118]
    assert weighted[TOTAL_SCORE_FIELD].dtype == "int64"
    # the raw scores are untouched
    assert raw_scores["dq_intra_gestat1"].tolist() == [8, 3, 8, 1]


def test_weight_scores_custom_constants(raw_scores: pd.DataFrame) -> None:
    weighted = weight_scores(
        raw_scores, TIERS, WeightingConstants(field=2, intra=5, inter=50)
    )
    assert weighted[TOTAL_SCORE_FIELD].tolist() == [456, 419, 106, 71]


def test_weight_scores_accepts_tier_names(raw_scores: pd.DataFrame) -> None:
    tiers = {name: tier.value for name, tier in TIERS.items()}
    weighted = weight_scores(raw_scores, tiers, WeightingConstants())
    assert weighted[TOTAL_SCORE_FIELD].tolist() == [888, 832, 188, 118]


def test_weight_scores_requires_constants(raw_scores: pd.DataFrame) -> None:
    with pytest.raises(MissingWeightingConstantsError):
        weight_scores(raw_scores, TIERS, None)

    with pytest.raises(MissingWeightingConstantsError):
        compute_yearly_averages(raw_scores, TIERS, None)


def test_weight_scores_unknown_tier(raw_scores: pd.DataFrame) -> None:
    with pytest.raises(ValueError, match="dq_inter_is_duplicate"):
        weight_scores(
            raw_scores,
            {"dq_field_sex": "field", "dq_intra_gestat1": "intra"},
            WeightingConstants(),
        )


def test_compute_yearly_averages(raw_scores: pd.DataFrame) -> None:
    constants = WeightingConstants()
    weighted = weight_scores(raw_scores, TIERS, constants)
    averages = compute_yearly_averages(weighted, TIERS, constants)

    assert averages.columns.tolist() == YEARLY_AVERAGE_FIELDS
    assert len(averages) == 2 * 3

    indexed = averages.set_index(["year", "check_name"])
    assert indexed.loc[(2015, "dq_field_sex"), "average_weighted_score"] == 5
    assert indexed.loc[(2015, "dq_field_sex"), "normalisation_factor"] == 5 / 8
    assert indexed.loc[(2016, "dq_intra_gestat1"), "average_weighted_score"] == 45
    assert indexed.loc[(2016, "dq_intra_gestat1"), "normalisation_factor"] == 45 / 80
    assert indexed.loc[(2016, "dq_inter_is_duplicate"), "normalisation_factor"] == 1 / 8
    assert indexed.loc[(2015, "dq_inter_is_duplicate"), "tier"] == "inter"


def test_apply_normalisation(raw_scores: pd.DataFrame) -> None:
    constants = WeightingConstants()
    weighted = weight_scores(raw_scores, TIERS, constants)
    averages = compute_yearly_averages(weighted, TIERS, constants)
    normalised = apply_normalisation(weighted, averages)

    assert normalised["dq_field_sex"].tolist() == pytest.approx(
        [8 * 5 / 8, 2 * 5 / 8, 8, 8]
    )
    assert normalised["dq_inter_is_duplicate"].tolist() == pytest.approx(
        [800, 800, 100 / 8, 100 / 8]
    )
    expected_totals = normalised[get_check_columns(normalised)].sum(axis=1)
    assert normalised[TOTAL_SCORE_FIELD].tolist() == pytest.approx(expected_totals.tolist())


def test_perfect_scores_are_unchanged_by_normalisation() -> None:
    raw = pd.DataFrame(
        {
            "year": [2016, 2016, 2016],
            "file_row": [1, 2, 3],
            "dq_field_sex": [8, 8, 8],
            "dq_intra_gestat1": [8, 8, 8],
        }
    )
    constants = WeightingConstants()
    weighted = weight_scores(raw, TIERS, constants)
    averages = compute_yearly_averages(weighted, TIERS, constants)
    normalised = apply_normalisation(weighted, averages)

    assert (averages["normalisation_factor"] == 1).all()
    assert normalised[TOTAL_SCORE_FIELD].tolist() == weighted[TOTAL_SCORE_FIELD].tolist()


def test_blank_year_is_averaged_as_its_own_year() -> None:
    raw = pd.DataFrame(
        {
            "year": [2016, None, None],
            "file_row": [1, 1, 2],
            "dq_field_sex": [8, 2, 4],
        }
    )
    constants = WeightingConstants()
    weighted = weight_scores(raw, TIERS, constants)
    averages = compute_yearly_averages(weighted, TIERS, constants)
    normalised = apply_normalisation(weighted, averages)

    assert len(averages) == 2
    blank_year = averages.loc[averages["year"].isnull()]
    assert blank_year["average_weighted_score"].tolist() == [3]
    assert normalised["dq_field_sex"].tolist() == pytest.approx([8, 2 * 3 / 8, 4 * 3 / 8])


def test_yearly_averages_without_scores() -> None:
    empty = pd.DataFrame({"year": [], "file_row": [], TOTAL_SCORE_FIELD: []})
    averages = compute_yearly_averages(empty, {}, WeightingConstants())

    assert averages.empty
    assert averages.columns.tolist() == YEARLY_AVERAGE_FIELDS


def test_normalisation_factors_within_bounds(annotated_episodes: pd.DataFrame) -> None:
    checks = default_checks()
    tiers = check_tiers(checks)
    constants = WeightingConstants()

    weighted = weight_scores(score_checks(annotated_episodes, checks), tiers, constants)
    averages = compute_yearly_averages(weighted, tiers, constants)

    factors = averages["normalisation_factor"].to_numpy()
    assert len(averages) == 2 * len(checks)
    assert np.all((factors > 0) & (factors <= 1))
