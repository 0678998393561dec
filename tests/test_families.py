# (c) Crown Copyright GCHQ \n
import pandas as pd
import pytest

from episode_data_quality.errors import MissingRequiredLinkageWarning
from episode_data_quality.families import (
    FAMILY_ANNOTATION_FIELDS,
    annotate_families,
    detect_families,
)
from tests.conftest import row_of


def _episodes(**columns: list) -> pd.DataFrame:
    """Minimal episodes with a family key, defaults shared by every record"""
    n = len(next(iter(columns.values())))
    data = {
        "extract_hes_id": ["A"] * n,
        "procode": ["RJZ"] * n,
        "epistart": ["15/05/2015"] * n,
        "epiend": ["17/05/2015"] * n,
        "epiorder": ["1"] * n,
    }
    data.update(columns)
    return pd.DataFrame(data)


def test_triplicate_family(normalised_episodes: pd.DataFrame) -> None:
    families = detect_families(normalised_episodes)
    first = row_of(normalised_episodes, "single_birth_3_duplicates")
    triplicates = families.iloc[first : first + 3]

    assert triplicates["record_family_id"].nunique() == 1
    assert triplicates["family_size"].tolist() == [3, 3, 3]
    assert triplicates["ith_duplicate"].tolist() == [1, 2, 3]
    assert triplicates["is_duplicate"].tolist() == [True, True, True]
    assert triplicates["keep_first"].tolist() == [True, False, False]
    # the last record also has a second baby slot filled in
    assert triplicates["num_filled_fields"].tolist() == [19, 21, 31]
    assert triplicates["keep_max_filled"].tolist() == [False, False, True]


def test_family_invariants(normalised_episodes: pd.DataFrame) -> None:
    families = detect_families(normalised_episodes)

    assert list(families.columns) == FAMILY_ANNOTATION_FIELDS
    assert families.index.equals(normalised_episodes.index)
    assert (families["family_size"] >= 1).all()

    sizes = families.groupby("record_family_id").size()
    assert (families["family_size"] == families["record_family_id"].map(sizes)).all()
    # exactly one keep_first and at least one keep_max_filled per family
    assert (families.groupby("record_family_id")["keep_first"].sum() == 1).all()
    assert (families.groupby("record_family_id")["keep_max_filled"].sum() >= 1).all()
    assert (families["is_duplicate"] == (families["family_size"] > 1)).all()

    # only the triplicate admission is duplicated in the sample
    assert int(families["is_duplicate"].sum()) == 3


def test_family_ids_in_order_of_first_appearance() -> None:
    episodes = _episodes(extract_hes_id=["B", "A", "B", "C"])
    families = detect_families(episodes)

    assert families["record_family_id"].tolist() == [1, 2, 1, 3]
    assert families["ith_duplicate"].tolist() == [1, 1, 2, 1]


def test_keep_max_filled_ties_all_keep_the_flag() -> None:
    episodes = _episodes(numbaby=["1", "1", None])
    families = detect_families(episodes)

    assert families["keep_max_filled"].tolist() == [True, True, False]
    assert families["keep_first"].tolist() == [True, False, False]


def test_missing_linkage_forms_singleton_families() -> None:
    episodes = _episodes(procode=["RJZ", None, None])

    with pytest.warns(MissingRequiredLinkageWarning, match="2 record"):
        families = detect_families(episodes)

    assert families["record_family_id"].tolist() == [1, 2, 3]
    assert families["family_size"].tolist() == [1, 1, 1]
    assert not families["is_duplicate"].any()


def test_detect_families_with_non_unique_index() -> None:
    episodes = _episodes(extract_hes_id=["A", "A", "B"])
    episodes.index = [5, 5, 7]
    families = detect_families(episodes)

    assert families.index.tolist() == [5, 5, 7]
    assert families["family_size"].tolist() == [2, 2, 1]


def test_detect_families_missing_key_column() -> None:
    episodes = _episodes(extract_hes_id=["A"]).drop(columns="epiorder")
    with pytest.raises(ValueError, match="epiorder"):
        detect_families(episodes)


def test_annotate_families(normalised_episodes: pd.DataFrame) -> None:
    annotated = annotate_families(normalised_episodes)

    assert set(FAMILY_ANNOTATION_FIELDS).issubset(annotated.columns)
    assert len(annotated) == len(normalised_episodes)
    assert not set(FAMILY_ANNOTATION_FIELDS) & set(normalised_episodes.columns)
