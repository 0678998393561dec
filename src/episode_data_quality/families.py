# (c) Crown Copyright GCHQ \n
"""
Detection of record families: groups of records describing the same episode.

Records that share the family key (subject id, provider code, episode start, episode
end and episode order) are duplicates of one another and form a family. Every record
belongs to exactly one family, most families have a single member.

A record with any blank family key field cannot be linked to another record, so it
forms a family of its own and a MissingRequiredLinkageWarning is raised.

The annotations let a downstream user choose which duplicate to keep, either the first
in input order (keep_first) or the most complete (keep_max_filled).
"""

from __future__ import annotations

import logging
from warnings import warn

import numpy as np
import pandas as pd

from episode_data_quality.errors import MissingRequiredLinkageWarning
from episode_data_quality.reference import COMPLETENESS_FIELDS, FAMILY_KEY_FIELDS
from episode_data_quality.rules.utils.rules_utils import ensure_columns_exist_pandas

logger = logging.getLogger(__name__)

FAMILY_ANNOTATION_FIELDS = [
    "record_family_id",
    "family_size",
    "ith_duplicate",
    "num_filled_fields",
    "is_duplicate",
    "keep_first",
    "keep_max_filled",
]


def _get_family_ids(keys: pd.DataFrame) -> pd.Series:
    """1-based family id of each (positionally indexed) record, in order of first appearance."""
    missing_linkage = keys.isnull().any(axis=1)
    if missing_linkage.any():
        warn(
            f"{int(missing_linkage.sum())} record(s) have a blank family key field "
            f"({', '.join(keys.columns)}) and cannot be linked to other records, "
            "each is treated as a family of its own",
            MissingRequiredLinkageWarning,
            stacklevel=3,
        )

    group_ids = keys.groupby(list(keys.columns), sort=False, dropna=False).ngroup()
    # negative ids cannot collide with ngroup, so each unlinked record stands alone
    unlinked_ids = pd.Series(-np.arange(1, len(keys) + 1), index=keys.index)
    group_ids = group_ids.where(~missing_linkage, unlinked_ids)

    codes, _ = pd.factorize(group_ids)
    return pd.Series(codes + 1, index=keys.index, name="record_family_id")


def detect_families(
    episodes: pd.DataFrame,
    key_fields: list[str] | None = None,
    completeness_fields: list[str] | None = None,
) -> pd.DataFrame:
    """
    Group records into families of duplicates and annotate every record.

    Args:
        episodes (pd.DataFrame): Normalised episode data.
        key_fields (list[str], optional): Fields identifying the same episode, defaults
            to extract_hes_id, procode, epistart, epiend and epiorder.
        completeness_fields (list[str], optional): Fields counted for completeness,
            defaults to every episode field except the record key. Fields absent from
            episodes count as blank.

    Returns:
        pd.DataFrame: Aligned to episodes.index, with columns
            record_family_id (int): 1-based id, in order of first appearance
            family_size (int): number of records in the family
            ith_duplicate (int): 1-based position of the record within its family
            num_filled_fields (int): number of populated completeness fields
            is_duplicate (bool): the family has more than one record
            keep_first (bool): the record is the first of its family
            keep_max_filled (bool): no record in the family is more complete; ties
                all keep the flag

    Raises:
        ValueError: If a family key field is not a column of episodes.

    Example:
        ```python
        >>> families = detect_families(episodes)
        >>> deduplicated = episodes[families["keep_first"]]
        ```
    """
    key_fields = FAMILY_KEY_FIELDS if key_fields is None else key_fields
    completeness_fields = (
        COMPLETENESS_FIELDS if completeness_fields is None else completeness_fields
    )
    ensure_columns_exist_pandas(episodes, key_fields)

    # work positionally, the episode index need not be unique
    records = episodes.reset_index(drop=True)

    family_ids = _get_family_ids(records[key_fields])
    family_groups = family_ids.groupby(family_ids, sort=False)

    family_size = family_groups.transform("size")
    ith_duplicate = family_groups.cumcount() + 1

    num_filled_fields = (
        records.reindex(columns=completeness_fields).notnull().sum(axis=1)
    )
    max_filled = num_filled_fields.groupby(family_ids, sort=False).transform("max")

    families = pd.DataFrame(
        {
            "record_family_id": family_ids.astype("int64"),
            "family_size": family_size.astype("int64"),
            "ith_duplicate": ith_duplicate.astype("int64"),
            "num_filled_fields": num_filled_fields.astype("int64"),
            "is_duplicate": family_size > 1,
            "keep_first": ith_duplicate == 1,
            "keep_max_filled": num_filled_fields == max_filled,
        }
    )
    families.index = episodes.index

    logger.debug(
        "Found %d record families in %d records, %d records are duplicates",
        int(family_ids.nunique()),
        len(records),
        int(families["is_duplicate"].sum()),
    )
    return families


def annotate_families(episodes: pd.DataFrame) -> pd.DataFrame:
    """
    The episodes with the family annotations of detect_families added as columns.

    Existing annotation columns are replaced. Returns a new DataFrame.
    """
    families = detect_families(episodes)
    annotated = episodes.copy()
    for column in FAMILY_ANNOTATION_FIELDS:
        annotated[column] = families[column].to_numpy()
    return annotated
