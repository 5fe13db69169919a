# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Sequence

# Third-Party Imports
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from otu_compare import constants
from otu_compare.tables.keys import set_method_order
from otu_compare.tables.normalization import sample_columns

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("otu_compare")

# ================================== TABLE SUMMARY =================================== #

def number_of_otus_samples(
    raw: pd.DataFrame,
    method: str,
    methods: Sequence[str] = constants.DEFAULT_METHODS
) -> pd.DataFrame:
    """One-row overview of a raw table: (method, n_otus, n_samples)."""
    overview = pd.DataFrame({
        constants.METHOD_COLUMN: [method],
        "n_otus": [len(raw)],
        "n_samples": [len(sample_columns(raw))],
    })
    return set_method_order(overview, methods)


def get_summary(records: pd.DataFrame) -> pd.DataFrame:
    """Add per-sample relative abundance to long-form records.

    Relative abundance is count over the total count of the same method and
    sample. Samples with a zero total emit no rows. Output is sorted by
    method, feature id and sample label, and keeps only positive counts.

    Args:
        records: Long-form records (method, feature_id, sample_label, count),
                 zero counts allowed.

    Returns:
        DataFrame with columns method, feature_id, sample_label, count, rel_abun.
    """
    summary = records[constants.RECORD_COLUMNS].copy()
    totals = (
        summary
        .groupby([constants.METHOD_COLUMN, constants.SAMPLE_COLUMN], observed=True)
        [constants.COUNT_COLUMN]
        .transform("sum")
    )
    summary[constants.REL_ABUN_COLUMN] = (
        summary[constants.COUNT_COLUMN] / totals.where(totals > 0)
    ).astype(float)

    summary = summary.sort_values(
        [constants.METHOD_COLUMN, constants.FEATURE_ID_COLUMN, constants.SAMPLE_COLUMN],
        kind="mergesort"
    )
    summary = summary.loc[summary[constants.COUNT_COLUMN] > 0]
    return summary[constants.SUMMARY_COLUMNS].reset_index(drop=True)
