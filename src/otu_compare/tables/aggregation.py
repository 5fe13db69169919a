# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Iterable, Mapping, Optional, Sequence

# Third-Party Imports
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from otu_compare import constants
from otu_compare.tables.keys import CombKey, method_dtype, select_keys
from otu_compare.tables.normalization import sample_columns

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("otu_compare")

SCOPE_COLUMNS = {
    "method": [constants.METHOD_COLUMN],
    "sample": [constants.SAMPLE_COLUMN],
    "method_sample": [constants.METHOD_COLUMN, constants.SAMPLE_COLUMN],
}

AGGREGATE_COLUMNS = [
    constants.METHOD_COLUMN, constants.SAMPLE_COLUMN, "scope", "stage", "measure", "N"
]

# ==================================== FUNCTIONS ===================================== #

def sample_universe(
    raw_tables: Mapping[str, pd.DataFrame],
    methods: Sequence[str] = constants.DEFAULT_METHODS
) -> pd.DataFrame:
    """Every (method, sample_label) pair present as a column in the raw tables.

    Used to report groups without reads as zero instead of leaving them out.
    """
    frames = [
        pd.DataFrame({
            constants.METHOD_COLUMN: method,
            constants.SAMPLE_COLUMN: [str(col) for col in sample_columns(raw_tables[method])],
        })
        for method in methods if method in raw_tables
    ]
    if not frames:
        return pd.DataFrame(columns=[constants.METHOD_COLUMN, constants.SAMPLE_COLUMN])
    return pd.concat(frames, ignore_index=True)


def _group_index(
    scope: str,
    observed: pd.Index,
    universe: Optional[pd.DataFrame],
    methods: Sequence[str]
) -> pd.Index:
    if scope == "method":
        return pd.Index(list(methods), name=constants.METHOD_COLUMN)
    if universe is None:
        return observed
    if scope == "sample":
        labels = pd.unique(universe[constants.SAMPLE_COLUMN].astype(str))
        return pd.Index(labels, name=constants.SAMPLE_COLUMN).union(observed, sort=False)
    pairs = pd.MultiIndex.from_frame(
        universe[SCOPE_COLUMNS[scope]].astype(str).drop_duplicates()
    )
    return pairs.union(observed, sort=False)


def aggregate_counts(
    records: pd.DataFrame,
    stage: str,
    scope: str,
    retained: Optional[Iterable[CombKey]] = None,
    universe: Optional[pd.DataFrame] = None,
    methods: Sequence[str] = constants.DEFAULT_METHODS
) -> pd.DataFrame:
    """Read and feature totals of one stage, grouped by one scope.

    Args:
        records:  Long-form records of the stage.
        stage:    Stage label ('raw', 'singleton', 'abundance').
        scope:    Grouping ('method', 'sample', 'method_sample').
        retained: If given, only records whose key is in this set are counted.
        universe: (method, sample_label) pairs that must appear in the output,
                  with N = 0 where they hold no records.
        methods:  Ordered method labels.

    Returns:
        Long DataFrame with columns method, sample_label, scope, stage,
        measure ('reads' or 'features') and N.
    """
    if scope not in SCOPE_COLUMNS:
        raise ValueError(f"Invalid scope: {scope}. Must be one of {list(SCOPE_COLUMNS)}")
    if stage not in constants.STAGES:
        raise ValueError(f"Invalid stage: {stage}. Must be one of {list(constants.STAGES)}")

    if retained is not None:
        records = select_keys(records, retained)
    group_cols = SCOPE_COLUMNS[scope]

    frame = records[constants.RECORD_COLUMNS].copy()
    frame[constants.METHOD_COLUMN] = frame[constants.METHOD_COLUMN].astype(str)
    frame[constants.SAMPLE_COLUMN] = frame[constants.SAMPLE_COLUMN].astype(str)

    reads = frame.groupby(group_cols)[constants.COUNT_COLUMN].sum()
    key_cols = list(dict.fromkeys(group_cols + [constants.METHOD_COLUMN, constants.FEATURE_ID_COLUMN]))
    features = frame.drop_duplicates(subset=key_cols).groupby(group_cols).size()

    index = _group_index(scope, reads.index, universe, methods)
    counts = (
        pd.DataFrame({"reads": reads, "features": features})
        .reindex(index, fill_value=0)
        .fillna(0)
        .astype("int64")
        .reset_index()
    )

    aggregated = counts.melt(
        id_vars=group_cols, value_vars=list(constants.MEASURES),
        var_name="measure", value_name="N"
    )
    for column in (constants.METHOD_COLUMN, constants.SAMPLE_COLUMN):
        if column not in aggregated.columns:
            aggregated[column] = None
    aggregated["scope"] = scope
    aggregated["stage"] = stage
    aggregated[constants.METHOD_COLUMN] = aggregated[constants.METHOD_COLUMN].astype(method_dtype(methods))
    return aggregated[AGGREGATE_COLUMNS]


def aggregate_all_stages(
    stages: Mapping[str, pd.DataFrame],
    universe: Optional[pd.DataFrame] = None,
    retained: Optional[Mapping[str, Iterable[CombKey]]] = None,
    methods: Sequence[str] = constants.DEFAULT_METHODS
) -> pd.DataFrame:
    """Run `aggregate_counts` for every stage × scope and stack the results.

    Args:
        stages:   Records per stage label.
        universe: See `aggregate_counts`.
        retained: Optional key set per stage label, applied to that stage's records.
        methods:  Ordered method labels.
    """
    retained = retained or {}
    frames = [
        aggregate_counts(
            stages[stage], stage, scope,
            retained=retained.get(stage), universe=universe, methods=methods
        )
        for stage in constants.STAGES if stage in stages
        for scope in SCOPE_COLUMNS
    ]
    aggregated = pd.concat(frames, ignore_index=True)
    aggregated["stage"] = pd.Categorical(
        aggregated["stage"], categories=list(constants.STAGES), ordered=True
    )
    aggregated["measure"] = pd.Categorical(
        aggregated["measure"], categories=list(constants.MEASURES), ordered=True
    )
    aggregated[constants.METHOD_COLUMN] = aggregated[constants.METHOD_COLUMN].astype(method_dtype(methods))
    aggregated = aggregated.sort_values(
        ["measure", "stage", "scope", constants.METHOD_COLUMN, constants.SAMPLE_COLUMN],
        kind="mergesort"
    ).reset_index(drop=True)
    logger.debug(f"Aggregated {len(aggregated)} counts across {len(frames)} stage/scope slices")
    return aggregated
