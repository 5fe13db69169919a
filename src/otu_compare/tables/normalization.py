# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from collections import Counter
from typing import Iterable, List, Optional, Sequence

# Third-Party Imports
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from otu_compare import constants
from otu_compare.errors import SchemaError
from otu_compare.tables.keys import set_method_order

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("otu_compare")

# ================================ TABLE NORMALIZATION =============================== #

def clean_sample_labels(
    columns: Iterable[str],
    prefix: Optional[str] = None,
    suffix: Optional[str] = None,
    method: Optional[str] = None
) -> List[str]:
    """Strip a pipeline-specific prefix and suffix from sample column names.

    Args:
        columns: Sample column names as exported by the pipeline.
        prefix:  Leading text to remove where present.
        suffix:  Trailing text to remove where present.
        method:  Method label, used in error messages.

    Returns:
        Cleaned labels, in input order.

    Raises:
        SchemaError: If two columns clean to the same label.
    """
    labels = []
    for column in map(str, columns):
        label = column
        if prefix and label.startswith(prefix):
            label = label[len(prefix):]
        if suffix and label.endswith(suffix):
            label = label[:-len(suffix)]
        labels.append(label)

    duplicated = sorted(label for label, n in Counter(labels).items() if n > 1)
    if duplicated:
        raise SchemaError(
            f"Sample columns normalize to duplicate labels: {duplicated}",
            method=method
        )
    return labels


def sample_columns(raw: pd.DataFrame) -> List[str]:
    return [col for col in raw.columns if col != constants.FEATURE_ID_COLUMN]


def validate_raw_table(raw: pd.DataFrame, method: str) -> pd.DataFrame:
    """Check a raw table against the canonical schema and return its counts.

    Args:
        raw:    Wide table with a `feature_id` column and one column per sample.
        method: Method label, used in error messages.

    Returns:
        Integer count matrix (features × samples) indexed like `raw`.

    Raises:
        SchemaError: Missing identifier column, no sample columns, duplicate
                     sample labels or feature ids, or counts that are not
                     non-negative integers.
    """
    if constants.FEATURE_ID_COLUMN not in raw.columns:
        raise SchemaError(
            f"Missing identifier column '{constants.FEATURE_ID_COLUMN}'",
            method=method
        )
    duplicated_cols = sorted(set(map(str, raw.columns[raw.columns.duplicated()])))
    if duplicated_cols:
        raise SchemaError(f"Duplicate columns: {duplicated_cols}", method=method)

    samples = sample_columns(raw)
    if not samples:
        raise SchemaError("Table has no sample columns", method=method)

    feature_ids = raw[constants.FEATURE_ID_COLUMN].astype(str)
    duplicated_ids = feature_ids[feature_ids.duplicated()]
    if not duplicated_ids.empty:
        raise SchemaError(
            f"Duplicate feature ids ({duplicated_ids.nunique()} distinct)",
            method=method,
            feature_id=duplicated_ids.iloc[0]
        )

    counts = raw[samples].apply(pd.to_numeric, errors="coerce")
    checks = [
        (counts.isna().any(axis=1), "Missing or non-numeric count"),
        ((counts < 0).any(axis=1), "Negative count"),
        ((counts % 1 != 0).any(axis=1), "Non-integer count"),
    ]
    for bad_rows, message in checks:
        if bad_rows.any():
            raise SchemaError(
                message, method=method, feature_id=feature_ids[bad_rows].iloc[0]
            )
    return counts.astype("int64")


def drop_empty_features(raw: pd.DataFrame) -> pd.DataFrame:
    """Remove features whose counts are zero in every sample."""
    counts = raw[sample_columns(raw)].apply(pd.to_numeric, errors="coerce")
    return raw.loc[counts.sum(axis=1) > 0].reset_index(drop=True)


def normalize_table(
    raw: pd.DataFrame,
    method: str,
    methods: Sequence[str] = constants.DEFAULT_METHODS
) -> pd.DataFrame:
    """Reshape one method's wide table into canonical long-form records.

    All-zero features are dropped first. Zero cells of the remaining features
    are kept; dropping them is left to the summary step.

    Args:
        raw:     Wide table (feature_id + sample columns).
        method:  Label of the method that produced the table.
        methods: Ordered method labels.

    Returns:
        DataFrame with columns method, feature_id, sample_label, count.
    """
    if method not in methods:
        raise SchemaError(f"Method not in {list(methods)}", method=method)

    counts = validate_raw_table(raw, method)
    counts.insert(0, constants.FEATURE_ID_COLUMN, raw[constants.FEATURE_ID_COLUMN].astype(str))
    table = drop_empty_features(counts)
    n_dropped = len(counts) - len(table)
    if n_dropped:
        logger.debug(f"{method}: dropped {n_dropped} all-zero features")

    records = table.melt(
        id_vars=constants.FEATURE_ID_COLUMN,
        var_name=constants.SAMPLE_COLUMN,
        value_name=constants.COUNT_COLUMN
    )
    records.insert(0, constants.METHOD_COLUMN, method)
    records[constants.SAMPLE_COLUMN] = records[constants.SAMPLE_COLUMN].astype(str)
    records[constants.COUNT_COLUMN] = records[constants.COUNT_COLUMN].astype("int64")
    records = set_method_order(records, methods)

    logger.debug(
        f"{method}: {len(table)} features × {len(sample_columns(table))} samples "
        f"→ {len(records)} records"
    )
    return records[constants.RECORD_COLUMNS]
