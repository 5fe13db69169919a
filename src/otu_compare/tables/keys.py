# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import FrozenSet, Iterable, NamedTuple, Sequence

# Third-Party Imports
import numpy as np
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from otu_compare import constants
from otu_compare.errors import ConsistencyError, SchemaError

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("otu_compare")

# ================================ COMBINATION KEYS ================================== #

class CombKey(NamedTuple):
    """Identity of one feature as reported by one method."""
    method: str
    feature_id: str


KeySet = FrozenSet[CombKey]


def method_dtype(methods: Sequence[str]) -> pd.CategoricalDtype:
    """Ordered categorical dtype for the method column."""
    return pd.CategoricalDtype(categories=list(methods), ordered=True)


def set_method_order(
    df: pd.DataFrame,
    methods: Sequence[str] = constants.DEFAULT_METHODS
) -> pd.DataFrame:
    """Return a copy of `df` whose method column follows the given method order.

    Raises:
        SchemaError: If the frame holds a method not in `methods`.
    """
    df = df.copy()
    labels = df[constants.METHOD_COLUMN].astype(str)
    unknown = sorted(set(labels.unique()) - set(methods))
    if unknown:
        raise SchemaError(
            f"Unknown method label(s) {unknown}; expected one of {list(methods)}",
            method=unknown[0]
        )
    df[constants.METHOD_COLUMN] = labels.astype(method_dtype(methods))
    return df


def comb_index(df: pd.DataFrame) -> pd.MultiIndex:
    return pd.MultiIndex.from_arrays(
        [
            df[constants.METHOD_COLUMN].astype(str).to_numpy(),
            df[constants.FEATURE_ID_COLUMN].astype(str).to_numpy(),
        ],
        names=[constants.METHOD_COLUMN, constants.FEATURE_ID_COLUMN]
    )


def comb_keys(df: pd.DataFrame) -> KeySet:
    """Distinct (method, feature_id) keys present in a frame."""
    return frozenset(CombKey(*key) for key in comb_index(df).unique())


def select_keys(
    df: pd.DataFrame,
    keys: Iterable[CombKey],
    invert: bool = False
) -> pd.DataFrame:
    """Rows of `df` whose combination key is in `keys` (or not, with `invert`).

    Membership is tested on the two-level key, so a feature id shared by two
    methods never matches across them.
    """
    keys = [tuple(key) for key in keys]
    if keys:
        mask = comb_index(df).isin(keys)
    else:
        mask = np.zeros(len(df), dtype=bool)
    if invert:
        mask = ~mask
    return df.loc[mask].reset_index(drop=True)


def check_subset(downstream: KeySet, upstream: KeySet, stage: str) -> None:
    """Raise ConsistencyError if `downstream` has keys absent from `upstream`."""
    extra = downstream - upstream
    if extra:
        first = sorted(extra)[0]
        raise ConsistencyError(
            f"Stage '{stage}' holds {len(extra)} key(s) missing from its upstream stage",
            method=first.method,
            feature_id=first.feature_id
        )
    logger.debug(f"Stage '{stage}': {len(downstream)} of {len(upstream)} keys retained")
