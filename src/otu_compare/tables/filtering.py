# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

# Third-Party Imports
import numpy as np
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from otu_compare import constants
from otu_compare.errors import DivisionError
from otu_compare.tables.keys import KeySet, comb_keys, select_keys

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("otu_compare")

ABSOLUTE_SINGLETON = "absolute_singleton"
ABUNDANT_SINGLETON = "abundant_singleton"
NON_SINGLETON = "non_singleton"

_KEY_COLUMNS = [constants.METHOD_COLUMN, constants.FEATURE_ID_COLUMN]

# ================================= RESULT CONTAINERS ================================ #

@dataclass(frozen=True)
class SingletonFilterResult:
    table: pd.DataFrame
    retained: KeySet
    prevalence: pd.DataFrame
    absolute_singletons: KeySet
    abundant_singletons: KeySet


@dataclass(frozen=True)
class AbundanceFilterResult:
    retained: KeySet
    means: pd.DataFrame
    n_samples: Dict[str, int]

# ================================ PREVALENCE FILTER ================================= #

def prevalence(summary: pd.DataFrame) -> pd.DataFrame:
    """Total count and prevalence of every (method, feature) combination.

    Args:
        summary: Long-form summary table.

    Returns:
        DataFrame with columns method, feature_id, total_count, prevalence and
        singleton_class.
    """
    prev = (
        summary
        .assign(_present=summary[constants.COUNT_COLUMN].gt(0).astype("int64"))
        .groupby(_KEY_COLUMNS, observed=True, sort=True)
        .agg(total_count=(constants.COUNT_COLUMN, "sum"), prevalence=("_present", "sum"))
        .reset_index()
    )
    single_sample = prev["prevalence"] <= constants.SINGLETON_MAX_PREVALENCE
    low_count = prev["total_count"] <= constants.SINGLETON_MAX_COUNT
    prev["singleton_class"] = np.select(
        [single_sample & low_count, single_sample & ~low_count],
        [ABSOLUTE_SINGLETON, ABUNDANT_SINGLETON],
        default=NON_SINGLETON
    )
    return prev


def absolute_singletons(prev: pd.DataFrame) -> KeySet:
    return comb_keys(prev.loc[prev["singleton_class"] == ABSOLUTE_SINGLETON])


def abundant_singletons(prev: pd.DataFrame) -> KeySet:
    return comb_keys(prev.loc[prev["singleton_class"] == ABUNDANT_SINGLETON])


def filter_singletons(summary: pd.DataFrame) -> SingletonFilterResult:
    """Remove absolute singletons from the combined summary table.

    A combination is an absolute singleton when at most one read in at most one
    sample supports it. All rows of that combination are removed. Abundant
    singletons (several reads, one sample) are reported but kept.
    """
    prev = prevalence(summary)
    absolute = absolute_singletons(prev)
    abundant = abundant_singletons(prev)

    table = select_keys(summary, absolute, invert=True)

    per_method = prev.groupby(constants.METHOD_COLUMN, observed=True)["singleton_class"]
    for method, classes in per_method:
        logger.info(
            f"{method}: {(classes == ABSOLUTE_SINGLETON).sum()} absolute singletons "
            f"removed, {(classes == ABUNDANT_SINGLETON).sum()} abundant singletons kept"
        )

    return SingletonFilterResult(
        table=table,
        retained=comb_keys(table),
        prevalence=prev,
        absolute_singletons=absolute,
        abundant_singletons=abundant
    )

# ================================= ABUNDANCE FILTER ================================= #

def samples_per_method(table: pd.DataFrame) -> Dict[str, int]:
    """Number of distinct sample labels observed for each method."""
    counts = table.groupby(constants.METHOD_COLUMN, observed=True)[constants.SAMPLE_COLUMN].nunique()
    return {str(method): int(n) for method, n in counts.items()}


def filter_abundance(
    table: pd.DataFrame,
    n_samples: Optional[Mapping[str, int]] = None,
    min_mean: float = constants.DEFAULT_MIN_MEAN_REL_ABUNDANCE,
    methods: Optional[Iterable[str]] = None
) -> AbundanceFilterResult:
    """Keep combinations whose mean relative abundance reaches `min_mean`.

    The mean is the summed relative abundance of a combination divided by the
    number of samples of its method.

    Args:
        table:     Singleton-filtered summary table.
        n_samples: Samples per method. Derived from `table` when omitted.
        min_mean:  Minimum mean relative abundance.
        methods:   Methods that must have a sample count, on top of those
                   present in `table`.

    Returns:
        AbundanceFilterResult with the retained key set and per-key means.

    Raises:
        DivisionError: If a method has no samples to average over.
    """
    if n_samples is None:
        n_samples = samples_per_method(table)
    n_samples = {str(method): int(n) for method, n in n_samples.items()}

    # Fixed summation order so the mean does not depend on row order
    ordered = table.sort_values(
        _KEY_COLUMNS + [constants.SAMPLE_COLUMN], kind="mergesort"
    )
    means = (
        ordered
        .groupby(_KEY_COLUMNS, observed=True, sort=True)[constants.REL_ABUN_COLUMN]
        .sum()
        .rename("rel_abun_overall")
        .reset_index()
    )
    method_labels = means[constants.METHOD_COLUMN].astype(str)

    required = set(method_labels.unique()) | set(methods or [])
    for method in sorted(required):
        if n_samples.get(method, 0) <= 0:
            raise DivisionError(
                "No samples observed; mean relative abundance is undefined",
                method=method
            )

    means["n_samples"] = method_labels.map(n_samples).astype("int64")
    means["tax_mean"] = means["rel_abun_overall"] / means["n_samples"]
    means["retained"] = means["tax_mean"] >= min_mean

    retained = comb_keys(means.loc[means["retained"]])
    logger.info(
        f"Abundance filter (mean ≥ {min_mean:g}): "
        f"{len(retained)} of {len(means)} combinations retained"
    )
    return AbundanceFilterResult(retained=retained, means=means, n_samples=n_samples)
