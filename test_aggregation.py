"""
Tests for read/feature totals per stage and scope.
"""
import pandas as pd
import pytest

from otu_compare.tables.aggregation import (
    aggregate_all_stages, aggregate_counts, sample_universe
)
from otu_compare.tables.filtering import filter_singletons
from otu_compare.tables.keys import CombKey
from otu_compare.tables.normalization import normalize_table
from otu_compare.tables.summary import get_summary

from conftest import make_raw_table


@pytest.fixture
def summary(raw_tables, methods):
    frames = [get_summary(normalize_table(raw_tables[m], m, methods)) for m in methods]
    return pd.concat(frames, ignore_index=True)


def lookup(aggregate, measure, method=None, sample=None, stage=None):
    mask = aggregate["measure"] == measure
    if method is None:
        mask &= aggregate["method"].isna()
    else:
        mask &= aggregate["method"] == method
    if sample is None:
        mask &= aggregate["sample_label"].isna()
    else:
        mask &= aggregate["sample_label"] == sample
    if stage is not None:
        mask &= aggregate["stage"] == stage
    rows = aggregate.loc[mask, "N"]
    assert len(rows) == 1, f"expected one row, found {len(rows)}"
    return int(rows.iloc[0])


def test_aggregate_by_method(summary, methods):
    aggregate = aggregate_counts(summary, "raw", "method", methods=methods)

    assert lookup(aggregate, "reads", method="dada2") == 26
    assert lookup(aggregate, "reads", method="swarm") == 400061
    assert lookup(aggregate, "reads", method="vsearch") == 51
    assert lookup(aggregate, "features", method="dada2") == 3
    assert lookup(aggregate, "features", method="swarm") == 4
    assert set(aggregate["scope"]) == {"method"}
    assert set(aggregate["stage"]) == {"raw"}


def test_aggregate_by_sample_counts_keys_across_methods(summary, methods):
    aggregate = aggregate_counts(summary, "raw", "sample", methods=methods)

    assert lookup(aggregate, "reads", sample="s2") == 5 + 51
    # swarm/otu1 and vsearch/otu1 are different features
    assert lookup(aggregate, "features", sample="s1") == 2 + 3 + 2


def test_aggregate_with_retained_keys(summary, methods):
    retained = {CombKey("swarm", "otu1"), CombKey("vsearch", "otu2")}

    aggregate = aggregate_counts(summary, "abundance", "method", retained=retained, methods=methods)

    assert lookup(aggregate, "reads", method="swarm") == 400056
    assert lookup(aggregate, "features", method="vsearch") == 1
    # dada2 has nothing retained but is still reported
    assert lookup(aggregate, "reads", method="dada2") == 0
    assert lookup(aggregate, "features", method="dada2") == 0


def test_failed_sample_reported_as_zero(summary, raw_tables, methods):
    universe = sample_universe(raw_tables, methods)

    aggregate = aggregate_counts(summary, "raw", "method_sample", universe=universe, methods=methods)

    assert lookup(aggregate, "reads", method="vsearch", sample="s2") == 0
    assert lookup(aggregate, "features", method="vsearch", sample="s2") == 0
    assert lookup(aggregate, "reads", method="dada2", sample="mock2") == 0
    assert len(aggregate) == 3 * 4 * 2


def test_failed_sample_absent_without_universe(summary, methods):
    aggregate = aggregate_counts(summary, "raw", "method_sample", methods=methods)

    vsearch_s2 = (aggregate["method"] == "vsearch") & (aggregate["sample_label"] == "s2")
    assert not vsearch_s2.any()


def test_all_zero_sample_by_sample_scope(methods):
    raw = {"dada2": make_raw_table(["F1", "F2"], a=[3, 1], failed=[0, 0])}
    summary = get_summary(normalize_table(raw["dada2"], "dada2", methods))

    aggregate = aggregate_counts(
        summary, "raw", "sample", universe=sample_universe(raw, methods), methods=methods
    )

    assert lookup(aggregate, "reads", sample="failed") == 0
    assert lookup(aggregate, "reads", sample="a") == 4


def test_aggregate_rejects_unknown_scope(summary):
    with pytest.raises(ValueError, match="Invalid scope"):
        aggregate_counts(summary, "raw", "taxon")


def test_aggregate_all_stages(summary, raw_tables, methods):
    singletons = filter_singletons(summary)
    stages = {"raw": summary, "singleton": singletons.table}

    aggregate = aggregate_all_stages(
        stages, universe=sample_universe(raw_tables, methods), methods=methods
    )

    assert set(aggregate["stage"].astype(str)) == {"raw", "singleton"}
    assert set(aggregate["scope"]) == {"method", "sample", "method_sample"}
    assert lookup(aggregate, "reads", method="dada2", stage="singleton") == 25
    assert lookup(aggregate, "features", method="swarm", stage="singleton") == 3
    assert lookup(aggregate, "reads", method="vsearch", stage="singleton") == 50


def test_aggregate_follows_method_order(summary, raw_tables):
    order = ["vsearch", "dada2", "swarm"]

    aggregate = aggregate_all_stages({"raw": summary}, methods=order)

    by_method = aggregate.loc[(aggregate["scope"] == "method") & (aggregate["measure"] == "reads")]
    assert by_method["method"].astype(str).tolist() == order
    assert list(aggregate["method"].cat.categories) == order
