"""
Tests for singleton removal and the mean relative abundance filter.
"""
import pandas as pd
import pytest

from otu_compare.errors import DivisionError
from otu_compare.tables.filtering import (
    ABSOLUTE_SINGLETON, ABUNDANT_SINGLETON, NON_SINGLETON, filter_abundance,
    filter_singletons, prevalence, samples_per_method
)
from otu_compare.tables.keys import CombKey, select_keys
from otu_compare.tables.normalization import normalize_table
from otu_compare.tables.summary import get_summary

from conftest import make_raw_table


@pytest.fixture
def summary(raw_tables, methods):
    frames = [get_summary(normalize_table(raw_tables[m], m, methods)) for m in methods]
    return pd.concat(frames, ignore_index=True)

# ================================ PREVALENCE FILTER ================================= #

def test_prevalence_classifies_singletons(summary):
    prev = prevalence(summary).set_index(["method", "feature_id"])

    assert prev.loc[("dada2", "TTGA"), "singleton_class"] == ABSOLUTE_SINGLETON
    assert prev.loc[("dada2", "CCAG"), "singleton_class"] == ABUNDANT_SINGLETON
    assert prev.loc[("dada2", "ACGT"), "singleton_class"] == NON_SINGLETON
    assert prev.loc[("swarm", "otu4"), "total_count"] == 2
    assert prev.loc[("swarm", "otu4"), "prevalence"] == 2
    assert prev.loc[("swarm", "otu4"), "singleton_class"] == NON_SINGLETON


def test_filter_singletons_is_keyed_per_method(summary):
    result = filter_singletons(summary)

    assert result.absolute_singletons == {
        CombKey("dada2", "TTGA"), CombKey("swarm", "otu2"), CombKey("vsearch", "otu1")
    }
    assert result.abundant_singletons == {
        CombKey("dada2", "CCAG"), CombKey("swarm", "otu3")
    }
    # vsearch/otu1 is removed, swarm/otu1 is not
    assert CombKey("swarm", "otu1") in result.retained
    assert CombKey("vsearch", "otu1") not in result.retained
    assert CombKey("dada2", "CCAG") in result.retained


def test_filter_singletons_removes_exactly_prevalence_rows(summary):
    result = filter_singletons(summary)
    prev = result.prevalence.set_index(["method", "feature_id"])

    removed_rows = sum(prev.loc[tuple(key), "prevalence"] for key in result.absolute_singletons)
    assert len(summary) - len(result.table) == removed_rows


def test_filter_singletons_removes_all_rows_of_key():
    summary = pd.DataFrame({
        "method": ["swarm", "swarm", "swarm"],
        "feature_id": ["x", "y", "y"],
        "sample_label": ["s1", "s1", "s2"],
        "count": [1, 4, 2],
        "rel_abun": [0.2, 0.8, 1.0],
    })
    result = filter_singletons(summary)

    assert result.table["feature_id"].tolist() == ["y", "y"]


def test_single_feature_scenario(methods):
    raw = make_raw_table(["F1", "F2", "F3"], a=[5, 1, 0], b=[0, 0, 0], c=[0, 0, 0])
    summary = get_summary(normalize_table(raw, "dada2", methods))

    result = filter_singletons(summary)

    assert result.absolute_singletons == {CombKey("dada2", "F2")}
    assert result.table["feature_id"].tolist() == ["F1"]

# ================================= ABUNDANCE FILTER ================================= #

def test_samples_per_method(summary):
    assert samples_per_method(summary) == {"dada2": 3, "swarm": 4, "vsearch": 3}


def test_filter_abundance_threshold(summary):
    singletons = filter_singletons(summary)
    result = filter_abundance(singletons.table)

    assert result.retained == {
        CombKey("dada2", "ACGT"), CombKey("dada2", "CCAG"),
        CombKey("swarm", "otu1"), CombKey("vsearch", "otu2"),
    }
    means = result.means.set_index(["method", "feature_id"])
    assert means.loc[("swarm", "otu3"), "tax_mean"] == pytest.approx(2 / 200003 / 4)
    assert not means.loc[("swarm", "otu4"), "retained"]


def test_filter_abundance_mean_over_all_samples():
    table = pd.DataFrame({
        "method": ["dada2", "dada2", "dada2"],
        "feature_id": ["F", "G", "G"],
        "sample_label": ["a", "b", "c"],
        "count": [1, 9, 3],
        "rel_abun": [0.1, 1.0, 1.0],
    })
    result = filter_abundance(table, n_samples={"dada2": 3})

    means = result.means.set_index("feature_id")
    assert means.loc["F", "rel_abun_overall"] == pytest.approx(0.1)
    assert means.loc["F", "tax_mean"] == pytest.approx(0.1 / 3)
    assert CombKey("dada2", "F") in result.retained


def test_filter_abundance_threshold_is_inclusive():
    table = pd.DataFrame({
        "method": ["swarm"],
        "feature_id": ["F"],
        "sample_label": ["a"],
        "count": [1],
        "rel_abun": [1e-5],
    })
    assert filter_abundance(table, n_samples={"swarm": 1}).retained == {CombKey("swarm", "F")}
    assert filter_abundance(table, n_samples={"swarm": 2}).retained == frozenset()


def test_filter_abundance_is_order_invariant(summary):
    table = filter_singletons(summary).table
    shuffled = table.sample(frac=1, random_state=7).reset_index(drop=True)

    original = filter_abundance(table)
    reordered = filter_abundance(shuffled)

    assert reordered.retained == original.retained
    pd.testing.assert_frame_equal(reordered.means, original.means)


def test_filter_abundance_is_idempotent(summary):
    table = filter_singletons(summary).table
    first = filter_abundance(table)

    second = filter_abundance(select_keys(table, first.retained), n_samples=first.n_samples)
    assert second.retained == first.retained


def test_filter_abundance_uses_given_denominator(summary):
    table = filter_singletons(summary).table
    n_samples = samples_per_method(summary)

    result = filter_abundance(table, n_samples=n_samples)
    assert result.n_samples == {"dada2": 3, "swarm": 4, "vsearch": 3}


def test_filter_abundance_rejects_zero_samples(summary):
    with pytest.raises(DivisionError) as excinfo:
        filter_abundance(summary, n_samples={"dada2": 3, "swarm": 0, "vsearch": 3})
    assert excinfo.value.method == "swarm"


def test_filter_abundance_rejects_method_without_samples(summary):
    table = summary.loc[summary["method"] != "vsearch"]

    with pytest.raises(DivisionError) as excinfo:
        filter_abundance(table, methods=["dada2", "swarm", "vsearch"])
    assert excinfo.value.method == "vsearch"
    assert isinstance(excinfo.value, ZeroDivisionError)
