"""
Shared fixtures: three small abundance tables from the same (tiny) sequencing run.

dada2    ACGT common, TTGA absolute singleton, CCAG abundant singleton, GGGG empty;
         nothing in mock2.
swarm    otu1 dominant, otu2 absolute singleton, otu3 abundant singleton below the
         abundance threshold, otu4 rare across two samples.
vsearch  otu1 absolute singleton (same id as a kept swarm feature), otu2 common;
         s2 failed (all zero).
"""
import pandas as pd
import pytest

METHODS = ["dada2", "swarm", "vsearch"]
SAMPLES = ["s1", "s2", "mock1", "mock2"]


def make_raw_table(feature_ids, **samples) -> pd.DataFrame:
    table = pd.DataFrame({"feature_id": feature_ids})
    for sample, counts in samples.items():
        table[sample] = counts
    return table


@pytest.fixture
def methods():
    return list(METHODS)


@pytest.fixture
def raw_tables():
    return {
        "dada2": make_raw_table(
            ["ACGT", "TTGA", "CCAG", "GGGG"],
            s1=[10, 1, 0, 0], s2=[5, 0, 0, 0], mock1=[3, 0, 7, 0], mock2=[0, 0, 0, 0],
        ),
        "swarm": make_raw_table(
            ["otu1", "otu2", "otu3", "otu4"],
            s1=[200000, 0, 2, 1], s2=[50, 1, 0, 0], mock1=[200000, 0, 0, 1], mock2=[6, 0, 0, 0],
        ),
        "vsearch": make_raw_table(
            ["otu1", "otu2"],
            s1=[1, 30], s2=[0, 0], mock1=[0, 12], mock2=[0, 8],
        ),
    }


@pytest.fixture
def config(tmp_path):
    return {
        "methods": list(METHODS),
        "mock_samples": ["mock1", "mock2"],
        "casefold_methods": ["dada2"],
        "threads": 2,
        "output_dir": tmp_path / "results",
        "figures": {"enabled": False},
    }
