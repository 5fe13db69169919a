# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

# Third‑Party Imports
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from otu_compare import constants
from otu_compare.config import get_methods
from otu_compare.errors import SchemaError
from otu_compare.figures.counts import plot_all_counts
from otu_compare.logger import _format_task_desc, get_progress_bar
from otu_compare.tables.aggregation import aggregate_all_stages, sample_universe
from otu_compare.tables.filtering import (
    AbundanceFilterResult, SingletonFilterResult, filter_abundance, filter_singletons,
    samples_per_method
)
from otu_compare.tables.keys import check_subset, comb_keys, select_keys, set_method_order
from otu_compare.tables.mock import extract_mock_ids
from otu_compare.tables.normalization import drop_empty_features, normalize_table
from otu_compare.tables.summary import get_summary, number_of_otus_samples
from otu_compare.utils.table_io import load_raw_table, write_identifier_lists, write_table

# ========================== INITIALISATION & CONFIGURATION ========================== #

logger = logging.getLogger("otu_compare")

N_SAMPLES_SOURCES = ("filtered", "unfiltered")

# ================================= RESULT CONTAINERS ================================ #

@dataclass
class ComparisonResults:
    overview: pd.DataFrame
    records: pd.DataFrame
    summary: pd.DataFrame
    singleton: SingletonFilterResult
    abundance: AbundanceFilterResult
    stages: Dict[str, pd.DataFrame]
    aggregate: pd.DataFrame
    mock_ids: Dict[Tuple[str, str], List[str]]

# ================================== MAIN PIPELINE =================================== #

class ComparisonPipeline:
    """Compares the abundance tables of several clustering methods.

    Each method's table is normalized to long form and summarized with relative
    abundances; the combined summary then goes through singleton removal and
    the mean relative abundance filter. Read and feature totals are kept for
    every stage, and mock-community features are extracted from the
    unfiltered summary.
    """

    def __init__(self, config: Dict[str, Any], verbose: bool = False):
        self.config = config
        self.verbose = verbose

        self.methods = get_methods(config)
        self.mock_samples = list(config.get("mock_samples") or constants.DEFAULT_MOCK_SAMPLES)
        self.casefold_methods = list(
            config.get("casefold_methods", constants.DEFAULT_CASEFOLD_METHODS) or []
        )
        self.threads = int(config.get("threads", constants.DEFAULT_THREADS))

        abundance_cfg = config.get("abundance_filter", {}) or {}
        self.min_mean = float(
            abundance_cfg.get("min_mean", constants.DEFAULT_MIN_MEAN_REL_ABUNDANCE)
        )
        self.n_samples_from = abundance_cfg.get(
            "n_samples_from", constants.DEFAULT_N_SAMPLES_FROM
        )
        if self.n_samples_from not in N_SAMPLES_SOURCES:
            raise ValueError(
                f"Invalid n_samples_from: {self.n_samples_from}. "
                f"Must be one of {list(N_SAMPLES_SOURCES)}"
            )

    def run(self) -> ComparisonResults:
        """Load the configured tables, compare them and write every output."""
        raw_tables = self.load_tables()
        results = self.compare(raw_tables)
        self.write_outputs(results, Path(self.config.get("output_dir", constants.DEFAULT_OUTPUT_DIR)))
        return results

    # ------------------------------------------------------------------ loading

    def load_tables(self) -> Dict[str, pd.DataFrame]:
        tables_cfg = self.config.get("tables", {}) or {}
        missing = [method for method in self.methods if method not in tables_cfg]
        if missing:
            raise ValueError(f"No table configured for method(s): {missing}")

        def _load(method: str) -> pd.DataFrame:
            table_cfg = dict(tables_cfg[method])
            return load_raw_table(table_cfg.pop("path"), method, **table_cfg)

        return self._run_per_method("Loading tables", _load, self.methods)

    def _run_per_method(self, description, func, methods) -> Dict[str, Any]:
        results: Dict[str, Any] = {}
        with ThreadPoolExecutor(max_workers=max(1, self.threads)) as executor:
            futures = {executor.submit(func, method): method for method in methods}
            with get_progress_bar(transient=not self.verbose) as progress:
                task = progress.add_task(_format_task_desc(description), total=len(futures))
                for future in as_completed(futures):
                    method = futures[future]
                    try:
                        results[method] = future.result()
                    except Exception as e:
                        logger.error(f"{description} failed for method '{method}': {e}")
                        raise
                    finally:
                        progress.update(task, advance=1)
        # Reassemble in method order, not completion order
        return {method: results[method] for method in methods}

    # --------------------------------------------------------------- comparison

    def compare(self, raw_tables: Dict[str, pd.DataFrame]) -> ComparisonResults:
        """Run every stage on in-memory raw tables (one per method)."""
        missing = [method for method in self.methods if method not in raw_tables]
        if missing:
            raise SchemaError(f"No abundance table for method(s) {missing}", method=missing[0])

        def _summarize(method: str) -> Tuple[pd.DataFrame, pd.DataFrame]:
            records = normalize_table(raw_tables[method], method, self.methods)
            return records, get_summary(records)

        per_method = self._run_per_method("Normalizing tables", _summarize, self.methods)
        records = self._concat([records for records, _ in per_method.values()])
        summary = self._concat([summary for _, summary in per_method.values()])
        overview = self._concat([
            number_of_otus_samples(drop_empty_features(raw_tables[method]), method, self.methods)
            for method in self.methods
        ])
        for row in overview.itertuples(index=False):
            logger.info(f"{row.method}: {row.n_otus} features across {row.n_samples} samples")

        singleton = filter_singletons(summary)
        check_subset(singleton.retained, comb_keys(summary), "singleton")

        n_samples = samples_per_method(
            singleton.table if self.n_samples_from == "filtered" else summary
        )
        abundance = filter_abundance(
            singleton.table, n_samples=n_samples, min_mean=self.min_mean, methods=self.methods
        )
        check_subset(abundance.retained, singleton.retained, "abundance")

        stages = {
            "raw": summary,
            "singleton": singleton.table,
            "abundance": select_keys(summary, abundance.retained),
        }
        aggregate = aggregate_all_stages(
            stages, universe=sample_universe(raw_tables, self.methods), methods=self.methods
        )
        mock_ids = extract_mock_ids(
            summary, self.mock_samples, self.methods, casefold=self.casefold_methods
        )

        return ComparisonResults(
            overview=overview,
            records=records,
            summary=summary,
            singleton=singleton,
            abundance=abundance,
            stages=stages,
            aggregate=aggregate,
            mock_ids=mock_ids,
        )

    def _concat(self, frames: List[pd.DataFrame]) -> pd.DataFrame:
        return set_method_order(pd.concat(frames, ignore_index=True), self.methods)

    # ------------------------------------------------------------------ outputs

    def write_outputs(self, results: ComparisonResults, output_dir: Path) -> None:
        tables_dir = output_dir / "tables"
        write_table(results.aggregate, tables_dir / constants.AGGREGATE_COUNTS_FILE)
        write_table(results.overview, tables_dir / constants.OTU_SAMPLE_SUMMARY_FILE)
        write_table(results.singleton.prevalence, tables_dir / constants.SINGLETONS_FILE)
        write_identifier_lists(results.mock_ids, output_dir / "mock")

        figures_cfg = self.config.get("figures", {}) or {}
        if figures_cfg.get("enabled", False):
            plot_all_counts(
                results.aggregate,
                output_dir / "figures",
                methods=self.methods,
                save_as=list(figures_cfg.get("save_as", ["html"])),
                min_mean=self.min_mean
            )
        logger.info(f"Outputs written to '{output_dir}'")
