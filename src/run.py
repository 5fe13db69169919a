"""
Clustering Pipeline Comparison
----------------------------------------------------------------------------------------
Compares the OTU/ASV tables produced by several sequence-clustering pipelines from the
same sequencing run: features and reads recovered per method and per sample, before
and after singleton removal and the mean relative abundance filter, plus the features
found in the mock-community samples.
"""
# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import argparse
import logging
import sys
from pathlib import Path

# Third-Party Imports
import pandas as pd

# Local Imports
parent_dir = Path(__file__).resolve().parent
sys.path.append(str(parent_dir))

from otu_compare import constants
from otu_compare.comparison import ComparisonPipeline
from otu_compare.config import get_config
from otu_compare.errors import ComparisonError
from otu_compare.logger import setup_logging

# ========================== INITIALIZATION & CONFIGURATION ========================== #

pd.set_option('display.max_colwidth', None)

logger = logging.getLogger("otu_compare")

# =================================== MAIN WORKFLOW ================================== #

def main(config_path: Path = constants.DEFAULT_CONFIG, verbose: bool = False) -> int:
    """Run the comparison and return the process exit status."""
    config = get_config(config_path)
    setup_logging(config.get("log_dir", constants.DEFAULT_LOG_DIR))
    try:
        ComparisonPipeline(config, verbose=verbose).run()
    except ComparisonError as e:
        logger.error(f"Comparison aborted: {e}")
        return 1
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Compare clustering pipeline outputs.")
    parser.add_argument(
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG,
        help="Path to the configuration file.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Keep progress bars on screen after completion.",
    )
    args = parser.parse_args()
    sys.exit(main(args.config, args.verbose))
