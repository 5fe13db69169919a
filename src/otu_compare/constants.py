from pathlib import Path

# ==================================================================================== #
# PROGRESS BAR
# ==================================================================================== #

# Total character width of the progress bar text
DEFAULT_PROGRESS_TEXT_N: int = 50
# Width of the progress bar
DEFAULT_BAR_WIDTH: int = 40

# ==================================================================================== #
# SETTINGS
# ==================================================================================== #
# Go up two levels
DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "references" / "config.yaml"
DEFAULT_OUTPUT_DIR = "./results"
DEFAULT_LOG_DIR = "./results/logs"
DEFAULT_THREADS = 3

# ==================================================================================== #
# METHODS
# ==================================================================================== #
# Display order of the clustering pipelines. Not alphabetical.
DEFAULT_METHODS = ("dada2", "swarm", "vsearch")

# ==================================================================================== #
# CANONICAL SCHEMA
# ==================================================================================== #
FEATURE_ID_COLUMN = "feature_id"
METHOD_COLUMN = "method"
SAMPLE_COLUMN = "sample_label"
COUNT_COLUMN = "count"
REL_ABUN_COLUMN = "rel_abun"

RECORD_COLUMNS = [METHOD_COLUMN, FEATURE_ID_COLUMN, SAMPLE_COLUMN, COUNT_COLUMN]
SUMMARY_COLUMNS = RECORD_COLUMNS + [REL_ABUN_COLUMN]

# ==================================================================================== #
# FILTERING
# ==================================================================================== #
# Minimum mean relative abundance of a feature across the samples of its method
DEFAULT_MIN_MEAN_REL_ABUNDANCE = 1e-5
# Absolute singleton: at most this many reads in at most this many samples
SINGLETON_MAX_COUNT = 1
SINGLETON_MAX_PREVALENCE = 1
# Where the per-method sample count for the mean comes from: 'filtered' or 'unfiltered'
DEFAULT_N_SAMPLES_FROM = "filtered"

# ==================================================================================== #
# AGGREGATION
# ==================================================================================== #
STAGES = ("raw", "singleton", "abundance")
SCOPES = ("method", "sample", "method_sample")
MEASURES = ("reads", "features")

# ==================================================================================== #
# MOCK COMMUNITIES
# ==================================================================================== #
DEFAULT_MOCK_SAMPLES = ("mock1", "mock2")
DEFAULT_CASEFOLD_METHODS = ("dada2",)

# ==================================================================================== #
# OUTPUTS
# ==================================================================================== #
AGGREGATE_COUNTS_FILE = "aggregate_counts.tsv"
OTU_SAMPLE_SUMMARY_FILE = "otu_sample_summary.tsv"
SINGLETONS_FILE = "singletons.tsv"
