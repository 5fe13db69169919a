# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from typing import Dict, Iterable, List, Sequence, Tuple

# Third-Party Imports
import pandas as pd

# ================================== LOCAL IMPORTS =================================== #

from otu_compare import constants

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("otu_compare")

# ==================================== FUNCTIONS ===================================== #

def extract_mock_ids(
    summary: pd.DataFrame,
    mock_samples: Sequence[str] = constants.DEFAULT_MOCK_SAMPLES,
    methods: Sequence[str] = constants.DEFAULT_METHODS,
    casefold: Iterable[str] = constants.DEFAULT_CASEFOLD_METHODS
) -> Dict[Tuple[str, str], List[str]]:
    """Distinct feature ids present in each mock sample, per method.

    Args:
        summary:      Unfiltered summary table of all methods.
        mock_samples: Sample labels of the mock communities.
        methods:      Ordered method labels.
        casefold:     Methods whose ids are lower-cased to match the reference
                      sequence headers.

    Returns:
        {(method, sample): sorted ids}. Empty list where nothing is present.
    """
    casefold = set(casefold)
    present = summary.loc[summary[constants.COUNT_COLUMN] > 0]
    method_labels = present[constants.METHOD_COLUMN].astype(str)
    sample_labels = present[constants.SAMPLE_COLUMN].astype(str)

    mock_ids = {}
    for method in methods:
        for sample in mock_samples:
            mask = (method_labels == method) & (sample_labels == sample)
            ids = present.loc[mask, constants.FEATURE_ID_COLUMN].astype(str)
            if method in casefold:
                ids = ids.str.lower()
            mock_ids[(method, sample)] = sorted(set(ids))
            logger.debug(f"{method} / {sample}: {len(mock_ids[(method, sample)])} mock features")
    return mock_ids
