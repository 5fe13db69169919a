# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

# Third-Party Imports
import pandas as pd
from biom import load_table

# ================================== LOCAL IMPORTS =================================== #

from otu_compare import constants
from otu_compare.errors import SchemaError
from otu_compare.tables.normalization import (
    clean_sample_labels, drop_empty_features, validate_raw_table
)

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("otu_compare")

FORMAT_SEPARATORS = {"tsv": "\t", "csv": ","}

# ==================================== FUNCTIONS ===================================== #

def infer_format(path: Union[str, Path]) -> str:
    """Table format from the file suffix, ignoring a trailing '.gz'."""
    suffixes = [s.lower() for s in Path(path).suffixes if s.lower() != ".gz"]
    suffix = suffixes[-1].lstrip(".") if suffixes else ""
    if suffix in ("tsv", "txt", "tab"):
        return "tsv"
    if suffix in ("csv", "biom"):
        return suffix
    raise ValueError(f"Cannot infer table format from '{path}'; set 'format' explicitly")


def import_table_biom(biom_path: Union[str, Path]) -> pd.DataFrame:
    """Load a BIOM table as a features × samples DataFrame with a feature_id column."""
    table = load_table(str(biom_path))
    df = table.to_dataframe(dense=True)
    df.index.name = constants.FEATURE_ID_COLUMN
    return df.reset_index()


def load_raw_table(
    path: Union[str, Path],
    method: str,
    format: Optional[str] = None,
    id_column: Optional[str] = None,
    sample_prefix: Optional[str] = None,
    sample_suffix: Optional[str] = None,
    drop_columns: Iterable[str] = (),
    skiprows: int = 0
) -> pd.DataFrame:
    """
    Load one pipeline's abundance table into the canonical wide schema.

    The identifier column is renamed to `feature_id`, metadata columns are
    dropped, sample columns lose the pipeline's prefix/suffix, and all-zero
    features are removed. Compressed ('.gz') text tables are read directly.

    Args:
        path:          Table file.
        method:        Method label, used in error messages.
        format:        'tsv', 'csv' or 'biom'. Inferred from the suffix if None.
        id_column:     Name of the identifier column. Defaults to the first column.
        sample_prefix: Prefix stripped from sample column names.
        sample_suffix: Suffix stripped from sample column names.
        drop_columns:  Non-sample columns to discard (e.g. taxonomy).
        skiprows:      Leading lines to skip before the header.

    Returns:
        Wide DataFrame (feature_id + one column per sample).

    Raises:
        FileNotFoundError: If the table does not exist.
        SchemaError:       If the table does not match the canonical schema.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Abundance table not found: {path}")

    format = format or infer_format(path)
    if format == "biom":
        raw = import_table_biom(path)
        id_column = constants.FEATURE_ID_COLUMN
    elif format in FORMAT_SEPARATORS:
        raw = pd.read_csv(path, sep=FORMAT_SEPARATORS[format], skiprows=skiprows)
    else:
        raise ValueError(f"Invalid table format: {format}. Use 'tsv', 'csv' or 'biom'")

    id_column = id_column or raw.columns[0]
    if id_column not in raw.columns:
        raise SchemaError(f"Identifier column '{id_column}' not in {path.name}", method=method)

    drop_columns = [col for col in drop_columns if col in raw.columns]
    raw = raw.drop(columns=drop_columns)
    raw = raw.rename(columns={id_column: constants.FEATURE_ID_COLUMN})
    raw[constants.FEATURE_ID_COLUMN] = raw[constants.FEATURE_ID_COLUMN].astype(str)

    samples = [col for col in raw.columns if col != constants.FEATURE_ID_COLUMN]
    labels = clean_sample_labels(samples, sample_prefix, sample_suffix, method=method)
    raw = raw.rename(columns=dict(zip(samples, labels)))

    validate_raw_table(raw, method)
    n_features = len(raw)
    raw = drop_empty_features(raw)
    logger.info(
        f"{method}: loaded {path.name} ({n_features} features, {len(labels)} samples, "
        f"{n_features - len(raw)} all-zero features dropped)"
    )
    return raw


def write_table(df: pd.DataFrame, output_path: Union[str, Path]) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, sep="\t", index=False)
    logger.debug(f"Wrote {len(df)} rows to '{output_path}'")
    return output_path


def write_identifier_lists(
    mock_ids: Dict[Tuple[str, str], List[str]],
    output_dir: Union[str, Path]
) -> List[Path]:
    """Write each (method, sample) id list as newline-delimited text.

    Files are named `<method>_<sample>.txt`; an empty list gives an empty file.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for (method, sample), ids in mock_ids.items():
        target = output_dir / f"{method}_{sample}.txt"
        target.write_text("".join(f"{feature_id}\n" for feature_id in ids))
        paths.append(target)
    logger.info(f"Wrote {len(paths)} mock identifier lists to '{output_dir}'")
    return paths
