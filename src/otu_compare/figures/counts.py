# ===================================== IMPORTS ====================================== #

# Standard Library Imports
import logging
from pathlib import Path
from typing import Dict, List, Sequence, Union

# Third Party Imports
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

# ================================== LOCAL IMPORTS =================================== #

from otu_compare import constants

# ========================== INITIALIZATION & CONFIGURATION ========================== #

logger = logging.getLogger("otu_compare")

MEASURE_LABELS = {"reads": "Reads", "features": "OTUs / ASVs"}

# ==================================== FUNCTIONS ===================================== #

def stage_labels(min_mean: float = constants.DEFAULT_MIN_MEAN_REL_ABUNDANCE) -> Dict[str, str]:
    return {
        "raw": "Raw",
        "singleton": "Singletons removed",
        "abundance": f"Mean rel. abundance ≥ {min_mean:g}",
    }


def plotly_save(
    fig: go.Figure,
    output_path: Union[str, Path],
    save_as: List[str] = ["html"],
    scale: int = 3
) -> List[Path]:
    """
    Save a Plotly figure as HTML and/or static images.

    Args:
        fig:         Figure to save.
        output_path: Base output path; format extensions are appended.
        save_as:     Formats to write ('html', 'png', 'svg', 'pdf').
        scale:       Scale factor for raster outputs.

    Notes:
        Static formats require kaleido (`pip install -U kaleido`).
    """
    output_path = Path(output_path).expanduser().resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    base = output_path.with_suffix("")

    targets = []
    for ext in save_as:
        target = base.with_suffix(f".{ext}")
        if ext == "html":
            fig.write_html(str(target))
        else:
            fig.write_image(str(target), format=ext, scale=scale)
        logger.debug(f"Saved figure to '{target}'.")
        targets.append(target)
    return targets


def plot_aggregate_counts(
    aggregate: pd.DataFrame,
    measure: str,
    scope: str,
    methods: Sequence[str] = constants.DEFAULT_METHODS,
    min_mean: float = constants.DEFAULT_MIN_MEAN_REL_ABUNDANCE
) -> go.Figure:
    """Grouped bar chart of one measure at one scope, bars coloured by stage."""
    labels = stage_labels(min_mean)
    data = aggregate.loc[
        (aggregate["measure"] == measure) & (aggregate["scope"] == scope)
    ].copy()
    data["stage"] = data["stage"].astype(str).map(labels)
    data[constants.METHOD_COLUMN] = data[constants.METHOD_COLUMN].astype(str)

    x = constants.METHOD_COLUMN if scope == "method" else constants.SAMPLE_COLUMN
    facet_row = constants.METHOD_COLUMN if scope == "method_sample" else None
    fig = px.bar(
        data,
        x=x,
        y="N",
        color="stage",
        barmode="group",
        facet_row=facet_row,
        category_orders={
            constants.METHOD_COLUMN: list(methods),
            "stage": [labels[stage] for stage in constants.STAGES],
        },
        labels={"N": MEASURE_LABELS[measure], "stage": ""},
        template="simple_white",
    )
    fig.update_layout(title=f"{MEASURE_LABELS[measure]} by {scope.replace('_', ' × ')}")
    return fig


def plot_all_counts(
    aggregate: pd.DataFrame,
    output_dir: Union[str, Path],
    methods: Sequence[str] = constants.DEFAULT_METHODS,
    save_as: List[str] = ["html"],
    min_mean: float = constants.DEFAULT_MIN_MEAN_REL_ABUNDANCE
) -> Dict[str, go.Figure]:
    figures = {}
    for measure in constants.MEASURES:
        for scope in constants.SCOPES:
            name = f"{measure}_by_{scope}"
            figures[name] = plot_aggregate_counts(
                aggregate, measure, scope, methods, min_mean=min_mean
            )
            plotly_save(figures[name], Path(output_dir) / name, save_as=save_as)
    logger.info(f"Saved {len(figures)} figures to '{output_dir}'")
    return figures
