# ===================================== IMPORTS ====================================== #

# Standard Library Imports
from pathlib import Path
from typing import Any, Dict, List, Union

# Third-Party Imports
import yaml

# Local Imports
from otu_compare import constants

# ==================================== FUNCTIONS ===================================== #

def resolve_relative_paths(config: Dict, config_dir: Path) -> Dict:
    """Converts any relative paths in the configuration to absolute paths based on
    the directory of the config file."""
    for key, value in config.items():
        if isinstance(value, str):
            if value.startswith("./") or value.startswith("../"):
                config[key] = (config_dir / value).resolve()
        elif isinstance(value, dict):
            config[key] = resolve_relative_paths(value, config_dir)
    return config


def get_config(
    config_path: Union[str, Path] = constants.DEFAULT_CONFIG
) -> Dict:
    with open(config_path, "r") as file:
        config = yaml.safe_load(file) or {}

    config_dir = Path(config_path).resolve().parent
    config = resolve_relative_paths(config, config_dir)

    return config


def get_methods(config: Dict[str, Any]) -> List[str]:
    """Ordered method labels; the order of the `methods` list is the display order."""
    methods = list(config.get("methods") or constants.DEFAULT_METHODS)
    if len(set(methods)) != len(methods):
        raise ValueError(f"Duplicate method labels in config: {methods}")
    return methods
