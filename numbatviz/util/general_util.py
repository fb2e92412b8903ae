import dataclasses
import json

from enum import Enum
from pathlib import Path
from typing import Any, Type, TypeVar

import numpy as np
import pandas as pd
import structlog

from tabulate import tabulate

from numbatviz.util.classes import BaseParams
from numbatviz.util.logger import get_logger


logger = get_logger()

T = TypeVar("T", bound=BaseParams)

PARAMETERS_FILE = "parameters.json"


def convert_enums_to_values(obj: Any) -> Any:
    """Recursively convert enum objects to their string values for JSON serialization and logging.

    Args:
        obj: Any object that might contain enums (dict, list, tuple, or individual values)

    Returns:
        Object with all enums converted to their .value strings
    """
    if isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, dict):
        return {key: convert_enums_to_values(value) for key, value in obj.items()}
    elif isinstance(obj, list | tuple):
        converted = [convert_enums_to_values(item) for item in obj]
        return type(obj)(converted)
    else:
        return obj


def save_json_data(data: dict[str, Any], save_path: Path | str):
    """Save arbitrary dictionary data to a JSON file.

    Args:
        data: Dictionary of data to save
        save_path: Full path to the JSON file to create
    """
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)

    serializable_data = convert_enums_to_values(data)

    with save_path.open("w") as f:
        json.dump(serializable_data, f, indent=4, default=str)

    logger.info(f"Saved data to {save_path}")


def save_params(params: BaseParams, save_dir: Path | str) -> Path:
    """Save a parameter dataclass to `parameters.json` inside save_dir."""
    save_path = Path(save_dir) / PARAMETERS_FILE
    save_json_data(dataclasses.asdict(params), save_path)
    return save_path


def load_params(config_path: Path | str) -> dict:
    """Load parameters from a JSON file, or from `parameters.json` inside a directory.

    Args:
        config_path: JSON file, or a directory previously written by save_params.

    Returns:
        Dictionary of parameter values.
    """
    config_path = Path(config_path)
    if config_path.is_dir():
        config_path = config_path / PARAMETERS_FILE
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with config_path.open("r") as f:
        return json.load(f)


def get_new_version_path(save_path: Path | str) -> Path:
    """Create a versioned directory path to avoid overwriting existing results.

    If the target path already exists and contains files, creates a new versioned
    directory (e.g., 'figures_v_0', 'figures_v_1') to preserve existing data.

    Args:
        save_path: Desired save directory path.

    Returns:
        Path to use for saving (original path or new versioned path).
    """
    save_path = Path(save_path)
    if not save_path.exists():
        save_path.mkdir(parents=True, exist_ok=True)
        return save_path
    if save_path.is_dir() and not any(save_path.iterdir()):
        return save_path
    parent_dir = save_path.parent
    dir_name = save_path.name
    existing_dirs = list(parent_dir.glob(f"{dir_name}_v_*"))
    existing_versions = [int(d.name.split("_v_")[1]) for d in existing_dirs if d.name.split("_v_")[1].isdigit()]
    max_version = np.max(existing_versions) if len(existing_versions) > 0 else -1
    version_path = parent_dir / f"{dir_name}_v_{max_version + 1}"
    version_path.mkdir(parents=True, exist_ok=True)
    return version_path


def check_param_fields(param_class: Type[BaseParams], names) -> None:
    """Raise ValueError if any of names is not a field of param_class."""
    valid_fields = {field.name for field in dataclasses.fields(param_class)}
    invalid_fields = set(names) - valid_fields
    if invalid_fields:
        raise ValueError(
            f"Invalid parameter field(s): {sorted(invalid_fields)}. Valid fields are: {sorted(valid_fields)}"
        )


def load_and_override_params(
    param_class: Type[T],
    config_path: str | None = None,
    logger: structlog.stdlib.BoundLogger | None = None,
    **kwargs: Any,
) -> T:
    """Load parameters from config file or use defaults, then apply overrides.

    Args:
        param_class: The parameter dataclass to instantiate
        config_path: Optional path to JSON config file
        logger: Logger instance for logging changes
        **kwargs: Parameter overrides to apply

    Returns:
        The parameter object with overrides applied
    """
    if config_path:
        config = load_params(config_path)
        check_param_fields(param_class, config)
        prm = param_class(**config)
        if logger:
            logger.info(f"Loaded parameters from config: {config_path}")
    else:
        prm = param_class()
        if logger:
            logger.info("Using default parameters")

    if kwargs:
        check_param_fields(param_class, kwargs)

        for field_name, new_value in kwargs.items():
            old_value = getattr(prm, field_name)
            if old_value != new_value:
                if logger:
                    logger.info(f"Parameter override: {field_name} = {new_value} (was {old_value})")
                setattr(prm, field_name, new_value)

        # overrides skip the dataclass constructor, so validate again
        if hasattr(prm, "__post_init__"):
            prm.__post_init__()

    return prm


def format_float(x: float, precision: int = 3) -> str:
    if isinstance(x, float) and np.isnan(x):
        return "nan"
    return f"{x:.{precision}f}"


def summary_to_table(summary: dict[str, Any], title: str = "Summary", precision: int = 3) -> str:
    """Render a flat summary dict (and nested per-clone dicts) as plain-text tables.

    Args:
        summary: Mapping of names to scalars; dict values are rendered as a second table
        title: Title printed above the tables
        precision: Decimal places for floats

    Returns:
        Formatted table as a string
    """
    if not summary:
        return f"{title}: nothing to display"

    scalars = {k: v for k, v in summary.items() if not isinstance(v, dict)}
    nested = {k: v for k, v in summary.items() if isinstance(v, dict)}

    lines = [f"\n{title}", "=" * len(title)]

    if scalars:
        scalar_df = pd.DataFrame(list(scalars.items()), columns=["Field", "Value"])
        scalar_df["Value"] = scalar_df["Value"].apply(
            lambda x: format_float(x, precision) if isinstance(x, float) else str(x)
        )
        lines.append(tabulate(scalar_df, headers="keys", tablefmt="simple", showindex=False))
        lines.append("")

    for name, values in nested.items():
        lines.append(f"{name}:")
        nested_df = pd.DataFrame(list(values.items()), columns=["Key", "Value"])
        lines.append(tabulate(nested_df, headers="keys", tablefmt="simple", showindex=False))
        lines.append("")

    return "\n".join(lines)
