"""
File I/O for timeline descriptions and timeline variables.
"""

import json
import logging
import os
from typing import Any, Dict, List, Union

import pandas as pd

from .errors import ConfigurationError
from .execution.parameters import TimelineVariable

logger = logging.getLogger(__name__)


def load_timeline_variables(csv_path: str) -> List[Dict[str, Any]]:
    """
    Load timeline variable sets from a CSV file.

    Each row becomes one variable set keyed by column name. Empty cells
    become None.

    Args:
        csv_path: Path to CSV file

    Returns:
        List of variable sets

    Raises:
        FileNotFoundError: If the CSV file does not exist
    """
    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"Timeline variables CSV not found: {csv_path}")

    df = pd.read_csv(csv_path)
    variable_sets = [
        {column: (None if pd.isna(value) else value) for column, value in row.items()}
        for _, row in df.iterrows()
    ]
    logger.info(f"Loaded {len(variable_sets)} variable sets from {csv_path}")
    return variable_sets


def load_description(filepath: str) -> Union[Dict[str, Any], List[Any]]:
    """
    Load a timeline description from a JSON file.

    A string ``timeline_variables`` value anywhere in the description is
    read as a CSV path, relative to the JSON file's directory. An object
    {"timeline_variable": "name"} is read as TimelineVariable('name').

    Args:
        filepath: Path to JSON description file

    Returns:
        Timeline description (dict or list)

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the file is not valid JSON
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Timeline description not found: {filepath}")

    with open(filepath, 'r', encoding='utf-8') as f:
        try:
            description = json.load(f, object_hook=_decode_reference)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid timeline description {filepath}: {e}") from e

    base_dir = os.path.dirname(os.path.abspath(filepath))
    _resolve_variable_files(description, base_dir)

    logger.info(f"Timeline description loaded from {filepath}")
    return description


def _resolve_variable_files(description: Any, base_dir: str):
    """Replace CSV path references with loaded variable sets, in place."""
    if isinstance(description, list):
        for item in description:
            _resolve_variable_files(item, base_dir)
        return

    if not isinstance(description, dict):
        return

    variables = description.get('timeline_variables')
    if isinstance(variables, str):
        csv_path = variables if os.path.isabs(variables) else os.path.join(base_dir, variables)
        description['timeline_variables'] = load_timeline_variables(csv_path)

    _resolve_variable_files(description.get('timeline'), base_dir)


def save_description(description: Union[Dict[str, Any], List[Any]], filepath: str):
    """
    Save a timeline description to a JSON file.

    Function values (callbacks, custom samplers) cannot be stored; a
    description containing them raises ConfigurationError.

    Args:
        description: Timeline description
        filepath: Path where JSON file should be saved
    """
    directory = os.path.dirname(filepath)
    if directory and not os.path.exists(directory):
        os.makedirs(directory)

    try:
        content = json.dumps(description, indent=2, ensure_ascii=False, default=_encode_reference)
    except TypeError as e:
        raise ConfigurationError(f"Timeline description is not serializable: {e}") from e

    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(content)

    logger.info(f"Timeline description saved to {filepath}")


def _decode_reference(obj: Dict[str, Any]) -> Any:
    """JSON object hook: {"timeline_variable": "name"} becomes TimelineVariable('name')."""
    if len(obj) == 1 and isinstance(obj.get('timeline_variable'), str):
        return TimelineVariable(obj['timeline_variable'])
    return obj


def _encode_reference(value: Any) -> Any:
    if isinstance(value, TimelineVariable):
        return {'timeline_variable': value.name}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
