"""
Parsing utilities for PowerSim.

Turns comma-separated ``name=value`` assignment strings (as accepted by
``PowerSim.set_baseline``) into dictionaries of numeric design fields.
"""

import re
from typing import Dict, List, Tuple, Union

__all__ = []

# Unicode-aware identifier pattern: letter or underscore, then word characters
_IDENT = re.compile(r"^[^\W\d]\w*$")


def _split_assignments(input_string: str) -> List[str]:
    """Split on commas, dropping empty pieces."""
    return [part.strip() for part in input_string.split(",") if part.strip()]


def _parse_number(value: str) -> Union[int, float]:
    """Parse an integer literal as ``int`` and anything else as ``float``."""
    value = value.strip()
    try:
        return int(value)
    except ValueError:
        return float(value)


def _parse_assignments(input_string: str) -> Tuple[Dict[str, Union[int, float]], List[str]]:
    """Parse a comma-separated assignment string.

    Args:
        input_string: Raw user input (e.g. ``"n=100, sd=10, alpha=0.05"``).

    Returns:
        Tuple of ``(parsed_dict, error_list)``. Integer literals stay
        integers so that ``n=100`` passes the integer check on ``n``.
    """
    parsed: Dict[str, Union[int, float]] = {}
    errors: List[str] = []

    for assignment in _split_assignments(input_string):
        if "=" not in assignment:
            errors.append(f"Invalid format: '{assignment}'. Expected 'name=value'")
            continue

        name, value = (part.strip() for part in assignment.split("=", 1))
        if not _IDENT.match(name):
            errors.append(f"Invalid parameter name '{name}'")
            continue
        if name in parsed:
            errors.append(f"Parameter '{name}' assigned more than once")
            continue

        try:
            parsed[name] = _parse_number(value)
        except ValueError:
            errors.append(f"{name}: invalid value '{value}'. Must be a number")

    return parsed, errors
