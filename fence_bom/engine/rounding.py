"""
Rounding policy applied to each raw formula result.

The level is a property of the template, never guessed from the component
code: nails and concrete are deliberately left fractional ("bags per post")
until a project-level consumer aggregates and rounds them.
"""

import math

from .errors import InvalidRoundingLevelError
from .records import RoundingLevel


def check_rounding_level(rounding_level: str) -> RoundingLevel:
    """Raises InvalidRoundingLevelError for anything but 'sku' / 'project'."""
    try:
        return RoundingLevel(rounding_level)
    except ValueError:
        raise InvalidRoundingLevelError(rounding_level)


def apply_rounding(raw_value: float, rounding_level: str) -> float:
    """'sku' rounds UP to the next whole unit; 'project' passes through unchanged."""
    level = check_rounding_level(rounding_level)
    if level is RoundingLevel.SKU:
        return float(math.ceil(raw_value))
    return raw_value
