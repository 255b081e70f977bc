"""
Calculation context construction.

The context is a flat {variable: number} dict owned by one calculation.
Project inputs use the names the stored formulas expect ([Quantity], [Lines],
[Gates]); SKU attributes are flattened with dots -> underscores so
[picket.width_inches] and [picket_width_inches] resolve to the same key.
"""

from typing import Mapping, Optional

from ..config import settings
from .formula import normalize_variable_name
from .records import PostType, SkuRecord

LENGTH_VAR = "Quantity"   # net fence length, feet
LINES_VAR = "Lines"
GATES_VAR = "Gates"


def build_context(net_length: float, number_of_lines: int, number_of_gates: int,
                  attributes: Optional[Mapping] = None) -> dict:
    """Fresh context for one calculation run."""
    context = {
        LENGTH_VAR: float(net_length),
        LINES_VAR: float(number_of_lines),
        GATES_VAR: float(number_of_gates),
    }
    for name, value in (attributes or {}).items():
        if value is None:
            continue
        context[normalize_variable_name(name)] = float(value)
    return context


def sku_attributes(sku: SkuRecord) -> dict:
    """
    SKU attribute bag for V2. Material lengths fall back to the default stock
    length so a formula never divides by a missing cap/trim/rot-board length.
    """
    default_length = settings.DEFAULT_MATERIAL_LENGTH_FT
    return {
        "height": sku.height,
        "rail_count": sku.rail_count,
        "post_spacing": sku.post_spacing,
        "picket_width_inches": sku.picket_width_inches or settings.DEFAULT_PICKET_WIDTH_IN,
        "cap_length_feet": sku.cap_length_feet or default_length,
        "trim_length_feet": sku.trim_length_feet or default_length,
        "rot_board_length_feet": sku.rot_board_length_feet or default_length,
        "steel_posts": 1 if PostType(sku.post_type) is PostType.STEEL else 0,
    }


def sku_component_filter(sku: SkuRecord) -> Optional[set]:
    """
    Components this SKU actually has. An explicit component list wins;
    otherwise derive it the way V1 decides what to emit.
    """
    if sku.components:
        return set(sku.components)

    components = {
        "post", "picket", "rail", "nails_picket", "nails_framing",
        "concrete_sand", "concrete_portland", "concrete_quickrock",
    }
    if PostType(sku.post_type) is PostType.STEEL:
        components |= {"bracket", "steel_post_cap"}
    if sku.cap_length_feet:
        components.add("cap")
    if sku.trim_length_feet:
        components.add("trim")
    if sku.rot_board_length_feet:
        components.add("rot_board")
    return components
