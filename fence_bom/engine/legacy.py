"""
V1 reference calculator — closed-form wood-vertical BOM.

This is the hardcoded calculator the formula interpreter is replacing. It is
kept ONLY as a regression oracle for V1 vs V2 comparisons; production
calculations go through FormulaInterpreter.

The numbers must stay exactly what V1 produced, including its quirks:
- trim is never doubled, even for double-sided (good neighbor) styles
- brackets and steel post caps only exist for steel posts
- nails and concrete are raw fractional quantities (project-level)
"""

import logging
import math
from typing import Optional

from ..config import settings
from .records import ComputedComponent, PostType, RoundingLevel, SkuRecord, StyleTag

logger = logging.getLogger(__name__)

# Empirical picket factors from the V1 calculator
PICKET_WASTE = 1.025            # 2.5% waste on every style
GOOD_NEIGHBOR_FACTOR = 1.11     # 11% extra for alternating sides
BOARD_ON_BOARD_GAP_IN = 2.5     # overlap gap between paired pickets

PICKET_NAILS_PER_COIL = 300
FRAMING_NAILS_PER_BOX = 28


def classify_style_name(style_name: str) -> StyleTag:
    """
    Legacy free-text style -> StyleTag, using V1's loose substring rules.

    Only for importing V1 catalog rows into the tagged model — never call this
    while calculating. Every classification is logged so odd names stand out.
    """
    name = (style_name or "").lower()
    if "good" in name and "neighbor" in name:
        tag = StyleTag.GOOD_NEIGHBOR
    elif "board" in name:
        tag = StyleTag.BOARD_ON_BOARD
    else:
        tag = StyleTag.STANDARD
    logger.info("Classified legacy style %r as %s", style_name, tag.value)
    return tag


def _fmt(value: float) -> str:
    return f"{value:g}"


class WoodVerticalCalculator:
    """V1 wood-vertical calculator. Pure function of its inputs."""

    def _item(self, code: str, quantity: float, trace: str, rounding_level: RoundingLevel) -> ComputedComponent:
        return ComputedComponent(
            component_code=code,
            quantity=quantity,
            trace=trace,
            raw_value=quantity,
            rounding_level=rounding_level.value,
        )

    def calculate(
        self,
        net_length: float,
        number_of_lines: int,
        number_of_gates: int,
        rail_count: int,
        post_spacing: float,
        style_tag: StyleTag,
        picket_width: Optional[float] = None,
        cap_length: Optional[float] = None,
        trim_length: Optional[float] = None,
        rot_board_length: Optional[float] = None,
        post_type: PostType = PostType.WOOD,
    ) -> list:
        """
        Returns [ComputedComponent] in V1 order. number_of_gates is accepted
        for signature parity with V2 but V1 never used it.
        """
        if picket_width is None:
            picket_width = settings.DEFAULT_PICKET_WIDTH_IN
        style_tag = StyleTag(style_tag)
        post_type = PostType(post_type)
        is_steel = post_type is PostType.STEEL

        items = []
        sku = RoundingLevel.SKU
        project = RoundingLevel.PROJECT

        # 1. Posts: sections + 1, plus one per two lines beyond the first two
        sections = math.ceil(net_length / post_spacing)
        posts = sections + 1 + math.ceil(max(number_of_lines - 2, 0) / 2)
        items.append(self._item(
            "post", posts,
            f"ceil({_fmt(net_length)}/{_fmt(post_spacing)})+1+ceil(max({number_of_lines}-2,0)/2) = {posts}",
            sku,
        ))

        # 2. Pickets
        length_in = net_length * 12
        if style_tag is StyleTag.GOOD_NEIGHBOR:
            raw = (length_in / picket_width) * PICKET_WASTE * GOOD_NEIGHBOR_FACTOR
            formula = f"({_fmt(length_in)}/{_fmt(picket_width)})*1.025*1.11"
        elif style_tag is StyleTag.BOARD_ON_BOARD:
            raw = ((length_in * 2) / (picket_width * 2 - BOARD_ON_BOARD_GAP_IN)) * PICKET_WASTE
            formula = f"(({_fmt(length_in)}*2)/({_fmt(picket_width)}*2-2.5))*1.025"
        else:
            raw = (length_in / picket_width) * PICKET_WASTE
            formula = f"({_fmt(length_in)}/{_fmt(picket_width)})*1.025"
        pickets = math.ceil(raw)
        items.append(self._item("picket", pickets, f"{formula} = {raw:.2f} -> ceil = {pickets}", sku))

        # 3. Rails
        rails = sections * rail_count
        items.append(self._item(
            "rail", rails, f"ceil({_fmt(net_length)}/{_fmt(post_spacing)})*{rail_count} = {rails}", sku,
        ))

        # 4. Brackets: steel posts only
        if is_steel:
            brackets = posts * rail_count
            items.append(self._item("bracket", brackets, f"posts({posts})*rails({rail_count}) = {brackets}", sku))

        # 5-7. Cap, trim, rot board: only when the SKU has that material.
        # Trim is NOT doubled for double-sided styles.
        for code, material_length in (("cap", cap_length), ("trim", trim_length), ("rot_board", rot_board_length)):
            if material_length:
                count = math.ceil(net_length / material_length)
                items.append(self._item(
                    code, count, f"ceil({_fmt(net_length)}/{_fmt(material_length)}) = {count}", sku,
                ))

        # 8. Steel post caps
        if is_steel:
            items.append(self._item("steel_post_cap", posts, f"posts = {posts}", sku))

        # 9-10. Nails: project-level, raw
        picket_nails = (pickets * rail_count * 2) / PICKET_NAILS_PER_COIL
        items.append(self._item(
            "nails_picket", picket_nails,
            f"({pickets}*{rail_count}*2)/{PICKET_NAILS_PER_COIL} = {picket_nails:.4f}", project,
        ))
        frame_nails = (posts * rail_count * 4) / FRAMING_NAILS_PER_BOX
        items.append(self._item(
            "nails_framing", frame_nails,
            f"({posts}*{rail_count}*4)/{FRAMING_NAILS_PER_BOX} = {frame_nails:.4f}", project,
        ))

        # 11. Concrete, 3-part mix: project-level, raw
        items.append(self._item("concrete_sand", posts / 10, f"posts({posts})/10 = {posts / 10:.4f}", project))
        items.append(self._item("concrete_portland", posts / 20, f"posts({posts})/20 = {posts / 20:.4f}", project))
        items.append(self._item("concrete_quickrock", posts * 0.5, f"posts({posts})*0.5 = {posts * 0.5:.4f}", project))

        return items

    def calculate_sku(self, sku: SkuRecord, net_length: float, number_of_lines: int,
                      number_of_gates: int = 0) -> list:
        """Run V1 for a catalogued SKU."""
        return self.calculate(
            net_length=net_length,
            number_of_lines=number_of_lines,
            number_of_gates=number_of_gates,
            rail_count=sku.rail_count,
            post_spacing=sku.post_spacing,
            style_tag=sku.style_tag,
            picket_width=sku.picket_width_inches,
            cap_length=sku.cap_length_feet,
            trim_length=sku.trim_length_feet,
            rot_board_length=sku.rot_board_length_feet,
            post_type=sku.post_type,
        )
