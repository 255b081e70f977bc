"""
Template selection — one winning formula template per component code.

Precedence for a requested (product type, style):
1. Only templates scoped to the requested style or to no style are candidates.
2. Style-specific beats generic.
3. Higher priority beats lower.
4. Remaining ties: lowest template id, shorter ids first, then as text, so
   id 9 beats id 10 and "t9" beats "t10". Ties should never reach this point;
   find_selection_ties() is run on catalog writes to reject them.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from .errors import TemplateTieError
from .records import FormulaTemplateRecord

logger = logging.getLogger(__name__)


def _selection_key(template: FormulaTemplateRecord, style_id: Optional[str]) -> tuple:
    specificity = 1 if (style_id is not None and template.product_style_id == style_id) else 0
    # Sorted ascending: best candidate first. (len, text) orders numeric ids naturally.
    tie_break = str(template.id)
    return (-specificity, -(template.priority or 0), len(tie_break), tie_break)


def select_templates(
    templates: Iterable[FormulaTemplateRecord],
    product_style_id: Optional[str],
) -> dict:
    """
    Resolve {component_code: FormulaTemplateRecord} for a style.

    Components with no candidate templates are simply absent from the result.
    """
    candidates = defaultdict(list)
    for template in templates:
        if not template.is_active:
            continue
        if template.product_style_id is not None and template.product_style_id != product_style_id:
            continue
        candidates[template.component_code].append(template)

    selected = {}
    for component_code, options in candidates.items():
        options.sort(key=lambda t: _selection_key(t, product_style_id))
        winner = options[0]
        if len(options) > 1 and _selection_key(options[1], product_style_id)[:2] == _selection_key(winner, product_style_id)[:2]:
            logger.warning(
                "Template tie for %s (style=%s, priority=%s) — using id %s",
                component_code, winner.product_style_id or "generic", winner.priority, winner.id,
            )
        selected[component_code] = winner
    return selected


def find_selection_ties(templates: Iterable[FormulaTemplateRecord]) -> list:
    """
    List (component_code, product_style_id, priority) groups that hold more
    than one active template — those would make selection ambiguous.
    """
    groups = defaultdict(int)
    for template in templates:
        if not template.is_active:
            continue
        groups[(template.component_code, template.product_style_id, template.priority or 0)] += 1
    ties = [key for key, count in groups.items() if count > 1]
    return sorted(ties, key=lambda k: (k[0], str(k[1] or ""), k[2]))


def ensure_no_ties(templates: Iterable[FormulaTemplateRecord]) -> None:
    """Raise TemplateTieError if any selection would be ambiguous."""
    ties = find_selection_ties(templates)
    if ties:
        raise TemplateTieError(ties)
