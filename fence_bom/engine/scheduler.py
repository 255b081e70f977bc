"""
Execution scheduler — runs every selected formula in dependency order.

Each rounded result is written back into the context as <code>_qty so later
formulas can use it (bracket = [post_qty]*[rail_count]). The order is fixed;
a formula may only reference components earlier in EXECUTION_ORDER, which
validate_dependency_order() checks at catalog-configuration time.
"""

import logging
from typing import Iterable, Mapping, Optional

from .errors import (
    InvalidRoundingLevelError, MalformedFormulaError, OutOfOrderReferenceError, UnknownComponentError,
)
from .formula import evaluate, normalize_variable_name, parse, referenced_variables
from .records import CalculationResult, ComputedComponent, Diagnostic, RoundingLevel
from .rounding import apply_rounding

logger = logging.getLogger(__name__)

EXECUTION_ORDER = (
    "post",                # many formulas depend on post_qty
    "picket",
    "rail",
    "bracket",             # post_qty * rail_count
    "cap",
    "trim",
    "rot_board",
    "steel_post_cap",
    "nails_picket",        # picket_qty
    "nails_framing",
    "concrete_sand",       # post_qty
    "concrete_portland",
    "concrete_quickrock",
)

QTY_SUFFIX = "_qty"


def qty_key(component_code: str) -> str:
    return f"{component_code}{QTY_SUFFIX}"


def _format_number(value: float) -> str:
    return f"{value:.4f}".rstrip("0").rstrip(".") if value != int(value) else str(int(value))


def build_trace(formula: str, raw_value: float, rounded_value: float, rounding_level: str) -> str:
    trace = f"{formula} = {raw_value:.4f}"
    if rounding_level == RoundingLevel.SKU.value:
        trace += f" -> ceil = {_format_number(rounded_value)}"
    return trace


def run_formulas(
    selected: Mapping,
    context: dict,
    order: Iterable[str] = EXECUTION_ORDER,
    component_filter: Optional[Iterable[str]] = None,
) -> CalculationResult:
    """
    Evaluate the selected templates in order against a context.

    Args:
        selected: {component_code: FormulaTemplateRecord} from select_templates()
        context: seeded calculation context; extended in place with <code>_qty
        order: dependency order of component codes
        component_filter: if given, only these component codes are computed

    A malformed formula or an unknown rounding level costs only its own
    component (quantity 0 + an error diagnostic); missing variables become
    warning diagnostics. Templates for codes outside the order are logged
    and skipped.
    """
    order = tuple(order)
    allowed = set(component_filter) if component_filter is not None else None
    result = CalculationResult()

    unscheduled = sorted(set(selected) - set(order))
    if unscheduled:
        logger.warning("Skipping templates for components not in the execution order: %s",
                       ", ".join(unscheduled))

    for component_code in order:
        template = selected.get(component_code)
        if template is None:
            continue
        if allowed is not None and component_code not in allowed:
            continue

        try:
            evaluation = evaluate(template.formula, context)
            raw_value = evaluation.value
            rounded = apply_rounding(raw_value, template.rounding_level)
            trace = build_trace(template.formula, raw_value, rounded, template.rounding_level)
        except MalformedFormulaError as e:
            logger.error("Formula error for %s: %s (formula: %s)", component_code, e.reason, template.formula)
            result.diagnostics.append(Diagnostic(
                severity="error",
                kind="malformed_formula",
                component_code=component_code,
                message=str(e),
                formula=template.formula,
            ))
            raw_value = 0.0
            rounded = 0.0
            trace = f"{template.formula} -> ERROR: {e.reason}"
        except InvalidRoundingLevelError as e:
            logger.error("Template %s for %s: %s", template.id, component_code, e)
            result.diagnostics.append(Diagnostic(
                severity="error",
                kind="invalid_rounding_level",
                component_code=component_code,
                message=str(e),
                formula=template.formula,
            ))
            raw_value = 0.0
            rounded = 0.0
            trace = f"{template.formula} -> ERROR: {e}"
        else:
            for name in evaluation.missing_variables:
                logger.warning("Unknown variable [%s] in %s formula, using 0", name, component_code)
                result.diagnostics.append(Diagnostic(
                    severity="warning",
                    kind="missing_variable",
                    component_code=component_code,
                    message=f"Unknown variable [{name}] treated as 0",
                    formula=template.formula,
                    variable=name,
                ))

        context[qty_key(component_code)] = rounded
        result.components.append(ComputedComponent(
            component_code=component_code,
            quantity=rounded,
            trace=trace,
            raw_value=raw_value,
            rounding_level=template.rounding_level,
        ))

    return result


def validate_dependency_order(templates: Iterable, order: Iterable[str] = EXECUTION_ORDER) -> None:
    """
    Configuration check for a set of templates.

    Raises UnknownComponentError for templates whose component is not in the
    order, and OutOfOrderReferenceError for any formula that references the
    _qty of its own component or of a component computed later. Malformed
    formulas are not checked here (check_syntax() covers those).
    """
    order = list(order)
    position = {code: i for i, code in enumerate(order)}

    unknown = []
    violations = []
    for template in templates:
        code = template.component_code
        if code not in position:
            if code not in unknown:
                unknown.append(code)
            continue
        try:
            tree = parse(template.formula)
        except MalformedFormulaError:
            continue
        for name in referenced_variables(tree):
            key = normalize_variable_name(name)
            if not key.endswith(QTY_SUFFIX):
                continue
            referenced = key[: -len(QTY_SUFFIX)]
            if referenced in position and position[referenced] >= position[code]:
                violation = (code, referenced)
                if violation not in violations:
                    violations.append(violation)

    if unknown:
        raise UnknownComponentError(unknown)
    if violations:
        raise OutOfOrderReferenceError(violations)
