"""
Engine tests — rounding, template selection, scheduling, interpreter.

Tests:
1-4.   Rounding policy
5-11.  Template selection precedence
12-20. Scheduler (dependency order, _qty write-back, failure isolation)
21-23. Dependency-order validation
24-31. FormulaInterpreter against the default catalog, determinism
"""

import random

import pytest

from fence_bom.engine.context import build_context, sku_attributes, sku_component_filter
from fence_bom.engine.errors import (
    InvalidRoundingLevelError, OutOfOrderReferenceError, TemplateTieError, UnknownComponentError,
    UnresolvedCatalogEntryError,
)
from fence_bom.engine.interpreter import FormulaInterpreter
from fence_bom.engine.records import FormulaTemplateRecord
from fence_bom.engine.repository import InMemoryTemplateRepository
from fence_bom.engine.rounding import apply_rounding
from fence_bom.engine.scheduler import EXECUTION_ORDER, run_formulas, validate_dependency_order
from fence_bom.engine.selector import ensure_no_ties, find_selection_ties, select_templates


def tpl(id, code, formula="1", style=None, priority=0, rounding="sku", active=True):
    return FormulaTemplateRecord(
        id=id,
        product_type_id="wood-vertical",
        component_code=code,
        formula=formula,
        rounding_level=rounding,
        product_style_id=style,
        priority=priority,
        is_active=active,
    )


# ============================================================
# Rounding
# ============================================================

def test_sku_rounding_is_ceiling():
    assert apply_rounding(12.1, "sku") == 13
    assert apply_rounding(12.0, "sku") == 12


def test_project_rounding_passes_through():
    assert apply_rounding(12.1, "project") == 12.1


def test_unknown_rounding_level_raises():
    with pytest.raises(ValueError):
        apply_rounding(1.0, "nearest")
    with pytest.raises(InvalidRoundingLevelError):
        apply_rounding(1.0, "SKU")


# ============================================================
# Selection
# ============================================================

def test_style_specific_beats_generic_even_at_lower_priority():
    templates = [tpl("1", "picket", "1", priority=50), tpl("2", "picket", "2", style="gn", priority=0)]
    assert select_templates(templates, "gn")["picket"].id == "2"


def test_other_style_templates_are_not_candidates():
    templates = [tpl("1", "picket", "1"), tpl("2", "picket", "2", style="bob", priority=10)]
    assert select_templates(templates, "gn")["picket"].id == "1"
    assert select_templates(templates, None)["picket"].id == "1"


def test_higher_priority_wins_within_scope():
    templates = [tpl("1", "post", "1", priority=0), tpl("2", "post", "2", priority=5)]
    assert select_templates(templates, None)["post"].id == "2"


def test_inactive_templates_ignored():
    templates = [tpl("1", "post", "1"), tpl("2", "post", "2", priority=5, active=False)]
    assert select_templates(templates, None)["post"].id == "1"


def test_tie_resolved_by_lowest_id_and_detected():
    templates = [tpl("t10", "post", "10"), tpl("t9", "post", "9")]
    assert select_templates(templates, None)["post"].id == "t9"
    assert find_selection_ties(templates) == [("post", None, 0)]
    with pytest.raises(TemplateTieError):
        ensure_no_ties(templates)


def test_tie_break_orders_numeric_ids_naturally():
    templates = [tpl("10", "post", "10"), tpl("9", "post", "9"), tpl("100", "post", "100")]
    assert select_templates(templates, None)["post"].id == "9"


def test_component_without_templates_is_absent():
    assert "cap" not in select_templates([tpl("1", "post")], None)


# ============================================================
# Scheduler
# ============================================================

def test_later_formulas_see_rounded_quantity():
    """bracket must use ceil(12.5) = 13 posts, not 12.5."""
    selected = {
        "post": tpl("1", "post", "[Quantity]/[post_spacing]"),
        "bracket": tpl("2", "bracket", "[post_qty]*[rail_count]"),
    }
    context = build_context(100, 1, 0, {"post_spacing": 8, "rail_count": 2})
    result = run_formulas(selected, context)
    assert result.quantities() == {"post": 13, "bracket": 26}
    assert context["post_qty"] == 13


def test_results_follow_execution_order():
    selected = {code: tpl(str(i), code) for i, code in enumerate(reversed(EXECUTION_ORDER))}
    result = run_formulas(selected, build_context(10, 1, 0))
    assert [c.component_code for c in result.components] == list(EXECUTION_ORDER)


def test_malformed_formula_only_fails_its_component():
    selected = {
        "post": tpl("1", "post", "ROUNDUP([Quantity]/8"),
        "picket": tpl("2", "picket", "[Quantity]*2"),
        "concrete_sand": tpl("3", "concrete_sand", "[post_qty]/10", rounding="project"),
    }
    result = run_formulas(selected, build_context(10, 1, 0))
    assert result.quantities() == {"post": 0, "picket": 20, "concrete_sand": 0}
    errors = [d for d in result.diagnostics if d.severity == "error"]
    assert len(errors) == 1
    assert errors[0].component_code == "post"
    assert errors[0].kind == "malformed_formula"
    assert "ERROR" in result.get("post").trace


def test_missing_variable_warns_and_uses_zero():
    selected = {"rail": tpl("1", "rail", "[Quantity]+[mystery]")}
    result = run_formulas(selected, build_context(10, 1, 0))
    assert result.get("rail").quantity == 10
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].severity == "warning"
    assert result.diagnostics[0].variable == "mystery"


def test_component_filter_skips_other_components():
    selected = {"post": tpl("1", "post", "2"), "bracket": tpl("2", "bracket", "[post_qty]*3")}
    result = run_formulas(selected, build_context(10, 1, 0), component_filter={"post"})
    assert result.quantities() == {"post": 2}


def test_invalid_rounding_level_only_fails_its_component():
    selected = {
        "post": tpl("1", "post", "[Quantity]/8", rounding="SKU"),
        "picket": tpl("2", "picket", "[Quantity]*2"),
    }
    result = run_formulas(selected, build_context(10, 1, 0))
    assert result.quantities() == {"post": 0, "picket": 20}
    assert [(d.component_code, d.kind) for d in result.diagnostics] == [("post", "invalid_rounding_level")]


def test_overflowing_literal_only_fails_its_component():
    selected = {
        "post": tpl("1", "post", "ROUNDUP(1" + "0" * 400 + ")"),
        "picket": tpl("2", "picket", "[Quantity]*2"),
    }
    result = run_formulas(selected, build_context(10, 1, 0))
    assert result.quantities() == {"post": 0, "picket": 20}
    assert result.diagnostics[0].kind == "malformed_formula"


def test_unscheduled_component_is_logged(caplog):
    selected = {"post": tpl("1", "post", "2"), "gate_hinge": tpl("2", "gate_hinge", "4")}
    with caplog.at_level("WARNING", logger="fence_bom.engine.scheduler"):
        result = run_formulas(selected, build_context(10, 1, 0))
    assert result.quantities() == {"post": 2}
    assert "gate_hinge" in caplog.text


def test_trace_shows_formula_raw_and_rounded():
    selected = {"post": tpl("1", "post", "[Quantity]/8")}
    result = run_formulas(selected, build_context(100, 1, 0))
    assert result.get("post").trace == "[Quantity]/8 = 12.5000 -> ceil = 13"
    assert result.get("post").raw_value == 12.5


# ============================================================
# Dependency-order validation
# ============================================================

def test_default_catalog_order_is_valid(repo):
    validate_dependency_order(repo.list_active_templates("wood-vertical"))


def test_out_of_order_reference_rejected():
    with pytest.raises(OutOfOrderReferenceError) as exc:
        validate_dependency_order([
            tpl("1", "post", "[picket_qty]"),
            tpl("2", "rail", "[rail_qty]+1"),
        ])
    assert exc.value.violations == [("post", "picket"), ("rail", "rail")]


def test_unknown_component_rejected():
    with pytest.raises(UnknownComponentError) as exc:
        validate_dependency_order([tpl("1", "gate_hinge", "[post_qty]")])
    assert exc.value.component_codes == ["gate_hinge"]


# ============================================================
# Interpreter
# ============================================================

ATTRS = {"rail_count": 2, "post_spacing": 8, "picket.width_inches": 5.5}


def test_standard_wood_vertical_quantities(interpreter):
    result = interpreter.calculate("wood-vertical", "standard", 100, 4, 0, ATTRS,
                                   component_filter={"post", "picket", "rail", "nails_picket"})
    quantities = result.quantities()
    assert quantities["post"] == 15     # ceil(100/8)+1+ceil((4-2)/2)
    assert quantities["picket"] == 224  # ceil(1200/5.5*1.025)
    assert quantities["rail"] == 26
    assert quantities["nails_picket"] == pytest.approx(224 * 2 * 2 / 300)
    assert result.diagnostics == []


def test_style_override_selected(interpreter):
    gn = interpreter.calculate("wood-vertical", "good-neighbor-residential", 100, 4, 0, ATTRS)
    bob = interpreter.calculate("wood-vertical", "board-on-board", 100, 4, 0, ATTRS)
    assert gn.get("picket").quantity == 249
    assert bob.get("picket").quantity == 290


def test_no_style_uses_generic_templates(interpreter):
    result = interpreter.calculate("wood-vertical", None, 100, 4, 0, ATTRS)
    assert result.get("picket").quantity == 224


def test_unknown_product_type_or_style_raises(interpreter):
    with pytest.raises(UnresolvedCatalogEntryError):
        interpreter.calculate("vinyl", "standard", 100, 1)
    with pytest.raises(UnresolvedCatalogEntryError):
        interpreter.calculate("wood-vertical", "shadowbox", 100, 1)


def test_missing_material_length_gives_error_diagnostic(interpreter):
    """No cap length in the attributes: cap fails alone, everything else computes."""
    result = interpreter.calculate("wood-vertical", "standard", 100, 4, 0, ATTRS)
    assert result.get("cap").quantity == 0
    assert result.get("post").quantity == 15
    assert any(d.component_code == "cap" and d.severity == "error" for d in result.diagnostics)


def test_sku_context_and_filter(repo):
    wood = repo.require_sku("A01")
    steel = repo.require_sku("D07")
    assert sku_attributes(wood)["steel_posts"] == 0
    assert sku_attributes(wood)["cap_length_feet"] == 8.0   # default stock length
    assert "bracket" not in sku_component_filter(wood)
    assert {"bracket", "steel_post_cap", "cap", "trim", "rot_board"} <= sku_component_filter(steel)


def test_tiny_post_spacing_fails_per_component(interpreter):
    """100 / 1e-310 overflows to inf; only formulas that divide by it fail."""
    result = interpreter.calculate("wood-vertical", "standard", 100, 4, 0,
                                   {"post_spacing": 1e-310, "rail_count": 2, "picket.width_inches": 5.5})
    assert result.get("post").quantity == 0
    assert result.get("rail").quantity == 0
    assert result.get("picket").quantity == 224
    failed = {d.component_code for d in result.diagnostics if d.kind == "malformed_formula"}
    assert {"post", "rail"} <= failed


def test_calculation_is_deterministic(interpreter):
    first = interpreter.calculate("wood-vertical", "board-on-board", 100, 4, 0, ATTRS).to_dict()
    second = interpreter.calculate("wood-vertical", "board-on-board", 100, 4, 0, ATTRS).to_dict()
    assert first == second


def test_selection_independent_of_template_order(repo):
    base = repo.list_active_templates("wood-vertical")
    # t1 and t99 tie on (post, generic, priority 0); t1 must win either way
    tied = FormulaTemplateRecord(
        id="t99", product_type_id="wood-vertical", component_code="post", formula="[Quantity]",
    )
    product_type = repo.require_product_type("wood-vertical")
    style = repo.require_style(product_type, "good-neighbor-residential")

    outputs = []
    for seed in range(5):
        templates = base + [tied]
        random.Random(seed).shuffle(templates)
        shuffled = InMemoryTemplateRepository([product_type], [style], templates)
        result = FormulaInterpreter(shuffled).calculate(
            "wood-vertical", "good-neighbor-residential", 100, 4, 0, ATTRS,
        )
        outputs.append(result.to_dict())

    assert all(output == outputs[0] for output in outputs)
    assert outputs[0]["components"][0]["quantity"] == 15
