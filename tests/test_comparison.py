"""
V1 reference calculator + V1 vs V2 comparison tests.

Tests:
1-6.   WoodVerticalCalculator quantities and quirks
7-8.   Legacy style classification (import-time only)
9-13.  Status classification thresholds
14-18. SKU comparisons against the default catalog, report formatting, CLI
"""

import pytest

from fence_bom.compare_cli import main as compare_main
from fence_bom.engine.comparison import (
    ComparisonStatus, classify, compare_results, compare_sku, format_report,
)
from fence_bom.engine.legacy import WoodVerticalCalculator, classify_style_name
from fence_bom.engine.records import ComputedComponent, PostType, StyleTag


def v1(**overrides):
    kwargs = dict(
        net_length=100, number_of_lines=4, number_of_gates=0, rail_count=3,
        post_spacing=8, style_tag=StyleTag.STANDARD, picket_width=5.5,
    )
    kwargs.update(overrides)
    return {c.component_code: c.quantity for c in WoodVerticalCalculator().calculate(**kwargs)}


def component(code, quantity):
    return ComputedComponent(component_code=code, quantity=quantity, trace=f"{code}={quantity}")


# ============================================================
# V1 calculator
# ============================================================

def test_v1_posts_and_rails():
    quantities = v1()
    assert quantities["post"] == 15    # 13 sections + 1 + 1 extra for lines 3-4
    assert quantities["rail"] == 39    # 13 sections * 3 rails


def test_v1_extra_posts_for_lines():
    assert v1(number_of_lines=1)["post"] == 14
    assert v1(number_of_lines=2)["post"] == 14
    assert v1(number_of_lines=5)["post"] == 16


def test_v1_picket_styles():
    assert v1()["picket"] == 224
    assert v1(style_tag=StyleTag.GOOD_NEIGHBOR)["picket"] == 249
    assert v1(style_tag=StyleTag.BOARD_ON_BOARD)["picket"] == 290


def test_v1_trim_not_doubled_for_good_neighbor():
    quantities = v1(style_tag=StyleTag.GOOD_NEIGHBOR, cap_length=8, trim_length=8)
    assert quantities["trim"] == 13
    assert quantities["cap"] == 13
    assert "rot_board" not in quantities


def test_v1_steel_only_components():
    wood = v1()
    steel = v1(post_type=PostType.STEEL)
    assert "bracket" not in wood and "steel_post_cap" not in wood
    assert steel["bracket"] == 45
    assert steel["steel_post_cap"] == 15


def test_v1_project_level_quantities_stay_fractional():
    quantities = v1()
    assert quantities["nails_picket"] == pytest.approx(224 * 3 * 2 / 300)
    assert quantities["nails_framing"] == pytest.approx(15 * 3 * 4 / 28)
    assert quantities["concrete_sand"] == 1.5
    assert quantities["concrete_portland"] == 0.75
    assert quantities["concrete_quickrock"] == 7.5


def test_classify_legacy_style_names():
    assert classify_style_name("Good Neighbor Builder") is StyleTag.GOOD_NEIGHBOR
    assert classify_style_name("good-neighbor") is StyleTag.GOOD_NEIGHBOR
    assert classify_style_name("Board-on-Board") is StyleTag.BOARD_ON_BOARD
    assert classify_style_name("Shadowbox") is StyleTag.STANDARD
    assert classify_style_name(None) is StyleTag.STANDARD


def test_classification_is_logged(caplog):
    with caplog.at_level("INFO", logger="fence_bom.engine.legacy"):
        classify_style_name("Good Neighbor Residential")
    assert "good_neighbor" in caplog.text


# ============================================================
# Status thresholds
# ============================================================

def test_classify_match():
    assert classify(15, 15)[2] is ComparisonStatus.MATCH
    assert classify(0, 0)[2] is ComparisonStatus.MATCH
    assert classify(2.9866, 2.98665)[2] is ComparisonStatus.MATCH


def test_classify_close_within_one_percent():
    diff, relative, status = classify(15, 15.1)
    assert status is ComparisonStatus.CLOSE
    assert diff == pytest.approx(0.1)
    assert relative == pytest.approx(0.1 / 15)


def test_classify_different():
    assert classify(15, 20)[2] is ComparisonStatus.DIFFERENT
    assert classify(0, 1) == (1, 1.0, ComparisonStatus.DIFFERENT)


def test_missing_v2_fails_report():
    report = compare_results([component("post", 15), component("cap", 13)], [component("post", 15)])
    statuses = {r.component: r.status for r in report.rows}
    assert statuses == {"post": ComparisonStatus.MATCH, "cap": ComparisonStatus.MISSING_V2}
    cap = report.rows[1]
    assert cap.v2_quantity == 0
    assert cap.relative_difference == 1.0
    assert not report.passed


def test_extra_v2_components_do_not_fail():
    report = compare_results([component("post", 15)], [component("post", 15), component("bracket", 45)])
    assert report.extra_v2 == ["bracket"]
    assert report.passed
    assert report.counts()["MATCH"] == 1


# ============================================================
# SKU comparisons
# ============================================================

@pytest.mark.parametrize("sku_code", ["A01", "C05", "D07"])
def test_reference_skus_match(repo, interpreter, sku_code):
    report = compare_sku(interpreter, repo.require_sku(sku_code), 100, 4, 0)
    assert report.passed, format_report(report)
    assert report.counts()["MATCH"] == len(report.rows)
    assert report.extra_v2 == []
    assert report.diagnostics == []


def test_reference_skus_match_at_other_lengths(repo, interpreter):
    for length in (7, 48.5, 250):
        for sku in repo.list_skus():
            report = compare_sku(interpreter, sku, length, 1, 0)
            assert report.passed, format_report(report)


def test_report_formatting_lists_discrepancies():
    report = compare_results([component("post", 15)], [component("post", 20)])
    report.sku_code = "X99"
    text = format_report(report)
    assert "SKU: X99" in text
    assert "DISCREPANCIES" in text
    assert "DIFFERENT" in text


def test_cli_exit_codes(capsys):
    assert compare_main(["A01", "C05", "D07"]) == 0
    assert "PASSED" in capsys.readouterr().out
    assert compare_main(["Z99"]) == 2
