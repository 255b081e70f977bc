"""
V1 vs V2 comparison harness.

Runs the legacy calculator and the formula interpreter on the same SKU and
inputs, then classifies every V1 component:

    MATCH       |v1 - v2| < 0.001
    CLOSE       relative difference <= 1%
    DIFFERENT   anything else
    MISSING_V2  V2 produced no such component

A report with any DIFFERENT or MISSING_V2 row fails the migration check.
Components only V2 produced are listed in extra_v2 but don't fail it.
"""

import enum
from dataclasses import asdict, dataclass, field
from typing import Optional

from ..config import settings
from .interpreter import FormulaInterpreter
from .legacy import WoodVerticalCalculator
from .records import SkuRecord


class ComparisonStatus(str, enum.Enum):
    MATCH = "MATCH"
    CLOSE = "CLOSE"
    DIFFERENT = "DIFFERENT"
    MISSING_V2 = "MISSING_V2"


FAILING_STATUSES = (ComparisonStatus.DIFFERENT, ComparisonStatus.MISSING_V2)

_STATUS_ICONS = {
    ComparisonStatus.MATCH: "OK",
    ComparisonStatus.CLOSE: "~~",
    ComparisonStatus.DIFFERENT: "!!",
    ComparisonStatus.MISSING_V2: "XX",
}


@dataclass(frozen=True)
class ComparisonResult:
    component: str
    v1_quantity: float
    v2_quantity: float
    absolute_difference: float
    relative_difference: float   # fraction of the V1 quantity (0.01 == 1%)
    status: ComparisonStatus
    v1_trace: str = ""
    v2_trace: str = ""

    @property
    def percent_difference(self) -> str:
        return f"{self.relative_difference * 100:.2f}%"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class ComparisonReport:
    rows: list = field(default_factory=list)       # [ComparisonResult], V1 order
    extra_v2: list = field(default_factory=list)   # component codes only V2 produced
    sku_code: Optional[str] = None
    diagnostics: list = field(default_factory=list)

    @property
    def failures(self) -> list:
        return [r for r in self.rows if r.status in FAILING_STATUSES]

    @property
    def passed(self) -> bool:
        return not self.failures

    def counts(self) -> dict:
        counts = {status.value: 0 for status in ComparisonStatus}
        for row in self.rows:
            counts[row.status.value] += 1
        return counts

    def to_dict(self) -> dict:
        return {
            "sku_code": self.sku_code,
            "passed": self.passed,
            "counts": self.counts(),
            "rows": [r.to_dict() for r in self.rows],
            "extra_v2": list(self.extra_v2),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


def classify(v1_quantity: float, v2_quantity: float,
             match_tolerance: float = None, close_pct: float = None) -> tuple:
    """Returns (absolute_difference, relative_difference, status) for a V1/V2 pair."""
    if match_tolerance is None:
        match_tolerance = settings.COMPARE_MATCH_TOLERANCE
    if close_pct is None:
        close_pct = settings.COMPARE_CLOSE_PCT

    diff = abs(v1_quantity - v2_quantity)
    if v1_quantity != 0:
        relative = diff / abs(v1_quantity)
    else:
        relative = 1.0 if v2_quantity != 0 else 0.0

    if diff < match_tolerance:
        status = ComparisonStatus.MATCH
    elif relative <= close_pct / 100.0:
        status = ComparisonStatus.CLOSE
    else:
        status = ComparisonStatus.DIFFERENT
    return diff, relative, status


def compare_results(v1_results: list, v2_results: list,
                    match_tolerance: float = None, close_pct: float = None) -> ComparisonReport:
    """Diff two ComputedComponent lists by component code."""
    v2_by_code = {c.component_code: c for c in v2_results}
    v1_codes = set()
    report = ComparisonReport()

    for v1 in v1_results:
        v1_codes.add(v1.component_code)
        v2 = v2_by_code.get(v1.component_code)

        if v2 is None:
            report.rows.append(ComparisonResult(
                component=v1.component_code,
                v1_quantity=v1.quantity,
                v2_quantity=0,
                absolute_difference=abs(v1.quantity),
                relative_difference=1.0,
                status=ComparisonStatus.MISSING_V2,
                v1_trace=v1.trace,
                v2_trace="NOT FOUND",
            ))
            continue

        diff, relative, status = classify(v1.quantity, v2.quantity, match_tolerance, close_pct)
        report.rows.append(ComparisonResult(
            component=v1.component_code,
            v1_quantity=v1.quantity,
            v2_quantity=v2.quantity,
            absolute_difference=diff,
            relative_difference=relative,
            status=status,
            v1_trace=v1.trace,
            v2_trace=v2.trace,
        ))

    report.extra_v2 = [c.component_code for c in v2_results if c.component_code not in v1_codes]
    return report


def compare_sku(interpreter: FormulaInterpreter, sku: SkuRecord, net_length: float,
                number_of_lines: int, number_of_gates: int = 0,
                legacy: WoodVerticalCalculator = None) -> ComparisonReport:
    """Run V1 and V2 for one SKU on identical inputs and diff them."""
    legacy = legacy or WoodVerticalCalculator()
    v1_results = legacy.calculate_sku(sku, net_length, number_of_lines, number_of_gates)
    v2 = interpreter.calculate_sku(sku, net_length, number_of_lines, number_of_gates)

    report = compare_results(v1_results, v2.components)
    report.sku_code = sku.sku_code
    report.diagnostics = list(v2.diagnostics)
    return report


def format_report(report: ComparisonReport) -> str:
    """Plain-text table for the CLI, with a discrepancy section when needed."""
    rule = "-" * 70
    lines = [
        f"  SKU: {report.sku_code or '-'}",
        f"  {rule}",
        f"  {'COMPONENT':<18} | {'V1 QTY':>9} | {'V2 QTY':>9} | {'DIFF':>8} | STATUS",
        f"  {rule}",
    ]
    for row in report.rows:
        lines.append(
            f"  {row.component:<18} | {row.v1_quantity:>9.2f} | {row.v2_quantity:>9.2f} | "
            f"{row.percent_difference:>8} | {_STATUS_ICONS[row.status]} {row.status.value}"
        )
    lines.append(f"  {rule}")

    issues = [r for r in report.rows if r.status is not ComparisonStatus.MATCH]
    if issues:
        lines.append("")
        lines.append("  DISCREPANCIES:")
        for row in issues:
            lines.append(f"  {row.component.upper()}:")
            lines.append(f"    V1: {row.v1_trace}")
            lines.append(f"    V2: {row.v2_trace}")
            lines.append(f"    Diff: {row.absolute_difference:.4f} ({row.percent_difference})")
    else:
        lines.append("  All calculations match.")

    if report.extra_v2:
        lines.append(f"  V2 only: {', '.join(report.extra_v2)}")
    for diagnostic in report.diagnostics:
        lines.append(f"  [{diagnostic.severity}] {diagnostic.component_code}: {diagnostic.message}")
    return "\n".join(lines)
