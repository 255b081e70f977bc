"""
V2 formula interpreter — the production calculation path.

    interpreter = FormulaInterpreter(repository)
    result = interpreter.calculate("wood-vertical", "standard", 100, 4, 0, attributes)

Catalog lookups happen once up front; the rest is synchronous and touches
only the context created for this call, so separate calculations can run in
parallel without sharing anything.
"""

import logging
from typing import Iterable, Mapping, Optional

from .context import build_context, sku_attributes, sku_component_filter
from .records import CalculationResult, SkuRecord
from .repository import TemplateRepository
from .scheduler import EXECUTION_ORDER, run_formulas
from .selector import select_templates

logger = logging.getLogger(__name__)


class FormulaInterpreter:
    """Database-driven BOM calculator (V2)."""

    def __init__(self, repository: TemplateRepository, order: Iterable[str] = EXECUTION_ORDER):
        self.repository = repository
        self.order = tuple(order)

    def load_formulas(self, product_type_code: str, style_code: Optional[str]) -> dict:
        """
        {component_code: template} for a product type + style.
        Raises UnresolvedCatalogEntryError if either is unknown.
        A None style selects generic templates only.
        """
        product_type = self.repository.require_product_type(product_type_code)
        style_id = None
        if style_code is not None:
            style_id = self.repository.require_style(product_type, style_code).id

        templates = self.repository.list_active_templates(product_type.id)
        return select_templates(templates, style_id)

    def calculate(
        self,
        product_type_code: str,
        style_code: Optional[str],
        net_length: float,
        number_of_lines: int,
        number_of_gates: int = 0,
        attributes: Optional[Mapping] = None,
        component_filter: Optional[Iterable[str]] = None,
    ) -> CalculationResult:
        selected = self.load_formulas(product_type_code, style_code)
        context = build_context(net_length, number_of_lines, number_of_gates, attributes)

        result = run_formulas(selected, context, self.order, component_filter)
        logger.info(
            "Calculated %d components for %s/%s (%.1f ft, %d lines, %d diagnostics)",
            len(result.components), product_type_code, style_code or "generic",
            net_length, number_of_lines, len(result.diagnostics),
        )
        return result

    def calculate_sku(self, sku: SkuRecord, net_length: float, number_of_lines: int,
                      number_of_gates: int = 0) -> CalculationResult:
        """Run V2 for a catalogued SKU, limited to the components it has."""
        return self.calculate(
            sku.product_type_code,
            sku.style_code,
            net_length,
            number_of_lines,
            number_of_gates,
            attributes=sku_attributes(sku),
            component_filter=sku_component_filter(sku),
        )
