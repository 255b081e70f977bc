"""
Exception types raised by the BOM formula engine.

Missing variables and templates that simply don't exist are NOT exceptions —
they show up as diagnostics or as absent components. Everything here is either
a per-component failure the scheduler recovers from (MalformedFormulaError),
a lookup failure that aborts the calculation (UnresolvedCatalogEntryError),
or a catalog configuration problem caught by validation tooling.
"""


class BomEngineError(Exception):
    """Base class for all engine errors."""


class MalformedFormulaError(BomEngineError):
    """Formula text is outside the supported grammar or cannot be evaluated."""

    def __init__(self, formula: str, reason: str, position: int = None):
        self.formula = formula
        self.reason = reason
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Malformed formula{where}: {reason} — {formula!r}")


class UnresolvedCatalogEntryError(BomEngineError):
    """Product type, style or SKU could not be found in the catalog."""

    def __init__(self, kind: str, code: str):
        self.kind = kind
        self.code = code
        super().__init__(f"{kind} not found: {code}")


class CatalogConfigurationError(BomEngineError):
    """Base class for problems that validation should catch before runtime."""


class OutOfOrderReferenceError(CatalogConfigurationError):
    """A formula references a component computed at the same or a later step."""

    def __init__(self, violations: list):
        # violations: list of (component_code, referenced_code) tuples
        self.violations = violations
        detail = ", ".join(f"{c} -> {r}_qty" for c, r in violations)
        super().__init__(f"Formula references components not yet computed: {detail}")


class UnknownComponentError(CatalogConfigurationError):
    """A template targets a component code missing from the execution order."""

    def __init__(self, component_codes: list):
        self.component_codes = component_codes
        super().__init__(
            f"Component codes not in execution order: {', '.join(component_codes)}"
        )


class TemplateTieError(CatalogConfigurationError):
    """Two active templates share component, style scope and priority."""

    def __init__(self, ties: list):
        # ties: list of (component_code, product_style_id, priority) tuples
        self.ties = ties
        detail = "; ".join(
            f"{code} (style={style or 'generic'}, priority={priority})"
            for code, style, priority in ties
        )
        super().__init__(f"Ambiguous formula template selection: {detail}")


class InvalidRoundingLevelError(CatalogConfigurationError, ValueError):
    """A template's rounding level is not one of the RoundingLevel values."""

    def __init__(self, rounding_level):
        self.rounding_level = rounding_level
        super().__init__(f"Unknown rounding level: {rounding_level!r}")
