"""
Plain records passed between the engine stages.

These are decoupled from the SQLAlchemy models so the engine can run against
any TemplateRepository (in-memory for tests, database in the app).
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional


class RoundingLevel(str, Enum):
    SKU = "sku"          # ceiling per SKU: whole pickets, whole posts
    PROJECT = "project"  # fractional, rounded after project-level aggregation


class StyleTag(str, Enum):
    STANDARD = "standard"
    GOOD_NEIGHBOR = "good_neighbor"
    BOARD_ON_BOARD = "board_on_board"


class PostType(str, Enum):
    WOOD = "WOOD"
    STEEL = "STEEL"


@dataclass(frozen=True)
class ProductTypeRecord:
    id: str
    code: str
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class ProductStyleRecord:
    id: str
    product_type_id: str
    code: str
    name: str
    style_tag: StyleTag = StyleTag.STANDARD


@dataclass(frozen=True)
class FormulaTemplateRecord:
    id: str
    product_type_id: str
    component_code: str
    formula: str
    rounding_level: str = RoundingLevel.SKU.value
    product_style_id: Optional[str] = None   # None = all styles of the product type
    priority: int = 0
    is_active: bool = True
    plain_english: Optional[str] = None


@dataclass(frozen=True)
class SkuRecord:
    """A catalogued SKU with everything both calculators need."""
    sku_code: str
    product_type_code: str
    style_code: str
    style_tag: StyleTag
    height: float
    post_type: PostType
    rail_count: int
    post_spacing: float
    picket_width_inches: Optional[float] = None
    cap_length_feet: Optional[float] = None
    trim_length_feet: Optional[float] = None
    rot_board_length_feet: Optional[float] = None
    components: tuple = ()   # configured component codes; empty = all


@dataclass(frozen=True)
class Diagnostic:
    severity: str        # 'warning' | 'error'
    kind: str            # 'missing_variable' | 'malformed_formula'
    component_code: str
    message: str
    formula: Optional[str] = None
    variable: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ComputedComponent:
    component_code: str
    quantity: float
    trace: str
    raw_value: Optional[float] = None
    rounding_level: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CalculationResult:
    components: list = field(default_factory=list)   # [ComputedComponent], dependency order
    diagnostics: list = field(default_factory=list)  # [Diagnostic]

    def quantities(self) -> dict:
        return {c.component_code: c.quantity for c in self.components}

    def get(self, component_code: str) -> Optional[ComputedComponent]:
        for component in self.components:
            if component.component_code == component_code:
                return component
        return None

    def to_dict(self) -> dict:
        return {
            "components": [c.to_dict() for c in self.components],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
