from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from .config import settings
from .engine.records import PostType, RoundingLevel, StyleTag


# --- Calculation ---

class CalculationRequest(BaseModel):
    product_type: str = settings.DEFAULT_PRODUCT_TYPE
    style: Optional[str] = None  # None = generic templates only
    length: float = Field(gt=0, description="Net fence length in feet")
    lines: int = Field(default=1, ge=0)
    gates: int = Field(default=0, ge=0)
    # Keys must match formula variable names, e.g. rail_count, post_spacing, picket.width_inches
    attributes: Dict[str, float] = {}
    components: Optional[List[str]] = None  # restrict to these component codes


class LegacyCalculationRequest(BaseModel):
    length: float = Field(gt=0)
    lines: int = Field(default=1, ge=0)
    gates: int = Field(default=0, ge=0)
    rail_count: int = Field(ge=0)
    post_spacing: float = Field(gt=0)
    style_tag: StyleTag = StyleTag.STANDARD
    picket_width: Optional[float] = Field(default=None, gt=0)
    cap_length: Optional[float] = Field(default=None, ge=0)
    trim_length: Optional[float] = Field(default=None, ge=0)
    rot_board_length: Optional[float] = Field(default=None, ge=0)
    post_type: PostType = PostType.WOOD


class ComputedComponentOut(BaseModel):
    component_code: str
    quantity: float
    trace: str
    raw_value: Optional[float] = None
    rounding_level: Optional[str] = None


class DiagnosticOut(BaseModel):
    severity: str
    kind: str
    component_code: str
    message: str
    formula: Optional[str] = None
    variable: Optional[str] = None


class CalculationResponse(BaseModel):
    components: List[ComputedComponentOut] = []
    diagnostics: List[DiagnosticOut] = []


# --- Comparison ---

class CompareRequest(BaseModel):
    sku_code: str
    length: float = Field(default=100, gt=0)
    lines: int = Field(default=4, ge=0)
    gates: int = Field(default=0, ge=0)


class ComparisonRowOut(BaseModel):
    component: str
    v1_quantity: float
    v2_quantity: float
    absolute_difference: float
    relative_difference: float
    status: str
    v1_trace: str = ""
    v2_trace: str = ""


class ComparisonReportOut(BaseModel):
    sku_code: Optional[str] = None
    passed: bool
    counts: Dict[str, int]
    rows: List[ComparisonRowOut] = []
    extra_v2: List[str] = []
    diagnostics: List[DiagnosticOut] = []


# --- Catalog ---

class FormulaTemplateCreate(BaseModel):
    product_type: str
    style: Optional[str] = None  # None = applies to all styles
    component_code: str
    formula: str
    rounding_level: RoundingLevel = RoundingLevel.SKU
    priority: int = 0
    is_active: bool = True
    plain_english: Optional[str] = None


class FormulaTemplateOut(BaseModel):
    id: str
    component_code: str
    formula: str
    rounding_level: str
    product_style_id: Optional[str] = None
    priority: int
    is_active: bool
    plain_english: Optional[str] = None
    class Config:
        from_attributes = True
