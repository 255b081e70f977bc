from fastapi import APIRouter, Depends, HTTPException
from .. import schemas
from ..engine.comparison import compare_sku
from ..engine.errors import UnresolvedCatalogEntryError
from ..engine.interpreter import FormulaInterpreter
from ..engine.legacy import WoodVerticalCalculator
from ..engine.repository import TemplateRepository
from .catalog import get_repository

router = APIRouter(prefix="/bom", tags=["bom"])


@router.post("/calculate", response_model=schemas.CalculationResponse)
def calculate(payload: schemas.CalculationRequest, repo: TemplateRepository = Depends(get_repository)):
    """V2 calculation — always returns a best-effort component list plus diagnostics."""
    interpreter = FormulaInterpreter(repo)
    try:
        result = interpreter.calculate(
            payload.product_type,
            payload.style,
            payload.length,
            payload.lines,
            payload.gates,
            attributes=payload.attributes,
            component_filter=payload.components,
        )
    except UnresolvedCatalogEntryError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result.to_dict()


@router.post("/calculate/legacy", response_model=schemas.CalculationResponse)
def calculate_legacy(payload: schemas.LegacyCalculationRequest):
    """V1 reference calculation (wood vertical only). For migration checks, not quoting."""
    components = WoodVerticalCalculator().calculate(
        net_length=payload.length,
        number_of_lines=payload.lines,
        number_of_gates=payload.gates,
        rail_count=payload.rail_count,
        post_spacing=payload.post_spacing,
        style_tag=payload.style_tag,
        picket_width=payload.picket_width,
        cap_length=payload.cap_length,
        trim_length=payload.trim_length,
        rot_board_length=payload.rot_board_length,
        post_type=payload.post_type,
    )
    return {"components": [c.to_dict() for c in components], "diagnostics": []}


@router.post("/compare", response_model=schemas.ComparisonReportOut)
def compare(payload: schemas.CompareRequest, repo: TemplateRepository = Depends(get_repository)):
    """V1 vs V2 diff for a catalogued SKU."""
    try:
        sku = repo.require_sku(payload.sku_code)
        report = compare_sku(FormulaInterpreter(repo), sku, payload.length, payload.lines, payload.gates)
    except UnresolvedCatalogEntryError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return report.to_dict()
