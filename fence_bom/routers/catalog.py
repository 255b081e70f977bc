from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from .. import schemas
from ..catalog_seed import seed_catalog
from ..database import get_db
from ..engine.errors import (
    CatalogConfigurationError, InvalidRoundingLevelError, MalformedFormulaError, OutOfOrderReferenceError,
    TemplateTieError, UnknownComponentError, UnresolvedCatalogEntryError,
)
from ..engine.formula import check_syntax
from ..engine.records import FormulaTemplateRecord
from ..engine.repository import SqlTemplateRepository, TemplateRepository
from ..engine.rounding import check_rounding_level
from ..engine.scheduler import validate_dependency_order
from ..engine.selector import find_selection_ties

router = APIRouter(prefix="/catalog", tags=["catalog"])


def get_repository(db: Session = Depends(get_db)) -> TemplateRepository:
    """One repository per request, bound to the request's DB session."""
    return SqlTemplateRepository(db)


@router.get("/seed")
def seed(db: Session = Depends(get_db)):
    """Seed the default wood-vertical catalog. Safe to run multiple times — skips existing."""
    added = seed_catalog(db)
    return {"ok": True, "added": added}


@router.get("/product-types/{code}/templates", response_model=List[schemas.FormulaTemplateOut])
def list_templates(code: str, repo: TemplateRepository = Depends(get_repository)):
    try:
        product_type = repo.require_product_type(code)
    except UnresolvedCatalogEntryError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return repo.list_active_templates(product_type.id)


@router.post("/templates", response_model=schemas.FormulaTemplateOut)
def create_template(payload: schemas.FormulaTemplateCreate, repo: TemplateRepository = Depends(get_repository)):
    """Add a formula template. Rejects ambiguous selections and out-of-order references."""
    try:
        product_type = repo.require_product_type(payload.product_type)
        style_id = repo.require_style(product_type, payload.style).id if payload.style else None
        return repo.add_template(FormulaTemplateRecord(
            id=None,
            product_type_id=product_type.id,
            component_code=payload.component_code,
            formula=payload.formula,
            rounding_level=payload.rounding_level.value,
            product_style_id=style_id,
            priority=payload.priority,
            is_active=payload.is_active,
            plain_english=payload.plain_english,
        ))
    except UnresolvedCatalogEntryError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TemplateTieError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (CatalogConfigurationError, MalformedFormulaError) as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/product-types/{code}/validate")
def validate_product_type(code: str, repo: TemplateRepository = Depends(get_repository)):
    """
    Run the catalog configuration checks for a product type.
    Returns every problem found rather than stopping at the first.
    """
    try:
        product_type = repo.require_product_type(code)
    except UnresolvedCatalogEntryError as e:
        raise HTTPException(status_code=404, detail=str(e))
    templates = repo.list_active_templates(product_type.id)

    syntax_errors = []
    for t in templates:
        error = check_syntax(t.formula)
        if error:
            syntax_errors.append({"template_id": t.id, "component_code": t.component_code, "error": error})

    rounding_errors = []
    for t in templates:
        try:
            check_rounding_level(t.rounding_level)
        except InvalidRoundingLevelError:
            rounding_errors.append({
                "template_id": t.id, "component_code": t.component_code, "rounding_level": t.rounding_level,
            })

    out_of_order = []
    unknown_components = []
    try:
        validate_dependency_order(templates)
    except UnknownComponentError as e:
        unknown_components = e.component_codes
        known = [t for t in templates if t.component_code not in e.component_codes]
        try:
            validate_dependency_order(known)
        except OutOfOrderReferenceError as inner:
            out_of_order = inner.violations
    except OutOfOrderReferenceError as e:
        out_of_order = e.violations

    ties = find_selection_ties(templates)
    ok = not (syntax_errors or rounding_errors or out_of_order or unknown_components or ties)
    return {
        "ok": ok,
        "product_type": code,
        "template_count": len(templates),
        "syntax_errors": syntax_errors,
        "rounding_errors": rounding_errors,
        "out_of_order": [{"component_code": c, "references": r} for c, r in out_of_order],
        "unknown_components": unknown_components,
        "ties": [{"component_code": c, "product_style_id": s, "priority": p} for c, s, p in ties],
    }
