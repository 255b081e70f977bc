"""
Catalog repositories — the engine's only way to reach product/template data.

The interpreter takes a repository in its constructor instead of reaching for
a shared database handle, so tests run against InMemoryTemplateRepository and
the app runs against SqlTemplateRepository (one per request session).

Writes go through TemplateRepository.add_template(), which refuses templates
that would make selection ambiguous or break the dependency order.
"""

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Iterable, Optional

from .errors import MalformedFormulaError, UnresolvedCatalogEntryError
from .formula import check_syntax
from .records import (
    FormulaTemplateRecord, PostType, ProductStyleRecord, ProductTypeRecord,
    SkuRecord, StyleTag,
)
from .rounding import check_rounding_level
from .scheduler import EXECUTION_ORDER, validate_dependency_order
from .selector import ensure_no_ties

logger = logging.getLogger(__name__)


class TemplateRepository(ABC):
    """Read contract for the formula catalog, plus a validated write path."""

    @abstractmethod
    def get_product_type(self, code: str) -> Optional[ProductTypeRecord]:
        ...

    @abstractmethod
    def get_style(self, product_type_id: str, code: str) -> Optional[ProductStyleRecord]:
        ...

    @abstractmethod
    def list_active_templates(self, product_type_id: str) -> list:
        """Active FormulaTemplateRecords for a product type (any style scope)."""

    @abstractmethod
    def get_sku(self, sku_code: str) -> Optional[SkuRecord]:
        ...

    @abstractmethod
    def list_skus(self) -> list:
        ...

    @abstractmethod
    def _insert_template(self, template: FormulaTemplateRecord) -> FormulaTemplateRecord:
        ...

    # --- lookups that must succeed ---

    def require_product_type(self, code: str) -> ProductTypeRecord:
        product_type = self.get_product_type(code)
        if product_type is None or not product_type.is_active:
            raise UnresolvedCatalogEntryError("Product type", code)
        return product_type

    def require_style(self, product_type: ProductTypeRecord, code: str) -> ProductStyleRecord:
        style = self.get_style(product_type.id, code)
        if style is None:
            raise UnresolvedCatalogEntryError("Product style", f"{product_type.code}/{code}")
        return style

    def require_sku(self, sku_code: str) -> SkuRecord:
        sku = self.get_sku(sku_code)
        if sku is None:
            raise UnresolvedCatalogEntryError("SKU", sku_code)
        return sku

    # --- validated write path ---

    def add_template(self, template: FormulaTemplateRecord,
                     order: Iterable[str] = EXECUTION_ORDER) -> FormulaTemplateRecord:
        """
        Store a new template after catalog-write validation:
        formula must parse, rounding level must be known, it must not tie
        with an existing active template, and it may only reference
        components that are computed before it.
        """
        error = check_syntax(template.formula)
        if error is not None:
            raise MalformedFormulaError(template.formula, error)
        check_rounding_level(template.rounding_level)

        if template.is_active:
            existing = self.list_active_templates(template.product_type_id)
            ensure_no_ties(list(existing) + [template])
        validate_dependency_order([template], order)

        stored = self._insert_template(template)
        logger.info(
            "Added formula template %s for %s (style=%s, priority=%s)",
            stored.id, stored.component_code, stored.product_style_id or "generic", stored.priority,
        )
        return stored


class InMemoryTemplateRepository(TemplateRepository):
    """Dict-backed catalog for tests and offline comparison runs."""

    def __init__(self, product_types: Iterable[ProductTypeRecord] = (),
                 styles: Iterable[ProductStyleRecord] = (),
                 templates: Iterable[FormulaTemplateRecord] = (),
                 skus: Iterable[SkuRecord] = ()):
        self._product_types = {p.code: p for p in product_types}
        self._styles = {(s.product_type_id, s.code): s for s in styles}
        self._templates = list(templates)
        self._skus = {s.sku_code: s for s in skus}
        self._ids = itertools.count(len(self._templates) + 1)

    def get_product_type(self, code):
        return self._product_types.get(code)

    def get_style(self, product_type_id, code):
        return self._styles.get((product_type_id, code))

    def list_active_templates(self, product_type_id):
        return [t for t in self._templates if t.product_type_id == product_type_id and t.is_active]

    def get_sku(self, sku_code):
        return self._skus.get(sku_code)

    def list_skus(self):
        return sorted(self._skus.values(), key=lambda s: s.sku_code)

    def _insert_template(self, template):
        if template.id is None:
            template = replace(template, id=f"t{next(self._ids)}")
        self._templates.append(template)
        return template


class SqlTemplateRepository(TemplateRepository):
    """SQLAlchemy-backed catalog. One instance per DB session."""

    def __init__(self, db):
        self.db = db

    @staticmethod
    def _type_record(row) -> ProductTypeRecord:
        return ProductTypeRecord(id=str(row.id), code=row.code, name=row.name, is_active=bool(row.is_active))

    @staticmethod
    def _style_record(row) -> ProductStyleRecord:
        return ProductStyleRecord(
            id=str(row.id),
            product_type_id=str(row.product_type_id),
            code=row.code,
            name=row.name,
            style_tag=StyleTag(row.style_tag or StyleTag.STANDARD.value),
        )

    @staticmethod
    def _template_record(row) -> FormulaTemplateRecord:
        return FormulaTemplateRecord(
            id=str(row.id),
            product_type_id=str(row.product_type_id),
            component_code=row.component_type.code,
            formula=row.formula,
            rounding_level=row.rounding_level,
            product_style_id=str(row.product_style_id) if row.product_style_id is not None else None,
            priority=row.priority or 0,
            is_active=bool(row.is_active),
            plain_english=row.plain_english,
        )

    @staticmethod
    def _sku_record(row) -> SkuRecord:
        variables = row.variables or {}
        return SkuRecord(
            sku_code=row.sku_code,
            product_type_code=row.product_type.code,
            style_code=row.product_style.code,
            style_tag=StyleTag(row.product_style.style_tag or StyleTag.STANDARD.value),
            height=row.height,
            post_type=PostType(row.post_type),
            rail_count=int(variables.get("rail_count", 0)),
            post_spacing=float(variables.get("post_spacing", 8)),
            picket_width_inches=variables.get("picket_width_inches"),
            cap_length_feet=variables.get("cap_length_feet"),
            trim_length_feet=variables.get("trim_length_feet"),
            rot_board_length_feet=variables.get("rot_board_length_feet"),
            components=tuple(row.components or ()),
        )

    def get_product_type(self, code):
        from .. import models
        row = self.db.query(models.ProductType).filter(models.ProductType.code == code).first()
        return self._type_record(row) if row else None

    def get_style(self, product_type_id, code):
        from .. import models
        row = self.db.query(models.ProductStyle).filter(
            models.ProductStyle.product_type_id == int(product_type_id),
            models.ProductStyle.code == code,
        ).first()
        return self._style_record(row) if row else None

    def list_active_templates(self, product_type_id):
        from .. import models
        rows = self.db.query(models.FormulaTemplate).filter(
            models.FormulaTemplate.product_type_id == int(product_type_id),
            models.FormulaTemplate.is_active.is_(True),
        ).order_by(models.FormulaTemplate.id).all()
        return [self._template_record(r) for r in rows]

    def get_sku(self, sku_code):
        from .. import models
        row = self.db.query(models.SkuCatalog).filter(
            models.SkuCatalog.sku_code == sku_code,
            models.SkuCatalog.is_active.is_(True),
        ).first()
        return self._sku_record(row) if row else None

    def list_skus(self):
        from .. import models
        rows = self.db.query(models.SkuCatalog).filter(
            models.SkuCatalog.is_active.is_(True),
        ).order_by(models.SkuCatalog.sku_code).all()
        return [self._sku_record(r) for r in rows]

    def _insert_template(self, template):
        from .. import models
        component = self.db.query(models.ComponentType).filter(
            models.ComponentType.code == template.component_code,
        ).first()
        if component is None:
            raise UnresolvedCatalogEntryError("Component type", template.component_code)

        row = models.FormulaTemplate(
            product_type_id=int(template.product_type_id),
            product_style_id=int(template.product_style_id) if template.product_style_id is not None else None,
            component_type_id=component.id,
            formula=template.formula,
            rounding_level=template.rounding_level,
            plain_english=template.plain_english,
            priority=template.priority,
            is_active=template.is_active,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return self._template_record(row)
