"""
Default wood-vertical catalog — product type, styles, component types,
formula templates and the reference SKUs used for V1 vs V2 validation.

The formulas are the V2 translation of the V1 calculator; the reference SKUs
are imported from V1-shaped rows (free-text style names), which is the one
place the legacy style heuristic is allowed to run.
"""

import logging

from .engine.legacy import classify_style_name
from .engine.records import (
    FormulaTemplateRecord, PostType, ProductStyleRecord, ProductTypeRecord, SkuRecord,
)
from .engine.repository import InMemoryTemplateRepository

logger = logging.getLogger(__name__)

WOOD_VERTICAL = "wood-vertical"

PRODUCT_TYPES = {
    WOOD_VERTICAL: {"name": "Wood Vertical", "default_post_spacing": 8.0},
}

# style code -> (display name, legacy V1 name)
STYLES = {
    "standard": ("Standard", "Standard"),
    "good-neighbor-residential": ("Good Neighbor Residential", "Good Neighbor Residential"),
    "good-neighbor-builder": ("Good Neighbor Builder", "Good Neighbor Builder"),
    "board-on-board": ("Board on Board", "Board-on-Board"),
}

# V1 free-text style -> V2 style code
LEGACY_STYLE_CODES = {
    "Standard": "standard",
    "standard": "standard",
    "Good Neighbor": "good-neighbor-residential",
    "good-neighbor": "good-neighbor-residential",
    "Good Neighbor Residential": "good-neighbor-residential",
    "good-neighbor-residential": "good-neighbor-residential",
    "Good Neighbor Builder": "good-neighbor-builder",
    "good-neighbor-builder": "good-neighbor-builder",
    "Board-on-Board": "board-on-board",
    "board-on-board": "board-on-board",
    "Board on Board": "board-on-board",
}

# code -> (name, unit_type)
COMPONENT_TYPES = {
    "post": ("Post", "Each"),
    "picket": ("Picket", "Each"),
    "rail": ("Rail", "Each"),
    "bracket": ("Bracket", "Each"),
    "cap": ("Cap", "Each"),
    "trim": ("Trim", "Each"),
    "rot_board": ("Rot Board", "Each"),
    "steel_post_cap": ("Steel Post Cap", "Each"),
    "nails_picket": ("Picket Nails", "Coil"),
    "nails_framing": ("Framing Nails", "Box"),
    "concrete_sand": ("Concrete Sand", "Yard"),
    "concrete_portland": ("Portland Cement", "Bag"),
    "concrete_quickrock": ("QuickRock", "Bag"),
}

_PICKET_STANDARD = "[Quantity]*12/[picket.width_inches]*1.025"
_PICKET_GOOD_NEIGHBOR = "[Quantity]*12/[picket.width_inches]*1.025*1.11"
_PICKET_BOARD_ON_BOARD = "([Quantity]*12*2)/([picket.width_inches]*2-2.5)*1.025"

# (component, style code or None, formula, rounding level, priority, plain english)
WOOD_VERTICAL_TEMPLATES = [
    ("post", None, "ROUNDUP([Quantity]/[post_spacing])+1+ROUNDUP(MAX([Lines]-2,0)/2)", "sku", 0,
     "Posts = sections + 1, plus extra for multiple fence lines"),
    ("picket", None, _PICKET_STANDARD, "sku", 0,
     "Pickets = fence length in inches / picket width * 2.5% waste"),
    ("picket", "good-neighbor-residential", _PICKET_GOOD_NEIGHBOR, "sku", 10,
     "Good Neighbor: 11% more pickets for both sides"),
    ("picket", "good-neighbor-builder", _PICKET_GOOD_NEIGHBOR, "sku", 10,
     "Good Neighbor Builder: 11% more pickets for both sides"),
    ("picket", "board-on-board", _PICKET_BOARD_ON_BOARD, "sku", 10,
     "Board on Board: overlap formula (length*2)/(width*2-gap)*waste"),
    ("rail", None, "ROUNDUP([Quantity]/[post_spacing])*[rail_count]", "sku", 0,
     "Rails = sections * rails per section"),
    ("bracket", None, "[post_qty]*[rail_count]", "sku", 0,
     "Brackets = posts * rails (steel posts only)"),
    ("cap", None, "ROUNDUP([Quantity]/[cap.length_feet])", "sku", 0,
     "Cap boards = fence length / cap length"),
    ("trim", None, "ROUNDUP([Quantity]/[trim.length_feet])", "sku", 0,
     "Trim boards = fence length / trim length (one side only)"),
    ("rot_board", None, "ROUNDUP([Quantity]/[rot_board.length_feet])", "sku", 0,
     "Rot boards = fence length / rot board length"),
    ("steel_post_cap", None, "[post_qty]", "sku", 0,
     "One cap per steel post"),
    ("nails_picket", None, "([picket_qty]*[rail_count]*2)/300", "project", 0,
     "Nail coils = (pickets * rails * 2 nails) / 300 nails per coil"),
    ("nails_framing", None, "([post_qty]*[rail_count]*4)/28", "project", 0,
     "Frame nail boxes = (posts * rails * 4 nails) / 28 nails per box"),
    ("concrete_sand", None, "[post_qty]/10", "project", 0, "Sand yards = posts / 10"),
    ("concrete_portland", None, "[post_qty]/20", "project", 0, "Portland bags = posts / 20"),
    ("concrete_quickrock", None, "[post_qty]*0.5", "project", 0, "QuickRock bags = posts * 0.5"),
]

# Reference SKUs as they exist in the V1 wood_vertical_products table
LEGACY_SKUS = [
    {"sku_code": "A01", "sku_name": "6' Ver 1x6 : 2R : WOOD Post", "style": "Standard",
     "height": 6, "rail_count": 2, "post_spacing": 8, "post_type": "WOOD",
     "picket_width": 5.5, "cap_length": None, "trim_length": None, "rot_board_length": None},
    {"sku_code": "C05", "sku_name": "6' GN 1x6 : 3R : STEEL Post : Cap+Trim", "style": "Good Neighbor Residential",
     "height": 6, "rail_count": 3, "post_spacing": 8, "post_type": "STEEL",
     "picket_width": 5.5, "cap_length": 8, "trim_length": 8, "rot_board_length": None},
    {"sku_code": "D07", "sku_name": "8' BOB 1x6 : 3R : STEEL Post : Cap+Trim+Rot", "style": "Board-on-Board",
     "height": 8, "rail_count": 3, "post_spacing": 8, "post_type": "STEEL",
     "picket_width": 5.5, "cap_length": 8, "trim_length": 8, "rot_board_length": 8},
]


def legacy_sku_to_record(row: dict, product_type_code: str = WOOD_VERTICAL) -> SkuRecord:
    """Import a V1 catalog row, tagging its style once with the legacy heuristic."""
    style_name = row.get("style") or "Standard"
    style_code = LEGACY_STYLE_CODES.get(style_name)
    if style_code is None:
        logger.warning("No V2 style mapping for legacy style %r — using 'standard'", style_name)
        style_code = "standard"
    return SkuRecord(
        sku_code=row["sku_code"],
        product_type_code=product_type_code,
        style_code=style_code,
        style_tag=classify_style_name(style_name),
        height=float(row.get("height") or 0),
        post_type=PostType(row.get("post_type") or PostType.WOOD.value),
        rail_count=int(row["rail_count"]),
        post_spacing=float(row["post_spacing"]),
        picket_width_inches=row.get("picket_width"),
        cap_length_feet=row.get("cap_length"),
        trim_length_feet=row.get("trim_length"),
        rot_board_length_feet=row.get("rot_board_length"),
    )


def _sku_variables(sku: SkuRecord) -> dict:
    variables = {"rail_count": sku.rail_count, "post_spacing": sku.post_spacing}
    for key in ("picket_width_inches", "cap_length_feet", "trim_length_feet", "rot_board_length_feet"):
        value = getattr(sku, key)
        if value is not None:
            variables[key] = value
    return variables


def build_memory_repository() -> InMemoryTemplateRepository:
    """The default catalog as an in-memory repository (tests, offline comparisons)."""
    product_types = [
        ProductTypeRecord(id=code, code=code, name=data["name"])
        for code, data in PRODUCT_TYPES.items()
    ]
    styles = []
    for code, (name, legacy_name) in STYLES.items():
        styles.append(ProductStyleRecord(
            id=f"{WOOD_VERTICAL}/{code}",
            product_type_id=WOOD_VERTICAL,
            code=code,
            name=name,
            style_tag=classify_style_name(legacy_name),
        ))
    templates = []
    for i, (component, style_code, formula, rounding, priority, plain) in enumerate(WOOD_VERTICAL_TEMPLATES, start=1):
        templates.append(FormulaTemplateRecord(
            id=f"t{i}",
            product_type_id=WOOD_VERTICAL,
            component_code=component,
            formula=formula,
            rounding_level=rounding,
            product_style_id=f"{WOOD_VERTICAL}/{style_code}" if style_code else None,
            priority=priority,
            plain_english=plain,
        ))
    skus = [legacy_sku_to_record(row) for row in LEGACY_SKUS]
    return InMemoryTemplateRepository(product_types, styles, templates, skus)


def seed_catalog(db) -> dict:
    """
    Seed the default catalog into the database. Safe to run multiple times —
    skips rows that already exist. Returns counts of rows added.
    """
    from . import models

    added = {"product_types": 0, "styles": 0, "component_types": 0, "templates": 0, "skus": 0}

    product_types = {}
    for code, data in PRODUCT_TYPES.items():
        row = db.query(models.ProductType).filter(models.ProductType.code == code).first()
        if not row:
            row = models.ProductType(code=code, **data)
            db.add(row)
            db.flush()
            added["product_types"] += 1
        product_types[code] = row
    wood_vertical = product_types[WOOD_VERTICAL]

    styles = {}
    for code, (name, legacy_name) in STYLES.items():
        row = db.query(models.ProductStyle).filter(
            models.ProductStyle.product_type_id == wood_vertical.id,
            models.ProductStyle.code == code,
        ).first()
        if not row:
            row = models.ProductStyle(
                product_type_id=wood_vertical.id,
                code=code,
                name=name,
                legacy_name=legacy_name,
                style_tag=classify_style_name(legacy_name).value,
            )
            db.add(row)
            db.flush()
            added["styles"] += 1
        styles[code] = row

    components = {}
    for order, (code, (name, unit_type)) in enumerate(COMPONENT_TYPES.items()):
        row = db.query(models.ComponentType).filter(models.ComponentType.code == code).first()
        if not row:
            row = models.ComponentType(code=code, name=name, unit_type=unit_type, display_order=order)
            db.add(row)
            db.flush()
            added["component_types"] += 1
        components[code] = row

    for component, style_code, formula, rounding, priority, plain in WOOD_VERTICAL_TEMPLATES:
        style_id = styles[style_code].id if style_code else None
        existing = db.query(models.FormulaTemplate).filter(
            models.FormulaTemplate.product_type_id == wood_vertical.id,
            models.FormulaTemplate.component_type_id == components[component].id,
            models.FormulaTemplate.product_style_id == style_id,
        ).first()
        if not existing:
            db.add(models.FormulaTemplate(
                product_type_id=wood_vertical.id,
                product_style_id=style_id,
                component_type_id=components[component].id,
                formula=formula,
                rounding_level=rounding,
                priority=priority,
                plain_english=plain,
            ))
            added["templates"] += 1

    for legacy_row in LEGACY_SKUS:
        if db.query(models.SkuCatalog).filter(models.SkuCatalog.sku_code == legacy_row["sku_code"]).first():
            continue
        sku = legacy_sku_to_record(legacy_row)
        db.add(models.SkuCatalog(
            sku_code=sku.sku_code,
            sku_name=legacy_row["sku_name"],
            product_type_id=wood_vertical.id,
            product_style_id=styles[sku.style_code].id,
            height=sku.height,
            post_type=sku.post_type.value,
            variables=_sku_variables(sku),
            components=[],
        ))
        added["skus"] += 1

    db.commit()
    if any(added.values()):
        logger.info("Seeded catalog: %s", added)
    return added
