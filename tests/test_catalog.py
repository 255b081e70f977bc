"""
Catalog tests — validated template writes, seeding, database repository, migrations.

Tests:
1-6.   add_template validation (in-memory repository)
7-10.  seed_catalog + SqlTemplateRepository
11-12. Alembic migrations (fresh database, style_tag backfill)
"""

import os

import pytest
import sqlalchemy as sa
from alembic import command
from alembic.config import Config

from fence_bom import models
from fence_bom.catalog_seed import WOOD_VERTICAL_TEMPLATES, seed_catalog
from fence_bom.engine.errors import (
    MalformedFormulaError, OutOfOrderReferenceError, TemplateTieError, UnknownComponentError,
    UnresolvedCatalogEntryError,
)
from fence_bom.engine.interpreter import FormulaInterpreter
from fence_bom.engine.records import FormulaTemplateRecord, StyleTag
from fence_bom.engine.repository import SqlTemplateRepository


ROOT = os.path.join(os.path.dirname(__file__), "..")


def new_template(code, formula, style=None, priority=0, rounding="sku"):
    return FormulaTemplateRecord(
        id=None,
        product_type_id="wood-vertical",
        component_code=code,
        formula=formula,
        rounding_level=rounding,
        product_style_id=style,
        priority=priority,
    )


# ============================================================
# Validated writes
# ============================================================

def test_add_template_rejects_tie(repo):
    with pytest.raises(TemplateTieError):
        repo.add_template(new_template("post", "1"))


def test_add_template_with_higher_priority_wins(repo, interpreter):
    stored = repo.add_template(new_template("post", "ROUNDUP([Quantity]/[post_spacing])+2", priority=5))
    assert stored.id is not None
    result = interpreter.calculate("wood-vertical", "standard", 100, 1, 0, {"post_spacing": 8})
    assert result.get("post").quantity == 15


def test_add_template_rejects_out_of_order_reference(repo):
    with pytest.raises(OutOfOrderReferenceError):
        repo.add_template(new_template("post", "[picket_qty]/2", priority=7))


def test_add_template_rejects_unknown_component(repo):
    with pytest.raises(UnknownComponentError):
        repo.add_template(new_template("gate_hinge", "[Gates]*2"))


def test_add_template_rejects_malformed_formula(repo):
    with pytest.raises(MalformedFormulaError):
        repo.add_template(new_template("cap", "ROUNDUP([Quantity]/", priority=3))


def test_add_template_rejects_unknown_rounding_level(repo):
    with pytest.raises(ValueError):
        repo.add_template(new_template("cap", "1", priority=3, rounding="nearest"))


# ============================================================
# Seeding + SQL repository
# ============================================================

def test_seed_catalog_is_idempotent(db):
    added = seed_catalog(db)
    assert added == {
        "product_types": 1, "styles": 4, "component_types": 13,
        "templates": len(WOOD_VERTICAL_TEMPLATES), "skus": 3,
    }
    again = seed_catalog(db)
    assert not any(again.values())


def test_seeded_styles_are_tagged(db):
    seed_catalog(db)
    tags = {s.code: s.style_tag for s in db.query(models.ProductStyle).all()}
    assert tags["good-neighbor-builder"] == StyleTag.GOOD_NEIGHBOR.value
    assert tags["board-on-board"] == StyleTag.BOARD_ON_BOARD.value
    assert tags["standard"] == StyleTag.STANDARD.value


def test_sql_repository_reads_seeded_catalog(db):
    seed_catalog(db)
    repo = SqlTemplateRepository(db)
    product_type = repo.require_product_type("wood-vertical")
    assert len(repo.list_active_templates(product_type.id)) == len(WOOD_VERTICAL_TEMPLATES)
    sku = repo.require_sku("C05")
    assert sku.style_tag is StyleTag.GOOD_NEIGHBOR
    assert sku.rail_count == 3
    assert sku.trim_length_feet == 8
    assert [s.sku_code for s in repo.list_skus()] == ["A01", "C05", "D07"]
    with pytest.raises(UnresolvedCatalogEntryError):
        repo.require_sku("Z99")


def test_sql_repository_calculates_and_writes(db):
    seed_catalog(db)
    repo = SqlTemplateRepository(db)
    product_type = repo.require_product_type("wood-vertical")
    style = repo.require_style(product_type, "board-on-board")

    stored = repo.add_template(FormulaTemplateRecord(
        id=None,
        product_type_id=product_type.id,
        component_code="post",
        formula="ROUNDUP([Quantity]/[post_spacing])+2",
        product_style_id=style.id,
        priority=10,
    ))
    assert stored.product_style_id == style.id

    result = FormulaInterpreter(repo).calculate(
        "wood-vertical", "board-on-board", 100, 1, 0, {"post_spacing": 8},
        component_filter={"post"},
    )
    assert result.get("post").quantity == 15


# ============================================================
# Migrations
# ============================================================

def _alembic_config(url):
    cfg = Config(os.path.join(ROOT, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(ROOT, "alembic"))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def test_migrations_build_fresh_database(tmp_path):
    url = f"sqlite:///{tmp_path / 'fresh.db'}"
    command.upgrade(_alembic_config(url), "head")

    insp = sa.inspect(sa.create_engine(url))
    tables = set(insp.get_table_names())
    assert {"product_types", "product_styles", "component_types",
            "formula_templates", "sku_catalog"} <= tables
    assert "style_tag" in [c["name"] for c in insp.get_columns("product_styles")]


def test_style_tag_backfilled_from_legacy_names(tmp_path):
    url = f"sqlite:///{tmp_path / 'legacy.db'}"
    cfg = _alembic_config(url)
    command.upgrade(cfg, "a3f1c9e2b7d4")

    engine = sa.create_engine(url)
    with engine.begin() as conn:
        conn.execute(sa.text("INSERT INTO product_types (id, code, name) VALUES (1, 'wood-vertical', 'Wood Vertical')"))
        conn.execute(sa.text(
            "INSERT INTO product_styles (id, product_type_id, code, name) VALUES "
            "(1, 1, 'gn', 'Good Neighbor Builder'), (2, 1, 'bob', 'Board-on-Board'), (3, 1, 'std', 'Standard')"
        ))

    command.upgrade(cfg, "head")

    with engine.connect() as conn:
        rows = conn.execute(sa.text("SELECT code, style_tag FROM product_styles")).fetchall()
    assert dict(rows) == {"gn": "good_neighbor", "bob": "board_on_board", "std": "standard"}
