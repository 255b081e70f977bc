from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Text, ForeignKey, Boolean, JSON, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base


# DECISION: style_tag, rounding_level and post_type are VARCHAR, validated against
# the engine enums (StyleTag, RoundingLevel, PostType) in schemas + repository.
# Adding a style family shouldn't need a migration.


class ProductType(Base):
    """Fence family — wood-vertical, wood-horizontal, iron."""
    __tablename__ = "product_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    default_post_spacing = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    styles = relationship("ProductStyle", back_populates="product_type", cascade="all, delete-orphan")
    formula_templates = relationship("FormulaTemplate", back_populates="product_type", cascade="all, delete-orphan")


class ProductStyle(Base):
    """Style variant of a product type (standard, good neighbor, board on board)."""
    __tablename__ = "product_styles"
    __table_args__ = (UniqueConstraint("product_type_id", "code", name="uq_product_style_code"),)

    id = Column(Integer, primary_key=True, index=True)
    product_type_id = Column(Integer, ForeignKey("product_types.id"), nullable=False)
    code = Column(String, nullable=False)
    name = Column(String, nullable=False)
    style_tag = Column(String, nullable=False, default="standard")  # explicit V1 dispatch tag
    legacy_name = Column(String, nullable=True)  # free-text style from the V1 catalog
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    product_type = relationship("ProductType", back_populates="styles")


class ComponentType(Base):
    """Physical part or consumable. code doubles as the <code>_qty context variable stem."""
    __tablename__ = "component_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    unit_type = Column(String, default="Each")  # 'Each' | 'Box' | 'Bag' | 'Yard'
    display_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)


class FormulaTemplate(Base):
    """Stored formula for one component of a product type, optionally style-scoped."""
    __tablename__ = "formula_templates"

    id = Column(Integer, primary_key=True, index=True)
    product_type_id = Column(Integer, ForeignKey("product_types.id"), nullable=False)
    product_style_id = Column(Integer, ForeignKey("product_styles.id"), nullable=True)  # NULL = all styles
    component_type_id = Column(Integer, ForeignKey("component_types.id"), nullable=False)
    formula = Column(Text, nullable=False)
    rounding_level = Column(String, nullable=False, default="sku")  # 'sku' | 'project'
    plain_english = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    priority = Column(Integer, default=0)  # higher wins among equal specificity
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product_type = relationship("ProductType", back_populates="formula_templates")
    product_style = relationship("ProductStyle")
    component_type = relationship("ComponentType")


class SkuCatalog(Base):
    """Sellable SKU — a fully configured style/height/post combination."""
    __tablename__ = "sku_catalog"

    id = Column(Integer, primary_key=True, index=True)
    sku_code = Column(String, unique=True, nullable=False)  # 'A01'
    sku_name = Column(String, nullable=False)  # "6' Ver 1x6 : 2R : WOOD Post"
    product_type_id = Column(Integer, ForeignKey("product_types.id"), nullable=False)
    product_style_id = Column(Integer, ForeignKey("product_styles.id"), nullable=False)
    height = Column(Float, nullable=False)  # feet
    post_type = Column(String, nullable=False, default="WOOD")  # 'WOOD' | 'STEEL'
    # {"rail_count": 2, "post_spacing": 8, "picket_width_inches": 5.5, "cap_length_feet": 8}
    variables = Column(JSON, default=dict)
    # Configured component codes, e.g. ["post", "picket", "rail", "cap"]
    components = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    product_type = relationship("ProductType")
    product_style = relationship("ProductStyle")
