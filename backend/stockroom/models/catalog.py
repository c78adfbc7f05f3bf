from __future__ import annotations

from ..extensions import db
from .base import DocumentMixin


class Supplier(DocumentMixin, db.Model):
    """
    Supplier master data.

    Products reference exactly one supplier through Product.supplier_id.
    A supplier cannot be removed while any product still points at it;
    the check lives in supplier_service, not in the schema.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_name", "name"),
    )

    DOCUMENT_FIELDS = ("name", "phone", "email", "notes", "address", "created_at", "updated_at")

    id = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    address = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"


class Family(DocumentMixin, db.Model):
    """Product family (category). Optional on products."""
    __tablename__ = "families"

    DOCUMENT_FIELDS = ("name", "created_at")

    id = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Family id={self.id} name={self.name!r}>"


class Product(DocumentMixin, db.Model):
    """
    Product master data.

    PRICES: purchase_price and sale_price are stored as NUMERIC(12, 2).
    sale_price must stay above purchase_price; bulk price updates move both
    by the same amount so the absolute margin is preserved.

    STOCK: stock never goes below zero. Sales decrement it with a guarded
    relative UPDATE (stock = stock - n WHERE stock - n >= 0) instead of
    read-modify-write.

    BARCODE: digits only, unique when present (NULLs do not collide).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("barcode", name="uq_products_barcode"),
        db.Index("ix_products_supplier", "supplier_id"),
        db.Index("ix_products_family", "family_id"),
        db.Index("ix_products_name", "name"),
    )

    DOCUMENT_FIELDS = (
        "name",
        "description",
        "purchase_price",
        "sale_price",
        "stock",
        "min_stock",
        "barcode",
        "supplier_id",
        "family_id",
        "created_at",
        "updated_at",
    )

    id = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    purchase_price = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)
    sale_price = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=True)

    barcode = db.Column(db.String(32), nullable=True)

    supplier_id = db.Column(db.String(32), db.ForeignKey("suppliers.id"), nullable=False)
    family_id = db.Column(db.String(32), db.ForeignKey("families.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"
