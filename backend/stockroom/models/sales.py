from __future__ import annotations

from ..extensions import db
from .base import DocumentMixin


class Sale(DocumentMixin, db.Model):
    """
    Completed sale.

    Immutable once written: created only by SaleRegistrar, in the same
    transaction that decrements stock for its lines. Line items are
    snapshots (name and unit price at the time of sale).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("idempotency_key", name="uq_sales_idempotency_key"),
        db.Index("ix_sales_sold_at", "sold_at"),
        db.Index("ix_sales_user", "user_id"),
    )

    DOCUMENT_FIELDS = ("items", "total", "sold_at", "user_id", "status", "idempotency_key")

    id = db.Column(db.String(32), primary_key=True)
    total = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=False)
    user_id = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="completed")

    # Client-generated token; a retried request with the same key returns the original sale
    idempotency_key = db.Column(db.String(128), nullable=True)

    lines = db.relationship(
        "SaleLine",
        order_by="SaleLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def items(self) -> list[dict]:
        return [line.to_item() for line in self.lines]

    @items.setter
    def items(self, items: list[dict]) -> None:
        self.lines = [
            SaleLine(
                position=i,
                product_id=item["product_id"],
                name=item["name"],
                unit_price=item["unit_price"],
                quantity=item["quantity"],
                subtotal=item["subtotal"],
            )
            for i, item in enumerate(items)
        ]

    def __repr__(self) -> str:
        return f"<Sale id={self.id} total={self.total} lines={len(self.lines)}>"


class SaleLine(db.Model):
    """Individual line items on a sale, in cart order."""
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(32), db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    # Snapshot: no FK so history survives product deletion
    product_id = db.Column(db.String(32), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)

    unit_price = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    subtotal = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)

    def to_item(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "subtotal": self.subtotal,
        }
