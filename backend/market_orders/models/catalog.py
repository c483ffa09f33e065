from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ._ids import new_id


class Category(db.Model):
    """
    Catalog category.

    ARCHIVE OVER DELETE: a category whose items appear on any order line is
    archived rather than deleted unless the caller forces a cascading delete
    (see catalog_service.delete_category).
    """
    __tablename__ = "categories"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)
    archived = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "imageUrl": self.image_url,
            "archived": self.archived,
            "createdAt": to_utc_z(self.created_at),
        }


class Item(db.Model):
    """Sellable item; belongs to exactly one category."""
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_category_archived", "category_id", "archived"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    category_id = db.Column(db.String(36), db.ForeignKey("categories.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Current list price. Order lines snapshot their own unit price.
    price = db.Column(db.Numeric(12, 2), nullable=False)

    image_url = db.Column(db.String(512), nullable=True)
    archived = db.Column(db.Boolean, nullable=False, default=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    category = db.relationship("Category", backref=db.backref("items", lazy=True))

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r}>"

    def to_dict(self, include_category: bool = False) -> dict:
        data = {
            "id": self.id,
            "categoryId": self.category_id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "imageUrl": self.image_url,
            "archived": self.archived,
            "createdAt": to_utc_z(self.created_at),
        }
        if include_category and self.category is not None:
            data["category"] = {"id": self.category.id, "name": self.category.name}
        return data
