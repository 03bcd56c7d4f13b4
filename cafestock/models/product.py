from ..extensions import db
from .mixins import TimestampMixin


class Product(TimestampMixin, db.Model):
    """A sellable menu product and its recipe."""
    __tablename__ = 'product'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    category = db.Column(db.String(64), nullable=True)
    base_price = db.Column(db.Float, nullable=False, default=0.0)
    is_active = db.Column(db.Boolean, default=True)

    ingredients = db.relationship(
        'ProductIngredient',
        back_populates='product',
        cascade='all, delete-orphan',
        order_by='ProductIngredient.order_position',
    )

    def __repr__(self):
        return f'<Product {self.id} {self.name!r}>'


class ProductIngredient(db.Model):
    """
    A recipe line as entered by the recipe editor plus its normalized shadow.

    The shadow columns (base_quantity .. conversion_note) are written only by
    ``cafestock.services.recipe_ingredients``.
    """
    __tablename__ = 'product_ingredient'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False, index=True)
    # Non-owning: deleting the inventory item leaves the line in place
    inventory_item_id = db.Column(db.Integer, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(16), nullable=False)
    order_position = db.Column(db.Integer, default=0)

    base_quantity = db.Column(db.Float, nullable=True)
    base_unit = db.Column(db.String(16), nullable=True)
    display_quantity = db.Column(db.Float, nullable=True)
    display_unit = db.Column(db.String(16), nullable=True)
    conversion_note = db.Column(db.String(255), nullable=True)

    product = db.relationship('Product', back_populates='ingredients')

    @property
    def is_normalized(self) -> bool:
        return self.base_quantity is not None and self.base_unit is not None

    def to_dict(self):
        return {
            'inventory_item_id': self.inventory_item_id,
            'name': self.name,
            'quantity': self.quantity,
            'unit': self.unit,
            'base_quantity': self.base_quantity,
            'base_unit': self.base_unit,
            'display_quantity': self.display_quantity,
            'display_unit': self.display_unit,
            'conversion_note': self.conversion_note,
        }

    def __repr__(self):
        return f'<ProductIngredient {self.name!r} {self.quantity} {self.unit} -> {self.base_quantity} {self.base_unit}>'
