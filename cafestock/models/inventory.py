from sqlalchemy.orm import validates

from ..extensions import db
from .mixins import TimestampMixin

STOCK_STATUSES = ('critical', 'low', 'warning', 'ok')


class InventoryItem(TimestampMixin, db.Model):
    """Stock record. Every quantity column is expressed in ``unit``."""
    __tablename__ = 'inventory_item'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True, index=True)
    category = db.Column(db.String(64), nullable=False, default='other', index=True)

    # Canonical base unit (g, mL, pieces, cm); fixed once the item exists
    unit = db.Column(db.String(16), nullable=False)
    # Unit shown to operators and used for pricing
    display_unit = db.Column(db.String(16), nullable=False)

    current_stock = db.Column(db.Float, nullable=False, default=0.0)
    min_stock = db.Column(db.Float, nullable=False, default=0.0)
    max_stock = db.Column(db.Float, nullable=False, default=0.0)
    reorder_point = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(16), nullable=False, default='ok', index=True)

    # g/mL, enables weight <-> volume conversion for this item
    density = db.Column(db.Float, nullable=True)
    # Price per display_unit
    price_per_unit = db.Column(db.Float, nullable=False, default=0.0)

    supplier = db.Column(db.String(128), nullable=True)
    location = db.Column(db.String(128), nullable=True)
    last_restocked = db.Column(db.DateTime, nullable=True)
    created_by = db.Column(db.String(128), nullable=True)

    adjustments = db.relationship(
        'StockAdjustment',
        back_populates='inventory_item',
        cascade='all, delete-orphan',
        order_by='StockAdjustment.id',
    )

    @validates('unit')
    def _validate_unit(self, key, value):
        if self.unit is not None and value != self.unit:
            raise ValueError(
                f"Inventory item {self.name!r} keeps its base unit {self.unit!r}; cannot change it to {value!r}"
            )
        return value

    @property
    def is_out_of_stock(self) -> bool:
        return (self.current_stock or 0.0) <= 0

    def __repr__(self):
        return f'<InventoryItem {self.id} {self.name!r} {self.current_stock} {self.unit} [{self.status}]>'
