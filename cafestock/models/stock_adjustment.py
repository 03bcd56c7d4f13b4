"""
Append-only stock adjustment ledger.

A row is written in the same transaction as the stock mutation it describes
and is never edited afterwards. Deleting a row is only possible as a cascade
from deleting its inventory item. Corrections are made with new rows.
"""

from sqlalchemy import event
from sqlalchemy.orm import Session

from ..exceptions import LedgerImmutableError
from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils

ADJUSTMENT_TYPES = ('restock', 'usage', 'waste', 'correction', 'deduction')
REFERENCE_TYPES = ('order', 'manual', 'return', 'adjustment', 'rollback')


class StockAdjustment(db.Model):
    __tablename__ = 'stock_adjustment'

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey('inventory_item.id', ondelete='CASCADE'), nullable=False, index=True)
    item_name = db.Column(db.String(128), nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)

    # In the item's base unit
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(16), nullable=False)
    # As typed by the operator, before conversion
    entered_quantity = db.Column(db.Float, nullable=False)
    entered_unit = db.Column(db.String(16), nullable=False)

    previous_stock = db.Column(db.Float, nullable=False)
    new_stock = db.Column(db.Float, nullable=False)

    notes = db.Column(db.Text, nullable=True)
    performed_by = db.Column(db.String(128), nullable=False, default='system')
    reference_type = db.Column(db.String(16), nullable=True, index=True)
    reference_id = db.Column(db.String(64), nullable=True)
    reference_number = db.Column(db.String(64), nullable=True)
    transaction_id = db.Column(db.String(64), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now, nullable=False, index=True)

    inventory_item = db.relationship('InventoryItem', back_populates='adjustments')

    __table_args__ = (
        db.Index('idx_adjustment_item_created', 'inventory_item_id', 'created_at'),
    )

    @property
    def change(self) -> float:
        return (self.new_stock or 0.0) - (self.previous_stock or 0.0)

    @property
    def reference(self):
        if not self.reference_type:
            return None
        return {'type': self.reference_type, 'id': self.reference_id, 'number': self.reference_number}

    def to_dict(self):
        change = self.change
        sign = '+' if change > 0 else ''
        return {
            'id': self.id,
            'item_id': self.inventory_item_id,
            'item_name': self.item_name,
            'type': self.type,
            'quantity': self.quantity,
            'unit': self.unit,
            'entered_quantity': self.entered_quantity,
            'entered_unit': self.entered_unit,
            'previous_stock': self.previous_stock,
            'new_stock': self.new_stock,
            'notes': self.notes or '',
            'performed_by': self.performed_by,
            'reference': self.reference,
            'transaction_id': self.transaction_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'display_quantity': f"{self.quantity} {self.unit}",
            'display_change': f"{sign}{round(change, 3)} {self.unit}",
        }

    def __repr__(self):
        return f'<StockAdjustment {self.id} | Item {self.inventory_item_id} | {self.type}: {self.previous_stock} -> {self.new_stock}>'


@event.listens_for(StockAdjustment, 'before_update')
def _reject_adjustment_update(mapper, connection, target):
    raise LedgerImmutableError(target.id, 'edited')


@event.listens_for(Session, 'before_flush')
def _reject_independent_adjustment_delete(session, flush_context, instances):
    for obj in session.dirty:
        if isinstance(obj, StockAdjustment) and session.is_modified(obj, include_collections=False):
            raise LedgerImmutableError(obj.id, 'edited')

    for obj in session.deleted:
        if not isinstance(obj, StockAdjustment):
            continue
        parent = obj.inventory_item
        if parent is None or parent not in session.deleted:
            raise LedgerImmutableError(obj.id, 'deleted')
