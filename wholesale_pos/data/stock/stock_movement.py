from sqlalchemy import event
from wholesale_pos import db
from wholesale_pos.data.core.user_created_base import UserCreatedBase


class StockMovement(UserCreatedBase):
    """
    Immutable ledger entry for every stock-affecting event.

    Conventions:
    - `quantity` is in the product's base unit; positive increases stock, negative decreases it.
    - `unit_id` and `original_quantity` record how the event was expressed.
    - Rows are never updated or deleted; corrections are new compensating rows.
    """

    __tablename__ = 'stock_movements'

    MOVEMENT_TYPES = ('purchase', 'sale', 'adjustment')

    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    movement_type = db.Column(db.String(20), nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey('units.id'), nullable=True)
    original_quantity = db.Column(db.Float, nullable=True)

    reference_type = db.Column(db.String(50), nullable=True, index=True)
    reference_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    product = db.relationship('Product')
    unit = db.relationship('Unit')

    def __repr__(self):
        return f'<StockMovement {self.id} {self.movement_type} {self.quantity:+}>'


@event.listens_for(StockMovement, 'before_update')
def reject_movement_update(mapper, connection, target):
    raise ValueError(f"Stock movement {target.id} is immutable")


@event.listens_for(StockMovement, 'before_delete')
def reject_movement_delete(mapper, connection, target):
    raise ValueError(f"Stock movement {target.id} cannot be deleted")
