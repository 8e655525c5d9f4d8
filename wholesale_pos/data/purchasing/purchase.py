from datetime import datetime
from wholesale_pos import db
from wholesale_pos.data.core.user_created_base import UserCreatedBase


class Purchase(UserCreatedBase):
    """Goods received from a supplier"""

    __tablename__ = 'purchases'

    supplier_id = db.Column(db.Integer, nullable=True, index=True)
    total_amount = db.Column(db.Float, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default='recu')
    purchase_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    notes = db.Column(db.Text, nullable=True)

    items = db.relationship('PurchaseItem', backref='purchase', cascade='all, delete-orphan', order_by='PurchaseItem.id')


class PurchaseItem(UserCreatedBase):
    __tablename__ = 'purchase_items'

    purchase_id = db.Column(db.Integer, db.ForeignKey('purchases.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey('units.id'), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    base_quantity = db.Column(db.Float, nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    total_price = db.Column(db.Float, nullable=False)
