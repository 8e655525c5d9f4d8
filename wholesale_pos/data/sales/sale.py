from wholesale_pos import db
from wholesale_pos.data.core.user_created_base import UserCreatedBase


class Sale(UserCreatedBase):
    """
    Finalized sale.

    final_amount = total_amount - discount_amount - promotion_discount + tax_amount
    """

    __tablename__ = 'sales'

    STATUS_FINALIZED = 'finalise'
    STATUS_CANCELLED = 'annule'

    sale_number = db.Column(db.String(40), nullable=False, unique=True)
    customer_id = db.Column(db.Integer, nullable=True, index=True)
    total_amount = db.Column(db.Float, nullable=False, default=0)
    discount_amount = db.Column(db.Float, nullable=False, default=0)
    promotion_discount = db.Column(db.Float, nullable=False, default=0)
    tax_amount = db.Column(db.Float, nullable=False, default=0)
    final_amount = db.Column(db.Float, nullable=False, default=0)
    payment_method = db.Column(db.String(30), nullable=False, default='especes')
    status = db.Column(db.String(20), nullable=False, default=STATUS_FINALIZED)
    promotion_id = db.Column(db.Integer, db.ForeignKey('promotions.id'), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.Text, nullable=True)
    modified_at = db.Column(db.DateTime, nullable=True)
    modification_reason = db.Column(db.Text, nullable=True)

    items = db.relationship('SaleItem', backref='sale', cascade='all, delete-orphan', order_by='SaleItem.id')

    def __repr__(self):
        return f'<Sale {self.sale_number} {self.status}>'


class SaleItem(UserCreatedBase):
    """One priced line of a sale; `base_quantity` is what left the stock"""

    __tablename__ = 'sale_items'

    sale_id = db.Column(db.Integer, db.ForeignKey('sales.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    unit_id = db.Column(db.Integer, db.ForeignKey('units.id'), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    base_quantity = db.Column(db.Float, nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    tier_name = db.Column(db.String(100), nullable=True)
    discount_percentage = db.Column(db.Float, nullable=False, default=0)
    total_price = db.Column(db.Float, nullable=False)

    product = db.relationship('Product')
