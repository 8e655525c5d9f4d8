from wholesale_pos import db
from wholesale_pos.data.core.user_created_base import UserCreatedBase


class PriceTier(UserCreatedBase):
    """Unit price for a range of base quantities; `max_quantity` NULL means unbounded"""

    __tablename__ = 'price_tiers'

    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    tier_name = db.Column(db.String(100), nullable=False)
    min_quantity = db.Column(db.Float, nullable=False, default=1)
    max_quantity = db.Column(db.Float, nullable=True)
    unit_price = db.Column(db.Float, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self):
        return f'<PriceTier {self.tier_name} [{self.min_quantity}, {self.max_quantity}] {self.unit_price}>'
