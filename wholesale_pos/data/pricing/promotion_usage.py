from wholesale_pos import db
from wholesale_pos.data.core.user_created_base import UserCreatedBase


class PromotionUsage(UserCreatedBase):
    """One application of a promotion to a finalized sale"""

    __tablename__ = 'promotion_usages'

    promotion_id = db.Column(db.Integer, db.ForeignKey('promotions.id'), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey('sales.id'), nullable=False)
    customer_id = db.Column(db.Integer, nullable=True, index=True)
    discount_applied = db.Column(db.Float, nullable=False, default=0)
