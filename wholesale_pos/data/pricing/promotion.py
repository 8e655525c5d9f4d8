from wholesale_pos import db
from wholesale_pos.data.core.user_created_base import UserCreatedBase


class Promotion(UserCreatedBase):
    """
    Time-boxed discount rule.

    Conventions:
    - `start_date` and `end_date` are inclusive calendar dates.
    - Empty `applicable_products` and `applicable_categories` mean every product.
    - `current_uses` only grows; cancelling a sale does not give a use back.
    """

    __tablename__ = 'promotions'

    TYPES = ('percentage', 'fixed_amount', 'buy_x_get_y', 'pack_special')

    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(30), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    min_quantity = db.Column(db.Float, nullable=False, default=1)
    min_amount = db.Column(db.Float, nullable=False, default=0)
    discount_percentage = db.Column(db.Float, nullable=True)
    discount_amount = db.Column(db.Float, nullable=True)
    buy_quantity = db.Column(db.Integer, nullable=True)
    get_quantity = db.Column(db.Integer, nullable=True)
    max_uses_per_customer = db.Column(db.Integer, nullable=True)
    max_total_uses = db.Column(db.Integer, nullable=True)
    current_uses = db.Column(db.Integer, nullable=False, default=0)
    applicable_products = db.Column(db.JSON, nullable=False, default=list)
    applicable_categories = db.Column(db.JSON, nullable=False, default=list)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    usages = db.relationship('PromotionUsage', backref='promotion', lazy='dynamic')

    def covers(self, product):
        products = self.applicable_products or []
        categories = self.applicable_categories or []
        if not products and not categories:
            return True
        if product.id in products:
            return True
        return product.category_id is not None and product.category_id in categories

    def __repr__(self):
        return f'<Promotion {self.id} {self.type} {self.name}>'
