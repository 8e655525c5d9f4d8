from wholesale_pos import db
from wholesale_pos.data.core.user_created_base import UserCreatedBase


class UnitConversion(UserCreatedBase):
    """
    How many base units one `unit` of a product is worth.

    `override_price`, when positive, is the selling price of one whole `unit`
    and takes precedence over tier pricing for sales made in that unit.
    """

    __tablename__ = 'unit_conversions'
    __table_args__ = (
        db.UniqueConstraint('product_id', 'unit_id', name='uq_unit_conversion_product_unit'),
        db.CheckConstraint('equivalent_quantity > 0', name='ck_unit_conversion_positive'),
    )

    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    unit_id = db.Column(db.Integer, db.ForeignKey('units.id'), nullable=False)
    equivalent_quantity = db.Column(db.Float, nullable=False)
    override_price = db.Column(db.Float, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    unit = db.relationship('Unit')

    def __repr__(self):
        return f'<UnitConversion product={self.product_id} unit={self.unit_id} x{self.equivalent_quantity}>'
