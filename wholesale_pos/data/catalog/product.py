from sqlalchemy import inspect
from sqlalchemy.orm import validates
from wholesale_pos import db
from wholesale_pos.data.core.user_created_base import UserCreatedBase


class Product(UserCreatedBase):
    """
    Sellable product.

    `stock_quantity` is expressed in the product's base unit. After the row is
    created it is only changed by the stock ledger's increment statement, so
    it always equals the signed sum of the product's stock movements.
    """

    __tablename__ = 'products'

    protected_fields = ('stock_quantity',)

    name = db.Column(db.String(200), nullable=False)
    barcode = db.Column(db.String(64), nullable=True, unique=True)
    category_id = db.Column(db.Integer, nullable=True, index=True)
    base_unit_id = db.Column(db.Integer, db.ForeignKey('units.id'), nullable=False)
    base_unit_price = db.Column(db.Float, nullable=False, default=0.0)
    stock_quantity = db.Column(db.Float, nullable=False, default=0.0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    base_unit = db.relationship('Unit')
    conversions = db.relationship(
        'UnitConversion',
        backref='product',
        cascade='all, delete-orphan',
    )
    price_tiers = db.relationship(
        'PriceTier',
        backref='product',
        cascade='all, delete-orphan',
    )

    @validates('stock_quantity')
    def validate_stock_quantity(self, key, value):
        state = inspect(self)
        if state.has_identity or (value or 0) != 0:
            raise ValueError("stock_quantity can only be changed through the stock ledger")
        return value

    def __repr__(self):
        return f'<Product {self.id} {self.name}>'
