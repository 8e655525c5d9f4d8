from wholesale_pos import db
from wholesale_pos.data.core.user_created_base import UserCreatedBase


class Unit(UserCreatedBase):
    """Unit of measure (bouteille, casier, pack, carton...)"""

    __tablename__ = 'units'

    name = db.Column(db.String(100), nullable=False)
    abbreviation = db.Column(db.String(20), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f'<Unit {self.abbreviation}>'
