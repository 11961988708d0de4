"""
Category Model
"""

from catalog_inventory.database import db


class Category(db.Model):
    """Product category"""
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)

    def __repr__(self):
        return f'<Category {self.name}>'

    def to_dict(self):
        return {'id': self.id, 'name': self.name}
