from app import db
from app.data.core.user_created_base import UserCreatedBase


class CollectionCompany(UserCreatedBase):
    __tablename__ = 'collection_companies'

    name = db.Column(db.String(100), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self):
        return f'<CollectionCompany {self.name}>'
