from app import db
from datetime import datetime
from app.data.core.user_created_base import UserCreatedBase


class CollectionRecord(UserCreatedBase):
    """Measurement captured when a request is completed. Never updated."""
    __tablename__ = 'collection_records'

    request_id = db.Column(db.Integer, db.ForeignKey('collection_requests.id'), unique=True, nullable=False)
    weight_kg = db.Column(db.Float, nullable=False)
    separated_ok = db.Column(db.Boolean, nullable=False, default=False)
    company_id = db.Column(db.Integer, db.ForeignKey('collection_companies.id'), nullable=True)
    points_awarded = db.Column(db.Integer, nullable=False, default=0)
    collected_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f'<CollectionRecord {self.id} request={self.request_id}>'
