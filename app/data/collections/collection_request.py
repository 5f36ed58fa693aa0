from app import db
from app.data.core.user_created_base import UserCreatedBase


class CollectionRequest(UserCreatedBase):
    __tablename__ = 'collection_requests'

    # Domain fields
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    category = db.Column(db.String(20), nullable=False)
    requested_date = db.Column(db.DateTime, nullable=False, index=True)
    frequency = db.Column(db.String(20), nullable=True)
    locality = db.Column(db.String(50), nullable=True)
    state = db.Column(db.String(20), nullable=False, default='PENDING')
    scheduled_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    company_id = db.Column(db.Integer, db.ForeignKey('collection_companies.id'), nullable=True)

    # Relationships
    user = db.relationship('User', foreign_keys=[user_id])
    company = db.relationship('CollectionCompany', foreign_keys=[company_id])
    # Set once the request is completed
    record = db.relationship('CollectionRecord', uselist=False, viewonly=True,
                             primaryjoin='CollectionRequest.id == foreign(CollectionRecord.request_id)')

    # Note: use RequestLifecycleManager for state changes

    def __repr__(self):
        return f'<CollectionRequest {self.id} {self.category} {self.state}>'
