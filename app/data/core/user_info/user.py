from app import db
from flask_login import UserMixin
from datetime import datetime
from app.buisness.core.data_insertion_mixin import DataInsertionMixin


class User(UserMixin, DataInsertionMixin, db.Model):
    """A resident, collection company operator or administrator"""
    __tablename__ = 'users'

    ROLE_RESIDENT = 'RESIDENT'
    ROLE_COMPANY = 'COMPANY'
    ROLE_ADMIN = 'ADMIN'
    ROLES = (ROLE_RESIDENT, ROLE_COMPANY, ROLE_ADMIN)

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(50), nullable=False)
    locality = db.Column(db.String(50), nullable=True)
    address = db.Column(db.String(200), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_RESIDENT)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    def __repr__(self):
        return f'<User {self.id}>'
