from app import db
from app.data.core.user_created_base import UserCreatedBase


class LocalitySchedule(UserCreatedBase):
    """Organic collection weekday for a locality"""
    __tablename__ = 'locality_schedules'

    locality = db.Column(db.String(50), unique=True, nullable=False)
    weekday = db.Column(db.String(10), nullable=False)

    def __repr__(self):
        return f'<LocalitySchedule {self.locality}={self.weekday}>'
