from app import db
from datetime import datetime
from app.buisness.core.data_insertion_mixin import DataInsertionMixin


class PointsLedgerEntry(DataInsertionMixin, db.Model):
    """Append-only point movement. A user's total is the sum of their entries."""
    __tablename__ = 'points_ledger_entries'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    record_id = db.Column(db.Integer, db.ForeignKey('collection_records.id'), nullable=True)
    points = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f'<PointsLedgerEntry {self.user_id} {self.points:+d}>'
