from app import db
from app.data.core.user_created_base import UserCreatedBase

SINGLE_ACTIVE_INDEX = 'uq_points_configurations_single_active'


class PointsConfiguration(UserCreatedBase):
    """
    Parameters of the award formula.

    The partial unique index allows any number of inactive rows but only one
    row with is_active set.
    """
    __tablename__ = 'points_configurations'

    base_points = db.Column(db.Float, nullable=False)
    weight_factor = db.Column(db.Float, nullable=False)
    separation_factor = db.Column(db.Float, nullable=False)
    description = db.Column(db.String(200), nullable=False, default='Points configuration')
    formula = db.Column(db.String(200), nullable=False,
                        default='base + weight_kg * weight_factor + (separated ? separation_factor : 0)')
    is_active = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.Index(
            SINGLE_ACTIVE_INDEX,
            'is_active',
            unique=True,
            sqlite_where=db.text('is_active = 1'),
            postgresql_where=db.text('is_active'),
        ),
    )

    def __repr__(self):
        return f'<PointsConfiguration {self.id} active={self.is_active}>'
