"""
CollectionStore - persistence adapter over the Flask-SQLAlchemy session

Answers the lookups the validation chain needs and owns the transaction
boundary for managers. Managers add and mutate model instances; only
transaction() commits.
"""

from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy import func

from app import db
from app.data.collections.collection_company import CollectionCompany
from app.data.collections.collection_record import CollectionRecord
from app.data.collections.collection_request import CollectionRequest
from app.data.collections.locality_schedule import LocalitySchedule
from app.data.collections.points_ledger_entry import PointsLedgerEntry
from app.data.core.user_info.user import User
from app.buisness.collections.errors import NotFoundError, ValidationInfrastructureError
from app.utils.logger import get_logger

logger = get_logger("waste_collection.store")


class CollectionStore:

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    @contextmanager
    def transaction(self):
        """Commit on success, roll back and re-raise on any error"""
        try:
            yield self.session
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # ------------------------------------------------------------------
    # Validation lookups
    # ------------------------------------------------------------------

    def _lookup(self, description, query):
        try:
            return query()
        except Exception as e:
            logger.error(f"Lookup failed ({description}): {e}")
            raise ValidationInfrastructureError(f"Lookup failed: {description}") from e

    def user_exists(self, user_id: int) -> bool:
        return self._lookup('user', lambda: self.session.get(User, user_id) is not None)

    def company_exists(self, company_id: int) -> bool:
        return self._lookup(
            'company',
            lambda: self.session.query(CollectionCompany.id)
            .filter_by(id=company_id, is_active=True).first() is not None,
        )

    def email_taken(self, email: str) -> bool:
        return self._lookup(
            'email',
            lambda: self.session.query(User.id).filter(func.lower(User.email) == email.lower()).first() is not None,
        )

    def count_requests_on_day(self, user_id: int, day: date) -> int:
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)
        return self._lookup(
            'daily requests',
            lambda: self.session.query(func.count(CollectionRequest.id)).filter(
                CollectionRequest.user_id == user_id,
                CollectionRequest.requested_date >= start,
                CollectionRequest.requested_date < end,
            ).scalar() or 0,
        )

    def count_requests_since(self, user_id: int, since: datetime) -> int:
        return self.session.query(func.count(CollectionRequest.id)).filter(
            CollectionRequest.user_id == user_id,
            CollectionRequest.created_at >= since,
        ).scalar() or 0

    def has_completed_collection(self, user_id: int) -> bool:
        return self.session.query(CollectionRecord.id).join(
            CollectionRequest, CollectionRequest.id == CollectionRecord.request_id
        ).filter(CollectionRequest.user_id == user_id).first() is not None

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def add(self, instance):
        self.session.add(instance)
        self.session.flush()
        return instance

    def get_user(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError('User', user_id)
        return user

    def user_email(self, user_id: int) -> Optional[str]:
        user = self.session.get(User, user_id)
        return user.email if user is not None else None

    def get_request(self, request_id: int, for_update: bool = False) -> CollectionRequest:
        query = self.session.query(CollectionRequest).filter_by(id=request_id)
        if for_update:
            query = query.with_for_update()
        request = query.first()
        if request is None:
            raise NotFoundError('CollectionRequest', request_id)
        return request

    def list_requests(self, user_id: Optional[int] = None, state: Optional[str] = None,
                      locality: Optional[str] = None, limit: int = 20) -> List[CollectionRequest]:
        query = self.session.query(CollectionRequest)
        if user_id is not None:
            query = query.filter(CollectionRequest.user_id == user_id)
        if state:
            query = query.filter(CollectionRequest.state == state)
        if locality:
            query = query.filter(CollectionRequest.locality == locality)
        return query.order_by(CollectionRequest.created_at.desc(), CollectionRequest.id.desc()).limit(limit).all()

    def get_locality_schedule(self, locality: str) -> Optional[LocalitySchedule]:
        if not locality:
            return None
        return self.session.query(LocalitySchedule).filter_by(locality=locality).first()

    def list_locality_schedules(self) -> List[LocalitySchedule]:
        return self.session.query(LocalitySchedule).order_by(LocalitySchedule.locality).all()

    def get_company(self, company_id: int) -> CollectionCompany:
        company = self.session.get(CollectionCompany, company_id)
        if company is None:
            raise NotFoundError('CollectionCompany', company_id)
        return company

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def total_points(self, user_id: int) -> int:
        total = self.session.query(func.coalesce(func.sum(PointsLedgerEntry.points), 0)).filter(
            PointsLedgerEntry.user_id == user_id
        ).scalar()
        return int(total or 0)

    def ledger_entries(self, user_id: int, limit: int = 50) -> List[PointsLedgerEntry]:
        return self.session.query(PointsLedgerEntry).filter_by(user_id=user_id).order_by(
            PointsLedgerEntry.created_at.desc(), PointsLedgerEntry.id.desc()
        ).limit(limit).all()
