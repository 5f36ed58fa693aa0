"""
PointsLedger - append-only point movements

A user's total is always the sum of their entries; nothing stores a running
balance.
"""

from typing import List, Optional

from app.buisness.collections import event_bus as events
from app.buisness.collections.errors import ValidationFailed
from app.buisness.collections.narrator import CollectionNarrator
from app.buisness.collections.store import CollectionStore
from app.buisness.collections.validation import ValidationError
from app.data.collections.points_ledger_entry import PointsLedgerEntry
from app.utils.logger import get_logger

logger = get_logger("waste_collection.ledger")


class PointsLedger:

    def __init__(self, store: CollectionStore, bus: Optional[events.EventBus] = None, clock=None):
        self.store = store
        self.bus = bus
        self.clock = clock

    def append(self, user_id: int, points: int, reason: str, record_id: Optional[int] = None) -> PointsLedgerEntry:
        """Add an entry to the current transaction; the caller commits"""
        entry = PointsLedgerEntry(user_id=user_id, points=int(points), reason=reason, record_id=record_id)
        if self.clock is not None:
            entry.created_at = self.clock()
        return self.store.add(entry)

    def total_points(self, user_id: int) -> int:
        return self.store.total_points(user_id)

    def entries(self, user_id: int, limit: int = 50) -> List[PointsLedgerEntry]:
        return self.store.ledger_entries(user_id, limit)

    def _adjust(self, user_id: int, points: int, reason: str) -> PointsLedgerEntry:
        self.store.get_user(user_id)
        with self.store.transaction():
            entry = self.append(user_id, points, reason)
        logger.info(f"Adjusted points for user {user_id} by {points:+d}")
        if self.bus is not None:
            self.bus.emit(
                events.POINTS_ADJUSTED, 'points', entry.id, 'adjusted', user_id=user_id,
                payload={'points': points, 'reason': reason, 'total': self.total_points(user_id)},
            )
        return entry

    @staticmethod
    def _positive(points) -> int:
        if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
            raise ValidationFailed([
                ValidationError('points', 'points must be a positive integer', 'VALUE_TOO_LOW', points)
            ])
        return points

    def grant_bonus(self, user_id: int, points: int, reason: Optional[str] = None) -> PointsLedgerEntry:
        return self._adjust(user_id, self._positive(points), CollectionNarrator.bonus(reason))

    def apply_penalty(self, user_id: int, points: int, reason: Optional[str] = None) -> PointsLedgerEntry:
        """Penalties are always stored as negative entries"""
        return self._adjust(user_id, -abs(self._positive(points)), CollectionNarrator.penalty(reason))
