"""
Locality schedules - which weekday each locality gets organic pickups
"""

from typing import List, Optional

from app.buisness.collections.context import CallerContext
from app.buisness.collections.scheduler import locality_weekday
from app.buisness.collections.store import CollectionStore
from app.buisness.collections.validation import LOCALITY_SCHEDULE
from app.data.collections.locality_schedule import LocalitySchedule
from app.utils.logger import get_logger

logger = get_logger("waste_collection.localities")


class LocalityScheduleManager:

    def __init__(self, store: CollectionStore, chain):
        self.store = store
        self.chain = chain

    def weekday_for(self, locality: Optional[str]) -> Optional[str]:
        schedule = self.store.get_locality_schedule(locality)
        return schedule.weekday if schedule else None

    def list_all(self) -> List[LocalitySchedule]:
        return self.store.list_locality_schedules()

    def set_schedule(self, data: dict, caller: Optional[CallerContext] = None) -> LocalitySchedule:
        """Upsert: administrators may override any assignment"""
        caller = caller or CallerContext()
        cleaned = self.chain.require_valid(LOCALITY_SCHEDULE, data, caller)
        with self.store.transaction():
            schedule = self.store.get_locality_schedule(cleaned['locality'])
            if schedule is None:
                schedule = LocalitySchedule(
                    locality=cleaned['locality'],
                    weekday=cleaned['weekday'],
                    created_by_id=caller.user_id,
                    updated_by_id=caller.user_id,
                )
                self.store.add(schedule)
            else:
                schedule.weekday = cleaned['weekday']
                schedule.updated_by_id = caller.user_id
        logger.info(f"Locality {schedule.locality} collects organic waste on {schedule.weekday}")
        return schedule

    def ensure_default(self, locality: str) -> LocalitySchedule:
        """
        Create-only: assign the hashed weekday when the locality has no schedule.
        Runs inside the caller's transaction.
        """
        schedule = self.store.get_locality_schedule(locality)
        if schedule is not None:
            return schedule
        schedule = LocalitySchedule(locality=locality, weekday=locality_weekday(locality))
        self.store.add(schedule)
        logger.info(f"Assigned default weekday {schedule.weekday} to locality {locality}")
        return schedule
