"""
Resident registration
"""

from typing import Optional

from app.buisness.collections import event_bus as events
from app.buisness.collections.context import CallerContext
from app.buisness.collections.localities import LocalityScheduleManager
from app.buisness.collections.store import CollectionStore
from app.buisness.collections.validation import USER_REGISTRATION
from app.data.core.user_info.user import User
from app.utils.logger import get_logger

logger = get_logger("waste_collection.registration")


class RegistrationManager:

    def __init__(self, store: CollectionStore, chain, localities: LocalityScheduleManager,
                 bus: Optional[events.EventBus] = None):
        self.store = store
        self.chain = chain
        self.localities = localities
        self.bus = bus

    def register(self, data: dict, caller: Optional[CallerContext] = None) -> User:
        """
        Create a resident and make sure their locality has an organic weekday.

        Raises:
            ValidationFailed: registration data is invalid or the email is taken
        """
        caller = caller or CallerContext()
        cleaned = self.chain.require_valid(USER_REGISTRATION, data, caller)
        with self.store.transaction():
            user = User(
                email=cleaned['email'],
                name=cleaned['name'],
                locality=cleaned['locality'],
                address=cleaned.get('address'),
                phone=cleaned.get('phone'),
                role=User.ROLE_RESIDENT,
            )
            self.store.add(user)
            schedule = self.localities.ensure_default(user.locality)
        logger.info(f"Registered resident {user.id} in {user.locality}")
        if self.bus is not None:
            self.bus.emit(
                events.RESIDENT_REGISTERED, 'user', user.id, 'registered', user_id=user.id,
                payload={'locality': user.locality, 'weekday': schedule.weekday, 'email': user.email},
            )
        return user
