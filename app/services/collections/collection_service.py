"""
Collection Service
Application-level facade over the collection domain. One instance per Flask
app holds the event bus and the wired managers; every operation returns
plain dictionaries.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from flask import current_app

from app.buisness.collections import event_bus as events
from app.buisness.collections.config_store import ConfigStore
from app.buisness.collections.context import CallerContext
from app.buisness.collections.ledger import PointsLedger
from app.buisness.collections.lifecycle_manager import RequestLifecycleManager
from app.buisness.collections.localities import LocalityScheduleManager
from app.buisness.collections.notifications import (
    InlineExecutor,
    LogTransport,
    NotificationObserver,
    build_pipeline,
)
from app.buisness.collections.points import (
    RECURRING_MIN_REQUESTS,
    RECURRING_WINDOW_DAYS,
    PointsMetadata,
    preview_details,
)
from app.buisness.collections.registration import RegistrationManager
from app.buisness.collections.settings import CollectionSettings
from app.buisness.collections.store import CollectionStore
from app.buisness.collections.validation import POINTS_PREVIEW, build_validation_chain
from app.utils.logger import get_logger

logger = get_logger("waste_collection.services.collections")

EXTENSION_KEY = 'collection_service'


def _iso(value):
    return value.isoformat() if value is not None else None


def request_to_dict(request) -> Dict[str, Any]:
    return {
        'request_id': request.id,
        'user_id': request.user_id,
        'category': request.category,
        'frequency': request.frequency,
        'locality': request.locality,
        'state': request.state,
        'requested_date': _iso(request.requested_date),
        'scheduled_date': _iso(request.scheduled_date),
        'notes': request.notes,
        'company_id': request.company_id,
    }


class CollectionService:

    def __init__(self, settings: CollectionSettings, clock: Callable[[], datetime] = datetime.now,
                 transport=None, executor=None, bus: Optional[events.EventBus] = None):
        self.settings = settings
        self.clock = clock
        self.bus = bus or events.EventBus()
        self.store = CollectionStore()
        self.chain = build_validation_chain(self.store, settings, clock)
        self.localities = LocalityScheduleManager(self.store, self.chain)
        self.config_store = ConfigStore(self.store, self.chain)
        self.ledger = PointsLedger(self.store, self.bus, clock)
        self.registration = RegistrationManager(self.store, self.chain, self.localities, self.bus)
        self.lifecycle = RequestLifecycleManager(
            self.store, self.chain, self.config_store, self.localities, self.ledger, self.bus,
            settings=settings, clock=clock,
        )

        if executor is None and not settings.notify_async:
            executor = InlineExecutor()
        self.notifier = NotificationObserver(
            send=build_pipeline(transport or LogTransport(), settings),
            recipient_lookup=self.store.user_email,
            executor=executor,
        )
        self.bus.subscribe(self.notifier, [
            events.REQUEST_CREATED,
            events.REQUEST_UPDATED,
            events.REQUEST_CANCELLED,
            events.REQUEST_COMPLETED,
            events.POINTS_AWARDED,
            events.POINTS_ADJUSTED,
        ])
        self.bus.subscribe_all(events.AuditLogObserver())

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def create_request(self, data: Dict[str, Any], caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        request = self.lifecycle.create(data, caller)
        return {
            'request_id': request.id,
            'state': request.state,
            'scheduled_date': _iso(request.scheduled_date),
        }

    def schedule_request(self, request_id: int, scheduled_date=None,
                         caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        request = self.lifecycle.schedule(request_id, scheduled_date, caller)
        return {'request_id': request.id, 'state': request.state, 'scheduled_date': _iso(request.scheduled_date)}

    def assign_request(self, request_id: int, company_id: Optional[int] = None,
                       caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        request = self.lifecycle.assign(request_id, company_id, caller)
        return {'request_id': request.id, 'state': request.state, 'company_id': request.company_id}

    def cancel_request(self, request_id: int, reason: Optional[str] = None,
                       caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        self.lifecycle.cancel(request_id, reason, caller)
        return {'ok': True}

    def complete_request(self, request_id: int, weight_kg, separated=False, company_id=None,
                         caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        _, record = self.lifecycle.complete(request_id, weight_kg, separated, company_id, caller)
        return {'points_awarded': record.points_awarded, 'record_id': record.id}

    def get_request(self, request_id: int) -> Dict[str, Any]:
        return request_to_dict(self.lifecycle.get(request_id))

    def list_requests(self, user_id: int, state: Optional[str] = None, limit: int = 20):
        return [request_to_dict(r) for r in self.lifecycle.list_for_user(user_id, state, limit)]

    # ------------------------------------------------------------------
    # Residents and localities
    # ------------------------------------------------------------------

    def register_resident(self, data: Dict[str, Any], caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        user = self.registration.register(data, caller)
        return {'user_id': user.id, 'locality': user.locality,
                'weekday': self.localities.weekday_for(user.locality)}

    def set_locality_schedule(self, locality, weekday, caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        self.localities.set_schedule({'locality': locality, 'weekday': weekday}, caller)
        return {'ok': True}

    def list_locality_schedules(self):
        return [{'locality': s.locality, 'weekday': s.weekday} for s in self.localities.list_all()]

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------

    def activate_points_configuration(self, config: Dict[str, Any],
                                      caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        configuration = self.config_store.activate(config, caller)
        return {'ok': True, 'configuration_id': configuration.id}

    def activate_existing_configuration(self, configuration_id: int,
                                        caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        configuration = self.config_store.activate_existing(configuration_id, caller)
        return {'ok': True, 'configuration_id': configuration.id}

    def delete_points_configuration(self, configuration_id: int) -> Dict[str, Any]:
        self.config_store.delete(configuration_id)
        return {'ok': True}

    def list_points_configurations(self):
        return [c.to_dict() for c in self.config_store.list_all()]

    def user_points(self, user_id: int, limit: int = 20) -> Dict[str, Any]:
        self.store.get_user(user_id)
        return {
            'user_id': user_id,
            'total_points': self.ledger.total_points(user_id),
            'entries': [e.to_dict() for e in self.ledger.entries(user_id, limit)],
        }

    def grant_bonus(self, user_id: int, points: int, reason: Optional[str] = None) -> Dict[str, Any]:
        entry = self.ledger.grant_bonus(user_id, points, reason)
        return {'entry_id': entry.id, 'total_points': self.ledger.total_points(user_id)}

    def apply_penalty(self, user_id: int, points: int, reason: Optional[str] = None) -> Dict[str, Any]:
        entry = self.ledger.apply_penalty(user_id, points, reason)
        return {'entry_id': entry.id, 'total_points': self.ledger.total_points(user_id)}

    def preview_points(self, user_id: int, material: str, quantity, quality: Optional[str] = None,
                       collected_at=None, caller: Optional[CallerContext] = None) -> Dict[str, Any]:
        """Estimate only; nothing is written to the ledger"""
        self.store.get_user(user_id)
        cleaned = self.chain.require_valid(POINTS_PREVIEW, {
            'material': material,
            'quantity': quantity,
            'quality': quality,
            'collected_at': collected_at,
        }, caller)

        now = self.clock()
        since = now - timedelta(days=RECURRING_WINDOW_DAYS)
        metadata = PointsMetadata(
            material=cleaned['material'],
            collected_at=cleaned.get('collected_at', now),
            first_time=not self.store.has_completed_collection(user_id),
            recurring=self.store.count_requests_since(user_id, since) >= RECURRING_MIN_REQUESTS,
            quality=cleaned.get('quality') or None,
        )
        return preview_details(cleaned['quantity'], metadata)


def init_collection_service(app, **kwargs) -> CollectionService:
    """Build the per-application service; keyword arguments override the wiring (tests)"""
    settings = CollectionSettings.from_config(app.config)
    service = CollectionService(settings, **kwargs)
    app.extensions[EXTENSION_KEY] = service
    logger.debug(f"Collection service ready with {len(service.bus.subscriptions())} subscriptions")
    return service


def get_collection_service() -> CollectionService:
    return current_app.extensions[EXTENSION_KEY]
