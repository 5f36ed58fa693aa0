"""
RequestLifecycleManager - owns collection request state changes

Every mutation goes: validate -> check transition -> mutate inside one
transaction -> publish events after commit. Scheduling (on create) and point
awarding (on complete) are side effects of the transition that triggers them.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from app.buisness.collections import event_bus as events
from app.buisness.collections.config_store import ConfigStore
from app.buisness.collections.context import CallerContext
from app.buisness.collections.errors import StateTransitionError, ValidationFailed
from app.buisness.collections.ledger import PointsLedger
from app.buisness.collections.localities import LocalityScheduleManager
from app.buisness.collections.narrator import CollectionNarrator
from app.buisness.collections.points import award_points
from app.buisness.collections.scheduler import ORGANIC, compute_schedule
from app.buisness.collections.settings import CollectionSettings
from app.buisness.collections.state_machine import RequestStateMachine
from app.buisness.collections.store import CollectionStore
from app.buisness.collections.validation import COLLECTION_COMPLETION, COLLECTION_REQUEST, ValidationError
from app.buisness.collections.validation.rules import CoercionError, as_datetime
from app.data.collections.collection_record import CollectionRecord
from app.data.collections.collection_request import CollectionRequest
from app.utils.logger import get_logger

logger = get_logger("waste_collection.lifecycle")


def request_payload(request: CollectionRequest, **extra) -> Dict[str, Any]:
    payload = {
        'request_id': request.id,
        'category': request.category,
        'state': request.state,
        'locality': request.locality,
        'frequency': request.frequency,
        'scheduled_date': request.scheduled_date.isoformat() if request.scheduled_date else None,
    }
    payload.update(extra)
    return payload


class RequestLifecycleManager:

    def __init__(
        self,
        store: CollectionStore,
        chain,
        config_store: ConfigStore,
        localities: LocalityScheduleManager,
        ledger: PointsLedger,
        bus: events.EventBus,
        settings: Optional[CollectionSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.chain = chain
        self.config_store = config_store
        self.localities = localities
        self.ledger = ledger
        self.bus = bus
        self.settings = settings or CollectionSettings()
        self.clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, request_id: int) -> CollectionRequest:
        return self.store.get_request(request_id)

    def list_for_user(self, user_id: int, state: Optional[str] = None, limit: int = 20) -> List[CollectionRequest]:
        return self.store.list_requests(user_id=user_id, state=state, limit=limit)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any], caller: Optional[CallerContext] = None) -> CollectionRequest:
        """
        Validate and persist a new request.

        ORGANIC requests are scheduled immediately when the owner's locality has
        a weekday. INORGANIC and HAZARDOUS requests keep their frequency-derived
        date as a proposal and stay PENDING until scheduled.

        Raises:
            ValidationFailed: the command breaks one or more rules
        """
        caller = caller or CallerContext()
        cleaned = self.chain.require_valid(COLLECTION_REQUEST, data, caller)
        caller.check_deadline('create request')

        now = self.clock()
        user = self.store.get_user(cleaned['user_id'])
        category = cleaned['category']

        with self.store.transaction():
            request = CollectionRequest(
                user_id=user.id,
                category=category,
                requested_date=cleaned['requested_date'],
                frequency=cleaned.get('frequency') if category != ORGANIC else None,
                locality=user.locality,
                state=RequestStateMachine.PENDING,
                notes=cleaned.get('notes'),
                created_at=now,
                updated_at=now,
                created_by_id=caller.user_id,
            )
            self.store.add(request)

            weekday = self.localities.weekday_for(user.locality) if category == ORGANIC else None
            request.scheduled_date = compute_schedule(
                category,
                request.requested_date,
                now,
                locality_weekday_name=weekday,
                frequency=request.frequency,
                organic_hour=self.settings.organic_hour,
            )
            auto_scheduled = category == ORGANIC and request.scheduled_date is not None
            if auto_scheduled:
                RequestStateMachine.validate_transition(request.state, RequestStateMachine.SCHEDULED, request.id)
                request.state = RequestStateMachine.SCHEDULED

        logger.info(f"Created collection request {request.id} ({category}) in state {request.state}")
        self.bus.emit(events.REQUEST_CREATED, 'request', request.id, 'created',
                      user_id=request.user_id, payload=request_payload(request))
        if auto_scheduled:
            self.bus.emit(events.REQUEST_UPDATED, 'request', request.id, 'scheduled',
                          user_id=request.user_id, payload=request_payload(request))
        return request

    def schedule(self, request_id: int, scheduled_date=None, caller: Optional[CallerContext] = None) -> CollectionRequest:
        """PENDING -> SCHEDULED, using the proposed date when none is given"""
        caller = caller or CallerContext()
        request = self.store.get_request(request_id, for_update=True)
        RequestStateMachine.validate_transition(request.state, RequestStateMachine.SCHEDULED, request.id)

        if scheduled_date is not None:
            try:
                scheduled_date = as_datetime(scheduled_date)
            except CoercionError as e:
                raise ValidationFailed([ValidationError('scheduled_date', f"scheduled_date {e}", e.code, scheduled_date)])
        elif request.scheduled_date is not None:
            scheduled_date = request.scheduled_date
        elif request.category == ORGANIC:
            weekday = self.localities.weekday_for(request.locality)
            scheduled_date = compute_schedule(ORGANIC, request.requested_date, self.clock(),
                                              locality_weekday_name=weekday,
                                              organic_hour=self.settings.organic_hour)
        if scheduled_date is None:
            raise ValidationFailed([ValidationError('scheduled_date', 'scheduled_date is required', 'FIELD_REQUIRED')])

        with self.store.transaction():
            request.scheduled_date = scheduled_date
            request.state = RequestStateMachine.SCHEDULED
            request.updated_by_id = caller.user_id

        logger.info(f"Scheduled collection request {request.id} for {scheduled_date.isoformat()}")
        self.bus.emit(events.REQUEST_UPDATED, 'request', request.id, 'scheduled',
                      user_id=request.user_id, payload=request_payload(request))
        return request

    def assign(self, request_id: int, company_id: Optional[int] = None,
               caller: Optional[CallerContext] = None) -> CollectionRequest:
        """SCHEDULED -> ASSIGNED. After this the request can no longer be cancelled."""
        caller = caller or CallerContext()
        request = self.store.get_request(request_id, for_update=True)
        RequestStateMachine.validate_transition(request.state, RequestStateMachine.ASSIGNED, request.id)
        company = self.store.get_company(company_id) if company_id is not None else None

        with self.store.transaction():
            request.state = RequestStateMachine.ASSIGNED
            request.updated_by_id = caller.user_id
            if company is not None:
                request.company_id = company.id
                request.notes = CollectionNarrator.append_note(
                    request.notes, CollectionNarrator.request_assigned(company.name)
                )

        logger.info(f"Assigned collection request {request.id} to company {company_id}")
        self.bus.emit(events.REQUEST_UPDATED, 'request', request.id, 'assigned',
                      user_id=request.user_id, payload=request_payload(request, company_id=company_id))
        return request

    def cancel(self, request_id: int, reason: Optional[str] = None,
               caller: Optional[CallerContext] = None) -> CollectionRequest:
        """
        Cancel a PENDING or SCHEDULED request.

        Raises:
            NotFoundError: no such request
            StateTransitionError: request is ASSIGNED, COMPLETED or CANCELLED
        """
        caller = caller or CallerContext()
        request = self.store.get_request(request_id, for_update=True)
        try:
            RequestStateMachine.validate_transition(request.state, RequestStateMachine.CANCELLED, request.id)
        except StateTransitionError:
            logger.warning(
                f"Rejected cancel of request {request.id}",
                extra={"context": {"state": request.state, "caller": caller.user_id}},
            )
            raise

        with self.store.transaction():
            request.state = RequestStateMachine.CANCELLED
            request.notes = CollectionNarrator.append_note(request.notes, CollectionNarrator.request_cancelled(reason))
            request.updated_by_id = caller.user_id

        logger.info(f"Cancelled collection request {request.id}")
        self.bus.emit(events.REQUEST_CANCELLED, 'request', request.id, 'cancelled',
                      user_id=request.user_id, payload=request_payload(request, notes=request.notes))
        return request

    def complete(self, request_id: int, weight_kg, separated=False, company_id=None,
                 caller: Optional[CallerContext] = None) -> Tuple[CollectionRequest, CollectionRecord]:
        """
        Record the pickup, award points and close the request in one transaction.

        Raises:
            NotFoundError: no such request
            StateTransitionError: request is not SCHEDULED or ASSIGNED
            ValidationFailed: weight or company are invalid
        """
        caller = caller or CallerContext()
        request = self.store.get_request(request_id, for_update=True)
        try:
            RequestStateMachine.validate_transition(request.state, RequestStateMachine.COMPLETED, request.id)
        except StateTransitionError:
            logger.warning(
                f"Rejected completion of request {request.id}",
                extra={"context": {"state": request.state, "caller": caller.user_id}},
            )
            raise

        measurements = {'weight_kg': weight_kg, 'separated': separated, 'company_id': company_id}
        cleaned = self.chain.require_valid(COLLECTION_COMPLETION, measurements, caller)
        caller.check_deadline('complete request')

        weight = cleaned['weight_kg']
        separated_ok = cleaned.get('separated', False)
        formula = self.config_store.active_snapshot()
        points = award_points(weight, separated_ok, formula)
        now = self.clock()

        try:
            with self.store.transaction():
                record = CollectionRecord(
                    request_id=request.id,
                    weight_kg=weight,
                    separated_ok=separated_ok,
                    company_id=cleaned.get('company_id') or request.company_id,
                    points_awarded=points,
                    collected_at=now,
                    created_by_id=caller.user_id,
                )
                self.store.add(record)
                self.ledger.append(
                    request.user_id, points,
                    CollectionNarrator.collection_points(weight, request.category),
                    record_id=record.id,
                )
                request.state = RequestStateMachine.COMPLETED
                request.updated_by_id = caller.user_id
                if cleaned.get('company_id'):
                    request.company_id = cleaned['company_id']
        except IntegrityError as e:
            logger.warning(f"Request {request_id} was completed concurrently")
            raise StateTransitionError(
                f"Request {request_id} is already completed",
                request_id=request_id,
                to_state=RequestStateMachine.COMPLETED,
            ) from e

        logger.info(
            f"Completed collection request {request.id}: {weight:g}kg, {points} points",
            extra={"context": {"configuration_id": formula.configuration_id}},
        )
        self.bus.emit(events.REQUEST_COMPLETED, 'request', request.id, 'completed', user_id=request.user_id,
                      payload=request_payload(request, weight_kg=weight, separated=separated_ok,
                                              points_awarded=points, record_id=record.id))
        self.bus.emit(events.POINTS_AWARDED, 'points', record.id, 'awarded', user_id=request.user_id,
                      payload={'points': points, 'request_id': request.id,
                               'reason': CollectionNarrator.collection_points(weight, request.category)})
        return request, record
