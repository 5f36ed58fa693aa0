"""
Notification pipeline

A notifier is any callable ``send(notification) -> bool``. Middleware wraps a
send callable and returns a new one; compose() stacks them so the first
middleware listed is the outermost:

    validate -> retry -> dedupe cache -> log -> transport

NotificationObserver turns lifecycle events into notifications and hands them
to an executor, so delivery never blocks or fails a lifecycle transition.
"""

import random
import re
import threading
import time
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from app.buisness.collections import event_bus as events
from app.buisness.collections.event_bus import LifecycleEvent, Observer
from app.utils.logger import get_logger
from app.utils.logging_sanitizer import mask_contact

logger = get_logger("waste_collection.notifications")

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_PATTERN = re.compile(r'^\+?[\d\s\-()]{8,20}$')
MESSAGE_MAX_LENGTH = 1000

CHANNEL_EMAIL = 'email'
CHANNEL_SMS = 'sms'
CHANNEL_PUSH = 'push'
CHANNEL_IN_APP = 'in-app'


@dataclass(frozen=True)
class Notification:
    recipient: str
    subject: str
    message: str
    channel: str = CHANNEL_EMAIL
    priority: str = 'normal'
    metadata: Dict[str, Any] = field(default_factory=dict)
    # Entity and transition the notification is about, e.g. 'request:12:scheduled'
    reference: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


class NotificationRejected(ValueError):
    """Notification failed validation and was not sent"""

    def __init__(self, notification_id: str, problems: List[str]):
        self.notification_id = notification_id
        self.problems = problems
        super().__init__(f"Notification {notification_id} rejected: {'; '.join(problems)}")


class DeliveryFailed(RuntimeError):
    """Transport reported failure on every attempt"""
    pass


Send = Callable[[Notification], bool]
Middleware = Callable[[Send], Send]


def compose(transport: Send, middleware: List[Middleware]) -> Send:
    send = transport
    for wrap in reversed(middleware):
        send = wrap(send)
    return send


def validate_notification(notification: Notification) -> List[str]:
    problems = []
    if not notification.id:
        problems.append('id is required')
    if not notification.recipient:
        problems.append('recipient is required')
    if not notification.message:
        problems.append('message is required')
    elif len(notification.message) > MESSAGE_MAX_LENGTH:
        problems.append(f'message exceeds {MESSAGE_MAX_LENGTH} characters')
    if notification.recipient:
        if notification.channel == CHANNEL_EMAIL and not EMAIL_PATTERN.match(notification.recipient):
            problems.append('recipient is not a valid email address')
        if notification.channel == CHANNEL_SMS and not PHONE_PATTERN.match(notification.recipient):
            problems.append('recipient is not a valid phone number')
    return problems


def validating() -> Middleware:
    def middleware(send: Send) -> Send:
        def validated_send(notification: Notification) -> bool:
            problems = validate_notification(notification)
            if problems:
                raise NotificationRejected(notification.id, problems)
            return send(notification)
        return validated_send
    return middleware


def retrying(max_retries: int = 3, base_delay: float = 1.0, max_delay: float = 30.0,
             jitter: float = 1.0, sleep: Callable[[float], None] = time.sleep,
             rand: Callable[[], float] = random.random) -> Middleware:
    """
    Retry failed sends with exponential backoff plus jitter.

    Attempt n (0-based) waits base_delay * 2**n + rand() * jitter seconds,
    capped at max_delay. At most max_retries + 1 attempts are made.
    """
    def backoff(attempt: int) -> float:
        return min(base_delay * (2 ** attempt) + rand() * jitter, max_delay)

    def middleware(send: Send) -> Send:
        def retried_send(notification: Notification) -> bool:
            last_error = None
            for attempt in range(max_retries + 1):
                try:
                    if send(notification):
                        if attempt > 0:
                            logger.info(f"Notification {notification.id} delivered on attempt {attempt + 1}")
                        return True
                except NotificationRejected:
                    raise
                except Exception as e:
                    last_error = e
                    logger.warning(f"Attempt {attempt + 1} failed for notification {notification.id}: {e}")
                if attempt < max_retries:
                    sleep(backoff(attempt))
            logger.error(f"Notification {notification.id} failed after {max_retries + 1} attempts")
            if last_error is not None:
                raise DeliveryFailed(f"Notification {notification.id} was not delivered") from last_error
            return False
        retried_send.backoff = backoff
        return retried_send
    return middleware


def dedupe_cache(ttl_minutes: float = 5, clock: Callable[[], float] = time.monotonic) -> Middleware:
    """
    Suppress repeats of a successful notification to the same recipient with
    the same subject and channel within the TTL. Notifications that carry a
    reference are only repeats of one with the same reference, so two
    requests created back to back are both announced.
    """
    ttl_seconds = ttl_minutes * 60

    def middleware(send: Send) -> Send:
        cache: Dict[str, float] = {}
        lock = threading.Lock()

        def cached_send(notification: Notification) -> bool:
            key = f"{notification.recipient}|{notification.subject}|{notification.channel}"
            if notification.reference:
                key = f"{key}|{notification.reference}"
            now = clock()
            with lock:
                for stale in [k for k, sent_at in cache.items() if now - sent_at >= ttl_seconds]:
                    del cache[stale]
                if key in cache:
                    logger.debug(f"Notification {notification.id} suppressed as duplicate")
                    return True
            delivered = send(notification)
            if delivered:
                with lock:
                    cache[key] = clock()
            return delivered
        return cached_send
    return middleware


def logging_middleware() -> Middleware:
    def middleware(send: Send) -> Send:
        def logged_send(notification: Notification) -> bool:
            started = time.monotonic()
            recipient = mask_contact(notification.recipient)
            try:
                delivered = send(notification)
            except Exception as e:
                logger.warning(f"Notification {notification.id} to {recipient} raised {type(e).__name__}")
                raise
            elapsed_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                f"Notification {notification.id} to {recipient} "
                f"{'sent' if delivered else 'not sent'} ({elapsed_ms}ms)"
            )
            return delivered
        return logged_send
    return middleware


def build_pipeline(transport: Send, settings=None, sleep: Callable[[float], None] = time.sleep) -> Send:
    """Default middleware stack configured from CollectionSettings"""
    max_retries = settings.notify_max_retries if settings else 3
    base_delay = settings.notify_base_delay if settings else 1.0
    max_delay = settings.notify_max_delay if settings else 30.0
    ttl = settings.notify_dedupe_minutes if settings else 5
    return compose(transport, [
        validating(),
        retrying(max_retries=max_retries, base_delay=base_delay, max_delay=max_delay, sleep=sleep),
        dedupe_cache(ttl_minutes=ttl),
        logging_middleware(),
    ])


class LogTransport:
    """Notifier that records deliveries in the log instead of sending them"""

    def __call__(self, notification: Notification) -> bool:
        logger.info(
            f"[{notification.channel}] {notification.subject}",
            extra={"context": {"notification_id": notification.id,
                               "recipient": mask_contact(notification.recipient)}},
        )
        return True


class InlineExecutor(Executor):
    """Runs submitted work immediately in the calling thread"""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


# subject, body; placeholders are filled from the event payload
TEMPLATES = {
    events.REQUEST_CREATED: (
        'Collection request received',
        'Your {category} collection request #{request_id} has been received.',
    ),
    events.REQUEST_UPDATED: (
        'Collection request updated',
        'Request #{request_id} is now {state}. Scheduled date: {scheduled_date}.',
    ),
    events.REQUEST_CANCELLED: (
        'Collection request cancelled',
        'Request #{request_id} was cancelled. {notes}',
    ),
    events.REQUEST_COMPLETED: (
        'Collection completed',
        'We collected {weight_kg} kg for request #{request_id}.',
    ),
    events.POINTS_AWARDED: (
        'Points awarded',
        'You earned {points} points. {reason}',
    ),
    events.POINTS_ADJUSTED: (
        'Points adjusted',
        'Your balance changed by {points} points. {reason}',
    ),
}


class _Blank(dict):
    def __missing__(self, key):
        return ''


def render(event: LifecycleEvent) -> Optional[tuple]:
    template = TEMPLATES.get(event.event_type)
    if template is None:
        return None
    subject, body = template
    values = _Blank(event.payload)
    return subject.format_map(values), body.format_map(values).strip()


def event_reference(event: LifecycleEvent) -> Optional[str]:
    if event.entity_id is None:
        return None
    return f"{event.entity_type}:{event.entity_id}:{event.action}"


class NotificationObserver(Observer):
    """
    Sends notifications for lifecycle events.

    The recipient is resolved synchronously (the caller's database session is
    available there); only delivery runs on the executor. Delivery failures are
    logged and dropped.
    """
    observer_id = 'notification-observer'
    name = 'Notifications'

    def __init__(self, send: Send, recipient_lookup: Callable[[int], Optional[str]],
                 executor: Optional[Executor] = None, channel: str = CHANNEL_EMAIL):
        self.send = send
        self.recipient_lookup = recipient_lookup
        self.executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix='notify')
        self.channel = channel

    def handle(self, event: LifecycleEvent) -> Optional[Future]:
        rendered = render(event)
        if rendered is None or event.user_id is None:
            return None
        recipient = self.recipient_lookup(event.user_id)
        if not recipient:
            logger.debug(f"No recipient for user {event.user_id}; skipping {event.event_type}")
            return None
        subject, message = rendered
        notification = Notification(
            recipient=recipient,
            subject=subject,
            message=message,
            channel=self.channel,
            metadata={'event_id': event.id, 'event_type': event.event_type, 'user_id': event.user_id},
            reference=event_reference(event),
        )
        return self.executor.submit(self._deliver, notification)

    def _deliver(self, notification: Notification) -> bool:
        try:
            return self.send(notification)
        except Exception as e:
            logger.error(f"Notification {notification.id} dropped: {e}")
            return False
