"""
Tests for the notification middleware pipeline and observer
"""

import pytest

from app.buisness.collections import event_bus as events
from app.buisness.collections.event_bus import LifecycleEvent
from app.buisness.collections.notifications import (
    CHANNEL_SMS,
    DeliveryFailed,
    InlineExecutor,
    Notification,
    NotificationObserver,
    NotificationRejected,
    compose,
    dedupe_cache,
    render,
    retrying,
    validating,
)


class ScriptedTransport:
    """Returns (or raises) the scripted outcomes in order, then succeeds"""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def __call__(self, notification):
        self.calls.append(notification)
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return True


class ManualClock:

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def notification(**overrides):
    values = {'recipient': 'ana@example.com', 'subject': 'Hello', 'message': 'Your pickup is scheduled'}
    values.update(overrides)
    return Notification(**values)


class TestValidation:

    def test_missing_recipient_rejected_before_transport(self):
        transport = ScriptedTransport()
        send = compose(transport, [validating()])
        with pytest.raises(NotificationRejected):
            send(notification(recipient=''))
        assert transport.calls == []

    def test_invalid_email_and_long_message(self):
        send = compose(ScriptedTransport(), [validating()])
        with pytest.raises(NotificationRejected) as exc_info:
            send(notification(recipient='nobody', message='x' * 1001))
        assert len(exc_info.value.problems) == 2

    def test_sms_requires_phone(self):
        send = compose(ScriptedTransport(), [validating()])
        assert send(notification(recipient='+57 300 123 4567', channel=CHANNEL_SMS))
        with pytest.raises(NotificationRejected):
            send(notification(recipient='ana@example.com', channel=CHANNEL_SMS))


class TestRetry:

    def test_retries_until_success_with_backoff(self):
        sleeps = []
        transport = ScriptedTransport(RuntimeError('timeout'), False)
        send = compose(transport, [retrying(max_retries=3, sleep=sleeps.append, rand=lambda: 0.5)])

        assert send(notification()) is True
        assert len(transport.calls) == 3
        assert sleeps == [1.5, 2.5]

    def test_gives_up_after_max_retries(self):
        transport = ScriptedTransport(*[RuntimeError('down')] * 10)
        send = compose(transport, [retrying(max_retries=2, sleep=lambda s: None, rand=lambda: 0.0)])

        with pytest.raises(DeliveryFailed):
            send(notification())
        assert len(transport.calls) == 3

    def test_false_on_every_attempt_returns_false(self):
        transport = ScriptedTransport(False, False)
        send = compose(transport, [retrying(max_retries=1, sleep=lambda s: None)])
        assert send(notification()) is False

    def test_backoff_is_capped(self):
        send = retrying(base_delay=1.0, max_delay=30.0, rand=lambda: 0.9)(ScriptedTransport())
        assert send.backoff(0) == pytest.approx(1.9)
        assert send.backoff(3) == pytest.approx(8.9)
        assert send.backoff(10) == 30.0

    def test_rejection_is_not_retried(self):
        transport = ScriptedTransport()
        send = compose(transport, [retrying(max_retries=3, sleep=lambda s: None), validating()])
        with pytest.raises(NotificationRejected):
            send(notification(recipient=''))
        assert transport.calls == []


class TestDedupeCache:

    def test_repeat_within_ttl_suppressed(self):
        clock = ManualClock()
        transport = ScriptedTransport()
        send = compose(transport, [dedupe_cache(ttl_minutes=5, clock=clock)])

        assert send(notification())
        clock.now = 299
        assert send(notification())
        assert len(transport.calls) == 1

        clock.now = 301
        assert send(notification())
        assert len(transport.calls) == 2

    def test_key_includes_subject_and_channel(self):
        transport = ScriptedTransport()
        send = compose(transport, [dedupe_cache(clock=ManualClock())])

        send(notification())
        send(notification(subject='Other'))
        send(notification(channel='push'))
        assert len(transport.calls) == 3

    def test_reference_separates_distinct_entities(self):
        transport = ScriptedTransport()
        send = compose(transport, [dedupe_cache(clock=ManualClock())])

        send(notification(reference='request:1:created'))
        send(notification(reference='request:2:created'))
        send(notification(reference='request:1:created'))
        assert [n.reference for n in transport.calls] == ['request:1:created', 'request:2:created']

    def test_failed_send_not_cached(self):
        transport = ScriptedTransport(False)
        send = compose(transport, [dedupe_cache(clock=ManualClock())])

        assert send(notification()) is False
        assert send(notification()) is True
        assert len(transport.calls) == 2


class TestCompose:

    def test_first_middleware_is_outermost(self):
        order = []

        def tagging(tag):
            def middleware(send):
                def tagged(n):
                    order.append(tag)
                    return send(n)
                return tagged
            return middleware

        send = compose(ScriptedTransport(), [tagging('outer'), tagging('inner')])
        send(notification())
        assert order == ['outer', 'inner']


class TestNotificationObserver:

    def make_event(self, event_type=events.REQUEST_CREATED, user_id=5, payload=None):
        return LifecycleEvent(
            event_type, 'collection_request', 1, 'created', user_id=user_id,
            payload=payload or {'request_id': 1, 'category': 'ORGANIC'},
        )

    def test_renders_and_sends(self):
        transport = ScriptedTransport()
        observer = NotificationObserver(transport, lambda user_id: 'ana@example.com', executor=InlineExecutor())

        future = observer.handle(self.make_event())

        assert future.result() is True
        sent = transport.calls[0]
        assert sent.recipient == 'ana@example.com'
        assert sent.subject == 'Collection request received'
        assert sent.message == 'Your ORGANIC collection request #1 has been received.'
        assert sent.metadata['event_type'] == events.REQUEST_CREATED
        assert sent.reference == 'collection_request:1:created'

    def test_delivery_failure_is_swallowed(self):
        transport = ScriptedTransport(RuntimeError('smtp down'))
        observer = NotificationObserver(transport, lambda user_id: 'ana@example.com', executor=InlineExecutor())
        assert observer.handle(self.make_event()).result() is False

    def test_skips_events_without_template_or_recipient(self):
        transport = ScriptedTransport()
        observer = NotificationObserver(transport, lambda user_id: None, executor=InlineExecutor())

        assert observer.handle(self.make_event(events.RESIDENT_REGISTERED)) is None
        assert observer.handle(self.make_event()) is None
        assert observer.handle(self.make_event(user_id=None)) is None
        assert transport.calls == []

    def test_render_fills_missing_placeholders_with_blank(self):
        subject, message = render(self.make_event(events.REQUEST_CANCELLED, payload={'request_id': 9}))
        assert subject == 'Collection request cancelled'
        assert message == 'Request #9 was cancelled.'
