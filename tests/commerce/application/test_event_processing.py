"""Application tests for event recording, dispatch and the handler pipeline."""

import json

import pytest
from commerce.escrow.escrow import EscrowRecord, EscrowStatus
from commerce.escrow.management import find_escrow_for_order
from commerce.event_log.entry import EventLogEntry, EventStatus, HandlerRunStatus
from commerce.event_log.handlers import HANDLERS
from commerce.event_log.processing import ProcessEvent
from commerce.event_log.recording import append_event, dispatch_event, publish_event
from commerce.notification.notification import StoreNotification, StoreNotificationType
from commerce.order.order import Order, OrderStatus, PaymentStatus
from commerce.order.placement import PlaceStoreOrder
from protean import current_domain


def _place_order(payment_method="card", email="awa@example.com", store_id="store-001"):
    return current_domain.process(
        PlaceStoreOrder(
            store_id=store_id,
            order_number="FX-EVT-001",
            tracking_token="c" * 64,
            items=json.dumps([{"product_id": "p1", "product_name": "Wax dress", "quantity": 1, "unit_price": 10000.0}]),
            customer=json.dumps({"first_name": "Awa", "email": email, "phone": "+221770000000"}),
            delivery=json.dumps({"method": "home", "city": "Dakar"}),
            shipping_cost=0.0,
            payment_method=payment_method,
        ),
        asynchronous=False,
    )


def _order_created(order_id, payment_method="card", store_id="store-001"):
    return {
        "event_type": "order.created",
        "aggregate_type": "order",
        "aggregate_id": order_id,
        "store_id": store_id,
        "payload": {
            "order_number": "FX-EVT-001",
            "store_name": "Awa Couture",
            "total": 10000.0,
            "currency": "XOF",
            "payment_method": payment_method,
        },
    }


def _process(envelope):
    return current_domain.process(ProcessEvent.from_envelope(envelope), asynchronous=False)


def _entry(event_id):
    return current_domain.repository_for(EventLogEntry).get(event_id)


class TestRecording:
    def test_append_is_idempotent(self):
        first = append_event("payment.paid", "order-001", store_id="store-001")
        second = append_event("payment.paid", "order-001", store_id="store-001")
        assert first == second
        assert _entry(first).idempotency_key == "payment.paid:order-001"

    def test_publish_records_and_dispatches(self, dispatcher):
        event_id = publish_event("order.created", "order-001", store_id="store-001", payload={"total": 1})
        assert _entry(event_id).status == EventStatus.PENDING.value
        assert dispatcher.dispatched[0]["aggregate_id"] == "order-001"
        assert _entry(event_id).payload_data == {"total": 1}
        assert dispatcher.dispatched[0]["payload"] == {"total": 1}

    def test_publish_twice_keeps_one_entry(self):
        first = publish_event("order.created", "order-001")
        second = publish_event("order.created", "order-001")
        assert first == second
        assert len(current_domain.repository_for(EventLogEntry)._dao.query.all().items) == 1

    def test_dispatch_failure_marks_entry_failed(self, dispatcher):
        dispatcher.configure(should_succeed=False, failure_reason="connection refused")
        event_id = publish_event("order.created", "order-001")

        entry = _entry(event_id)
        assert entry.status == EventStatus.FAILED.value
        assert entry.error_message == "Dispatch failed: connection refused"
        assert entry.next_retry_at is not None

    def test_completed_entry_is_not_dispatched_again(self, dispatcher):
        event_id = publish_event("unhandled.event", "agg-1")
        _process(_entry(event_id).envelope())
        dispatcher.reset()

        assert dispatch_event(event_id) is True
        assert dispatcher.dispatched == []


class TestProcessEvent:
    def test_event_without_handlers_completes(self):
        result = _process({"event_type": "unhandled.event", "aggregate_id": "agg-1", "payload": {}})
        assert result["success"] is True
        assert result["status"] == EventStatus.COMPLETED.value
        assert result["results"] == []

    def test_unrecorded_event_is_recorded_on_arrival(self):
        result = _process({"event_type": "unhandled.event", "aggregate_id": "agg-2", "payload": {}})
        entry = _entry(result["event_id"])
        assert entry.idempotency_key == "unhandled.event:agg-2"

    def test_completed_event_is_skipped(self):
        envelope = {"event_type": "unhandled.event", "aggregate_id": "agg-3", "payload": {}}
        _process(envelope)
        result = _process(envelope)
        assert result["skipped"] is True
        assert result["success"] is True

    def test_order_created_runs_all_handlers(self, email):
        order_id = _place_order()
        result = _process(_order_created(order_id))

        assert result["success"] is True
        assert [r["handler"] for r in result["results"]] == [
            "escrow.create",
            "stock.decrement",
            "order.send_confirmation_email",
            "store.create_notification",
        ]
        entry = _entry(result["event_id"])
        assert entry.status == EventStatus.COMPLETED.value
        assert len(entry.handler_runs) == 4

        escrow = find_escrow_for_order(order_id)
        assert escrow.status == EscrowStatus.HELD.value
        assert escrow.amount == 10000.0
        assert escrow.net_amount == 9500.0

        assert email.sent_emails[0]["to"] == "awa@example.com"
        assert "/track?token=" in email.sent_emails[0]["body"]

        notification = current_domain.repository_for(StoreNotification)._dao.query.all().items[0]
        assert notification.notification_type == StoreNotificationType.NEW_ORDER.value
        assert notification.title == "New order FX-EVT-001"
        assert notification.body == "Total: 10 000 XOF"

    def test_cod_order_gets_no_escrow(self):
        order_id = _place_order(payment_method="cod")
        result = _process(_order_created(order_id, payment_method="cod"))
        assert result["success"] is True
        assert find_escrow_for_order(order_id) is None

    def test_order_without_email_skips_confirmation(self, email):
        order_id = _place_order(email=None)
        assert _process(_order_created(order_id))["success"] is True
        assert email.sent_emails == []

    def test_failing_handler_fails_entry_but_others_run(self, email):
        email.configure(should_succeed=False, failure_reason="Mailbox full")
        order_id = _place_order()

        result = _process(_order_created(order_id))

        assert result["success"] is False
        entry = _entry(result["event_id"])
        assert entry.status == EventStatus.FAILED.value
        assert "order.send_confirmation_email: Mailbox full" in entry.error_message
        failed = [run for run in entry.handler_runs if run.status == HandlerRunStatus.FAILED.value]
        assert [run.handler_name for run in failed] == ["order.send_confirmation_email"]
        # Handlers after the failing one still ran
        assert len(current_domain.repository_for(StoreNotification)._dao.query.all().items) == 1
        assert find_escrow_for_order(order_id) is not None

    def test_reprocessing_only_runs_failed_handlers(self, email):
        email.configure(should_succeed=False)
        order_id = _place_order()
        _process(_order_created(order_id))

        email.reset()
        result = _process(_order_created(order_id))

        assert result["success"] is True
        assert [r["handler"] for r in result["results"]] == ["order.send_confirmation_email"]
        assert len(email.sent_emails) == 1
        assert len(current_domain.repository_for(EscrowRecord)._dao.query.all().items) == 1
        assert len(current_domain.repository_for(StoreNotification)._dao.query.all().items) == 1

    def test_payment_paid_confirms_order(self):
        order_id = _place_order()
        event_id = current_domain.process(
            ProcessEvent(event_type="payment.paid", aggregate_id=order_id, store_id="store-001", payload_json="{}"),
            asynchronous=False,
        )["event_id"]

        order = current_domain.repository_for(Order).get(order_id)
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.status == OrderStatus.CONFIRMED.value
        assert _entry(event_id).status == EventStatus.COMPLETED.value

    def test_delivery_confirmed_releases_escrow_and_audits(self):
        order_id = _place_order()
        _process(_order_created(order_id))

        result = _process(
            {
                "event_type": "delivery.confirmed",
                "aggregate_id": order_id,
                "store_id": "store-001",
                "payload": {"order_number": "FX-EVT-001"},
            }
        )

        assert result["success"] is True
        assert find_escrow_for_order(order_id).status == EscrowStatus.RELEASED.value
        audits = current_domain.repository_for(StoreNotification)._dao.query.filter(
            notification_type=StoreNotificationType.AUDIT.value
        ).all().items
        assert len(audits) == 1
        assert audits[0].details_data["event_type"] == "delivery.confirmed"

    def test_order_cancelled_refunds_escrow(self):
        order_id = _place_order()
        _process(_order_created(order_id))

        _process({"event_type": "order.cancelled", "aggregate_id": order_id, "payload": {"reason": "Out of stock"}})

        escrow = find_escrow_for_order(order_id)
        assert escrow.status == EscrowStatus.REFUNDED.value
        assert escrow.status_reason == "Out of stock"

    def test_restock_is_not_repeated_when_another_handler_is_retried(self, stock, monkeypatch):
        stock.set_level("p1", 0)
        order_id = _place_order()
        envelope = {"event_type": "order.cancelled", "aggregate_id": order_id, "payload": {"reason": "Out of stock"}}

        def refund_unavailable(_envelope):
            raise RuntimeError("ledger unavailable")

        monkeypatch.setitem(HANDLERS, "escrow.refund", refund_unavailable)
        first = _process(envelope)
        assert first["success"] is False
        assert stock.available("p1") == 1

        monkeypatch.undo()
        second = _process(envelope)

        assert second["success"] is True
        assert [result["handler"] for result in second["results"]] == ["escrow.refund"]
        assert stock.available("p1") == 1

    def test_missing_order_fails_the_entry(self):
        result = _process(
            {"event_type": "payment.paid", "aggregate_id": "missing-order", "store_id": "store-001", "payload": {}}
        )
        assert result["success"] is False
        assert _entry(result["event_id"]).status == EventStatus.FAILED.value


@pytest.mark.usefixtures("local_dispatch")
class TestLocalDispatch:
    def test_publish_processes_in_process(self, email):
        order_id = _place_order()
        envelope = _order_created(order_id)
        event_id = publish_event(
            envelope["event_type"],
            order_id,
            store_id="store-001",
            payload=envelope["payload"],
            aggregate_type="order",
        )

        assert _entry(event_id).status == EventStatus.COMPLETED.value
        assert find_escrow_for_order(order_id) is not None
        assert len(email.sent_emails) == 1

    def test_append_inside_command_then_dispatch(self):
        order_id = _place_order()
        event_id = append_event("payment.paid", order_id, store_id="store-001", aggregate_type="order")
        dispatch_event(event_id)

        assert current_domain.repository_for(Order).get(order_id).payment_status == PaymentStatus.PAID.value
