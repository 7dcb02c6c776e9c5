from datetime import datetime, timezone
from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from .models import Order, OrderStatus, WebhookLog
from .normalizers import OrderEvent
from .services import Outcome, record_webhook, reconcile
from .statuses import CANONICAL_STATUSES, map_status


def make_order(custom_order_id="ORD123", **kwargs):
    defaults = {
        "school_id": "SCHOOL1",
        "student_name": "Asha",
        "student_id": "S-1",
        "student_email": "asha@example.com",
        "amount": Decimal("1000.00"),
        "custom_order_id": custom_order_id,
        "gateway_name": "Edviron",
    }
    defaults.update(kwargs)
    return Order.objects.create(**defaults)


def make_event(**kwargs):
    defaults = {
        "external_order_id": "ORD123",
        "order_amount": Decimal("1000"),
        "transaction_amount": Decimal("1000"),
        "gateway_name": "PhonePe",
        "bank_reference": "YESBNK222",
        "raw_status": "SUCCESS",
        "payment_mode": "upi",
        "payment_details": "success@ybl",
        "message": "payment success",
        "payment_time": datetime(2025, 4, 23, 8, 14, 21, tzinfo=timezone.utc),
        "error_message": "NA",
        "provider": "native",
    }
    defaults.update(kwargs)
    return OrderEvent(**defaults)


class StatusMappingTests(SimpleTestCase):
    def test_success_values_are_case_insensitive(self):
        for raw in ("SUCCESS", "success", " Paid "):
            self.assertEqual(map_status(raw, "flat"), "success")

    def test_user_dropped_is_failed_for_every_provider(self):
        for provider in ("native", "flat", "generic"):
            self.assertEqual(map_status("USER_DROPPED", provider), "failed")

    def test_failure_vocabulary(self):
        for raw in ("CANCELLED", "EXPIRED", "VOID", "failed"):
            self.assertEqual(map_status(raw, "flat"), "failed")

    def test_unknown_and_missing_values_stay_pending(self):
        for raw in ("", None, "PROCESSING", "weird-status", 42):
            self.assertEqual(map_status(raw), "pending")

    def test_unknown_provider_uses_generic_table(self):
        self.assertEqual(map_status("CAPTURED", "someone-else"), "success")

    def test_mapping_is_total(self):
        for raw in ("x", "PAID", "VOID", "pending", "\t", "Ünïcode"):
            for provider in ("native", "flat", "generic"):
                self.assertIn(map_status(raw, provider), CANONICAL_STATUSES)


class RecordWebhookTests(TestCase):
    def test_payload_is_stored_verbatim(self):
        payload = {"anything": ["goes", 1, None]}
        log = record_webhook(payload)
        log.refresh_from_db()
        self.assertEqual(log.payload, payload)
        self.assertIsNotNone(log.received_at)


class ReconcileTests(TestCase):
    def setUp(self):
        self.order = make_order()

    def test_success_event_updates_order_and_creates_detail(self):
        result = reconcile(make_event())

        self.assertEqual(result.outcome, Outcome.APPLIED)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "success")
        self.assertEqual(self.order.gateway_name, "PhonePe")
        detail = OrderStatus.objects.get(order=self.order)
        self.assertEqual(detail.transaction_amount, Decimal("1000"))
        self.assertEqual(detail.status, "SUCCESS")
        self.assertEqual(detail.bank_reference, "YESBNK222")

    def test_unknown_order_changes_nothing(self):
        result = reconcile(make_event(external_order_id="NOPE"))

        self.assertEqual(result.outcome, Outcome.ORDER_NOT_FOUND)
        self.assertIsNone(result.order)
        self.assertFalse(OrderStatus.objects.exists())
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")

    def test_replaying_same_event_is_idempotent(self):
        event = make_event()
        reconcile(event)
        first = OrderStatus.objects.values().get(order=self.order)
        reconcile(event)

        self.assertEqual(OrderStatus.objects.filter(order=self.order).count(), 1)
        second = OrderStatus.objects.values().get(order=self.order)
        first.pop("updated_at")
        second.pop("updated_at")
        self.assertEqual(first, second)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "success")

    def test_later_event_overwrites_detail_without_merging(self):
        reconcile(make_event())
        reconcile(make_event(
            raw_status="FAILED", transaction_amount=Decimal("0"), bank_reference="",
            payment_details="", message="", error_message="declined",
        ))

        detail = OrderStatus.objects.get(order=self.order)
        self.assertEqual(detail.bank_reference, "")
        self.assertEqual(detail.error_message, "declined")
        self.assertEqual(detail.transaction_amount, Decimal("0"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "failed")

    def test_stale_redelivery_wins_when_processed_last(self):
        # No ordering is enforced: whichever event is applied last decides the state.
        newer = make_event(raw_status="SUCCESS", payment_time=datetime(2025, 4, 23, 9, tzinfo=timezone.utc))
        older = make_event(raw_status="PENDING", payment_time=datetime(2025, 4, 23, 8, tzinfo=timezone.utc))
        reconcile(newer)
        reconcile(older)

        self.order.refresh_from_db()
        detail = OrderStatus.objects.get(order=self.order)
        self.assertEqual(self.order.status, "pending")
        self.assertEqual(detail.status, "PENDING")
        self.assertEqual(detail.payment_time, datetime(2025, 4, 23, 8, tzinfo=timezone.utc))

    def test_unrecognised_status_leaves_order_pending(self):
        reconcile(make_event(raw_status="PROCESSING"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")
        self.assertEqual(OrderStatus.objects.get(order=self.order).status, "PROCESSING")

    def test_provider_text_is_clipped_to_column_width(self):
        reconcile(make_event(payment_mode="m" * 65, bank_reference="r" * 129, raw_status="S" * 70, gateway_name="g" * 65))

        detail = OrderStatus.objects.get(order=self.order)
        self.assertEqual(detail.payment_mode, "m" * 64)
        self.assertEqual(detail.bank_reference, "r" * 128)
        self.assertEqual(detail.status, "S" * 64)
        self.order.refresh_from_db()
        self.assertEqual(self.order.gateway_name, "g" * 64)
        self.assertEqual(self.order.status, "pending")


class WebhookLogModelTests(TestCase):
    def test_default_ordering_is_newest_first(self):
        old = WebhookLog.objects.create(received_at=datetime(2025, 1, 1, tzinfo=timezone.utc), payload={})
        new = WebhookLog.objects.create(received_at=datetime(2025, 2, 1, tzinfo=timezone.utc), payload={})
        self.assertEqual(list(WebhookLog.objects.all()), [new, old])
