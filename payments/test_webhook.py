import json
from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse

from .models import Order, OrderStatus, WebhookLog
from .tests import make_order


class PaymentWebhookTests(TestCase):
    def setUp(self):
        self.order = make_order("ORD123")

    def _post(self, payload):
        data = payload if isinstance(payload, str) else json.dumps(payload)
        return self.client.post(reverse("payments:webhook"), data=data, content_type="application/json")

    def test_native_success_reconciles_order(self):
        resp = self._post({
            "status": 200,
            "order_info": {
                "order_id": "ORD123", "order_amount": 1000, "transaction_amount": 1000,
                "gateway": "X", "status": "SUCCESS", "payment_mode": "upi",
            },
        })

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["outcome"], "applied")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "success")
        self.assertEqual(self.order.gateway_name, "X")
        detail = OrderStatus.objects.get(order=self.order)
        self.assertEqual(detail.transaction_amount, Decimal("1000"))
        self.assertEqual(WebhookLog.objects.count(), 1)

    def test_flat_user_dropped_marks_failed(self):
        resp = self._post({"order_id": "ORD123", "payment_id": "p1", "payment_status": "USER_DROPPED"})
        self.assertEqual(resp.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "failed")

    def test_unknown_order_is_acknowledged(self):
        resp = self._post({"order_id": "MISSING", "status": "SUCCESS"})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["outcome"], "order_not_found")
        self.assertFalse(OrderStatus.objects.exists())
        self.assertEqual(WebhookLog.objects.count(), 1)

    def test_malformed_native_payload_is_rejected_but_logged(self):
        payload = {"order_info": {"order_id": "ORD123", "status": "SUCCESS"}}
        resp = self._post(payload)

        self.assertEqual(resp.status_code, 400)
        self.assertIn("order_amount", resp.json()["details"])
        self.assertEqual(WebhookLog.objects.get().payload, payload)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")

    def test_payload_without_identifier_is_rejected(self):
        resp = self._post({"status": "SUCCESS", "amount": 10})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(WebhookLog.objects.count(), 1)

    def test_invalid_json_is_logged_raw(self):
        resp = self._post("not-json{")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(WebhookLog.objects.get().payload, {"raw": "not-json{"})

    def test_redelivery_keeps_single_detail_row(self):
        payload = {"order_info": {
            "order_id": "ORD123", "order_amount": 1000, "transaction_amount": 990,
            "gateway": "X", "status": "SUCCESS", "payment_mode": "card",
            "payment_time": "2025-04-23T08:14:21+00:00",
        }}
        self._post(payload)
        self._post(payload)

        self.assertEqual(OrderStatus.objects.filter(order=self.order).count(), 1)
        self.assertEqual(WebhookLog.objects.count(), 2)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "success")

    def test_get_not_allowed(self):
        resp = self.client.get(reverse("payments:webhook"))
        self.assertEqual(resp.status_code, 405)

    def test_audit_failure_stops_processing(self):
        with patch("payments.webhook.record_webhook", side_effect=DatabaseError("down")), \
                patch("payments.webhook.reconcile") as reconcile:
            with self.assertLogs("payments.webhook", level="ERROR"):
                resp = self._post({"order_id": "ORD123", "status": "PAID"})

        self.assertEqual(resp.status_code, 500)
        reconcile.assert_not_called()
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "pending")

    def test_storage_failure_during_reconcile_returns_500(self):
        with patch("payments.webhook.reconcile", side_effect=DatabaseError("down")):
            with self.assertLogs("payments.webhook", level="ERROR"):
                resp = self._post({"order_id": "ORD123", "status": "PAID"})

        self.assertEqual(resp.status_code, 500)
        # the audit entry was committed before the failure
        self.assertEqual(WebhookLog.objects.count(), 1)
        self.assertEqual(Order.objects.get(pk=self.order.pk).status, "pending")

    def test_json_null_body_is_logged_and_rejected(self):
        resp = self._post("null")

        self.assertEqual(resp.status_code, 400)
        log = WebhookLog.objects.get()
        log.refresh_from_db()
        self.assertIsNone(log.payload)

    def test_non_numeric_amount_strings_default_to_zero(self):
        for amount in ("NaN", "Infinity", "-inf"):
            resp = self._post({"order_id": "ORD123", "amount": amount, "status": "PAID"})
            self.assertEqual(resp.status_code, 200, amount)
            detail = OrderStatus.objects.get(order=self.order)
            self.assertEqual(detail.order_amount, Decimal("0"))
            self.assertEqual(detail.transaction_amount, Decimal("0"))
        self.assertEqual(WebhookLog.objects.count(), 3)

    def test_bare_non_finite_tokens_are_audited_as_text(self):
        resp = self._post('{"order_id": "ORD123", "amount": NaN, "transaction_amount": 1e400, "status": "PAID"}')

        self.assertEqual(resp.status_code, 200)
        log = WebhookLog.objects.get()
        log.refresh_from_db()
        self.assertEqual(log.payload["amount"], "NaN")
        self.assertEqual(log.payload["transaction_amount"], "1e400")
        detail = OrderStatus.objects.get(order=self.order)
        self.assertEqual(detail.order_amount, Decimal("0"))
        self.assertEqual(detail.transaction_amount, Decimal("0"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "success")

    def test_native_non_finite_amount_is_rejected(self):
        body = (
            '{"order_info": {"order_id": "ORD123", "order_amount": Infinity, "transaction_amount": 10,'
            ' "gateway": "X", "status": "SUCCESS", "payment_mode": "upi"}}'
        )
        resp = self._post(body)

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["details"], ["order_amount"])
        self.assertEqual(WebhookLog.objects.count(), 1)
        self.assertFalse(OrderStatus.objects.exists())

    def test_long_provider_text_is_clipped_to_column_width(self):
        resp = self._post({
            "order_id": "ORD123", "payment_id": "p1", "status": "SUCCESS",
            "payment_mode": "m" * 100, "bank_reference": "r" * 200, "gateway": "g" * 80,
        })

        self.assertEqual(resp.status_code, 200)
        detail = OrderStatus.objects.get(order=self.order)
        self.assertEqual(detail.payment_mode, "m" * 64)
        self.assertEqual(detail.bank_reference, "r" * 128)
        self.order.refresh_from_db()
        self.assertEqual(self.order.gateway_name, "g" * 64)
