import json
from datetime import datetime, timezone
from decimal import Decimal

from django.test import SimpleTestCase

from .normalizers import MalformedPayload, detect_format, normalize


def native_payload(**info):
    order_info = {
        "order_id": "ORD123",
        "order_amount": 2000,
        "transaction_amount": 2200,
        "gateway": "PhonePe",
        "bank_reference": "YESBNK222",
        "status": "success",
        "payment_mode": "upi",
        "payemnt_details": "success@ybl",
        "Payment_message": "payment success",
        "payment_time": "2025-04-23T08:14:21.945+00:00",
        "error_message": "NA",
    }
    order_info.update(info)
    return {"status": 200, "order_info": order_info}


class DetectFormatTests(SimpleTestCase):
    def test_priority_order(self):
        self.assertEqual(detect_format(native_payload()), "native")
        self.assertEqual(detect_format({"order_id": "A", "order_info": {}}), "native")
        self.assertEqual(detect_format({"order_id": "A"}), "flat")
        self.assertEqual(detect_format({"cf_payment_id": 99}), "flat")
        self.assertEqual(detect_format({"collect_id": "A"}), "generic")


class NativeFormatTests(SimpleTestCase):
    def test_maps_every_field(self):
        event = normalize(native_payload())

        self.assertEqual(event.provider, "native")
        self.assertEqual(event.external_order_id, "ORD123")
        self.assertEqual(event.order_amount, Decimal("2000"))
        self.assertEqual(event.transaction_amount, Decimal("2200"))
        self.assertEqual(event.gateway_name, "PhonePe")
        self.assertEqual(event.bank_reference, "YESBNK222")
        self.assertEqual(event.raw_status, "success")
        self.assertEqual(event.payment_mode, "upi")
        self.assertEqual(event.payment_details, "success@ybl")
        self.assertEqual(event.message, "payment success")
        self.assertEqual(event.error_message, "NA")
        self.assertEqual(event.payment_time, datetime(2025, 4, 23, 8, 14, 21, 945000, tzinfo=timezone.utc))
        self.assertEqual(event.canonical_status, "success")

    def test_scenario_event_without_payment_time(self):
        payload = {"order_info": {
            "order_id": "ORD123", "order_amount": 1000, "transaction_amount": 1000,
            "gateway": "X", "status": "SUCCESS", "payment_mode": "upi",
        }}
        event = normalize(payload)
        self.assertEqual(event.canonical_status, "success")
        self.assertEqual(event.transaction_amount, Decimal("1000"))
        self.assertIsNotNone(event.payment_time)

    def test_missing_required_field_is_rejected(self):
        payload = native_payload()
        del payload["order_info"]["transaction_amount"]
        with self.assertRaises(MalformedPayload) as cm:
            normalize(payload)
        self.assertEqual(cm.exception.errors, ["transaction_amount"])

    def test_mistyped_fields_are_rejected(self):
        with self.assertRaises(MalformedPayload) as cm:
            normalize(native_payload(order_amount="2000", gateway=None, order_id=""))
        self.assertEqual(set(cm.exception.errors), {"order_amount", "gateway", "order_id"})

    def test_boolean_amount_is_rejected(self):
        with self.assertRaises(MalformedPayload):
            normalize(native_payload(order_amount=True))

    def test_unparseable_payment_time_is_rejected(self):
        with self.assertRaises(MalformedPayload) as cm:
            normalize(native_payload(payment_time="yesterday"))
        self.assertEqual(cm.exception.errors, ["payment_time"])

    def test_order_info_must_be_object(self):
        with self.assertRaises(MalformedPayload):
            normalize({"order_info": "ORD123"})


class FlatFormatTests(SimpleTestCase):
    def test_synonyms_and_status_table(self):
        event = normalize({
            "order_id": "ORD9",
            "cf_payment_id": 12345,
            "amount": "1,500.50",
            "payment_status": "USER_DROPPED",
            "payment_group": "net_banking",
            "bank_ref": "HDFC001",
            "gateway_name": "Cashfree",
            "payment_time": "2025-04-23 10:00:00",
        })
        self.assertEqual(event.provider, "flat")
        self.assertEqual(event.external_order_id, "ORD9")
        self.assertEqual(event.order_amount, Decimal("1500.50"))
        self.assertEqual(event.transaction_amount, Decimal("1500.50"))
        self.assertEqual(event.payment_mode, "net_banking")
        self.assertEqual(event.bank_reference, "HDFC001")
        self.assertEqual(event.gateway_name, "Cashfree")
        self.assertEqual(event.payment_details, "12345")
        self.assertEqual(event.payment_time, datetime(2025, 4, 23, 10, tzinfo=timezone.utc))
        self.assertEqual(event.canonical_status, "failed")

    def test_paid_maps_to_success(self):
        event = normalize({"order_id": "ORD9", "order_status": "PAID", "order_amount": 10, "payment_amount": 9})
        self.assertEqual(event.canonical_status, "success")
        self.assertEqual(event.transaction_amount, Decimal("9"))
        self.assertEqual(event.gateway_name, "unknown")

    def test_marker_without_order_id_falls_through_to_generic(self):
        event = normalize({"payment_id": "pay_1", "data": {"collect_id": "C-77"}})
        self.assertEqual(event.provider, "generic")
        self.assertEqual(event.external_order_id, "C-77")


class GenericFormatTests(SimpleTestCase):
    def test_defaults_for_missing_optional_fields(self):
        payload = {"collect_request_id": "C-1", "amount": "abc"}
        event = normalize(payload)

        self.assertEqual(event.provider, "generic")
        self.assertEqual(event.gateway_name, "unknown")
        self.assertEqual(event.bank_reference, "")
        self.assertEqual(event.order_amount, Decimal("0"))
        self.assertEqual(event.canonical_status, "pending")
        self.assertIsNotNone(event.payment_time)
        self.assertEqual(json.loads(event.payment_details), payload)

    def test_nested_containers_are_searched(self):
        event = normalize({
            "event": "ORDER_CHARGED",
            "transaction": {"id": "TXN1", "status": "CHARGED", "amount": 250},
            "timestamp": 1745396061000,
        })
        self.assertEqual(event.external_order_id, "TXN1")
        self.assertEqual(event.canonical_status, "success")
        self.assertEqual(event.order_amount, Decimal("250"))
        self.assertEqual(event.payment_time, datetime(2025, 4, 23, 8, 14, 21, tzinfo=timezone.utc))

    def test_no_identifier_anywhere_is_rejected(self):
        for payload in ({}, {"amount": 10, "status": "SUCCESS"}, {"raw": "not json"}):
            with self.assertRaises(MalformedPayload):
                normalize(payload)

    def test_non_object_payload_is_rejected(self):
        for payload in ([1, 2], "ORD1", None):
            with self.assertRaises(MalformedPayload):
                normalize(payload)


class AmountCoercionTests(SimpleTestCase):
    def test_non_finite_amounts_fall_back_to_zero(self):
        for amount in ("NaN", "Infinity", "-Infinity", float("nan"), float("inf")):
            event = normalize({"order_id": "ORD9", "amount": amount})
            self.assertEqual(event.order_amount, Decimal("0"), amount)
            self.assertEqual(event.transaction_amount, Decimal("0"), amount)

    def test_amounts_too_large_to_store_fall_back(self):
        event = normalize({"collect_request_id": "C-1", "amount": "1e20", "transaction_amount": 250})
        self.assertEqual(event.order_amount, Decimal("0"))
        self.assertEqual(event.transaction_amount, Decimal("250"))

    def test_native_rejects_non_finite_amounts(self):
        with self.assertRaises(MalformedPayload) as cm:
            normalize(native_payload(order_amount=float("nan"), transaction_amount=float("inf")))
        self.assertEqual(cm.exception.errors, ["order_amount", "transaction_amount"])

    def test_native_rejects_amounts_too_large_to_store(self):
        with self.assertRaises(MalformedPayload) as cm:
            normalize(native_payload(transaction_amount=10 ** 12))
        self.assertEqual(cm.exception.errors, ["transaction_amount"])
