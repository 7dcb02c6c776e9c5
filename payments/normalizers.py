"""Turn provider webhook payloads into one canonical ``OrderEvent``.

Each supported payload shape is a ``(name, detector, extractor)`` entry in
``FORMATS``.  Detectors are checked in order and the first match wins, so the
strictest shape goes first and the catch-all generic shape last.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal, InvalidOperation

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .statuses import map_status

UNKNOWN_GATEWAY = "unknown"
# amount columns are DecimalField(max_digits=12, decimal_places=2)
AMOUNT_LIMIT = Decimal("1e10")


class MalformedPayload(ValueError):
    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


@dataclass(frozen=True)
class OrderEvent:
    external_order_id: str
    order_amount: Decimal
    transaction_amount: Decimal
    gateway_name: str
    bank_reference: str
    raw_status: str
    payment_mode: str
    payment_details: str
    message: str
    payment_time: datetime
    error_message: str
    provider: str = "generic"

    @property
    def canonical_status(self) -> str:
        return map_status(self.raw_status, self.provider)


# ---------- coercion helpers ----------
def _first(data: dict, keys) -> object:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def _decimal(value, default=Decimal("0")) -> Decimal:
    if value is None or isinstance(value, bool):
        return default
    try:
        result = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return default
    # NaN, Infinity and out-of-range values parse but cannot be stored
    if not result.is_finite() or abs(result) >= AMOUNT_LIMIT:
        return default
    return result


def _datetime(value):
    """Parse ISO strings and epoch seconds/milliseconds; ``None`` if unusable."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if value > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, tz=dt_timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        try:
            dt = parse_datetime(value.strip())
        except ValueError:
            return None
        if dt is None:
            return None
    else:
        return None
    if timezone.is_naive(dt):
        dt = dt.replace(tzinfo=dt_timezone.utc)
    return dt


# ---------- native: {"status": 200, "order_info": {...}} ----------
NATIVE_REQUIRED_TEXT = ("order_id", "gateway", "status", "payment_mode")
NATIVE_REQUIRED_NUMBERS = ("order_amount", "transaction_amount")


def is_native(payload: dict) -> bool:
    return "order_info" in payload


def extract_native(payload: dict) -> OrderEvent:
    info = payload.get("order_info")
    if not isinstance(info, dict):
        raise MalformedPayload("order_info must be an object", ["order_info"])

    errors = []
    for key in NATIVE_REQUIRED_TEXT:
        value = info.get(key)
        if not isinstance(value, str) or not value.strip():
            errors.append(key)
    for key in NATIVE_REQUIRED_NUMBERS:
        value = info.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            errors.append(key)
        elif _decimal(value, default=None) is None:
            errors.append(key)

    raw_time = info.get("payment_time")
    payment_time = None
    if raw_time not in (None, ""):
        payment_time = _datetime(raw_time) if isinstance(raw_time, str) else None
        if payment_time is None:
            errors.append("payment_time")
    if errors:
        raise MalformedPayload("Invalid order_info: " + ", ".join(errors), errors)

    return OrderEvent(
        external_order_id=info["order_id"].strip(),
        order_amount=_decimal(info["order_amount"]),
        transaction_amount=_decimal(info["transaction_amount"]),
        gateway_name=info["gateway"].strip(),
        bank_reference=_text(info.get("bank_reference")),
        raw_status=info["status"].strip(),
        payment_mode=info["payment_mode"].strip(),
        # the provider spells this key "payemnt_details" in live payloads
        payment_details=_text(_first(info, ("payment_details", "payemnt_details"))),
        message=_text(_first(info, ("payment_message", "Payment_message"))),
        payment_time=payment_time or timezone.now(),
        error_message=_text(info.get("error_message")),
        provider="native",
    )


# ---------- flat: provider marker fields at the top level ----------
FLAT_MARKERS = ("payment_id", "cf_payment_id")


def is_flat(payload: dict) -> bool:
    if any(payload.get(marker) not in (None, "") for marker in FLAT_MARKERS):
        return True
    return payload.get("order_id") not in (None, "")


def extract_flat(payload: dict) -> OrderEvent:
    order_id = _text(payload.get("order_id"))
    if not order_id:
        raise MalformedPayload("order_id missing", ["order_id"])

    order_amount = _first(payload, ("order_amount", "amount"))
    settled = _first(payload, ("transaction_amount", "payment_amount", "amount"))
    return OrderEvent(
        external_order_id=order_id,
        order_amount=_decimal(order_amount),
        transaction_amount=_decimal(settled if settled is not None else order_amount),
        gateway_name=_text(_first(payload, ("gateway", "gateway_name"))) or UNKNOWN_GATEWAY,
        bank_reference=_text(_first(payload, ("bank_reference", "bank_ref", "utr"))),
        raw_status=_text(_first(payload, ("payment_status", "status", "order_status"))),
        payment_mode=_text(_first(payload, ("payment_mode", "payment_group", "payment_method"))),
        payment_details=_text(_first(payload, ("payment_details", "payment_id", "cf_payment_id"))),
        message=_text(_first(payload, ("payment_message", "message"))),
        payment_time=_datetime(_first(payload, ("payment_time", "payment_completion_time"))) or timezone.now(),
        error_message=_text(_first(payload, ("error_message", "error_details"))),
        provider="flat",
    )


# ---------- generic: best effort over common key names ----------
GENERIC_ID_KEYS = (
    "order_id", "orderId", "collect_id", "collect_request_id", "custom_order_id",
    "transaction_id", "txn_id", "id",
)
GENERIC_AMOUNT_KEYS = ("amount", "order_amount", "transaction_amount", "amount_paid")
GENERIC_STATUS_KEYS = ("status", "payment_status", "txn_status", "state")
GENERIC_REFERENCE_KEYS = ("bank_reference", "bank_ref", "reference_id", "utr")
GENERIC_TIME_KEYS = ("payment_time", "timestamp", "paid_at", "created_at")
GENERIC_NESTED = ("data", "order", "transaction", "payment")


def _generic_lookup(payload: dict, keys):
    value = _first(payload, keys)
    if value is not None and not isinstance(value, (dict, list)):
        return value
    for container in GENERIC_NESTED:
        nested = payload.get(container)
        if isinstance(nested, dict):
            value = _first(nested, keys)
            if value is not None and not isinstance(value, (dict, list)):
                return value
    return None


def is_generic(payload: dict) -> bool:
    return True


def extract_generic(payload: dict) -> OrderEvent:
    order_id = _text(_generic_lookup(payload, GENERIC_ID_KEYS))
    if not order_id:
        raise MalformedPayload("No order identifier found in payload", ["order_id"])

    amount = _decimal(_generic_lookup(payload, GENERIC_AMOUNT_KEYS))
    settled = _generic_lookup(payload, ("transaction_amount", "amount_paid"))
    return OrderEvent(
        external_order_id=order_id,
        order_amount=amount,
        transaction_amount=_decimal(settled, default=amount),
        gateway_name=_text(_generic_lookup(payload, ("gateway", "gateway_name", "provider"))) or UNKNOWN_GATEWAY,
        bank_reference=_text(_generic_lookup(payload, GENERIC_REFERENCE_KEYS)),
        raw_status=_text(_generic_lookup(payload, GENERIC_STATUS_KEYS)),
        payment_mode=_text(_generic_lookup(payload, ("payment_mode", "payment_method", "method", "mode"))),
        payment_details=json.dumps(payload, default=str, sort_keys=True),
        message=_text(_generic_lookup(payload, ("message", "payment_message"))),
        payment_time=_datetime(_generic_lookup(payload, GENERIC_TIME_KEYS)) or timezone.now(),
        error_message=_text(_generic_lookup(payload, ("error_message", "error"))),
        provider="generic",
    )


FORMATS = (
    ("native", is_native, extract_native),
    ("flat", is_flat, extract_flat),
    ("generic", is_generic, extract_generic),
)


def detect_format(payload: dict) -> str:
    for name, detector, _ in FORMATS:
        if detector(payload):
            return name
    return "generic"


def normalize(payload) -> OrderEvent:
    """Return the canonical event for ``payload`` or raise ``MalformedPayload``."""
    if not isinstance(payload, dict):
        raise MalformedPayload("Payload must be a JSON object", ["payload"])
    error = MalformedPayload("Unrecognised payload", ["payload"])
    for name, detector, extractor in FORMATS:
        if not detector(payload):
            continue
        try:
            return extractor(payload)
        except MalformedPayload as exc:
            # a recognised native payload with bad fields is rejected outright
            if name == "native":
                raise
            error = exc
    raise error
