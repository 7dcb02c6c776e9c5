import enum
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.utils import timezone

from .integrations.edviron import GATEWAY_NAME, EdvironClient, EdvironError
from .models import Order, OrderStatus, WebhookLog
from .normalizers import OrderEvent
from .statuses import map_status

logger = logging.getLogger(__name__)


class Outcome(str, enum.Enum):
    APPLIED = "applied"
    ORDER_NOT_FOUND = "order_not_found"


@dataclass
class ReconcileResult:
    outcome: Outcome
    order: Optional[Order] = None
    order_status: Optional[OrderStatus] = None


def record_webhook(payload, received_at=None) -> WebhookLog:
    """Persist an inbound notification verbatim. Must run before it is interpreted."""
    return WebhookLog.objects.create(received_at=received_at or timezone.now(), payload=payload)


def _clip(model, field: str, value: str) -> str:
    """Cut provider text to the column width; server backends reject longer values."""
    max_length = model._meta.get_field(field).max_length
    return value[:max_length] if max_length else value


def _status_defaults(event: OrderEvent) -> dict:
    # every column is written so the row only reflects the latest event
    return {
        "order_amount": event.order_amount,
        "transaction_amount": event.transaction_amount,
        "payment_mode": _clip(OrderStatus, "payment_mode", event.payment_mode),
        "payment_details": event.payment_details,
        "bank_reference": _clip(OrderStatus, "bank_reference", event.bank_reference),
        "payment_message": event.message,
        "status": _clip(OrderStatus, "status", event.raw_status),
        "error_message": event.error_message,
        "payment_time": event.payment_time,
    }


def reconcile(event: OrderEvent) -> ReconcileResult:
    """Apply ``event`` to the order it references.

    The OrderStatus upsert and the Order update commit together under a row
    lock on the order, so concurrent events for one order serialize and the
    last one to commit determines both records. Events are not compared
    against what is stored: a stale redelivery still overwrites newer state.
    """
    with transaction.atomic():
        order = (
            Order.objects.select_for_update()
            .filter(custom_order_id=event.external_order_id)
            .first()
        )
        if order is None:
            logger.warning(
                "Webhook for unknown order custom_order_id=%s gateway=%s status=%s",
                event.external_order_id,
                event.gateway_name,
                event.raw_status,
            )
            return ReconcileResult(Outcome.ORDER_NOT_FOUND)

        order_status, created = OrderStatus.objects.update_or_create(
            order=order, defaults=_status_defaults(event)
        )
        order.status = event.canonical_status
        order.gateway_name = _clip(Order, "gateway_name", event.gateway_name)
        order.save(update_fields=["status", "gateway_name", "updated_at"])

    logger.info(
        "Reconciled order %s -> %s (raw=%s, detail %s)",
        order.custom_order_id,
        order.status,
        event.raw_status,
        "created" if created else "replaced",
    )
    return ReconcileResult(Outcome.APPLIED, order=order, order_status=order_status)


def create_payment_order(*, amount, student_name, student_id, student_email,
                         callback_url="", trustee_id="", client=None) -> tuple:
    """Request a payment link upstream, then persist the pending Order.

    Nothing is written locally if the gateway call fails.
    Returns ``(order, payment_url)``.
    """
    client = client or EdvironClient.from_settings()
    link = client.create_collect_request(amount, callback_url)
    order = Order.objects.create(
        school_id=client.config.school_id,
        trustee_id=trustee_id or "",
        student_name=student_name,
        student_id=student_id,
        student_email=student_email,
        amount=amount,
        custom_order_id=link["collect_request_id"],
        status=Order.STATUS_PENDING,
        gateway_name=GATEWAY_NAME,
    )
    logger.info("Created order %s for student %s amount=%s", order.custom_order_id, student_id, amount)
    return order, link["payment_url"]


def refresh_order_from_gateway(collect_request_id: str, client=None) -> tuple:
    """Poll the gateway for ``collect_request_id`` and store the mapped status.

    Returns ``(gateway_data, order_or_None)``.
    """
    client = client or EdvironClient.from_settings()
    data = client.collect_request_status(collect_request_id)
    if not isinstance(data, dict):
        raise EdvironError("Unexpected collect request status response", details=data)
    status = map_status(data.get("status"), "native")
    updated = Order.objects.filter(custom_order_id=collect_request_id).update(
        status=status, updated_at=timezone.now()
    )
    order = Order.objects.filter(custom_order_id=collect_request_id).first() if updated else None
    if order is None:
        logger.warning("Status poll for unknown order custom_order_id=%s", collect_request_id)
    return data, order
