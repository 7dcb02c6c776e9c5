import json
import logging
import math

from django.db import DatabaseError
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .normalizers import MalformedPayload, normalize
from .services import record_webhook, reconcile

logger = logging.getLogger(__name__)


def _float(text):
    value = float(text)
    return value if math.isfinite(value) else text


def _payload(request):
    body = request.body.decode("utf-8", errors="replace")
    try:
        # non-finite numbers are kept as text; the JSON column rejects them
        return json.loads(body, parse_float=_float, parse_constant=str)
    except ValueError:
        # still audited, rejected later for lacking an order id
        return {"raw": body}


@csrf_exempt
@require_POST
def payment_webhook(request):
    received_at = timezone.now()
    payload = _payload(request)

    try:
        log = record_webhook(payload, received_at=received_at)
    except DatabaseError:
        logger.exception("Could not store webhook payload; refusing to process it")
        return JsonResponse({"error": "Storage unavailable"}, status=500)

    try:
        event = normalize(payload)
    except MalformedPayload as e:
        logger.warning("Rejected webhook log_id=%s: %s", log.pk, e)
        return JsonResponse({"error": str(e), "details": e.errors}, status=400)

    try:
        result = reconcile(event)
    except DatabaseError:
        logger.exception("Reconciliation failed for custom_order_id=%s log_id=%s", event.external_order_id, log.pk)
        return JsonResponse({"error": "Storage unavailable"}, status=500)

    logger.info(
        "Webhook log_id=%s format=%s order=%s outcome=%s",
        log.pk, event.provider, event.external_order_id, result.outcome.value,
    )
    # unknown orders are acknowledged too so the provider stops redelivering
    return JsonResponse({
        "success": True,
        "outcome": result.outcome.value,
        "custom_order_id": event.external_order_id,
        "status": result.order.status if result.order else None,
    })
