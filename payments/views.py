import json
import logging

from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST, require_GET

from .auth import api_login_required
from .forms import CreatePaymentForm
from .integrations.edviron import EdvironError
from .models import WebhookLog
from .services import create_payment_order, refresh_order_from_gateway
from .transactions import TransactionQuery, build_transaction_page, transaction_status
from .utils import page_params, pagination

logger = logging.getLogger(__name__)


def _json_body(request):
    try: return json.loads(request.body.decode("utf-8"))
    except Exception: return None


def _gateway_error(message, e: EdvironError):
    return JsonResponse(
        {"error": message, "details": e.details if e.details is not None else str(e)},
        status=502,
    )


@csrf_exempt
@require_POST
@api_login_required
def create_payment_view(request):
    body = _json_body(request)
    if not isinstance(body, dict):
        return JsonResponse({"error": "Invalid JSON body"}, status=400)
    form = CreatePaymentForm(body)
    if not form.is_valid():
        return JsonResponse({"error": "Invalid payment request", "details": form.errors.get_json_data()}, status=400)
    data = form.cleaned_data

    try:
        order, payment_url = create_payment_order(
            amount=data["amount"],
            student_name=data["student_name"],
            student_id=data["student_id"],
            student_email=data["student_email"],
            callback_url=data.get("callback_url") or "",
            trustee_id=request.user.get_username(),
        )
    except EdvironError as e:
        return _gateway_error("Failed to create payment", e)

    return JsonResponse({
        "success": True,
        "order_id": order.pk,
        "custom_order_id": order.custom_order_id,
        "payment_url": payment_url,
        "amount": order.amount,
        "message": "Payment link generated successfully",
    }, status=201)


@require_GET
@api_login_required
def payment_status_view(request, collect_request_id: str):
    try:
        data, order = refresh_order_from_gateway(collect_request_id)
    except EdvironError as e:
        return _gateway_error("Failed to check payment status", e)

    return JsonResponse({
        "success": True,
        "status": data.get("status"),
        "order_status": order.status if order else None,
        "amount": data.get("amount"),
        "details": data.get("details"),
    })


def _transactions_response(request, **overrides):
    try:
        query = TransactionQuery.from_params(request.GET, **overrides)
    except ValueError as e:
        return JsonResponse({"error": str(e)}, status=400)
    try:
        page = build_transaction_page(query)
    except DatabaseError:
        logger.exception("Failed to fetch transactions")
        return JsonResponse({"error": "Failed to fetch transactions"}, status=500)
    return JsonResponse({"success": True, **page})


@require_GET
@api_login_required
def transactions_view(request):
    return _transactions_response(request)


@require_GET
@api_login_required
def school_transactions_view(request, school_id: str):
    return _transactions_response(request, school_id=school_id)


@require_GET
@api_login_required
def transaction_status_view(request, custom_order_id: str):
    result = transaction_status(custom_order_id)
    if result is None:
        return JsonResponse({"error": "Transaction not found", "custom_order_id": custom_order_id}, status=404)
    return JsonResponse({"success": True, **result})


@require_GET
@api_login_required
def webhook_logs_view(request):
    page, limit = page_params(request.GET)
    qs = WebhookLog.objects.order_by("-received_at", "-id")
    total = qs.count()
    start = (page - 1) * limit
    logs = [
        {"id": log.pk, "received_at": log.received_at, "payload": log.payload}
        for log in qs[start:start + limit]
    ]
    return JsonResponse({
        "success": True,
        "data": logs,
        "pagination": pagination(page, limit, total),
    })
